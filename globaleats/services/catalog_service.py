"""
目录查询服务
结算时只读访问品牌、门店、菜品和收货地址，不做缓存，每次调用都读取最新数据
"""

from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence

from ..core.database import DatabaseManager, db_manager, row_to_dict, rows_to_dicts
from ..core.exceptions import AddressNotFoundError
from ..models.catalog import Coordinate, OutletCandidate, PinnedOutlet

_CANDIDATE_COLUMNS = """
    o.id AS outlet_id,
    ob.brand_id AS brand_id,
    o.latitude,
    o.longitude,
    o.delivery_radius_km,
    o.is_active,
    o.is_delivery_available,
    o.free_delivery_threshold,
    ob.is_available AS link_available,
    ob.delivery_fee,
    ob.minimum_order_amount,
    ob.preparation_time_minutes,
    b.is_active AS brand_active
"""


def _to_candidate(row: Dict[str, Any], brand_id: str) -> OutletCandidate:
    return OutletCandidate(
        outlet_id=row["outlet_id"],
        brand_id=brand_id,
        coordinate=Coordinate(latitude=row["latitude"], longitude=row["longitude"]),
        delivery_radius_km=row["delivery_radius_km"],
        is_active=bool(row["is_active"]),
        base_delivery_fee=row["delivery_fee"] if row["delivery_fee"] is not None else Decimal("0"),
        minimum_order_amount=(row["minimum_order_amount"]
                              if row["minimum_order_amount"] is not None else Decimal("0")),
        preparation_time_minutes=row["preparation_time_minutes"] or 30,
        free_delivery_threshold=row["free_delivery_threshold"],
    )


class CatalogService:
    """品牌/门店/菜品目录查询"""

    def __init__(self, db: Optional[DatabaseManager] = None):
        self.db = db or db_manager

    def outlet_candidates(self, brand_id: str) -> List[OutletCandidate]:
        """
        获取品牌所有可接单的门店

        条件：门店营业且开放配送、门店-品牌关联可用、品牌本身启用
        """
        with self.db.reading() as conn:
            rows = rows_to_dicts(conn.execute(
                f"""
                SELECT {_CANDIDATE_COLUMNS}
                FROM outlet_brands ob
                JOIN outlets o ON o.id = ob.outlet_id
                JOIN brands b ON b.id = ob.brand_id
                WHERE ob.brand_id = ?
                  AND ob.is_available
                  AND o.is_active
                  AND o.is_delivery_available
                  AND b.is_active
                ORDER BY o.id
                """,
                [brand_id],
            ))
        return [_to_candidate(row, brand_id) for row in rows]

    def outlet_candidate(self, outlet_id: str, brand_id: str) -> Optional[PinnedOutlet]:
        """获取指定门店对某品牌的视图，门店不存在时返回 None"""
        with self.db.reading() as conn:
            row = row_to_dict(conn.execute(
                f"""
                SELECT {_CANDIDATE_COLUMNS}
                FROM outlets o
                LEFT JOIN outlet_brands ob ON ob.outlet_id = o.id AND ob.brand_id = ?
                LEFT JOIN brands b ON b.id = ob.brand_id
                WHERE o.id = ?
                """,
                [brand_id, outlet_id],
            ))
        if row is None:
            return None

        serves_brand = bool(row["brand_id"]) and bool(row["link_available"]) and bool(row["brand_active"])
        return PinnedOutlet(
            candidate=_to_candidate(row, brand_id),
            serves_brand=serves_brand,
            delivery_available=bool(row["is_delivery_available"]),
        )

    def unavailable_menu_items(self, brand_id: str, menu_item_ids: Sequence[str]) -> List[str]:
        """返回已下架、不存在或不属于该品牌的菜品ID（保持输入顺序）"""
        wanted = list(dict.fromkeys(menu_item_ids))
        if not wanted:
            return []
        placeholders = ",".join("?" for _ in wanted)
        with self.db.reading() as conn:
            rows = conn.execute(
                f"""
                SELECT id FROM menu_items
                WHERE brand_id = ? AND is_available AND id IN ({placeholders})
                """,
                [brand_id, *wanted],
            ).fetchall()
        available = {r[0] for r in rows}
        return [item_id for item_id in wanted if item_id not in available]


class AddressService:
    """收货地址查询"""

    def __init__(self, db: Optional[DatabaseManager] = None):
        self.db = db or db_manager

    def resolve_coordinate(self, user_id: int, address_id: str) -> Coordinate:
        """解析当前用户的收货地址坐标"""
        row = self.db.execute_one(
            "SELECT latitude, longitude FROM addresses WHERE id = ? AND user_id = ?",
            [address_id, user_id],
        )
        if not row:
            raise AddressNotFoundError(address_id)
        return Coordinate(latitude=row["latitude"], longitude=row["longitude"])

    def ensure_owned(self, user_id: int, address_id: str) -> None:
        """确认地址属于当前用户"""
        row = self.db.execute_one(
            "SELECT 1 AS ok FROM addresses WHERE id = ? AND user_id = ?",
            [address_id, user_id],
        )
        if not row:
            raise AddressNotFoundError(address_id)
