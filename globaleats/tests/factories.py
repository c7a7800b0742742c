"""
测试数据构造工具
直接写入目录表，绕开业务服务
"""

import math
import uuid
from decimal import Decimal
from typing import Optional

from globaleats.core.database import DatabaseManager
from globaleats.models.catalog import Coordinate
from globaleats.models.user import Actor, UserRole

# 顾客默认位置
HOME = Coordinate(latitude=12.9716, longitude=77.5946)

KM_PER_DEGREE = 6371.0 * math.pi / 180


def north_of(origin: Coordinate, km: float) -> Coordinate:
    """正北方向 km 公里处的坐标"""
    return Coordinate(latitude=origin.latitude + km / KM_PER_DEGREE,
                      longitude=origin.longitude)


class CatalogSeeder:
    """目录数据构造器"""

    def __init__(self, db: DatabaseManager):
        self.db = db

    def _execute(self, sql: str, params: list):
        with self.db.reading() as conn:
            return conn.execute(sql, params).fetchone()

    def user(self, name: str = "测试用户", role: UserRole = UserRole.CUSTOMER) -> Actor:
        row = self._execute("INSERT INTO users(name, role) VALUES (?, ?) RETURNING id",
                            [name, UserRole(role).value])
        return Actor(user_id=row[0], role=role)

    def address(self, user_id: int, coordinate: Coordinate = HOME,
                address_id: Optional[str] = None) -> str:
        address_id = address_id or f"addr-{uuid.uuid4().hex[:8]}"
        self._execute(
            "INSERT INTO addresses(id, user_id, label, latitude, longitude) VALUES (?,?,?,?,?)",
            [address_id, user_id, "家", coordinate.latitude, coordinate.longitude])
        return address_id

    def brand(self, brand_id: str, owner_id: Optional[int] = None, is_active: bool = True) -> str:
        self._execute("INSERT INTO brands(id, owner_id, name, is_active) VALUES (?,?,?,?)",
                      [brand_id, owner_id, brand_id.title(), is_active])
        return brand_id

    def outlet(self, outlet_id: str, coordinate: Coordinate, owner_id: Optional[int] = None,
               radius_km: float = 5.0, is_active: bool = True,
               delivery_available: bool = True,
               free_delivery_threshold: Optional[str] = None) -> str:
        self._execute(
            """
            INSERT INTO outlets(id, owner_id, name, latitude, longitude, delivery_radius_km,
                                is_active, is_delivery_available, free_delivery_threshold)
            VALUES (?,?,?,?,?,?,?,?,?)
            """,
            [outlet_id, owner_id, outlet_id, coordinate.latitude, coordinate.longitude,
             radius_km, is_active, delivery_available,
             Decimal(free_delivery_threshold) if free_delivery_threshold else None])
        return outlet_id

    def link(self, outlet_id: str, brand_id: str, delivery_fee: str = "25.00",
             minimum_order: str = "0", prep_minutes: int = 30, is_available: bool = True):
        self._execute(
            """
            INSERT INTO outlet_brands(outlet_id, brand_id, is_available, preparation_time_minutes,
                                      minimum_order_amount, delivery_fee)
            VALUES (?,?,?,?,?,?)
            """,
            [outlet_id, brand_id, is_available, prep_minutes, Decimal(minimum_order),
             Decimal(delivery_fee)])

    def menu_item(self, item_id: str, brand_id: str, price: str = "50.00",
                  is_available: bool = True) -> str:
        self._execute(
            "INSERT INTO menu_items(id, brand_id, name, base_price, is_available) VALUES (?,?,?,?,?)",
            [item_id, brand_id, item_id, Decimal(price), is_available])
        return item_id

    def count(self, table: str) -> int:
        return self._execute(f"SELECT COUNT(*) FROM {table}", [])[0]
