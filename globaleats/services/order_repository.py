"""
订单持久化
一次结算的所有订单及明细在同一个数据库事务中写入，要么全部成功，要么全部回滚

主要功能：
- 生成共享的结算批次ID
- 为每个订单生成唯一订单号（冲突时重新生成，超过次数则失败）
- 写入订单、订单明细和审计日志
- 按用户/批次/门店读取订单
"""

import json
import logging
import random
import uuid
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Sequence, Set

from ..config.settings import settings
from ..core.database import DatabaseManager, db_manager, row_to_dict, rows_to_dicts
from ..core.exceptions import PersistenceError
from ..models.order import Order, OrderLine, OrderStatus, PaymentMethod, PricedOrderIntent

logger = logging.getLogger(__name__)

ORDER_COLUMNS = """
    order_id AS id, order_number, checkout_batch_id, user_id, outlet_id, brand_id,
    address_id, status, payment_method, subtotal, delivery_fee, tax_amount,
    total_amount, distance_km, special_instructions, estimated_delivery_time,
    actual_delivery_time, cancellation_reason, cancelled_by, created_at, updated_at
"""


def default_order_number(prefix: str, now: datetime) -> str:
    """日期前缀 + 6位随机数，如 GE20260119042317"""
    return f"{prefix}{now:%Y%m%d}{random.randint(0, 999999):06d}"


def write_audit_log(conn, user_id: Optional[int], actor_id: Optional[int],
                    action: str, detail: Dict[str, Any]) -> None:
    """在调用方事务内写入审计日志"""
    conn.execute(
        "INSERT INTO logs(user_id, actor_id, action, detail_json, created_at) VALUES (?,?,?,?,?)",
        [user_id, actor_id, action, json.dumps(detail, default=str, ensure_ascii=False),
         datetime.now()],
    )


class OrderRepository:
    """订单仓储"""

    def __init__(self, db: Optional[DatabaseManager] = None,
                 number_factory: Optional[Callable[[str, datetime], str]] = None,
                 max_number_attempts: Optional[int] = None):
        self.db = db or db_manager
        self.number_factory = number_factory or default_order_number
        self.max_number_attempts = max_number_attempts or settings.order_number_max_attempts

    def commit(self, user_id: int, address_id: str, payment_method: PaymentMethod,
               intents: Sequence[PricedOrderIntent],
               special_instructions: Optional[str] = None) -> List[Order]:
        """
        原子写入一个结算批次的所有订单

        Returns:
            list: 已落库订单，顺序与 intents 一致

        Raises:
            PersistenceError: 门店/菜品已失效、订单号无法生成或数据库写入失败
        """
        if not intents:
            raise PersistenceError("没有可写入的订单")

        batch_id = str(uuid.uuid4())
        now = datetime.now()
        payment_method = PaymentMethod(payment_method)
        orders: List[Order] = []

        with self.db.transaction() as conn:
            used_numbers: Set[str] = set()
            for intent in intents:
                self._verify_references(conn, intent)
                order_number = self._next_order_number(conn, now, used_numbers)
                used_numbers.add(order_number)

                order = self._insert_order(conn, batch_id, order_number, user_id, address_id,
                                           payment_method, intent, special_instructions, now)
                order.lines = self._insert_order_lines(conn, order.id, intent)
                orders.append(order)

            write_audit_log(conn, user_id, user_id, "order_checkout", {
                "checkout_batch_id": batch_id,
                "orders": [
                    {"order_id": o.id, "order_number": o.order_number,
                     "outlet_id": o.outlet_id, "total_amount": o.total_amount}
                    for o in orders
                ],
                "payment_method": payment_method.value,
            })

        logger.info("Checkout batch %s committed with %d orders for user %s",
                    batch_id, len(orders), user_id)
        return orders

    def _verify_references(self, conn, intent: PricedOrderIntent) -> None:
        """事务内再次确认门店和菜品仍然有效"""
        outlet = conn.execute(
            "SELECT is_active FROM outlets WHERE id = ?", [intent.outlet_id]
        ).fetchone()
        if not outlet or not outlet[0]:
            raise PersistenceError(f"门店 {intent.outlet_id} 已失效",
                                   {"outlet_id": intent.outlet_id})

        item_ids = list(dict.fromkeys(line.menu_item_id for line in intent.lines))
        placeholders = ",".join("?" for _ in item_ids)
        found = conn.execute(
            f"SELECT COUNT(*) FROM menu_items WHERE id IN ({placeholders}) AND is_available",
            item_ids,
        ).fetchone()[0]
        if found != len(item_ids):
            raise PersistenceError("部分菜品已失效", {"menu_item_ids": item_ids})

    def _next_order_number(self, conn, now: datetime, used: Set[str]) -> str:
        """生成未被占用的订单号，重复时重试"""
        for attempt in range(1, self.max_number_attempts + 1):
            candidate = self.number_factory(settings.order_number_prefix, now)
            if candidate in used:
                continue
            exists = conn.execute(
                "SELECT 1 FROM orders WHERE order_number = ?", [candidate]
            ).fetchone()
            if not exists:
                return candidate
            logger.warning("Order number collision on %s (attempt %d)", candidate, attempt)
        raise PersistenceError("订单号生成失败，请稍后重试",
                               {"attempts": self.max_number_attempts})

    def _insert_order(self, conn, batch_id: str, order_number: str, user_id: int,
                      address_id: str, payment_method: PaymentMethod,
                      intent: PricedOrderIntent, special_instructions: Optional[str],
                      now: datetime) -> Order:
        estimated = now + timedelta(
            minutes=intent.preparation_time_minutes + settings.delivery_buffer_minutes)
        order_id = conn.execute(
            """
            INSERT INTO orders(order_number, checkout_batch_id, user_id, outlet_id, brand_id,
                               address_id, status, payment_method, subtotal, delivery_fee,
                               tax_amount, total_amount, distance_km, special_instructions,
                               estimated_delivery_time, created_at, updated_at)
            VALUES (?,?,?,?,?,?,?,?,?,?,?,?,?,?,?,?,?)
            RETURNING order_id
            """,
            [order_number, batch_id, user_id, intent.outlet_id, intent.brand_id, address_id,
             OrderStatus.PENDING.value, payment_method.value, intent.subtotal,
             intent.delivery_fee, intent.tax_amount, intent.total_amount,
             intent.distance_km, special_instructions, estimated, now, now],
        ).fetchone()[0]

        return Order(
            id=order_id,
            order_number=order_number,
            checkout_batch_id=batch_id,
            user_id=user_id,
            outlet_id=intent.outlet_id,
            brand_id=intent.brand_id,
            address_id=address_id,
            status=OrderStatus.PENDING,
            payment_method=payment_method,
            subtotal=intent.subtotal,
            delivery_fee=intent.delivery_fee,
            tax_amount=intent.tax_amount,
            total_amount=intent.total_amount,
            distance_km=intent.distance_km,
            special_instructions=special_instructions,
            estimated_delivery_time=estimated,
            created_at=now,
            updated_at=now,
        )

    def _insert_order_lines(self, conn, order_id: int,
                            intent: PricedOrderIntent) -> List[OrderLine]:
        lines = []
        for line_no, line in enumerate(intent.lines, start=1):
            conn.execute(
                """
                INSERT INTO order_items(order_id, line_no, menu_item_id, quantity,
                                        unit_price, line_total, special_instructions)
                VALUES (?,?,?,?,?,?,?)
                """,
                [order_id, line_no, line.menu_item_id, line.quantity, line.unit_price,
                 line.line_total, line.special_instructions],
            )
            lines.append(OrderLine(
                menu_item_id=line.menu_item_id,
                quantity=line.quantity,
                unit_price=line.unit_price,
                line_total=line.line_total,
                special_instructions=line.special_instructions,
            ))
        return lines

    # ---- 读取 ----

    def get(self, order_id: int) -> Optional[Order]:
        """按ID获取订单（含明细）"""
        with self.db.reading() as conn:
            row = row_to_dict(conn.execute(
                f"SELECT {ORDER_COLUMNS} FROM orders WHERE order_id = ?", [order_id]))
            if row is None:
                return None
            return self._with_lines(conn, [row])[0]

    def list_by_batch(self, user_id: int, batch_id: str) -> List[Order]:
        """获取用户某次结算的全部订单，按写入顺序"""
        with self.db.reading() as conn:
            rows = rows_to_dicts(conn.execute(
                f"""
                SELECT {ORDER_COLUMNS} FROM orders
                WHERE checkout_batch_id = ? AND user_id = ?
                ORDER BY order_id
                """,
                [batch_id, user_id],
            ))
            return self._with_lines(conn, rows)

    def list_by_user(self, user_id: int, status: Optional[OrderStatus] = None,
                     limit: int = 10, offset: int = 0) -> Dict[str, Any]:
        """用户订单历史，最新的在前"""
        return self._paged("user_id = ?", [user_id], status, limit, offset)

    def list_by_vendor(self, vendor_id: int, status: Optional[OrderStatus] = None,
                       limit: int = 10, offset: int = 0) -> Dict[str, Any]:
        """商家名下所有门店的订单"""
        return self._paged(
            "outlet_id IN (SELECT id FROM outlets WHERE owner_id = ?)",
            [vendor_id], status, limit, offset)

    def _paged(self, where: str, params: list, status: Optional[OrderStatus],
               limit: int, offset: int) -> Dict[str, Any]:
        if status is not None:
            where += " AND status = ?"
            params = [*params, OrderStatus(status).value]

        with self.db.reading() as conn:
            total = conn.execute(f"SELECT COUNT(*) FROM orders WHERE {where}", params).fetchone()[0]
            rows = rows_to_dicts(conn.execute(
                f"""
                SELECT {ORDER_COLUMNS} FROM orders WHERE {where}
                ORDER BY created_at DESC, order_id DESC
                LIMIT ? OFFSET ?
                """,
                [*params, limit, offset],
            ))
            return {"items": self._with_lines(conn, rows), "total": total}

    def _with_lines(self, conn, rows: List[Dict[str, Any]]) -> List[Order]:
        if not rows:
            return []
        ids = [row["id"] for row in rows]
        placeholders = ",".join("?" for _ in ids)
        line_rows = rows_to_dicts(conn.execute(
            f"""
            SELECT order_id, menu_item_id, quantity, unit_price, line_total, special_instructions
            FROM order_items WHERE order_id IN ({placeholders})
            ORDER BY order_id, line_no
            """,
            ids,
        ))
        by_order: Dict[int, List[OrderLine]] = {}
        for line in line_rows:
            by_order.setdefault(line.pop("order_id"), []).append(OrderLine(**line))

        return [Order(**row, lines=by_order.get(row["id"], [])) for row in rows]
