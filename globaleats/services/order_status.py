"""
订单状态机
订单创建后只能通过这里修改状态

前进链（每次只能前进一步，不能跳过）：
- 商家：pending -> confirmed -> preparing -> ready_for_pickup
- 骑手：ready_for_pickup -> out_for_delivery -> delivered

取消链（独立于前进链）：
- 顾客：pending / confirmed / preparing / ready_for_pickup 可取消
- 商家：送达前任意非终态可取消
- 预付订单取消后为 refunded，货到付款订单为 cancelled

delivered / cancelled / refunded 为终态。
所有写入都带 WHERE status = 当前状态 的乐观校验。
"""

import logging
from datetime import datetime
from typing import Dict, FrozenSet, Optional

from ..core.database import DatabaseManager, db_manager, row_to_dict
from ..core.exceptions import ForbiddenError, IllegalTransitionError, OrderNotFoundError
from ..models.order import Order, OrderStatus, PaymentMethod
from ..models.user import Actor, UserRole
from .order_repository import OrderRepository, write_audit_log

logger = logging.getLogger(__name__)

S = OrderStatus

VENDOR_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    S.PENDING: frozenset({S.CONFIRMED}),
    S.CONFIRMED: frozenset({S.PREPARING}),
    S.PREPARING: frozenset({S.READY_FOR_PICKUP}),
}

DELIVERY_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    S.READY_FOR_PICKUP: frozenset({S.OUT_FOR_DELIVERY}),
    S.OUT_FOR_DELIVERY: frozenset({S.DELIVERED}),
}

CUSTOMER_CANCELLABLE = frozenset({S.PENDING, S.CONFIRMED, S.PREPARING, S.READY_FOR_PICKUP})
VENDOR_CANCELLABLE = CUSTOMER_CANCELLABLE | {S.OUT_FOR_DELIVERY}


def forward_transitions(role: UserRole) -> Dict[OrderStatus, FrozenSet[OrderStatus]]:
    """角色可执行的前进流转表"""
    if role == UserRole.VENDOR:
        return VENDOR_TRANSITIONS
    if role == UserRole.DELIVERY_AGENT:
        return DELIVERY_TRANSITIONS
    if role == UserRole.ADMIN:
        return {**VENDOR_TRANSITIONS, **DELIVERY_TRANSITIONS}
    return {}


def is_forward_transition_allowed(role: UserRole, current: OrderStatus,
                                  target: OrderStatus) -> bool:
    return target in forward_transitions(role).get(current, frozenset())


def cancellation_target(payment_method: PaymentMethod) -> OrderStatus:
    """取消后的终态"""
    return S.REFUNDED if PaymentMethod(payment_method).is_prepaid else S.CANCELLED


def _forbidden(actor: Actor, row: Dict, message: str = "无权操作该订单") -> ForbiddenError:
    """越权错误；调用者能查看该订单（下单顾客）时附带当前状态"""
    details = {"order_id": row["order_id"]}
    if row["user_id"] == actor.user_id:
        details["current_status"] = row["status"]
    return ForbiddenError(message, details)


class OrderStatusService:
    """订单状态流转服务"""

    def __init__(self, db: Optional[DatabaseManager] = None,
                 repository: Optional[OrderRepository] = None):
        self.db = db or db_manager
        self.repository = repository or OrderRepository(self.db)

    def update_status(self, actor: Actor, order_id: int, target: OrderStatus) -> Order:
        """
        商家/骑手推进订单状态

        Raises:
            OrderNotFoundError: 订单不存在
            ForbiddenError: 调用者无权操作该订单
            IllegalTransitionError: 非法流转（附带订单当前状态）
        """
        target = OrderStatus(target)
        with self.db.transaction() as conn:
            row = self._load_for_update(conn, order_id)
            self._authorize_forward(actor, row)

            current = OrderStatus(row["status"])
            if current.is_terminal or not is_forward_transition_allowed(
                    actor.role, current, target):
                raise IllegalTransitionError(order_id, current.value, target.value)

            extra_sql = ""
            extra_params = []
            if target == S.DELIVERED:
                extra_sql = ", actual_delivery_time = ?"
                extra_params = [datetime.now()]

            self._compare_and_set(conn, order_id, current, target, extra_sql, extra_params)
            write_audit_log(conn, row["user_id"], actor.user_id, "order_status_change", {
                "order_id": order_id,
                "from": current.value,
                "to": target.value,
            })

        logger.info("Order %s: %s -> %s by user %s", order_id, current.value,
                    target.value, actor.user_id)
        return self.repository.get(order_id)

    def cancel_order(self, actor: Actor, order_id: int, reason: Optional[str] = None) -> Order:
        """
        取消订单（顾客或商家）

        Raises:
            OrderNotFoundError: 订单不存在
            ForbiddenError: 调用者无权取消该订单
            IllegalTransitionError: 当前状态不可取消
        """
        with self.db.transaction() as conn:
            row = self._load_for_update(conn, order_id)
            current = OrderStatus(row["status"])
            target = cancellation_target(row["payment_method"])

            if actor.role == UserRole.CUSTOMER:
                if row["user_id"] != actor.user_id:
                    raise _forbidden(actor, row)
                cancellable = CUSTOMER_CANCELLABLE
            elif actor.role == UserRole.VENDOR:
                if row["outlet_owner_id"] != actor.user_id:
                    raise _forbidden(actor, row)
                cancellable = VENDOR_CANCELLABLE
            elif actor.role == UserRole.ADMIN:
                cancellable = VENDOR_CANCELLABLE
            else:
                raise _forbidden(actor, row, "骑手不能取消订单")

            if current.is_terminal or current not in cancellable:
                raise IllegalTransitionError(order_id, current.value, target.value)

            self._compare_and_set(conn, order_id, current, target,
                                  ", cancellation_reason = ?, cancelled_by = ?",
                                  [reason, actor.user_id])
            write_audit_log(conn, row["user_id"], actor.user_id, "order_cancel", {
                "order_id": order_id,
                "from": current.value,
                "to": target.value,
                "reason": reason,
            })

        logger.info("Order %s cancelled (%s) by user %s", order_id, target.value, actor.user_id)
        return self.repository.get(order_id)

    def _load_for_update(self, conn, order_id: int) -> Dict:
        row = row_to_dict(conn.execute(
            """
            SELECT o.order_id, o.user_id, o.status, o.payment_method, ot.owner_id AS outlet_owner_id
            FROM orders o
            LEFT JOIN outlets ot ON ot.id = o.outlet_id
            WHERE o.order_id = ?
            """,
            [order_id],
        ))
        if row is None:
            raise OrderNotFoundError(order_id)
        return row

    @staticmethod
    def _authorize_forward(actor: Actor, row: Dict) -> None:
        if actor.role == UserRole.VENDOR:
            if row["outlet_owner_id"] != actor.user_id:
                raise _forbidden(actor, row)
        elif actor.role not in (UserRole.DELIVERY_AGENT, UserRole.ADMIN):
            raise _forbidden(actor, row, "无权变更订单状态")

    @staticmethod
    def _compare_and_set(conn, order_id: int, expected: OrderStatus, target: OrderStatus,
                         extra_sql: str = "", extra_params: list = None) -> None:
        """仅当状态仍为 expected 时更新，否则按实际状态报错"""
        updated = conn.execute(
            f"""
            UPDATE orders SET status = ?, updated_at = ?{extra_sql}
            WHERE order_id = ? AND status = ?
            RETURNING order_id
            """,
            [target.value, datetime.now(), *(extra_params or []), order_id, expected.value],
        ).fetchone()
        if updated is None:
            actual = conn.execute(
                "SELECT status FROM orders WHERE order_id = ?", [order_id]
            ).fetchone()
            raise IllegalTransitionError(order_id, actual[0] if actual else expected.value,
                                         target.value)
