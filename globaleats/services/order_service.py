"""
订单服务模块
提供结算和订单查询的核心业务逻辑

主要功能：
- 多品牌购物车结算（拆分 -> 门店解析 -> 定价 -> 原子落库）
- 订单状态流转与取消（委托给状态机）
- 顾客订单历史、结算批次、商家订单查询

业务规则：
- 每个订单只属于一个品牌和一个门店
- 同一次结算的订单共享 checkout_batch_id
- 任一品牌无法下单则整单失败，不写入任何订单
"""

import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

from ..core.database import DatabaseManager, db_manager
from ..core.exceptions import ForbiddenError, OrderNotFoundError
from ..models.base import PaginationParams
from ..models.cart import CartSnapshot
from ..models.catalog import Coordinate
from ..models.order import (
    CheckoutResult,
    CheckoutSummary,
    Order,
    OrderStatus,
    PaymentMethod,
)
from ..models.user import Actor, UserRole
from .catalog_service import AddressService, CatalogService
from .order_decomposer import OrderDecomposer
from .order_repository import OrderRepository
from .order_status import OrderStatusService
from .pricing_service import PricingCalculator

logger = logging.getLogger(__name__)


class OrderService:
    """订单服务类，封装结算和订单相关的业务逻辑"""

    def __init__(self, db: Optional[DatabaseManager] = None,
                 pricing: Optional[PricingCalculator] = None,
                 repository: Optional[OrderRepository] = None):
        self.db = db or db_manager
        self.catalog = CatalogService(self.db)
        self.addresses = AddressService(self.db)
        self.repository = repository or OrderRepository(self.db)
        self.decomposer = OrderDecomposer(self.catalog, pricing or PricingCalculator())
        self.status = OrderStatusService(self.db, self.repository)

    def checkout(self, user_id: int, cart: CartSnapshot, address_id: str,
                 payment_method: PaymentMethod,
                 delivery_coordinate: Optional[Coordinate] = None,
                 special_instructions: Optional[str] = None) -> CheckoutResult:
        """
        结算购物车

        Args:
            user_id: 下单用户ID
            cart: 已校验的购物车快照
            address_id: 收货地址ID（必须属于该用户）
            payment_method: 支付方式，原样写入订单
            delivery_coordinate: 配送坐标，缺省时使用收货地址坐标
            special_instructions: 整单备注，写入每个订单

        Returns:
            CheckoutResult: 批次ID、按购物车顺序排列的订单和汇总

        Raises:
            AddressNotFoundError: 地址不存在或不属于该用户
            CheckoutRejectedError: 任一品牌分组无法下单
            PersistenceError: 落库失败（已整体回滚）
        """
        if delivery_coordinate is None:
            delivery_coordinate = self.addresses.resolve_coordinate(user_id, address_id)
        else:
            self.addresses.ensure_owned(user_id, address_id)

        intents = self.decomposer.decompose(cart, delivery_coordinate)
        orders = self.repository.commit(user_id, address_id, payment_method, intents,
                                        special_instructions)

        summary = CheckoutSummary(
            total_orders=len(orders),
            total_amount=sum((o.total_amount for o in orders), Decimal("0")),
            total_delivery_fee=sum((o.delivery_fee for o in orders), Decimal("0")),
        )
        return CheckoutResult(
            checkout_batch_id=orders[0].checkout_batch_id,
            orders=orders,
            summary=summary,
        )

    def update_status(self, actor: Actor, order_id: int, target: OrderStatus) -> Order:
        return self.status.update_status(actor, order_id, target)

    def cancel_order(self, actor: Actor, order_id: int, reason: Optional[str] = None) -> Order:
        return self.status.cancel_order(actor, order_id, reason)

    def get_order(self, actor: Actor, order_id: int) -> Order:
        """获取订单详情，仅下单顾客和所属门店商家可见"""
        order = self.repository.get(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        if actor.role == UserRole.ADMIN or order.user_id == actor.user_id:
            return order
        if actor.role == UserRole.VENDOR and self._owns_outlet(actor.user_id, order.outlet_id):
            return order
        raise ForbiddenError(details={"order_id": order_id})

    def get_batch(self, actor: Actor, batch_id: str) -> List[Order]:
        """获取顾客某次结算的全部订单"""
        orders = self.repository.list_by_batch(actor.user_id, batch_id)
        if not orders:
            raise OrderNotFoundError(batch_id)
        return orders

    def list_orders(self, actor: Actor, status: Optional[OrderStatus] = None,
                    pagination: Optional[PaginationParams] = None) -> Dict[str, Any]:
        """顾客订单历史"""
        pagination = pagination or PaginationParams()
        result = self.repository.list_by_user(actor.user_id, status,
                                              pagination.size, pagination.offset)
        return {**result, "page": pagination.page, "size": pagination.size}

    def list_vendor_orders(self, actor: Actor, status: Optional[OrderStatus] = None,
                           pagination: Optional[PaginationParams] = None) -> Dict[str, Any]:
        """商家名下门店的订单"""
        if actor.role != UserRole.VENDOR:
            raise ForbiddenError("需要商家权限")
        pagination = pagination or PaginationParams()
        result = self.repository.list_by_vendor(actor.user_id, status,
                                                pagination.size, pagination.offset)
        return {**result, "page": pagination.page, "size": pagination.size}

    def _owns_outlet(self, vendor_id: int, outlet_id: str) -> bool:
        row = self.db.execute_one(
            "SELECT 1 AS ok FROM outlets WHERE id = ? AND owner_id = ?", [outlet_id, vendor_id])
        return row is not None


# 全局服务实例
order_service = OrderService()
