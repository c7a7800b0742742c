"""
订单相关数据模型
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator

from .base import BaseEntity


class OrderStatus(str, Enum):
    """订单状态枚举"""
    PENDING = "pending"                    # 待确认
    CONFIRMED = "confirmed"                # 商家已接单
    PREPARING = "preparing"                # 制作中
    READY_FOR_PICKUP = "ready_for_pickup"  # 待取餐
    OUT_FOR_DELIVERY = "out_for_delivery"  # 配送中
    DELIVERED = "delivered"                # 已送达
    CANCELLED = "cancelled"                # 已取消
    REFUNDED = "refunded"                  # 已退款

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED, OrderStatus.REFUNDED})


class PaymentMethod(str, Enum):
    """支付方式，结算只透传"""
    CASH = "cash"
    CARD = "card"
    UPI = "upi"
    WALLET = "wallet"
    NETBANKING = "netbanking"

    @property
    def is_prepaid(self) -> bool:
        return self is not PaymentMethod.CASH


class IntentLine(BaseModel):
    """已定价的订单行"""
    menu_item_id: str
    quantity: int = Field(..., ge=1)
    unit_price: Decimal
    line_total: Decimal
    special_instructions: Optional[str] = None


class PricedOrderIntent(BaseModel):
    """单个 (品牌, 门店) 分组的定价结果，等待落库"""
    brand_id: str
    outlet_id: str
    lines: List[IntentLine]
    subtotal: Decimal
    delivery_fee: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    distance_km: float = 0.0
    preparation_time_minutes: int = 30
    warnings: List[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def total_is_sum_of_parts(self) -> "PricedOrderIntent":
        if self.total_amount != self.subtotal + self.delivery_fee + self.tax_amount:
            raise ValueError("total_amount 必须等于 subtotal + delivery_fee + tax_amount")
        return self


class OrderLine(BaseEntity):
    """订单明细"""
    menu_item_id: str = Field(..., description="菜品ID")
    quantity: int = Field(..., ge=1, description="数量")
    unit_price: Decimal = Field(..., description="单价")
    line_total: Decimal = Field(..., description="小计")
    special_instructions: Optional[str] = Field(None, description="备注")


class Order(BaseEntity):
    """订单完整模型"""
    id: int = Field(..., description="订单ID")
    order_number: str = Field(..., description="订单号")
    checkout_batch_id: str = Field(..., description="结算批次ID")
    user_id: int = Field(..., description="用户ID")
    outlet_id: str = Field(..., description="门店ID")
    brand_id: str = Field(..., description="品牌ID")
    address_id: str = Field(..., description="收货地址ID")
    status: OrderStatus = Field(..., description="订单状态")
    payment_method: PaymentMethod = Field(..., description="支付方式")
    subtotal: Decimal
    delivery_fee: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    distance_km: Optional[float] = None
    special_instructions: Optional[str] = None
    estimated_delivery_time: Optional[datetime] = None
    actual_delivery_time: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    cancelled_by: Optional[int] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    lines: List[OrderLine] = Field(default_factory=list)


class CheckoutSummary(BaseModel):
    """结算汇总"""
    total_orders: int
    total_amount: Decimal
    total_delivery_fee: Decimal


class CheckoutResult(BaseModel):
    """一次结算的结果：同一批次下的多个订单"""
    checkout_batch_id: str
    orders: List[Order]
    summary: CheckoutSummary
