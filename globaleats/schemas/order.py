"""
订单相关的请求/响应模式
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from ..models.cart import CartSnapshot
from ..models.catalog import Coordinate
from ..models.order import Order, OrderStatus, PaymentMethod


class CheckoutRequest(BaseModel):
    """结算请求"""
    cart: CartSnapshot = Field(..., description="购物车快照")
    address_id: str = Field(..., min_length=1, description="收货地址ID")
    delivery_coordinate: Optional[Coordinate] = Field(None, description="配送坐标，缺省取地址坐标")
    payment_method: PaymentMethod = Field(..., description="支付方式")
    special_instructions: Optional[str] = Field(None, max_length=500, description="整单备注")


class StatusUpdateRequest(BaseModel):
    """订单状态变更请求"""
    target_status: OrderStatus = Field(..., description="目标状态")


class CancelOrderRequest(BaseModel):
    """取消订单请求"""
    reason: Optional[str] = Field(None, max_length=500, description="取消原因")


class OrderLineResponse(BaseModel):
    """订单明细响应"""
    menu_item_id: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal
    special_instructions: Optional[str] = None


class OrderResponse(BaseModel):
    """订单响应"""
    id: int = Field(..., description="订单ID")
    order_number: str = Field(..., description="订单号")
    checkout_batch_id: str = Field(..., description="结算批次ID")
    outlet_id: str
    brand_id: str
    address_id: str
    status: OrderStatus
    payment_method: PaymentMethod
    subtotal: Decimal
    delivery_fee: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    special_instructions: Optional[str] = None
    estimated_delivery_time: Optional[datetime] = None
    actual_delivery_time: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    created_at: datetime
    lines: List[OrderLineResponse] = Field(default_factory=list)

    @classmethod
    def from_order(cls, order: Order) -> "OrderResponse":
        return cls(**order.model_dump(exclude={"user_id", "distance_km", "cancelled_by",
                                               "updated_at"}))


class CheckoutSummaryResponse(BaseModel):
    total_orders: int
    total_amount: Decimal
    total_delivery_fee: Decimal


class CheckoutResponse(BaseModel):
    """结算响应"""
    checkout_batch_id: str
    orders: List[OrderResponse]
    summary: CheckoutSummaryResponse


class OrderListResponse(BaseModel):
    """订单列表响应"""
    items: List[OrderResponse]
    total: int
    page: int
    size: int
