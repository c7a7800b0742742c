"""
商家侧订单查询
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from ...core.security import get_current_actor
from ...models.base import PaginationParams
from ...models.order import OrderStatus
from ...models.user import Actor
from ...schemas.order import OrderListResponse, OrderResponse
from ...services.order_service import OrderService
from .orders import get_order_service

router = APIRouter()


@router.get("/orders", response_model=OrderListResponse)
def list_vendor_orders(status: Optional[OrderStatus] = Query(None),
                       page: int = Query(1, ge=1),
                       size: int = Query(10, ge=1, le=100),
                       actor: Actor = Depends(get_current_actor),
                       service: OrderService = Depends(get_order_service)):
    """商家名下门店的订单，最新的在前"""
    result = service.list_vendor_orders(actor, status, PaginationParams(page=page, size=size))
    return OrderListResponse(
        items=[OrderResponse.from_order(o) for o in result["items"]],
        total=result["total"],
        page=result["page"],
        size=result["size"],
    )
