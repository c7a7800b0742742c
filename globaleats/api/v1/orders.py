"""
订单路由模块
结算、状态变更、取消以及顾客侧查询
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from ...core.security import get_current_actor
from ...models.base import PaginationParams
from ...models.order import OrderStatus
from ...models.user import Actor
from ...schemas.common import ErrorResponse
from ...schemas.order import (
    CancelOrderRequest,
    CheckoutRequest,
    CheckoutResponse,
    OrderListResponse,
    OrderResponse,
    StatusUpdateRequest,
)
from ...services.order_service import OrderService

router = APIRouter()

ERROR_RESPONSES = {
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
}


def get_order_service(request: Request) -> OrderService:
    """FastAPI 依赖：应用级订单服务"""
    return request.app.state.order_service


@router.post("/checkout", response_model=CheckoutResponse, status_code=201,
             responses={**ERROR_RESPONSES, 422: {"model": ErrorResponse}})
def checkout(req: CheckoutRequest,
             actor: Actor = Depends(get_current_actor),
             service: OrderService = Depends(get_order_service)):
    """结算购物车，按品牌拆分为多个订单"""
    result = service.checkout(
        user_id=actor.user_id,
        cart=req.cart,
        address_id=req.address_id,
        payment_method=req.payment_method,
        delivery_coordinate=req.delivery_coordinate,
        special_instructions=req.special_instructions,
    )
    return CheckoutResponse(
        checkout_batch_id=result.checkout_batch_id,
        orders=[OrderResponse.from_order(o) for o in result.orders],
        summary=result.summary.model_dump(),
    )


@router.get("", response_model=OrderListResponse)
def list_my_orders(status: Optional[OrderStatus] = Query(None),
                   page: int = Query(1, ge=1),
                   size: int = Query(10, ge=1, le=100),
                   actor: Actor = Depends(get_current_actor),
                   service: OrderService = Depends(get_order_service)):
    """顾客订单历史"""
    result = service.list_orders(actor, status, PaginationParams(page=page, size=size))
    return OrderListResponse(
        items=[OrderResponse.from_order(o) for o in result["items"]],
        total=result["total"],
        page=result["page"],
        size=result["size"],
    )


@router.get("/batches/{batch_id}", response_model=CheckoutResponse)
def get_checkout_batch(batch_id: str,
                       actor: Actor = Depends(get_current_actor),
                       service: OrderService = Depends(get_order_service)):
    """获取一次结算产生的所有订单"""
    orders = service.get_batch(actor, batch_id)
    return CheckoutResponse(
        checkout_batch_id=batch_id,
        orders=[OrderResponse.from_order(o) for o in orders],
        summary={
            "total_orders": len(orders),
            "total_amount": sum(o.total_amount for o in orders),
            "total_delivery_fee": sum(o.delivery_fee for o in orders),
        },
    )


@router.get("/{order_id}", response_model=OrderResponse, responses=ERROR_RESPONSES)
def get_order(order_id: int,
              actor: Actor = Depends(get_current_actor),
              service: OrderService = Depends(get_order_service)):
    """订单详情"""
    return OrderResponse.from_order(service.get_order(actor, order_id))


@router.patch("/{order_id}/status", response_model=OrderResponse,
              responses={**ERROR_RESPONSES, 409: {"model": ErrorResponse}})
def update_order_status(order_id: int, req: StatusUpdateRequest,
                        actor: Actor = Depends(get_current_actor),
                        service: OrderService = Depends(get_order_service)):
    """商家/骑手推进订单状态"""
    return OrderResponse.from_order(service.update_status(actor, order_id, req.target_status))


@router.post("/{order_id}/cancel", response_model=OrderResponse,
             responses={**ERROR_RESPONSES, 409: {"model": ErrorResponse}})
def cancel_order(order_id: int, req: CancelOrderRequest,
                 actor: Actor = Depends(get_current_actor),
                 service: OrderService = Depends(get_order_service)):
    """取消订单"""
    return OrderResponse.from_order(service.cancel_order(actor, order_id, req.reason))
