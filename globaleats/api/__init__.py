"""
API routes and endpoints.
"""

from fastapi import APIRouter
from .v1 import orders, vendor

api_router = APIRouter()

api_router.include_router(orders.router, prefix="/orders", tags=["订单"])
api_router.include_router(vendor.router, prefix="/vendor", tags=["商家"])
