"""
Business logic services.
Contains service layer implementations for checkout and order operations.
"""

from .catalog_service import AddressService, CatalogService
from .order_decomposer import OrderDecomposer
from .order_repository import OrderRepository
from .order_service import OrderService, order_service
from .order_status import OrderStatusService
from .outlet_resolver import OutletResolver
from .pricing_service import PricingCalculator

__all__ = [
    "AddressService",
    "CatalogService",
    "OrderDecomposer",
    "OrderRepository",
    "OrderService",
    "OrderStatusService",
    "OutletResolver",
    "PricingCalculator",
    "order_service",
]
