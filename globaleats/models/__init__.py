"""
Domain models.
"""

from .cart import BrandGroup, CartLine, CartSnapshot
from .catalog import Coordinate, OutletCandidate, PinnedOutlet, ResolvedAssignment
from .order import (
    CheckoutResult,
    CheckoutSummary,
    IntentLine,
    Order,
    OrderLine,
    OrderStatus,
    PaymentMethod,
    PricedOrderIntent,
)
from .user import Actor, UserRole

__all__ = [
    "Actor",
    "BrandGroup",
    "CartLine",
    "CartSnapshot",
    "CheckoutResult",
    "CheckoutSummary",
    "Coordinate",
    "IntentLine",
    "Order",
    "OrderLine",
    "OrderStatus",
    "OutletCandidate",
    "PaymentMethod",
    "PinnedOutlet",
    "PricedOrderIntent",
    "ResolvedAssignment",
    "UserRole",
]
