"""
Shared Dependencies for Routers

Lazy-loaded singletons to optimize cold start.
"""
import os
from typing import Optional, TYPE_CHECKING

from fastapi import Header, HTTPException

from plancart.errors import ERROR_CART_SESSION_INVALID
from plancart.utils.validators import is_session_token

if TYPE_CHECKING:
    from plancart.cart import CartStorage, PriceReconciler
    from plancart.services.catalog import CatalogRepository
    from plancart.services.leads import LeadCaptureService
    from plancart.services.payments import CheckoutService


CART_STORAGE = os.environ.get("CART_STORAGE", "redis").lower()
CHECKOUT_RETURN_URL = os.environ.get("CHECKOUT_RETURN_URL", "http://localhost:5173/account/orders")


# ==================== LAZY SINGLETONS ====================

_cart_storage: Optional["CartStorage"] = None
_catalog: Optional["CatalogRepository"] = None
_reconciler: Optional["PriceReconciler"] = None
_checkout_service: Optional["CheckoutService"] = None
_lead_service: Optional["LeadCaptureService"] = None


def get_cart_storage() -> "CartStorage":
    """Redis snapshots in deployment, process memory when CART_STORAGE=memory."""
    global _cart_storage
    if _cart_storage is None:
        from plancart.cart import MemoryCartStorage, RedisCartStorage
        _cart_storage = MemoryCartStorage() if CART_STORAGE == "memory" else RedisCartStorage()
    return _cart_storage


def get_catalog() -> "CatalogRepository":
    global _catalog
    if _catalog is None:
        from plancart.services.catalog import CatalogRepository
        _catalog = CatalogRepository()
    return _catalog


def get_reconciler() -> "PriceReconciler":
    global _reconciler
    if _reconciler is None:
        from plancart.cart import PriceReconciler
        _reconciler = PriceReconciler(get_catalog())
    return _reconciler


def get_checkout_service() -> "CheckoutService":
    global _checkout_service
    if _checkout_service is None:
        from plancart.services.payments import CheckoutService
        _checkout_service = CheckoutService()
    return _checkout_service


def get_lead_service() -> "LeadCaptureService":
    global _lead_service
    if _lead_service is None:
        from plancart.services.leads import LeadCaptureService
        _lead_service = LeadCaptureService()
    return _lead_service


def get_return_url() -> str:
    return CHECKOUT_RETURN_URL


async def shutdown_services() -> None:
    """Close network clients and drain background writes."""
    if _cart_storage is not None:
        await _cart_storage.flush()
    if _lead_service is not None:
        await _lead_service.flush()
    if _checkout_service is not None:
        await _checkout_service.aclose()


# ==================== SESSION ====================

async def get_cart_session(x_cart_session: Optional[str] = Header(default=None)) -> str:
    """Shopper session token identifying the cart snapshot."""
    if not is_session_token(x_cart_session):
        raise HTTPException(status_code=400, detail=ERROR_CART_SESSION_INVALID)
    return x_cart_session
