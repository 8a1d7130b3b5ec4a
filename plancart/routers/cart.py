"""
Cart Router

Session cart endpoints. Every request hydrates the shopper's cart from
storage, applies one operation, waits for the snapshot write and returns the
cart together with the events the UI may show as toasts.
"""
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException

from plancart.cart import CartEvent, CartStore, calculate_bundle, line_from_record
from plancart.cart.checkout import checkout_cart
from plancart.cart.events import log_notifier
from plancart.errors import CheckoutError, ERROR_CART_EMPTY
from plancart.logging import get_logger, sanitize_id_for_logging
from plancart.services.money import to_float
from plancart.utils.validators import is_catalog_id
from .deps import (
    get_cart_session,
    get_cart_storage,
    get_catalog,
    get_checkout_service,
    get_lead_service,
    get_reconciler,
    get_return_url,
)
from .models import AddCartLineRequest, BundleQuoteRequest, CheckoutRequest

logger = get_logger(__name__)

router = APIRouter(tags=["cart"])


async def _open_store(session_id: str, storage) -> tuple[CartStore, list[CartEvent]]:
    collected: list[CartEvent] = []

    def notifier(event: CartEvent) -> None:
        log_notifier(event)
        collected.append(event)

    store = await CartStore.open(session_id, storage, notifier=notifier)
    return store, collected


def _format_cart_response(store: CartStore, cart_events: list[CartEvent]) -> dict:
    """Serialize the cart for the storefront."""
    items = []
    for line in store.lines:
        items.append({
            "id": line.id,
            "title": line.title,
            "image_url": line.display_image,
            "code": line.product_code,
            "base_price": to_float(line.base_price),
            "price": to_float(line.current_price),
            "formatted_price": line.formatted_price,
            "addons": list(line.selected_addon_ids),
            "available_addons": [
                {"id": addon.id, "label": addon.label, "price": to_float(addon.price)}
                for addon in line.available_addons
            ],
            "order_bump_id": line.recommended_upsell_id,
        })

    return {
        "items": items,
        "total": to_float(store.total),
        "formatted_total": store.state.formatted_total,
        "upsell_ids": store.upsell_candidates(),
        "events": [event.to_dict() for event in cart_events],
    }


@router.get("/cart")
async def get_cart(
    session_id: str = Depends(get_cart_session),
    storage=Depends(get_cart_storage),
    reconciler=Depends(get_reconciler),
):
    """Get the cart, refreshed against current catalog prices."""
    store, cart_events = await _open_store(session_id, storage)
    await reconciler.reconcile(store, reload=True)
    await store.flush()
    return _format_cart_response(store, cart_events)


@router.post("/cart/lines")
async def add_cart_line(
    request: AddCartLineRequest,
    session_id: str = Depends(get_cart_session),
    storage=Depends(get_cart_storage),
):
    """Add a line, or replace the line with the same id."""
    store, cart_events = await _open_store(session_id, storage)
    store.add(request.to_line())
    await store.flush()
    return _format_cart_response(store, cart_events)


@router.post("/cart/upsell/{product_id}")
async def add_upsell_line(
    product_id: str,
    session_id: str = Depends(get_cart_session),
    storage=Depends(get_cart_storage),
    catalog=Depends(get_catalog),
):
    """Add a recommended plan (order bump) at its current catalog price."""
    if not is_catalog_id(product_id):
        raise HTTPException(status_code=400, detail="Invalid product id")

    store, cart_events = await _open_store(session_id, storage)
    if store.get(product_id) is None:
        try:
            record = await catalog.get_by_id(product_id)
        except Exception as e:
            logger.error("Failed to load upsell %s: %s", sanitize_id_for_logging(product_id), e)
            raise HTTPException(status_code=503, detail="Catalog temporarily unavailable")
        if record is None:
            raise HTTPException(status_code=404, detail="Product not found")
        store.add(line_from_record(record))
        await store.flush()
    return _format_cart_response(store, cart_events)


@router.delete("/cart/lines/{line_id}")
async def remove_cart_line(
    line_id: str,
    session_id: str = Depends(get_cart_session),
    storage=Depends(get_cart_storage),
):
    store, cart_events = await _open_store(session_id, storage)
    store.remove(line_id)
    await store.flush()
    return _format_cart_response(store, cart_events)


@router.post("/cart/lines/{line_id}/addons/{addon_id}")
async def add_line_addon(
    line_id: str,
    addon_id: str,
    session_id: str = Depends(get_cart_session),
    storage=Depends(get_cart_storage),
):
    store, cart_events = await _open_store(session_id, storage)
    store.add_addon(line_id, addon_id)
    await store.flush()
    return _format_cart_response(store, cart_events)


@router.delete("/cart/lines/{line_id}/addons/{addon_id}")
async def remove_line_addon(
    line_id: str,
    addon_id: str,
    session_id: str = Depends(get_cart_session),
    storage=Depends(get_cart_storage),
):
    store, cart_events = await _open_store(session_id, storage)
    store.remove_addon(line_id, addon_id)
    await store.flush()
    return _format_cart_response(store, cart_events)


@router.delete("/cart")
async def clear_cart(
    session_id: str = Depends(get_cart_session),
    storage=Depends(get_cart_storage),
):
    store, cart_events = await _open_store(session_id, storage)
    store.clear()
    await store.flush()
    return _format_cart_response(store, cart_events)


@router.post("/cart/checkout")
async def checkout(
    request: CheckoutRequest,
    background_tasks: BackgroundTasks,
    session_id: str = Depends(get_cart_session),
    storage=Depends(get_cart_storage),
    payments=Depends(get_checkout_service),
    leads=Depends(get_lead_service),
    return_url: str = Depends(get_return_url),
):
    """Create a payment session; the cart is kept when this fails."""
    store, _ = await _open_store(session_id, storage)
    try:
        url = await checkout_cart(store, request, payments, leads, return_url)
    except CheckoutError as e:
        status_code = 400 if str(e) == ERROR_CART_EMPTY else 502
        raise HTTPException(status_code=status_code, detail=str(e))
    finally:
        await store.flush()
        # Lead insert keeps running after the response is sent
        background_tasks.add_task(leads.flush)
    return {"url": url}


@router.post("/bundle/quote")
async def quote_bundle(request: BundleQuoteRequest):
    """Price a package selection on the product page."""
    quote = calculate_bundle(request.prices, request.selected)
    return {
        "subtotal": to_float(quote.subtotal),
        "discount": to_float(quote.discount),
        "total": to_float(quote.total),
        "is_complete_bundle": quote.is_complete_bundle,
        "selected": list(quote.selected),
    }

