"""Cart checkout: lead capture, payment session, then clear."""
from plancart.errors import CheckoutError, ERROR_CART_EMPTY
from plancart.logging import get_logger, sanitize_id_for_logging
from .service import CartStore

logger = get_logger(__name__)


async def checkout_cart(store: CartStore, contact, payments, leads, return_url: str) -> str:
    """
    Turn the cart into a payment session.

    The lead is recorded in the background and never blocks checkout. The
    cart is cleared only once a redirect URL exists; on ``CheckoutError`` it
    is kept so the shopper can retry.

    Args:
        store: the shopper's cart
        contact: ContactDetails from the checkout form
        payments: CheckoutService
        leads: LeadCaptureService
        return_url: where the payment page sends the shopper back

    Returns:
        Redirect URL of the payment page

    Raises:
        CheckoutError: empty cart or payment session failure
    """
    if store.state.is_empty:
        raise CheckoutError(ERROR_CART_EMPTY)

    snapshot = store.state
    try:
        leads.record_in_background(contact, snapshot)
    except Exception as e:
        logger.warning("Lead capture not scheduled: %s", e)

    url = await payments.create_checkout_session(
        list(snapshot.lines),
        customer_email=contact.email,
        return_url=return_url,
    )

    logger.info("Checkout session created for cart %s", sanitize_id_for_logging(store.session_id))
    store.clear()
    return url
