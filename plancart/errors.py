"""
Common Error Constants

Centralized error messages shared by the cart services and routers.
"""

# Cart errors
ERROR_CART_EMPTY = "Your cart is empty"
ERROR_CART_SESSION_INVALID = "Invalid cart session"

# Checkout errors
ERROR_CHECKOUT_UNAVAILABLE = "Checkout is temporarily unavailable. Your cart was kept, please try again."
ERROR_CHECKOUT_NO_URL = "Payment provider did not return a checkout link. Your cart was kept, please try again."
ERROR_CHECKOUT_NOT_CONFIGURED = "Checkout is not configured"

# Contact errors
ERROR_NAME_REQUIRED = "Name is required"
ERROR_EMAIL_INVALID = "Invalid e-mail"
ERROR_PHONE_REQUIRED = "WhatsApp/phone is required"


class CheckoutError(ValueError):
    """Payment session could not be created; message is safe to show the shopper."""
