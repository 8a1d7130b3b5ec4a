"""
Checkout Service - payment session creation.

Prices sent here are informational: the ``create-checkout-session`` Edge
Function re-reads every plan and add-on price from the catalog before
creating the payment session.
"""
import os
from typing import Any, Optional

import httpx

from plancart.cart.models import CartLine
from plancart.errors import (
    CheckoutError,
    ERROR_CHECKOUT_NO_URL,
    ERROR_CHECKOUT_NOT_CONFIGURED,
    ERROR_CHECKOUT_UNAVAILABLE,
)
from plancart.logging import get_logger, sanitize_string_for_logging
from plancart.services.money import to_float

logger = get_logger(__name__)

CHECKOUT_FUNCTION = "create-checkout-session"


def build_checkout_item(line: CartLine) -> dict[str, Any]:
    """Final line payload: identity, display title, unit price and selection."""
    return {
        "id": line.id,
        "title": line.title,
        "unitPrice": to_float(line.current_price),
        "addons": list(line.selected_addon_ids),
        "code": line.product_code,
        "orderBumpId": line.recommended_upsell_id,
    }


class CheckoutService:
    """Creates payment sessions through the Supabase Edge Function."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = (base_url or os.environ.get("SUPABASE_URL", "")).rstrip("/")
        self.api_key = api_key or os.environ.get("SUPABASE_ANON_KEY", "")
        self._http_client = http_client

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Lazy creation of shared httpx client with timeouts."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=httpx.Timeout(15.0, connect=5.0),
                limits=httpx.Limits(max_connections=10, max_keepalive_connections=5),
            )
        return self._http_client

    @property
    def function_url(self) -> str:
        return f"{self.base_url}/functions/v1/{CHECKOUT_FUNCTION}"

    async def create_checkout_session(
        self,
        lines: list[CartLine],
        customer_email: str,
        return_url: str,
    ) -> str:
        """
        Request a payment session for the final cart lines.

        Returns:
            Redirect URL of the hosted payment page

        Raises:
            CheckoutError: with a message that can be shown to the shopper
        """
        if not self.base_url:
            logger.error("Checkout requested but SUPABASE_URL is not set")
            raise CheckoutError(ERROR_CHECKOUT_NOT_CONFIGURED)

        payload = {
            "items": [build_checkout_item(line) for line in lines],
            "customerEmail": customer_email,
            "returnUrl": return_url,
        }
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
            headers["apikey"] = self.api_key

        logger.info(
            "Creating checkout session: %d line(s) for %s",
            len(lines),
            sanitize_string_for_logging(customer_email),
        )

        client = await self._get_http_client()
        try:
            response = await client.post(self.function_url, headers=headers, json=payload)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            try:
                body = e.response.json()
            except ValueError:
                body = None
            error_detail = (body.get("error") if isinstance(body, dict) else None) or e.response.text[:200]
            logger.error(
                "Checkout function error %s: %s",
                e.response.status_code,
                sanitize_string_for_logging(str(error_detail), 200),
            )
            raise CheckoutError(ERROR_CHECKOUT_UNAVAILABLE)
        except httpx.RequestError as e:
            logger.exception("Checkout function network error")
            raise CheckoutError(ERROR_CHECKOUT_UNAVAILABLE) from e
        except ValueError as e:
            logger.error("Checkout function returned invalid JSON: %s", e)
            raise CheckoutError(ERROR_CHECKOUT_UNAVAILABLE) from e

        if not isinstance(data, dict):
            raise CheckoutError(ERROR_CHECKOUT_NO_URL)

        if data.get("error"):
            logger.error("Checkout session error: %s", sanitize_string_for_logging(str(data["error"]), 200))
            raise CheckoutError(ERROR_CHECKOUT_UNAVAILABLE)

        url = data.get("url")
        if not url:
            logger.error("Checkout: URL not in response. Keys: %s", list(data.keys()))
            raise CheckoutError(ERROR_CHECKOUT_NO_URL)
        return url

    async def aclose(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None
