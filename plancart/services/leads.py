"""Lead capture - hands checkout contacts and the cart to the CRM table."""
import asyncio
from typing import Optional

from supabase._async.client import AsyncClient

from plancart.cart.models import CartState
from plancart.db import get_supabase
from plancart.logging import get_logger, sanitize_string_for_logging
from plancart.services.money import to_float
from .models import ContactDetails

logger = get_logger(__name__)

LEAD_SOURCE = "cart_checkout"
LEAD_STATUS_NEW = "new"


def build_lead_row(contact: ContactDetails, state: CartState) -> dict:
    """Map a contact and cart snapshot onto a ``leads`` row."""
    selected = []
    for line in state.lines:
        for addon_id in line.selected_addon_ids:
            if addon_id not in selected:
                selected.append(addon_id)

    return {
        "name": contact.name,
        "email": contact.email,
        "phone": contact.phone,
        "project_id": state.lines[0].id if state.lines else None,
        "selected_packages": selected,
        "total_value": to_float(state.total),
        "source": LEAD_SOURCE,
        "status": LEAD_STATUS_NEW,
        "cart_snapshot": state.to_list(),
    }


class LeadCaptureService:
    """Records checkout contacts. Failures are logged and never block checkout."""

    def __init__(self, client: Optional[AsyncClient] = None) -> None:
        self._client = client
        self._pending: set[asyncio.Task] = set()

    async def _get_client(self) -> AsyncClient:
        if self._client is None:
            self._client = await get_supabase()
        return self._client

    async def record(self, contact: ContactDetails, state: CartState) -> bool:
        """Insert the lead row; returns False instead of raising."""
        try:
            client = await self._get_client()
            await client.table("leads").insert(build_lead_row(contact, state)).execute()
            logger.info("Lead captured for %s", sanitize_string_for_logging(contact.email))
            return True
        except Exception as e:
            logger.warning(
                "Failed to capture lead for %s: %s",
                sanitize_string_for_logging(contact.email),
                e,
            )
            return False

    def record_in_background(self, contact: ContactDetails, state: CartState) -> None:
        """Fire-and-forget variant used by checkout."""
        task = asyncio.get_running_loop().create_task(self.record(contact, state))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def flush(self) -> None:
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
