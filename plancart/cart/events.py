"""Cart notification events produced by state transitions."""
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from plancart.logging import get_logger

logger = get_logger(__name__)


class CartEventKind(str, Enum):
    ADDED = "added"
    UPDATED = "updated"
    REMOVED = "removed"
    ADDON_ADDED = "addon_added"
    ADDON_REMOVED = "addon_removed"
    CLEARED = "cleared"
    PRICES_UPDATED = "prices_updated"


@dataclass(frozen=True)
class CartEvent:
    """Something the shopper may be told about (toast, banner)."""

    kind: CartEventKind
    message: str
    line_id: Optional[str] = None

    def to_dict(self) -> dict:
        return {"kind": self.kind.value, "message": self.message, "line_id": self.line_id}


Notifier = Callable[[CartEvent], None]


def log_notifier(event: CartEvent) -> None:
    """Default notifier: the host decides how to display, we only log."""
    logger.info("Cart event %s: %s", event.kind.value, event.message)


def added(line_id: str) -> CartEvent:
    return CartEvent(CartEventKind.ADDED, "Project added to cart!", line_id)


def updated(line_id: str) -> CartEvent:
    return CartEvent(CartEventKind.UPDATED, "Project updated in cart!", line_id)


def removed(line_id: str) -> CartEvent:
    return CartEvent(CartEventKind.REMOVED, "Item removed.", line_id)


def addon_added(line_id: str, label: str) -> CartEvent:
    return CartEvent(CartEventKind.ADDON_ADDED, f"{label} included!", line_id)


def addon_removed(line_id: str) -> CartEvent:
    return CartEvent(CartEventKind.ADDON_REMOVED, "Add-on removed.", line_id)


def cleared() -> CartEvent:
    return CartEvent(CartEventKind.CLEARED, "Cart cleared.")


def prices_updated() -> CartEvent:
    return CartEvent(
        CartEventKind.PRICES_UPDATED,
        "Prices in your cart were updated to the current catalog values.",
    )
