"""Add-on catalog: the complementary projects sold alongside a house plan."""
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Mapping, Optional

from plancart.logging import get_logger
from plancart.services.money import to_decimal

logger = get_logger(__name__)

# Mandatory item of every purchase; priced by the product's base price
BASE_ITEM_ID = "architectural"
BASE_ITEM_LABEL = "Architectural Project"


class AddonKind(str, Enum):
    """Known add-on kinds. Anything else resolves to UNKNOWN and is never priced."""

    ELECTRICAL = "electrical"
    HYDRAULIC = "hydraulic"
    SANITARY = "sanitary"
    STRUCTURAL = "structural"
    UNKNOWN = "unknown"

    @classmethod
    def from_id(cls, addon_id: str) -> "AddonKind":
        try:
            kind = cls(addon_id)
        except ValueError:
            return cls.UNKNOWN
        return kind

    @property
    def label(self) -> str:
        return ADDON_LABELS.get(self, "")

    @property
    def price_column(self) -> Optional[str]:
        """Catalog column holding this add-on's price."""
        if self is AddonKind.UNKNOWN:
            return None
        return f"price_{self.value}"


ADDON_LABELS = {
    AddonKind.ELECTRICAL: "Electrical Project",
    AddonKind.HYDRAULIC: "Hydraulic Project",
    AddonKind.SANITARY: "Sanitary Project",
    AddonKind.STRUCTURAL: "Structural Project",
}

# Canonical display order of offered add-ons
KNOWN_ADDON_KINDS = (
    AddonKind.ELECTRICAL,
    AddonKind.HYDRAULIC,
    AddonKind.SANITARY,
    AddonKind.STRUCTURAL,
)


@dataclass(frozen=True)
class Addon:
    """One add-on offered for a product, priced at snapshot time."""

    id: str
    label: str
    price: Decimal

    def __post_init__(self):
        object.__setattr__(self, "price", to_decimal(self.price))

    @property
    def kind(self) -> AddonKind:
        return AddonKind.from_id(self.id)

    def to_dict(self) -> dict:
        return {"id": self.id, "label": self.label, "price": str(self.price)}

    @classmethod
    def from_dict(cls, data: dict) -> Optional["Addon"]:
        """Parse a persisted add-on; unknown kinds and unpriced add-ons are dropped (returns None)."""
        addon_id = data.get("id")
        if not isinstance(addon_id, str) or AddonKind.from_id(addon_id) is AddonKind.UNKNOWN:
            logger.warning("Ignoring unknown add-on %r in cart snapshot", addon_id)
            return None
        price = to_decimal(data.get("price"))
        if price <= 0:
            logger.warning("Ignoring add-on %r without a positive price", addon_id)
            return None
        kind = AddonKind(addon_id)
        return cls(id=addon_id, label=data.get("label") or kind.label, price=price)


def addons_from_prices(addon_prices: Mapping[str, object]) -> tuple[Addon, ...]:
    """
    Build the offered add-on list from a price map.

    Only known kinds with a positive price are offered, in canonical order.
    """
    offered = []
    for kind in KNOWN_ADDON_KINDS:
        price = to_decimal(addon_prices.get(kind.value))
        if price > 0:
            offered.append(Addon(id=kind.value, label=kind.label, price=price))
    for key in addon_prices:
        if key != BASE_ITEM_ID and AddonKind.from_id(key) is AddonKind.UNKNOWN:
            logger.debug("Skipping unknown add-on price key %r", key)
    return tuple(offered)
