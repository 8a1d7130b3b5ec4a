"""Cart models with Decimal-based pricing."""
from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Iterable, Optional

from plancart.services.money import format_money, money_sum, to_decimal
from .addons import Addon, addons_from_prices


@dataclass(frozen=True)
class CartLine:
    """
    One product in the cart: a base house plan plus its selected add-ons.

    ``current_price`` is always derived from ``base_price`` and the prices of
    the selected add-ons that are still offered, so it cannot drift. Selected
    ids that are not offered are dropped on construction.
    """

    id: str
    title: str
    base_price: Decimal
    display_image: str = ""
    product_code: Optional[str] = None
    selected_addon_ids: tuple[str, ...] = ()
    available_addons: tuple[Addon, ...] = ()
    recommended_upsell_id: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "base_price", to_decimal(self.base_price))
        available = tuple(self.available_addons)
        object.__setattr__(self, "available_addons", available)

        offered = {addon.id for addon in available}
        selected = []
        for addon_id in self.selected_addon_ids:
            if addon_id in offered and addon_id not in selected:
                selected.append(addon_id)
        object.__setattr__(self, "selected_addon_ids", tuple(selected))

    def find_addon(self, addon_id: str) -> Optional[Addon]:
        return next((addon for addon in self.available_addons if addon.id == addon_id), None)

    def is_selected(self, addon_id: str) -> bool:
        return addon_id in self.selected_addon_ids

    @property
    def selected_addons(self) -> tuple[Addon, ...]:
        """Selected add-ons in selection order."""
        return tuple(self.find_addon(addon_id) for addon_id in self.selected_addon_ids)

    @property
    def unselected_addons(self) -> tuple[Addon, ...]:
        """Offered add-ons the shopper can still include."""
        return tuple(a for a in self.available_addons if a.id not in self.selected_addon_ids)

    @property
    def current_price(self) -> Decimal:
        return self.base_price + money_sum(addon.price for addon in self.selected_addons)

    @property
    def formatted_price(self) -> str:
        return format_money(self.current_price)

    def with_selection(self, addon_ids: Iterable[str]) -> "CartLine":
        return replace(self, selected_addon_ids=tuple(addon_ids))

    def to_dict(self) -> dict:
        """Convert to the persisted snapshot layout."""
        return {
            "id": self.id,
            "title": self.title,
            "basePrice": str(self.base_price),
            "price": str(self.current_price),
            "image_url": self.display_image,
            "code": self.product_code,
            "addons": list(self.selected_addon_ids),
            "availableAddons": [addon.to_dict() for addon in self.available_addons],
            "formattedPrice": self.formatted_price,
            "orderBumpId": self.recommended_upsell_id,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CartLine":
        """
        Create from a persisted snapshot entry.

        Older snapshots may lack the newer keys; derived keys (price,
        formattedPrice) are ignored and recomputed.
        """
        if not isinstance(data, dict):
            raise TypeError(f"cart line must be an object, got {type(data).__name__}")
        line_id = data["id"]
        if not isinstance(line_id, str) or not line_id:
            raise ValueError("cart line id must be a non-empty string")

        addons = []
        for raw in data.get("availableAddons") or []:
            if not isinstance(raw, dict):
                raise TypeError("add-on entries must be objects")
            addon = Addon.from_dict(raw)
            if addon is not None:
                addons.append(addon)

        selected = data.get("addons") or []
        if not isinstance(selected, list):
            raise TypeError("addons must be a list")

        return cls(
            id=line_id,
            title=str(data.get("title") or ""),
            base_price=to_decimal(data.get("basePrice", data.get("price"))),
            display_image=data.get("image_url") or "",
            product_code=data.get("code"),
            selected_addon_ids=tuple(str(addon_id) for addon_id in selected),
            available_addons=tuple(addons),
            recommended_upsell_id=data.get("orderBumpId"),
        )


@dataclass(frozen=True)
class CartState:
    """Ordered cart lines; order is insertion order and drives display."""

    lines: tuple[CartLine, ...] = field(default_factory=tuple)

    def __post_init__(self):
        object.__setattr__(self, "lines", tuple(self.lines))

    @property
    def total(self) -> Decimal:
        return money_sum(line.current_price for line in self.lines)

    @property
    def formatted_total(self) -> str:
        return format_money(self.total)

    @property
    def is_empty(self) -> bool:
        return not self.lines

    @property
    def line_ids(self) -> list[str]:
        return [line.id for line in self.lines]

    def get(self, line_id: str) -> Optional[CartLine]:
        return next((line for line in self.lines if line.id == line_id), None)

    def to_list(self) -> list[dict]:
        """Convert to the JSON array stored under the cart key."""
        return [line.to_dict() for line in self.lines]

    @classmethod
    def from_list(cls, data: list) -> "CartState":
        """Create from the stored JSON array; later duplicates replace earlier ones."""
        if not isinstance(data, list):
            raise TypeError(f"cart snapshot must be a list, got {type(data).__name__}")
        lines: list[CartLine] = []
        for entry in data:
            line = CartLine.from_dict(entry)
            index = next((i for i, existing in enumerate(lines) if existing.id == line.id), None)
            if index is None:
                lines.append(line)
            else:
                lines[index] = line
        return cls(lines=tuple(lines))


def line_from_record(record, selected_addon_ids: Iterable[str] = ()) -> CartLine:
    """Build the cart line for a catalog record (product page, order bump)."""
    return CartLine(
        id=record.id,
        title=record.title,
        base_price=record.base_price,
        display_image=record.image_url or "",
        product_code=record.code,
        selected_addon_ids=tuple(selected_addon_ids),
        available_addons=addons_from_prices(record.addon_prices),
        recommended_upsell_id=record.recommended_upsell_id,
    )
