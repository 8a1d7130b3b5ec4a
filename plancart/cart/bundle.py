"""
Bundle discount for the product page package selector.

The architectural project is always part of the purchase. When a plan sells
more than two complementary projects and the shopper takes all of them, the
whole selection gets the complete-bundle discount.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Mapping

from plancart.services.money import Number, money_sum, multiply, round_money, to_decimal
from .addons import BASE_ITEM_ID, Addon, AddonKind, addons_from_prices
from .models import CartLine, line_from_record

BUNDLE_DISCOUNT = Decimal("0.15")

# Bundle offer needs strictly more optional add-ons than this
BUNDLE_MIN_OPTIONAL = 2


@dataclass(frozen=True)
class BundleQuote:
    subtotal: Decimal
    discount: Decimal
    total: Decimal
    is_complete_bundle: bool
    selected: tuple[str, ...]

    def to_dict(self) -> dict:
        return {
            "subtotal": str(self.subtotal),
            "discount": str(self.discount),
            "total": str(self.total),
            "is_complete_bundle": self.is_complete_bundle,
            "selected": list(self.selected),
        }


def optional_addons(prices: Mapping[str, Number]) -> tuple[Addon, ...]:
    """Optional add-ons actually on sale: known kinds with a positive price."""
    return addons_from_prices({k: v for k, v in prices.items() if k != BASE_ITEM_ID})


def calculate_bundle(prices: Mapping[str, Number], selected: Iterable[str]) -> BundleQuote:
    """
    Price a package selection.

    Args:
        prices: add-on id -> price for the whole catalog of one plan,
            including the base item (``architectural``)
        selected: chosen add-on ids; the base item is implied

    Returns:
        BundleQuote with subtotal, discount and total
    """
    offered = optional_addons(prices)
    chosen = set(selected)

    picked = [addon for addon in offered if addon.id in chosen]
    subtotal = to_decimal(prices.get(BASE_ITEM_ID)) + money_sum(addon.price for addon in picked)

    is_complete = len(offered) > BUNDLE_MIN_OPTIONAL and len(picked) == len(offered)
    discount = round_money(multiply(subtotal, BUNDLE_DISCOUNT)) if is_complete else Decimal("0")

    return BundleQuote(
        subtotal=subtotal,
        discount=discount,
        total=subtotal - discount,
        is_complete_bundle=is_complete,
        selected=(BASE_ITEM_ID,) + tuple(addon.id for addon in picked),
    )


class AddonSelection:
    """Package choices for one plan before it goes into the cart."""

    def __init__(self, prices: Mapping[str, Number]):
        self.prices = dict(prices)
        self.available = optional_addons(self.prices)
        self._chosen: list[str] = []

    @classmethod
    def from_record(cls, record) -> "AddonSelection":
        return cls({BASE_ITEM_ID: record.base_price, **record.addon_prices})

    @property
    def selected(self) -> tuple[str, ...]:
        return (BASE_ITEM_ID,) + tuple(self._chosen)

    @property
    def offers_bundle(self) -> bool:
        return len(self.available) > BUNDLE_MIN_OPTIONAL

    def is_selected(self, addon_id: str) -> bool:
        return addon_id in self.selected

    def toggle(self, addon_id: str) -> tuple[str, ...]:
        """Flip an optional add-on. The base item and unknown ids are ignored."""
        if addon_id == BASE_ITEM_ID or AddonKind.from_id(addon_id) is AddonKind.UNKNOWN:
            return self.selected
        if addon_id not in {addon.id for addon in self.available}:
            return self.selected

        if addon_id in self._chosen:
            self._chosen.remove(addon_id)
        else:
            self._chosen.append(addon_id)
        return self.selected

    def select_all(self) -> tuple[str, ...]:
        self._chosen = [addon.id for addon in self.available]
        return self.selected

    def quote(self) -> BundleQuote:
        return calculate_bundle(self.prices, self._chosen)

    def to_cart_line(self, record) -> CartLine:
        """Cart line carrying this selection; cart lines are priced at list prices."""
        return line_from_record(record, self._chosen)
