"""
Cart API Pydantic Models

Request bodies for the cart endpoints.
"""
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from plancart.cart import Addon, CartLine
from plancart.services.models import ContactDetails


# ==================== CART MODELS ====================

class AddonPayload(BaseModel):
    id: str
    label: str = ""
    price: Decimal = Field(gt=0)


class AddCartLineRequest(BaseModel):
    """Complete desired state of a line; replaces any line with the same id."""

    id: str = Field(min_length=1)
    title: str
    base_price: Decimal = Field(ge=0)
    image_url: str = ""
    code: Optional[str] = None
    addons: list[str] = []
    available_addons: list[AddonPayload] = []
    order_bump_id: Optional[str] = None

    def to_line(self) -> CartLine:
        available = []
        for payload in self.available_addons:
            addon = Addon.from_dict(payload.model_dump())
            if addon is not None:
                available.append(addon)
        return CartLine(
            id=self.id,
            title=self.title,
            base_price=self.base_price,
            display_image=self.image_url,
            product_code=self.code,
            selected_addon_ids=tuple(self.addons),
            available_addons=tuple(available),
            recommended_upsell_id=self.order_bump_id,
        )


# ==================== CHECKOUT MODELS ====================

class CheckoutRequest(ContactDetails):
    pass


# ==================== BUNDLE MODELS ====================

class BundleQuoteRequest(BaseModel):
    prices: dict[str, Decimal]
    selected: list[str] = []
