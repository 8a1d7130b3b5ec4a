"""Service Models - Pydantic models for catalog records and shopper contacts."""
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from plancart.cart.addons import KNOWN_ADDON_KINDS
from plancart.errors import ERROR_EMAIL_INVALID, ERROR_NAME_REQUIRED, ERROR_PHONE_REQUIRED
from plancart.utils.validators import is_valid_email
from .money import to_decimal as _to_decimal


class ProductRecord(BaseModel):
    """Authoritative catalog data for one house plan."""

    model_config = ConfigDict(extra="ignore")

    id: str
    title: str = ""
    base_price: Decimal
    code: Optional[str] = None
    addon_prices: dict[str, Decimal] = {}
    recommended_upsell_id: Optional[str] = None
    image_url: Optional[str] = None

    @field_validator("base_price", mode="before")
    @classmethod
    def convert_price_to_decimal(cls, v):
        return _to_decimal(v)

    @field_validator("addon_prices", mode="before")
    @classmethod
    def convert_addon_prices(cls, v):
        if not v:
            return {}
        return {str(key): _to_decimal(price) for key, price in dict(v).items() if price is not None}

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "ProductRecord":
        """
        Build from a ``projects`` row.

        Add-on prices live in ``price_<kind>`` columns; missing or null columns
        simply mean the add-on is not sold for this plan.
        """
        addon_prices = {}
        for kind in KNOWN_ADDON_KINDS:
            value = row.get(kind.price_column)
            if value is not None:
                addon_prices[kind.value] = value

        images = row.get("project_images") or []
        image_url = row.get("image_url") or (images[0].get("image_url") if images else None)

        return cls(
            id=row["id"],
            title=row.get("title") or "",
            base_price=row.get("price"),
            code=row.get("code"),
            addon_prices=addon_prices,
            recommended_upsell_id=row.get("order_bump_id"),
            image_url=image_url,
        )


class ContactDetails(BaseModel):
    """Shopper contact captured right before checkout."""

    name: str
    email: str
    phone: str

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError(ERROR_NAME_REQUIRED)
        return v.strip()

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        if not is_valid_email(v):
            raise ValueError(ERROR_EMAIL_INVALID)
        return v.strip()

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError(ERROR_PHONE_REQUIRED)
        return v.strip()
