"""Catalog Repository - authoritative house plan prices from Supabase."""
from typing import Optional

from pydantic import ValidationError
from supabase._async.client import AsyncClient

from plancart.db import get_supabase
from plancart.logging import get_logger, sanitize_id_for_logging
from .models import ProductRecord

logger = get_logger(__name__)

PROJECT_COLUMNS = (
    "id, title, code, price, price_electrical, price_hydraulic, "
    "price_sanitary, price_structural, order_bump_id, project_images(image_url)"
)


class CatalogRepository:
    """Read-only access to the ``projects`` table."""

    def __init__(self, client: Optional[AsyncClient] = None) -> None:
        self._client = client

    async def _get_client(self) -> AsyncClient:
        if self._client is None:
            self._client = await get_supabase()
        return self._client

    async def fetch_products_by_ids(self, ids: list[str]) -> list[ProductRecord]:
        """
        Batch-fetch current records for ``ids``.

        Soft-deleted plans are excluded, so callers must tolerate missing ids.
        Rows that fail to parse are skipped and logged. Network and query
        errors propagate.
        """
        if not ids:
            return []

        client = await self._get_client()
        result = (
            await client.table("projects")
            .select(PROJECT_COLUMNS)
            .in_("id", ids)
            .is_("deleted_at", "null")
            .execute()
        )

        records = []
        for row in result.data or []:
            try:
                records.append(ProductRecord.from_row(row))
            except (KeyError, ValidationError) as e:
                logger.warning(
                    "Skipping malformed project row %s: %s",
                    sanitize_id_for_logging(row.get("id")),
                    e,
                )
        return records

    async def get_by_id(self, product_id: str) -> Optional[ProductRecord]:
        """Single-plan lookup, used to build order-bump lines."""
        records = await self.fetch_products_by_ids([product_id])
        return records[0] if records else None
