"""
Price reconciliation.

Cart snapshots can live for weeks; catalog prices and add-on offers change in
the meantime. Every time the cart is displayed the reconciler re-reads the
lines' plans from the catalog and patches the cart to current values.
"""
from dataclasses import dataclass, field

from plancart.logging import get_logger, sanitize_id_for_logging
from plancart.utils.validators import is_catalog_id
from .service import CartStore

logger = get_logger(__name__)


@dataclass
class ReconciliationResult:
    changed_ids: list[str] = field(default_factory=list)
    skipped_ids: list[str] = field(default_factory=list)  # not catalog identifiers
    missing_ids: list[str] = field(default_factory=list)  # no record returned
    failed: bool = False

    @property
    def changed(self) -> bool:
        return bool(self.changed_ids)


class PriceReconciler:
    """
    Refreshes a store's lines against the catalog.

    ``catalog`` is anything with ``async fetch_products_by_ids(ids)``
    returning records with ``id, base_price, code, addon_prices,
    recommended_upsell_id``.
    """

    def __init__(self, catalog):
        self.catalog = catalog

    async def reconcile(self, store: CartStore, reload: bool = False) -> ReconciliationResult:
        """
        Fetch fresh records for the cart and apply them.

        The patch is applied to the store state at the moment the fetch
        resolves, so lines added meanwhile are kept. A failed fetch leaves
        the cart untouched until the next call.

        Args:
            store: the shopper's cart
            reload: re-read the stored snapshot once the fetch resolves.
                Request handlers hold a per-request store, so mutations made
                by concurrent requests are only visible in storage.
        """
        result = ReconciliationResult()

        ids = []
        for line_id in store.state.line_ids:
            if is_catalog_id(line_id):
                ids.append(line_id)
            else:
                result.skipped_ids.append(line_id)
        if result.skipped_ids:
            logger.warning(
                "Skipping %d cart line(s) with malformed ids: %s",
                len(result.skipped_ids),
                ", ".join(sanitize_id_for_logging(i) for i in result.skipped_ids),
            )
        if not ids:
            return result

        try:
            records = await self.catalog.fetch_products_by_ids(ids)
        except Exception as e:
            logger.warning(
                "Price reconciliation skipped for cart %s: %s",
                sanitize_id_for_logging(store.session_id),
                e,
            )
            result.failed = True
            return result

        if reload:
            await store.reload()

        fetched = {record.id for record in records}
        result.missing_ids = [line_id for line_id in ids if line_id not in fetched]
        if result.missing_ids:
            logger.info(
                "No catalog record for %d cart line(s), left unchanged",
                len(result.missing_ids),
            )

        requested = set(ids)
        transition = store.apply_catalog_records(r for r in records if r.id in requested)
        result.changed_ids = list(transition.changed_ids)
        if result.changed:
            logger.info(
                "Reconciled cart %s: %d line(s) updated",
                sanitize_id_for_logging(store.session_id),
                len(result.changed_ids),
            )
        return result
