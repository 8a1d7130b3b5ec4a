"""Cart store: owns one shopper's cart lines for the session."""
from decimal import Decimal
from typing import Iterable, Optional

from plancart.logging import get_logger, sanitize_id_for_logging
from . import transitions
from .events import CartEvent, Notifier, log_notifier
from .models import CartLine, CartState
from .storage import CartStorage
from .transitions import Transition

logger = get_logger(__name__)


class CartStore:
    """
    Owns the ordered cart lines of one shopper session.

    Every mutation runs a pure transition, swaps in the new state, schedules
    a snapshot write and hands the resulting events to the notifier. Mutations
    never raise: guard conditions are no-ops and persistence failures are
    logged by the storage adapter.

    Usage:
        store = await CartStore.open(session_id, storage)
        store.add(line)
        store.add_addon(line.id, "electrical")
        store.total
    """

    def __init__(
        self,
        session_id: str,
        storage: CartStorage,
        notifier: Optional[Notifier] = None,
        state: Optional[CartState] = None,
    ):
        self.session_id = session_id
        self.storage = storage
        self.notifier = notifier or log_notifier
        self._state = state or CartState()

    @classmethod
    async def open(
        cls,
        session_id: str,
        storage: CartStorage,
        notifier: Optional[Notifier] = None,
    ) -> "CartStore":
        """Hydrate from storage once, before any mutation is accepted."""
        state = await storage.load(session_id)
        logger.debug(
            "Cart %s hydrated with %d line(s)",
            sanitize_id_for_logging(session_id),
            len(state.lines),
        )
        return cls(session_id, storage, notifier=notifier, state=state)

    @property
    def state(self) -> CartState:
        return self._state

    @property
    def lines(self) -> tuple[CartLine, ...]:
        return self._state.lines

    @property
    def total(self) -> Decimal:
        return self._state.total

    def get(self, line_id: str) -> Optional[CartLine]:
        return self._state.get(line_id)

    def upsell_candidates(self) -> list[str]:
        """Recommended products of current lines that are not in the cart yet."""
        in_cart = set(self._state.line_ids)
        candidates = []
        for line in self._state.lines:
            upsell_id = line.recommended_upsell_id
            if upsell_id and upsell_id not in in_cart and upsell_id not in candidates:
                candidates.append(upsell_id)
        return candidates

    def _apply(self, transition: Transition, persist: bool = True) -> Transition:
        self._state = transition.state
        if persist:
            self.storage.save(self.session_id, self._state)
        self._emit(transition.events)
        return transition

    def _emit(self, cart_events: Iterable[CartEvent]) -> None:
        for event in cart_events:
            try:
                self.notifier(event)
            except Exception as e:
                logger.error("Cart notifier failed for %s: %s", event.kind.value, e)

    def add(self, line: CartLine) -> Transition:
        """Insert a line or replace the line with the same id."""
        if not isinstance(line, CartLine) or not line.id:
            logger.debug("Ignoring invalid cart line: %r", line)
            return Transition(self._state)
        return self._apply(transitions.add_line(self._state, line))

    def remove(self, line_id: str) -> Transition:
        return self._apply(transitions.remove_line(self._state, line_id))

    def add_addon(self, line_id: str, addon_id: str) -> Transition:
        transition = transitions.add_addon(self._state, line_id, addon_id)
        if not transition.changed:
            logger.debug(
                "add_addon no-op for line %s, add-on %s",
                sanitize_id_for_logging(line_id),
                sanitize_id_for_logging(addon_id),
            )
            return transition
        return self._apply(transition)

    def remove_addon(self, line_id: str, addon_id: str) -> Transition:
        transition = transitions.remove_addon(self._state, line_id, addon_id)
        if not transition.changed:
            return transition
        return self._apply(transition)

    def clear(self) -> Transition:
        return self._apply(transitions.clear(self._state))

    def apply_catalog_records(self, records: Iterable) -> Transition:
        """
        Patch lines with fresh catalog records against the current state.

        Persists and notifies only when something actually changed.
        """
        transition = transitions.apply_catalog_records(self._state, records)
        if not transition.changed:
            return transition
        return self._apply(transition)

    async def reload(self) -> None:
        """
        Re-read the stored snapshot, picking up writes made by other requests.

        Pending writes of this process land first. No events are emitted.
        """
        await self.storage.flush()
        self._state = await self.storage.load(self.session_id)

    async def flush(self) -> None:
        """Wait for pending snapshot writes; callers of mutations never need to."""
        await self.storage.flush()
