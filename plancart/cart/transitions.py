"""
Pure cart state transitions.

Each function takes the current ``CartState`` and returns a ``Transition``:
the next state plus the events the shopper may be shown. Nothing here
persists, logs to the user, or touches the network; ``CartStore`` does that.
Guard conditions (missing line, duplicate or unknown add-on) return the
input state unchanged with no events.
"""
from dataclasses import dataclass, replace
from typing import Iterable

from . import events
from .addons import addons_from_prices
from .events import CartEvent
from .models import CartLine, CartState


@dataclass(frozen=True)
class Transition:
    state: CartState
    events: tuple[CartEvent, ...] = ()
    changed_ids: tuple[str, ...] = ()

    @property
    def changed(self) -> bool:
        return bool(self.changed_ids)


def _replace_line(state: CartState, line: CartLine) -> CartState:
    return CartState(lines=tuple(line if existing.id == line.id else existing for existing in state.lines))


def add_line(state: CartState, line: CartLine) -> Transition:
    """Insert a line, or replace the line with the same id wholesale (same position)."""
    if state.get(line.id) is not None:
        return Transition(_replace_line(state, line), (events.updated(line.id),), (line.id,))
    return Transition(CartState(lines=state.lines + (line,)), (events.added(line.id),), (line.id,))


def remove_line(state: CartState, line_id: str) -> Transition:
    if state.get(line_id) is None:
        return Transition(state)
    remaining = tuple(line for line in state.lines if line.id != line_id)
    return Transition(CartState(lines=remaining), (events.removed(line_id),), (line_id,))


def add_addon(state: CartState, line_id: str, addon_id: str) -> Transition:
    line = state.get(line_id)
    if line is None or line.is_selected(addon_id):
        return Transition(state)
    addon = line.find_addon(addon_id)
    if addon is None:
        return Transition(state)

    patched = line.with_selection(line.selected_addon_ids + (addon_id,))
    return Transition(
        _replace_line(state, patched),
        (events.addon_added(line_id, addon.label),),
        (line_id,),
    )


def remove_addon(state: CartState, line_id: str, addon_id: str) -> Transition:
    line = state.get(line_id)
    if line is None or not line.is_selected(addon_id):
        return Transition(state)

    patched = line.with_selection(a for a in line.selected_addon_ids if a != addon_id)
    return Transition(_replace_line(state, patched), (events.addon_removed(line_id),), (line_id,))


def clear(state: CartState) -> Transition:
    if state.is_empty:
        return Transition(CartState())
    return Transition(CartState(), (events.cleared(),), tuple(state.line_ids))


def refresh_line(line: CartLine, record) -> CartLine:
    """
    Patch a line with a fresh catalog record.

    Offered add-ons are rebuilt from the record; previously selected ids that
    are no longer offered fall out of the selection (see ``CartLine``), so
    the price only reflects add-ons the catalog still sells.
    """
    return replace(
        line,
        base_price=record.base_price,
        available_addons=addons_from_prices(record.addon_prices),
        selected_addon_ids=line.selected_addon_ids,
        product_code=record.code,
        recommended_upsell_id=record.recommended_upsell_id,
    )


def apply_catalog_records(state: CartState, records: Iterable) -> Transition:
    """
    Reconcile every line that has a matching record.

    Lines without a record are left as they are. At most one
    ``prices_updated`` event is produced, however many lines changed.
    """
    by_id = {record.id: record for record in records}
    changed_ids = []
    lines = []
    for line in state.lines:
        record = by_id.get(line.id)
        if record is None:
            lines.append(line)
            continue
        patched = refresh_line(line, record)
        if patched != line:
            changed_ids.append(line.id)
        lines.append(patched)

    if not changed_ids:
        return Transition(state)
    return Transition(CartState(lines=tuple(lines)), (events.prices_updated(),), tuple(changed_ids))
