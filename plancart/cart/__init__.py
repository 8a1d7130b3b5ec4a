"""Cart package: models, transitions, storage, store facade and pricing services."""
from .addons import Addon, AddonKind, BASE_ITEM_ID
from .bundle import AddonSelection, BundleQuote, calculate_bundle
from .events import CartEvent, CartEventKind
from .models import CartLine, CartState, line_from_record
from .reconcile import PriceReconciler, ReconciliationResult
from .service import CartStore
from .storage import CartStorage, MemoryCartStorage, RedisCartStorage
from .transitions import Transition

__all__ = [
    "Addon",
    "AddonKind",
    "AddonSelection",
    "BASE_ITEM_ID",
    "BundleQuote",
    "CartEvent",
    "CartEventKind",
    "CartLine",
    "CartState",
    "CartStorage",
    "CartStore",
    "MemoryCartStorage",
    "PriceReconciler",
    "RedisCartStorage",
    "ReconciliationResult",
    "Transition",
    "calculate_bundle",
    "line_from_record",
]
