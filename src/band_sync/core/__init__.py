"""Record store, validation and the availability upsert engine."""

from .config import DATA_DIR, STORE_FILE, ensure_data_dir
from .ledger import EventLedger
from .store import RecordStore
from .upsert import AvailabilityUpsertEngine, UpsertResult, overlaps
from .validation import SyncWindow, Validator, resolve_timezone

__all__ = [
    "AvailabilityUpsertEngine",
    "DATA_DIR",
    "EventLedger",
    "RecordStore",
    "STORE_FILE",
    "SyncWindow",
    "UpsertResult",
    "Validator",
    "ensure_data_dir",
    "overlaps",
    "resolve_timezone",
]
