"""Live Physical Bitcoin price sync for SPT -- fetch, apply, cache and fall back."""

from livebtc.bootstrap import PriceSyncService, find_tracked_item
from livebtc.engine import RefreshEngine
from livebtc.models import BITCOIN_ID, CycleOutcome, FetchFailure, FetchResult, TrackedItem

__all__ = [
    "BITCOIN_ID",
    "CycleOutcome",
    "FetchFailure",
    "FetchResult",
    "PriceSyncService",
    "RefreshEngine",
    "TrackedItem",
    "find_tracked_item",
]
