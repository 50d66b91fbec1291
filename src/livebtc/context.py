"""Explicit per-process context handed to the refresh engine.

Bootstrap builds exactly one SyncContext and owns it. Components receive what
they need from it instead of reaching for module-level state.
"""

from dataclasses import dataclass

from livebtc.cache import PriceCache
from livebtc.config import SyncConfig
from livebtc.fetcher import RemoteFetcher
from livebtc.logging import SyncLogger
from livebtc.models import PricedItem


@dataclass
class SyncContext:
    """Everything one refresh cycle touches."""

    item: PricedItem
    config: SyncConfig
    logger: SyncLogger
    cache: PriceCache
    fetcher: RemoteFetcher
