"""One-time startup wiring against the host's item catalog.

PriceSyncService owns the SyncContext: it loads the config, locates the
tracked item, builds the cache, fetcher and engine, then runs the startup
cycle. If the host never supplies the item the service logs and stays inert
for the life of the process. No exception escapes start().
"""

import time
from collections.abc import Callable, Iterable
from typing import Any

import httpx

from livebtc.cache import PriceCache
from livebtc.config import AppSettings, ConfigStore, SyncConfig
from livebtc.context import SyncContext
from livebtc.engine import RefreshEngine
from livebtc.exceptions import ItemNotFoundError
from livebtc.fetcher import RemoteFetcher
from livebtc.logging import LogSink, SyncLogger
from livebtc.models import BITCOIN_ID, CycleReport, HandbookEntry, PricedItem


def find_tracked_item(catalog: Iterable[Any], item_id: str = BITCOIN_ID) -> PricedItem:
    """Locate the tracked item in a host catalog.

    Catalog entries may be handbook rows (dicts with "Id"/"Price") or objects
    exposing ``id`` and ``price``. Handbook rows are wrapped so price writes
    land in the host's dict.

    Raises:
        ItemNotFoundError: If no entry carries the id.
    """
    for entry in catalog:
        if isinstance(entry, dict):
            if entry.get("Id") == item_id:
                return HandbookEntry(entry)
        elif getattr(entry, "id", None) == item_id:
            return entry
    raise ItemNotFoundError(item_id)


class PriceSyncService:
    """Bootstrap and lifecycle owner for one tracked item.

    Args:
        settings: Process settings (file paths, API URL).
        sink: Optional host logger exposing info/warn/error.
        transport: Optional httpx transport passed to the fetcher.
        clock: Unix time source for the price cache.
    """

    def __init__(
        self,
        settings: AppSettings | None = None,
        sink: LogSink | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._settings = settings or AppSettings()
        self._logger = SyncLogger(sink)
        self._transport = transport
        self._clock = clock
        self._config: SyncConfig | None = None
        self._context: SyncContext | None = None
        self._engine: RefreshEngine | None = None

    @property
    def config(self) -> SyncConfig | None:
        return self._config

    @property
    def context(self) -> SyncContext | None:
        return self._context

    @property
    def engine(self) -> RefreshEngine | None:
        return self._engine

    @property
    def is_inert(self) -> bool:
        return self._engine is None

    async def start(self, catalog: Iterable[Any] | None) -> CycleReport | None:
        """Load config, find the item and run the startup cycle.

        Returns the startup cycle report, or None when the service is inert.
        """
        logger = self._logger
        try:
            self._config = ConfigStore(self._settings.config_path, logger).load()
            logger.set_enabled(self._config.enable_logging)

            if catalog is None:
                logger.error("item_catalog_unavailable", item_id=BITCOIN_ID)
                return None
            try:
                item = find_tracked_item(catalog, BITCOIN_ID)
            except ItemNotFoundError:
                logger.error("tracked_item_not_found", item_id=BITCOIN_ID)
                return None

            self._context = self._build_context(item, self._config)
            self._engine = RefreshEngine(self._context)
            return await self._engine.start()
        except Exception as e:
            logger.error("initialization_failed", error=str(e))
            return None

    async def stop(self) -> None:
        if self._engine is not None:
            await self._engine.stop()

    def _build_context(self, item: PricedItem, config: SyncConfig) -> SyncContext:
        cache = PriceCache(
            self._settings.price_path,
            item.id,
            config,
            self._logger,
            clock=self._clock,
        )
        fetcher = RemoteFetcher(
            config,
            self._logger,
            api_url=self._settings.api_url,
            transport=self._transport,
        )
        return SyncContext(
            item=item,
            config=config,
            logger=self._logger,
            cache=cache,
            fetcher=fetcher,
        )
