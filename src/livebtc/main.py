"""Standalone entry point for the live price sync client.

Runs the same bootstrap a host application would, against either a handbook
JSON file (LIVEBTC_HANDBOOK_PATH, SPT layout ``{"Items": [...]}``) or a bare
in-memory item seeded with LIVEBTC_INITIAL_PRICE. Keeps running until
SIGINT/SIGTERM while periodic updates are enabled.

Component wiring order:
1. AppSettings (configuration)
2. Logging setup
3. Item catalog (handbook file or standalone item)
4. PriceSyncService (config store, cache, fetcher, refresh engine)
"""

import asyncio
import json
import signal
from pathlib import Path
from typing import Any

from livebtc.bootstrap import PriceSyncService
from livebtc.config import AppSettings
from livebtc.logging import get_logger, setup_logging
from livebtc.models import BITCOIN_ID, TrackedItem


def load_handbook(path: Path) -> list[Any]:
    """Read handbook rows from an SPT handbook.json. Returns [] if unreadable."""
    logger = get_logger("livebtc.main")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.error("handbook_load_failed", path=str(path), error=str(e))
        return []

    items = data.get("Items") if isinstance(data, dict) else data
    if not isinstance(items, list):
        logger.error("handbook_items_missing", path=str(path))
        return []
    return items


def _build_catalog(settings: AppSettings) -> list[Any]:
    if settings.handbook_path is not None:
        return load_handbook(settings.handbook_path)
    return [TrackedItem(id=BITCOIN_ID, price=settings.initial_price)]


def _setup_signal_handlers(stop_event: asyncio.Event) -> None:
    """SIGINT/SIGTERM set the stop event. Must be called inside the running loop."""
    logger = get_logger("livebtc.main")
    loop = asyncio.get_running_loop()

    def _graceful_handler() -> None:
        logger.info("graceful_shutdown_signal")
        stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _graceful_handler)


async def run() -> None:
    """Bootstrap the service and keep it alive while updates are scheduled."""
    # 1. Load settings
    settings = AppSettings()

    # 2. Setup logging
    setup_logging(settings.log_level, settings.log_format)
    logger = get_logger("livebtc.main")

    # 3. Item catalog
    catalog = _build_catalog(settings)

    # 4. Service
    service = PriceSyncService(settings)
    await service.start(catalog)

    engine = service.engine
    if engine is None or not engine.is_scheduled:
        logger.info("live_price_sync_exiting", inert=service.is_inert)
        return

    stop_event = asyncio.Event()
    _setup_signal_handlers(stop_event)
    try:
        await stop_event.wait()
    finally:
        await service.stop()
        logger.info("live_price_sync_stopped")


def main() -> None:
    """Synchronous entry point."""
    asyncio.run(run())


if __name__ == "__main__":
    main()
