"""On-disk cache of the last price fetched successfully.

The cache lets a restart during an API outage come back with a recent price
instead of the handbook default. Records older than the configured TTL are
ignored but left on disk; the next successful fetch overwrites them.

File layout (price.json):
    {"59faff1d86f7746c51718c9c": 15000, "gameMode": "pve", "lastUpdate": 1700000000}
"""

import json
import math
import time
from collections.abc import Callable
from pathlib import Path

from livebtc.config import SyncConfig
from livebtc.exceptions import CacheReadError, CacheWriteError
from livebtc.logging import SyncLogger
from livebtc.models import GAME_MODE, CacheRecord, is_positive_number


def is_valid_age(age_seconds: float, ttl_hours: float) -> bool:
    """Return True if a record of this age is still within the TTL (inclusive)."""
    return age_seconds <= ttl_hours * 3600


class PriceCache:
    """Reads and writes the price.json cache for one tracked item.

    Args:
        path: Location of price.json.
        item_id: Key the price is stored under.
        config: Loaded sync config (caching toggle and TTL).
        logger: Log sink.
        clock: Returns the current unix time; injectable for tests.
    """

    def __init__(
        self,
        path: Path,
        item_id: str,
        config: SyncConfig,
        logger: SyncLogger,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._path = path
        self._item_id = item_id
        self._config = config
        self._logger = logger
        self._clock = clock

    @property
    def path(self) -> Path:
        return self._path

    # ──────────────────────────────────────────────
    # Public methods
    # ──────────────────────────────────────────────

    def save(self, price: int | float) -> None:
        """Persist the price with the current timestamp. Never raises."""
        if not self._config.cache_enabled:
            return

        record = CacheRecord(
            item_id=self._item_id,
            price=price,
            last_update=math.floor(self._clock()),
            game_mode=GAME_MODE,
        )
        try:
            self.write_record(record)
        except CacheWriteError as e:
            self._logger.error("price_cache_write_failed", path=str(self._path), error=str(e))
            return

        self._logger.info("price_cached", price=price)

    def load(self) -> int | float | None:
        """Return the cached price if present, positive and within the TTL.

        Returns None when caching is disabled, nothing is stored, the stored
        price is invalid, the record is stale, or the file cannot be read.
        """
        if not self._config.cache_enabled:
            return None

        try:
            record = self.read_record()
        except CacheReadError as e:
            self._logger.error("price_cache_read_failed", path=str(self._path), error=str(e))
            return None

        if record is None:
            self._logger.info("price_cache_missing", path=str(self._path))
            return None

        if not is_positive_number(record.price):
            self._logger.info("price_cache_invalid_price", price=record.price)
            return None

        ttl_hours = self._config.advanced.cache_expiration_hours
        age = record.age(self._clock())
        age_hours = age / 3600
        if not is_valid_age(age, ttl_hours):
            self._logger.info(
                "price_cache_expired",
                age_hours=round(age_hours, 1),
                max_hours=ttl_hours,
            )
            return None

        self._logger.info("price_cache_valid", age_hours=round(age_hours, 1))
        return record.price

    # ──────────────────────────────────────────────
    # Raw record access
    # ──────────────────────────────────────────────

    def read_record(self) -> CacheRecord | None:
        """Read price.json without any validity checks.

        Returns None if the file or the item's key does not exist.

        Raises:
            CacheReadError: If the file cannot be read or decoded.
        """
        if not self._path.exists():
            return None

        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise CacheReadError(str(e)) from e

        if not isinstance(data, dict):
            raise CacheReadError("cache root is not a JSON object")
        if self._item_id not in data:
            return None

        last_update = data.get("lastUpdate")
        if not isinstance(last_update, (int, float)) or isinstance(last_update, bool):
            raise CacheReadError("missing or non-numeric lastUpdate")

        return CacheRecord(
            item_id=self._item_id,
            price=data[self._item_id],
            last_update=int(last_update),
            game_mode=data.get("gameMode", GAME_MODE),
        )

    def write_record(self, record: CacheRecord) -> None:
        """Overwrite price.json with the record, creating the directory if needed.

        Raises:
            CacheWriteError: If the directory or file cannot be written.
        """
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(json.dumps(record.to_json(), indent=2), encoding="utf-8")
        except OSError as e:
            raise CacheWriteError(str(e)) from e
