"""Tests for PriceCache save/load and TTL validity.

A clock fixture pins "now" so record ages are exact.
"""

import json
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from conftest import NOW, FakeClock, logged_events, make_config, write_cache
from livebtc.cache import PriceCache, is_valid_age
from livebtc.exceptions import CacheReadError
from livebtc.logging import SyncLogger
from livebtc.models import BITCOIN_ID, CacheRecord

HOUR = 3600


def _cache(
    price_path: Path,
    sink: MagicMock,
    clock: FakeClock,
    **advanced,
) -> PriceCache:
    return PriceCache(
        price_path,
        BITCOIN_ID,
        make_config(**advanced),
        SyncLogger(sink),
        clock=clock,
    )


@pytest.fixture
def cache(price_path: Path, sink: MagicMock, clock: FakeClock) -> PriceCache:
    return _cache(price_path, sink, clock)


class TestIsValidAge:
    """Pure TTL predicate."""

    def test_fresh_record_is_valid(self) -> None:
        assert is_valid_age(0, 6) is True

    def test_boundary_is_inclusive(self) -> None:
        assert is_valid_age(6 * HOUR, 6) is True

    def test_just_past_boundary_is_invalid(self) -> None:
        assert is_valid_age(6 * HOUR + 1, 6) is False

    def test_fractional_ttl(self) -> None:
        assert is_valid_age(1800, 0.5) is True
        assert is_valid_age(1801, 0.5) is False

    @pytest.mark.parametrize("ttl_hours", [0.25, 1, 6, 24])
    def test_validity_is_monotonic_in_age(self, ttl_hours: float) -> None:
        ages = [0, 60, ttl_hours * HOUR / 2, ttl_hours * HOUR, ttl_hours * HOUR + 1, 10 * ttl_hours * HOUR]
        results = [is_valid_age(age, ttl_hours) for age in ages]
        # once invalid, never valid again as age grows
        first_invalid = results.index(False)
        assert all(results[:first_invalid])
        assert not any(results[first_invalid:])


class TestSave:
    """Writing price.json."""

    def test_writes_record(self, cache: PriceCache, price_path: Path) -> None:
        cache.save(15000)
        data = json.loads(price_path.read_text(encoding="utf-8"))
        assert data == {BITCOIN_ID: 15000, "gameMode": "pve", "lastUpdate": int(NOW)}

    def test_timestamp_is_whole_seconds(
        self, cache: PriceCache, price_path: Path, clock: FakeClock
    ) -> None:
        clock.now = NOW + 0.75
        cache.save(15000)
        data = json.loads(price_path.read_text(encoding="utf-8"))
        assert data["lastUpdate"] == int(NOW)

    def test_creates_missing_directory(
        self, tmp_path: Path, sink: MagicMock, clock: FakeClock
    ) -> None:
        path = tmp_path / "deep" / "nested" / "price.json"
        _cache(path, sink, clock).save(100)
        assert path.exists()

    def test_overwrites_previous_record(
        self, cache: PriceCache, price_path: Path, clock: FakeClock
    ) -> None:
        cache.save(15000)
        clock.advance(HOUR)
        cache.save(16000)
        data = json.loads(price_path.read_text(encoding="utf-8"))
        assert data[BITCOIN_ID] == 16000
        assert data["lastUpdate"] == int(NOW + HOUR)

    def test_disabled_is_noop(
        self, price_path: Path, sink: MagicMock, clock: FakeClock
    ) -> None:
        _cache(price_path, sink, clock, enable_price_caching=False).save(15000)
        assert not price_path.exists()

    def test_write_failure_is_logged_not_raised(
        self, tmp_path: Path, sink: MagicMock, clock: FakeClock
    ) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("file", encoding="utf-8")
        _cache(blocker / "price.json", sink, clock).save(15000)
        assert "price_cache_write_failed" in logged_events(sink, "error")


class TestLoad:
    """Reading price.json with validity checks."""

    def test_valid_record(self, cache: PriceCache, price_path: Path) -> None:
        write_cache(price_path, 14000, NOW - HOUR)
        assert cache.load() == 14000

    def test_logs_age_and_validity(
        self, cache: PriceCache, price_path: Path, sink: MagicMock
    ) -> None:
        write_cache(price_path, 14000, NOW - HOUR)
        cache.load()
        messages = [c.args[0] for c in sink.info.call_args_list]
        assert any(m.startswith("price_cache_valid") and "age_hours=1.0" in m for m in messages)

    def test_record_at_ttl_boundary_is_valid(
        self, cache: PriceCache, price_path: Path
    ) -> None:
        write_cache(price_path, 14000, NOW - 6 * HOUR)
        assert cache.load() == 14000

    def test_stale_record_is_absent_but_kept(
        self, cache: PriceCache, price_path: Path, sink: MagicMock
    ) -> None:
        write_cache(price_path, 14000, NOW - 7 * HOUR)
        assert cache.load() is None
        assert price_path.exists()
        assert "price_cache_expired" in logged_events(sink, "info")

    def test_custom_ttl(
        self, price_path: Path, sink: MagicMock, clock: FakeClock
    ) -> None:
        write_cache(price_path, 14000, NOW - 7 * HOUR)
        cache = _cache(price_path, sink, clock, cache_expiration_hours=12)
        assert cache.load() == 14000

    def test_missing_file(self, cache: PriceCache, sink: MagicMock) -> None:
        assert cache.load() is None
        assert "price_cache_missing" in logged_events(sink, "info")

    def test_disabled_ignores_valid_file(
        self, price_path: Path, sink: MagicMock, clock: FakeClock
    ) -> None:
        write_cache(price_path, 14000, NOW)
        cache = _cache(price_path, sink, clock, enable_price_caching=False)
        assert cache.load() is None

    def test_other_item_only(self, cache: PriceCache, price_path: Path) -> None:
        write_cache(price_path, 14000, NOW, item_id="5449016a4bdc2d6f028b456f")
        assert cache.load() is None

    @pytest.mark.parametrize(
        "price", [0, -100, "14000", None, True, [14000], float("inf"), float("nan")]
    )
    def test_invalid_price(
        self, cache: PriceCache, price_path: Path, price: object
    ) -> None:
        write_cache(price_path, price, NOW)
        assert cache.load() is None

    def test_float_price_is_returned(self, cache: PriceCache, price_path: Path) -> None:
        write_cache(price_path, 14000.5, NOW)
        assert cache.load() == 14000.5

    @pytest.mark.parametrize(
        "content",
        [
            "",
            "{broken",
            "[]",
            json.dumps({BITCOIN_ID: 14000, "gameMode": "pve"}),
            json.dumps({BITCOIN_ID: 14000, "gameMode": "pve", "lastUpdate": "yesterday"}),
        ],
    )
    def test_unreadable_record_is_absent(
        self,
        cache: PriceCache,
        price_path: Path,
        sink: MagicMock,
        content: str,
    ) -> None:
        price_path.parent.mkdir(parents=True)
        price_path.write_text(content, encoding="utf-8")
        assert cache.load() is None
        assert "price_cache_read_failed" in logged_events(sink, "error")

    def test_round_trip_after_save(self, cache: PriceCache, clock: FakeClock) -> None:
        cache.save(15000)
        clock.advance(2 * HOUR)
        assert cache.load() == 15000


class TestRawRecord:
    """read_record / write_record without validation."""

    def test_read_record_fields(self, cache: PriceCache, price_path: Path) -> None:
        write_cache(price_path, 14000, NOW - 30)
        record = cache.read_record()
        assert record == CacheRecord(
            item_id=BITCOIN_ID, price=14000, last_update=int(NOW - 30), game_mode="pve"
        )
        assert record.age(NOW) == 30

    def test_read_record_raises_on_bad_json(
        self, cache: PriceCache, price_path: Path
    ) -> None:
        price_path.parent.mkdir(parents=True)
        price_path.write_text("{", encoding="utf-8")
        with pytest.raises(CacheReadError):
            cache.read_record()

    def test_written_with_two_space_indent(
        self, cache: PriceCache, price_path: Path
    ) -> None:
        cache.save(15000)
        lines = price_path.read_text(encoding="utf-8").splitlines()
        assert lines[1].startswith(f'  "{BITCOIN_ID}"')
