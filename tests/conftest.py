"""Shared test fixtures for the live price sync client."""

import asyncio
import json
from collections.abc import Callable
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import httpx
import pytest

from livebtc.config import AdvancedConfig, SyncConfig
from livebtc.logging import SyncLogger
from livebtc.models import BITCOIN_ID

NOW = 1_700_000_000.0


class FakeClock:
    """Controllable unix clock for cache age checks."""

    def __init__(self, now: float = NOW) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_config(
    update_interval: float = 2700,
    enable_logging: bool = True,
    enable_periodic_updates: bool = True,
    **advanced: Any,
) -> SyncConfig:
    """Build a SyncConfig using snake_case field names."""
    return SyncConfig(
        update_interval=update_interval,
        enable_logging=enable_logging,
        enable_periodic_updates=enable_periodic_updates,
        advanced=AdvancedConfig(**advanced),
    )


def price_body(price: Any) -> dict:
    """A successful tarkov.dev response carrying the given basePrice."""
    return {"data": {"items": [{"basePrice": price}]}}


def write_cache(path: Path, price: Any, last_update: float, item_id: str = BITCOIN_ID) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps({item_id: price, "gameMode": "pve", "lastUpdate": last_update}),
        encoding="utf-8",
    )


class RecordingTransport:
    """Builds an httpx.MockTransport and keeps every request it saw."""

    def __init__(
        self,
        body: Any = None,
        status: int = 200,
        content: bytes | None = None,
        exc: Callable[[httpx.Request], Exception] | None = None,
        delay: float = 0.0,
    ) -> None:
        self.requests: list[httpx.Request] = []
        self._body = body
        self._status = status
        self._content = content
        self._exc = exc
        self._delay = delay
        self.transport = httpx.MockTransport(self._handle)

    async def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self._delay:
            await asyncio.sleep(self._delay)
        if self._exc is not None:
            raise self._exc(request)
        if self._content is not None:
            return httpx.Response(self._status, content=self._content)
        return httpx.Response(self._status, json=self._body)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sink() -> MagicMock:
    """Host log sink exposing info/warn/error."""
    return MagicMock(spec=["info", "warn", "error"])


@pytest.fixture
def sync_logger(sink: MagicMock) -> SyncLogger:
    return SyncLogger(sink)


@pytest.fixture
def config_path(tmp_path: Path) -> Path:
    return tmp_path / "config" / "config.json"


@pytest.fixture
def price_path(tmp_path: Path) -> Path:
    return tmp_path / "config" / "price.json"


def logged_events(sink: MagicMock, level: str) -> list[str]:
    """Event names (first word of each message) sent to a sink method."""
    method = getattr(sink, level)
    return [c.args[0].split(" ", 1)[0] for c in method.call_args_list]
