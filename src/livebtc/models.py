"""Shared data models for the live price sync client.

Prices are whole roubles. Fetched prices are floored to int before they
touch the tracked item or the cache.
"""

import math
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol

# Physical Bitcoin handbook id
BITCOIN_ID = "59faff1d86f7746c51718c9c"
GAME_MODE = "pve"


class PricedItem(Protocol):
    """Anything the engine can keep in sync: an id and a mutable price."""

    @property
    def id(self) -> str: ...

    price: int | float


@dataclass
class TrackedItem:
    """Standalone tracked item, used when no host catalog is supplied."""

    id: str
    price: int | float = 0


class HandbookEntry:
    """Adapter over a host handbook row such as ``{"Id": ..., "Price": ...}``.

    Writes go straight into the wrapped dict so the host sees the new price.
    """

    def __init__(self, row: dict[str, Any]) -> None:
        self._row = row

    @property
    def id(self) -> str:
        return self._row["Id"]

    @property
    def price(self) -> int | float:
        return self._row.get("Price", 0)

    @price.setter
    def price(self, value: int | float) -> None:
        self._row["Price"] = value

    @property
    def row(self) -> dict[str, Any]:
        return self._row


def is_positive_number(value: Any) -> bool:
    """True for finite int/float values above zero. Booleans are rejected."""
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        return False
    if isinstance(value, float) and not math.isfinite(value):
        return False
    return value > 0


class FetchFailure(str, Enum):
    """Why a remote fetch did not produce a price."""

    NETWORK = "network_error"
    TIMEOUT = "timeout"
    MALFORMED = "malformed_response"
    SHAPE = "unexpected_shape"
    INVALID_PRICE = "invalid_price"


@dataclass(frozen=True)
class FetchResult:
    """Outcome of one remote fetch: a validated price or a failure reason."""

    price: int | None = None
    failure: FetchFailure | None = None
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.failure is None and self.price is not None

    @classmethod
    def success(cls, price: int) -> "FetchResult":
        return cls(price=price)

    @classmethod
    def failed(cls, failure: FetchFailure, detail: str = "") -> "FetchResult":
        return cls(failure=failure, detail=detail)


@dataclass(frozen=True)
class CacheRecord:
    """Last known good price as persisted in price.json."""

    item_id: str
    price: int | float
    last_update: int
    game_mode: str = GAME_MODE

    def age(self, now: float | None = None) -> float:
        """Seconds since the record was written."""
        current = time.time() if now is None else now
        return current - self.last_update

    def to_json(self) -> dict[str, Any]:
        return {
            self.item_id: self.price,
            "gameMode": self.game_mode,
            "lastUpdate": self.last_update,
        }


class EngineState(str, Enum):
    """Refresh engine state machine."""

    IDLE = "idle"
    FETCHING = "fetching"
    APPLIED = "applied"
    FALLEN_BACK = "fallen_back"
    UNCHANGED = "unchanged"


class CycleOutcome(str, Enum):
    """Terminal state of a single refresh cycle."""

    APPLIED = "applied"
    FALLEN_BACK = "fallen_back"
    UNCHANGED = "unchanged"


@dataclass
class CycleReport:
    """What one cycle did to the tracked item."""

    outcome: CycleOutcome
    old_price: int | float
    new_price: int | float
    fetch: FetchResult | None = None
    finished_at: float = field(default_factory=time.time)

    @property
    def delta(self) -> int | float:
        return self.new_price - self.old_price
