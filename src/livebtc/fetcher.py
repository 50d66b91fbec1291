"""Remote price fetcher for the tarkov.dev GraphQL API.

One call to fetch_price() issues exactly one POST and always returns a
FetchResult. Every failure mode (transport error, timeout, unparseable body,
GraphQL errors or missing data, bad price) is logged with its own event name
and mapped to a FetchFailure. Nothing is raised to the caller.

The whole request is bounded by the configured apiTimeout: asyncio.wait_for
cancels the in-flight request when it expires, which aborts the connection.
"""

import asyncio
import math
from typing import Any

import httpx

from livebtc.config import DEFAULT_API_URL, SyncConfig
from livebtc.exceptions import (
    FetchError,
    FetchTimeoutError,
    InvalidPriceError,
    MalformedResponseError,
    NetworkError,
    ResponseShapeError,
)
from livebtc.logging import SyncLogger
from livebtc.models import FetchFailure, FetchResult, is_positive_number

PRICE_QUERY = 'query { items(gameMode: pve, name: "Physical Bitcoin") { basePrice } }'

# error class -> (failure tag, log event)
_FAILURES: dict[type[FetchError], tuple[FetchFailure, str]] = {
    NetworkError: (FetchFailure.NETWORK, "api_network_error"),
    FetchTimeoutError: (FetchFailure.TIMEOUT, "api_request_timeout"),
    MalformedResponseError: (FetchFailure.MALFORMED, "api_response_unparseable"),
    ResponseShapeError: (FetchFailure.SHAPE, "api_price_data_missing"),
    InvalidPriceError: (FetchFailure.INVALID_PRICE, "api_invalid_price"),
}


def extract_price(payload: Any) -> int:
    """Pull data.items[0].basePrice out of a decoded response and floor it.

    Raises:
        ResponseShapeError: On an errors payload or a missing data.items[0].
        InvalidPriceError: If basePrice is missing, non-numeric or floors to <= 0.
    """
    if not isinstance(payload, dict):
        raise ResponseShapeError("response is not a JSON object")
    if payload.get("errors") is not None:
        raise ResponseShapeError(f"api returned errors: {payload['errors']}")

    data = payload.get("data")
    items = data.get("items") if isinstance(data, dict) else None
    if not isinstance(items, list) or not items or not isinstance(items[0], dict):
        raise ResponseShapeError("data.items[0] missing")

    raw_price = items[0].get("basePrice")
    if not is_positive_number(raw_price):
        raise InvalidPriceError(f"basePrice={raw_price!r}")

    price = math.floor(raw_price)
    if price <= 0:
        raise InvalidPriceError(f"basePrice={raw_price!r} floors to {price}")
    return price


class RemoteFetcher:
    """Fetches the current Physical Bitcoin PvE base price.

    Args:
        config: Loaded sync config (timeout and User-Agent).
        logger: Log sink.
        api_url: GraphQL endpoint.
        transport: Optional httpx transport; tests pass httpx.MockTransport.
    """

    def __init__(
        self,
        config: SyncConfig,
        logger: SyncLogger,
        api_url: str = DEFAULT_API_URL,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        self._logger = logger
        self._api_url = api_url
        self._transport = transport

    async def fetch_price(self) -> FetchResult:
        """Issue one request and resolve it to a success or a tagged failure."""
        try:
            price = await self._request_price()
        except FetchError as e:
            failure, event = _FAILURES.get(type(e), (FetchFailure.NETWORK, "api_error"))
            self._logger.error(event, error=str(e))
            return FetchResult.failed(failure, str(e))
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._logger.error("api_unexpected_error", error=str(e) or type(e).__name__)
            return FetchResult.failed(FetchFailure.NETWORK, str(e) or type(e).__name__)

        self._logger.info("api_price_received", price=price)
        return FetchResult.success(price)

    async def _request_price(self) -> int:
        timeout = self._config.timeout_seconds
        headers = {
            "Content-Type": "application/json",
            "User-Agent": self._config.user_agent,
        }

        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=timeout) as client:
                response = await asyncio.wait_for(
                    client.post(self._api_url, json={"query": PRICE_QUERY}, headers=headers),
                    timeout=timeout,
                )
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            raise FetchTimeoutError(f"no response within {self._config.advanced.api_timeout}ms") from e
        except httpx.HTTPError as e:
            raise NetworkError(str(e) or type(e).__name__) from e

        try:
            payload = response.json()
        except ValueError as e:
            raise MalformedResponseError(f"status={response.status_code}: {e}") from e

        return extract_price(payload)
