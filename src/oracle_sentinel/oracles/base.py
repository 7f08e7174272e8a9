"""Oracle adapter protocol and the shared request/normalization machinery.

Architecture
------------
Each upstream oracle gets one small adapter class that knows its request
shape and response format. Everything else lives here:

    assets -> BaseOracleAdapter.fetch_batch -> _fetch (per oracle) -> PriceRecord

- Unsupported assets are answered with Failed records before any request.
- ``_get_json`` applies the per-oracle token bucket, retries one HTTP 429
  after a fixed backoff, and turns transport problems into ``OracleError``.
- ``fetch_batch`` converts every error into Failed records, so adapters
  never raise past their boundary.
"""

from __future__ import annotations

import asyncio
import logging
import math
from collections.abc import Awaitable, Callable, Iterable, Mapping
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, ClassVar, Protocol, runtime_checkable

import httpx
from aiolimiter import AsyncLimiter

from oracle_sentinel.core.config import OracleConfig
from oracle_sentinel.core.exceptions import (
    MalformedResponseError,
    OracleError,
    RateLimitError,
)
from oracle_sentinel.core.models import OracleName, PriceRecord, PriceStatus, Ticker

logger = logging.getLogger(__name__)

_BLANK_ASSET_ERROR = "Asset must not be empty"

_USER_AGENT = "oracle-sentinel/0.1 (price alerts)"

# One initial request plus exactly one retry after a 429
_MAX_ATTEMPTS = 2

# Errors raised while picking apart an unexpected payload
_PAYLOAD_ERRORS = (KeyError, TypeError, ValueError, AttributeError, ArithmeticError)


@runtime_checkable
class OracleAdapter(Protocol):
    """Consumer-facing interface for one price oracle.

    All code that needs prices depends on this protocol. Implementations
    never raise from ``fetch_batch``/``fetch_one``: failures come back as
    ``PriceRecord`` objects with ``status=Failed``.
    """

    name: OracleName

    @property
    def supported_assets(self) -> frozenset[Ticker]: ...

    async def fetch_batch(self, assets: Iterable[Ticker]) -> dict[Ticker, PriceRecord]: ...

    async def fetch_one(self, asset: Ticker) -> PriceRecord: ...

    async def close(self) -> None: ...


def scale_price(mantissa: int | str, exponent: int | str) -> float:
    """Return ``mantissa * 10**exponent`` rounded once to the nearest float.

    The product is formed exactly in decimal, so negative exponents do not
    pick up the binary error of ``10**-n``.
    """
    return float(Decimal(int(mantissa)).scaleb(int(exponent)))


def valid_price(value: Any) -> float | None:
    """Coerce an upstream price to float, or None if it is unusable."""
    if value is None or isinstance(value, bool):
        return None
    try:
        price = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(price) or price <= 0:
        return None
    return price


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BaseOracleAdapter:
    """Shared implementation of ``OracleAdapter``.

    Subclasses set ``name`` and implement ``_fetch`` for assets that are
    already known to be supported.

    Parameters
    ----------
    config : OracleConfig
        Base URL, timeout, rate limit and 429 backoff for this oracle.
    assets : Mapping[Ticker, str]
        Read-only table of canonical ticker -> upstream identifier.
    client : httpx.AsyncClient | None
        Injected client (tests). A private client is created if None.
    sleep : callable
        Awaitable used for the 429 backoff. Defaults to ``asyncio.sleep``.
    """

    name: ClassVar[OracleName]

    def __init__(
        self,
        config: OracleConfig,
        assets: Mapping[Ticker, str],
        client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._config = config
        self._assets = assets
        self._sleep = sleep
        self._limiter = AsyncLimiter(
            max_rate=config.rate_limit_per_minute, time_period=60.0
        )
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            headers={"Accept": "application/json", "User-Agent": _USER_AGENT},
            timeout=httpx.Timeout(config.request_timeout),
            follow_redirects=True,
        )

    async def __aenter__(self) -> BaseOracleAdapter:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the underlying HTTP client if this adapter created it."""
        if self._owns_client:
            await self._client.aclose()

    @property
    def supported_assets(self) -> frozenset[Ticker]:
        return frozenset(self._assets)

    # --- Public API ---

    async def fetch_one(self, asset: Ticker) -> PriceRecord:
        """Fetch a single asset's price. Never raises."""
        ticker = asset.strip().upper()
        if not ticker:
            # blank input has no valid Ticker
            return PriceRecord.model_construct(
                oracle=self.name,
                asset=ticker,
                price=None,
                confidence=None,
                status=PriceStatus.FAILED,
                observed_at=utcnow(),
                error=_BLANK_ASSET_ERROR,
            )
        results = await self.fetch_batch([ticker])
        return results[ticker]

    async def fetch_batch(self, assets: Iterable[Ticker]) -> dict[Ticker, PriceRecord]:
        """Fetch prices for a batch of assets. Never raises.

        Returns
        -------
        dict[Ticker, PriceRecord]
            One record per requested asset. Unsupported assets, assets the
            oracle did not price, and every asset of a failed request come
            back with ``status=Failed``. Blank entries are dropped.
        """
        requested = list(dict.fromkeys(a.strip().upper() for a in assets))
        if "" in requested:
            logger.warning("Ignoring blank asset in %s request", self.name)
            requested.remove("")
        results: dict[Ticker, PriceRecord] = {}
        supported: dict[Ticker, str] = {}

        for ticker in requested:
            upstream_id = self._assets.get(ticker)
            if upstream_id is None:
                logger.info("%s is not supported by %s oracle", ticker, self.name)
                results[ticker] = PriceRecord.failed(
                    self.name, ticker, f"{ticker} is not supported by {self.name}"
                )
            else:
                supported[ticker] = upstream_id

        if not supported:
            return results

        try:
            fetched = await self._fetch(supported)
        except OracleError as e:
            logger.warning("%s request failed: %s", self.name, e)
            return results | self._fail_all(supported, str(e))
        except _PAYLOAD_ERRORS as e:
            logger.warning("%s returned a malformed payload: %r", self.name, e)
            return results | self._fail_all(supported, f"Malformed response: {e!r}")

        for ticker in supported:
            record = fetched.get(ticker)
            if record is None:
                record = PriceRecord.failed(self.name, ticker, "No price available")
            results[ticker] = record
        return results

    # --- Subclass hooks ---

    async def _fetch(self, assets: dict[Ticker, str]) -> dict[Ticker, PriceRecord]:
        """Query the oracle for supported assets (ticker -> upstream id)."""
        raise NotImplementedError

    # --- Helpers ---

    def _fail_all(self, assets: Iterable[Ticker], reason: str) -> dict[Ticker, PriceRecord]:
        now = utcnow()
        return {
            ticker: PriceRecord.failed(self.name, ticker, reason, observed_at=now)
            for ticker in assets
        }

    def _record(
        self,
        ticker: Ticker,
        raw_price: Any,
        confidence: float | None = None,
        observed_at: datetime | None = None,
    ) -> PriceRecord:
        """Build an Active record, or a Failed one if the price is unusable."""
        price = valid_price(raw_price)
        if price is None:
            return PriceRecord.failed(
                self.name, ticker, "No valid price available", observed_at=observed_at
            )
        return PriceRecord.active(
            self.name, ticker, price, confidence=confidence, observed_at=observed_at
        )

    async def _get_json(self, path: str, params: Any = None) -> Any:
        """GET ``base_url + path`` with rate limiting and one 429 retry.

        Returns
        -------
        Any
            Decoded JSON body of a 2xx response.

        Raises
        ------
        RateLimitError
            The retry after the backoff window was also answered with 429.
        OracleError
            Timeout, connection failure, or non-2xx status.
        MalformedResponseError
            Body is not valid JSON.
        """
        url = f"{self._config.base_url}{path}"
        backoff = self._config.rate_limit_backoff

        for attempt in range(_MAX_ATTEMPTS):
            await self._limiter.acquire()
            try:
                response = await self._client.get(url, params=params)
            except httpx.TimeoutException as e:
                raise OracleError(
                    f"{self.name} request timed out",
                    context={"oracle": str(self.name), "url": url},
                ) from e
            except httpx.HTTPError as e:
                raise OracleError(
                    f"{self.name} request failed: {e}",
                    context={"oracle": str(self.name), "url": url, "error": str(e)},
                ) from e

            if response.status_code == 429:
                if attempt < _MAX_ATTEMPTS - 1:
                    logger.warning(
                        "Rate limited (429) by %s, retrying once in %.1fs",
                        self.name, backoff,
                    )
                    await self._sleep(backoff)
                    continue
                raise RateLimitError(
                    f"{self.name} rate limit persisted after retry",
                    context={"oracle": str(self.name), "url": url, "backoff": backoff},
                )

            if not response.is_success:
                raise OracleError(
                    f"HTTP {response.status_code} from {self.name}",
                    context={
                        "oracle": str(self.name),
                        "url": url,
                        "status_code": response.status_code,
                    },
                )

            try:
                return response.json()
            except ValueError as e:
                raise MalformedResponseError(
                    f"{self.name} returned invalid JSON",
                    context={"oracle": str(self.name), "reason": str(e)},
                ) from e

        # Loop always returns or raises; kept for type checkers
        raise RateLimitError(
            f"{self.name} rate limit persisted after retry",
            context={"oracle": str(self.name), "url": url},
        )
