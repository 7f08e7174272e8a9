"""Shared pytest fixtures for oracle-sentinel."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timezone
from pathlib import Path

import pytest

from oracle_sentinel.core.config import (
    EvaluatorConfig,
    OracleConfig,
    OraclesConfig,
    SentinelConfig,
    StorageConfig,
)
from oracle_sentinel.core.models import OracleName, PriceRecord, Ticker
from oracle_sentinel.storage.store import SqliteDocumentStore

CHAINLINK_URL = "https://api.coingecko.com/api/v3/simple/price"
REDSTONE_URL = "https://api.redstone.finance/prices"
PYTH_URL = "https://hermes.pyth.network/v2/updates/price/latest"

BTC_FEED = "e62df6c8b4a85fe1a67db44dc12de5db330f7ac66b72dc658afedf0f4a415b43"
ETH_FEED = "ff61491a931112ddf1bd8147cd1b641375f79f82825126dba6327b2b1b53c4f7"


def fast_oracle_config(base_url: str, **overrides) -> OracleConfig:
    """No backoff and an effectively unlimited token bucket."""
    values = {
        "base_url": base_url,
        "request_timeout": 5.0,
        "rate_limit_per_minute": 10_000,
        "rate_limit_backoff": 0.0,
    }
    values.update(overrides)
    return OracleConfig(**values)


class StubAdapter:
    """In-memory ``OracleAdapter`` with canned prices.

    ``prices`` maps ticker to a float (Active), None (Failed), or an
    exception instance (raised from fetch_batch).
    """

    def __init__(self, name: OracleName, prices: dict[Ticker, object]) -> None:
        self.name = name
        self._prices = prices
        self.calls: list[list[Ticker]] = []
        self.closed = False

    @property
    def supported_assets(self) -> frozenset[Ticker]:
        return frozenset(self._prices)

    async def fetch_batch(self, assets: Iterable[Ticker]) -> dict[Ticker, PriceRecord]:
        tickers = [a.upper() for a in assets]
        self.calls.append(tickers)
        results = {}
        for ticker in tickers:
            value = self._prices.get(ticker)
            if isinstance(value, Exception):
                raise value
            if value is None:
                results[ticker] = PriceRecord.failed(self.name, ticker, "No price available")
            else:
                results[ticker] = PriceRecord.active(self.name, ticker, value)
        return results

    async def fetch_one(self, asset: Ticker) -> PriceRecord:
        return (await self.fetch_batch([asset]))[asset.upper()]

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2024, 6, 10, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def oracles_config() -> OraclesConfig:
    return OraclesConfig(
        chainlink=fast_oracle_config("https://api.coingecko.com/api/v3"),
        redstone=fast_oracle_config("https://api.redstone.finance"),
        pyth=fast_oracle_config("https://hermes.pyth.network"),
    )


@pytest.fixture
def sentinel_config(tmp_path: Path, oracles_config: OraclesConfig) -> SentinelConfig:
    return SentinelConfig(
        oracles=oracles_config,
        evaluator=EvaluatorConfig(inter_alert_delay=0),
        storage=StorageConfig(sqlite_path=str(tmp_path / "sentinel.db")),
    )


@pytest.fixture
async def store(tmp_path: Path) -> SqliteDocumentStore:
    """An initialized SqliteDocumentStore backed by a temp file."""
    s = SqliteDocumentStore(StorageConfig(sqlite_path=str(tmp_path / "store.db")))
    await s.initialize()
    yield s
    await s.close()


@pytest.fixture
def btc_alert_doc() -> dict:
    """An alert document as the front end writes it."""
    return {
        "asset": "btc",
        "oracle": "Chainlink",
        "type": "Price Above",
        "threshold": 60000,
        "notify": {"email": "trader@example.com"},
    }
