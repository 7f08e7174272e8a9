"""RedStone decentralized feed via ``/prices?symbols=...``.

Response shape: ``{"BTC": {"value": 61000.1, "timestamp": 1718000000000}}``
with millisecond timestamps.
"""

from __future__ import annotations

from datetime import datetime, timezone

from oracle_sentinel.core.exceptions import MalformedResponseError
from oracle_sentinel.core.models import OracleName, PriceRecord, Ticker
from oracle_sentinel.oracles.base import BaseOracleAdapter, utcnow

_PRICES_PATH = "/prices"


def _from_millis(value: object) -> datetime | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


class RedStoneAdapter(BaseOracleAdapter):
    """Decentralized-feed oracle."""

    name = OracleName.REDSTONE

    async def _fetch(self, assets: dict[Ticker, str]) -> dict[Ticker, PriceRecord]:
        data = await self._get_json(
            _PRICES_PATH, params={"symbols": ",".join(assets.values())}
        )
        if not isinstance(data, dict):
            raise MalformedResponseError(
                "RedStone response is not an object",
                context={"oracle": str(self.name), "reason": type(data).__name__},
            )

        now = utcnow()
        results: dict[Ticker, PriceRecord] = {}
        for ticker, symbol in assets.items():
            entry = data.get(symbol)
            if not isinstance(entry, dict):
                results[ticker] = self._record(ticker, None, observed_at=now)
                continue
            observed_at = _from_millis(entry.get("timestamp")) or now
            results[ticker] = self._record(ticker, entry.get("value"), observed_at=observed_at)
        return results
