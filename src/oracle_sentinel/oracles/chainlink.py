"""Chainlink-labelled prices via the CoinGecko ``/simple/price`` endpoint.

One batched request per call: ``?ids=bitcoin,ethereum&vs_currencies=usd``
returns ``{"bitcoin": {"usd": 61000.0}, ...}``. CoinGecko does not report a
per-price timestamp, so records are stamped with the fetch time.
"""

from __future__ import annotations

from oracle_sentinel.core.exceptions import MalformedResponseError
from oracle_sentinel.core.models import OracleName, PriceRecord, Ticker
from oracle_sentinel.oracles.base import BaseOracleAdapter, utcnow

_PRICE_PATH = "/simple/price"
_VS_CURRENCY = "usd"


class ChainlinkAdapter(BaseOracleAdapter):
    """Aggregated market-index oracle."""

    name = OracleName.CHAINLINK

    async def _fetch(self, assets: dict[Ticker, str]) -> dict[Ticker, PriceRecord]:
        data = await self._get_json(
            _PRICE_PATH,
            params={"ids": ",".join(assets.values()), "vs_currencies": _VS_CURRENCY},
        )
        if not isinstance(data, dict):
            raise MalformedResponseError(
                "CoinGecko response is not an object",
                context={"oracle": str(self.name), "reason": type(data).__name__},
            )

        now = utcnow()
        results: dict[Ticker, PriceRecord] = {}
        for ticker, coin_id in assets.items():
            entry = data.get(coin_id)
            raw = entry.get(_VS_CURRENCY) if isinstance(entry, dict) else None
            results[ticker] = self._record(ticker, raw, observed_at=now)
        return results
