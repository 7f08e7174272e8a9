"""Pyth pull-based attestations via Hermes ``/v2/updates/price/latest``.

Hermes reports each price as an integer mantissa with a power-of-ten
exponent::

    {"parsed": [{"id": "e62d...", "price": {"price": "6140993501000",
                 "conf": "3101000", "expo": -8, "publish_time": 1718000000}}]}

Both price and confidence are scaled by ``10**expo``.
"""

from __future__ import annotations

from datetime import datetime, timezone

from oracle_sentinel.core.exceptions import MalformedResponseError
from oracle_sentinel.core.models import OracleName, PriceRecord, Ticker
from oracle_sentinel.oracles.base import BaseOracleAdapter, scale_price, utcnow

_LATEST_PATH = "/v2/updates/price/latest"


def normalize_feed_id(feed_id: str) -> str:
    """Hermes echoes ids lowercase without the ``0x`` prefix."""
    return feed_id.strip().lower().removeprefix("0x")


class PythAdapter(BaseOracleAdapter):
    """Pull-based-attestation oracle."""

    name = OracleName.PYTH

    async def _fetch(self, assets: dict[Ticker, str]) -> dict[Ticker, PriceRecord]:
        by_feed = {normalize_feed_id(feed_id): ticker for ticker, feed_id in assets.items()}
        params = [("ids[]", feed_id) for feed_id in by_feed]
        params.append(("parsed", "true"))

        data = await self._get_json(_LATEST_PATH, params=params)
        parsed = data.get("parsed") if isinstance(data, dict) else None
        if not isinstance(parsed, list):
            raise MalformedResponseError(
                "Hermes response has no 'parsed' list",
                context={"oracle": str(self.name), "reason": "missing parsed"},
            )

        results: dict[Ticker, PriceRecord] = {}
        for update in parsed:
            ticker = by_feed.get(normalize_feed_id(str(update["id"])))
            if ticker is None:
                continue
            results[ticker] = self._parse_update(ticker, update["price"])
        return results

    def _parse_update(self, ticker: Ticker, price: dict) -> PriceRecord:
        expo = price["expo"]
        confidence = scale_price(price["conf"], expo) if price.get("conf") is not None else None
        publish_time = price.get("publish_time")
        observed_at = (
            datetime.fromtimestamp(publish_time, tz=timezone.utc)
            if isinstance(publish_time, int)
            else utcnow()
        )
        return self._record(
            ticker,
            scale_price(price["price"], expo),
            confidence=confidence,
            observed_at=observed_at,
        )
