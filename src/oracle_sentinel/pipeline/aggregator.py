"""Fan-out/fan-in snapshot across every configured oracle."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping

from oracle_sentinel.core.models import OracleName, PriceRecord, Snapshot, Ticker
from oracle_sentinel.oracles.base import OracleAdapter, utcnow

logger = logging.getLogger(__name__)


class SnapshotAggregator:
    """Builds one ``Snapshot`` from all adapters concurrently.

    Each adapter queries its own full supported asset set. A slow or failed
    branch never cancels the others; the join waits for all of them.
    """

    def __init__(self, adapters: Mapping[OracleName, OracleAdapter]) -> None:
        self._adapters = dict(adapters)

    async def take_snapshot(self) -> Snapshot:
        """Query every oracle and assemble the results. Never raises."""
        oracles = list(self._adapters)
        outcomes = await asyncio.gather(
            *(
                self._adapters[oracle].fetch_batch(self._adapters[oracle].supported_assets)
                for oracle in oracles
            ),
            return_exceptions=True,
        )

        by_oracle: dict[OracleName, dict[Ticker, PriceRecord]] = {}
        for oracle, outcome in zip(oracles, outcomes):
            if isinstance(outcome, BaseException):
                # Adapters convert their own errors; this only catches bugs
                logger.error("%s adapter raised during snapshot: %r", oracle, outcome)
                by_oracle[oracle] = self._all_failed(oracle, repr(outcome))
            else:
                by_oracle[oracle] = dict(sorted(outcome.items()))

        snapshot = Snapshot(by_oracle=by_oracle, taken_at=utcnow())
        for oracle in oracles:
            logger.info(
                "%s: %d/%d prices active",
                oracle, snapshot.active_count(oracle), len(by_oracle[oracle]),
            )
        return snapshot

    def _all_failed(self, oracle: OracleName, reason: str) -> dict[Ticker, PriceRecord]:
        now = utcnow()
        return {
            ticker: PriceRecord.failed(oracle, ticker, reason, observed_at=now)
            for ticker in sorted(self._adapters[oracle].supported_assets)
        }
