"""Hourly price history: one immutable snapshot row per invocation."""

from __future__ import annotations

import logging

from oracle_sentinel.core.models import Snapshot
from oracle_sentinel.pipeline.aggregator import SnapshotAggregator
from oracle_sentinel.storage.store import DocumentStore

logger = logging.getLogger(__name__)


class HistoryRecorder:
    """Takes a snapshot and appends it verbatim to ``priceHistory``."""

    def __init__(self, aggregator: SnapshotAggregator, store: DocumentStore) -> None:
        self._aggregator = aggregator
        self._store = store

    async def record(self) -> tuple[Snapshot, str]:
        """Take a snapshot and persist it.

        Returns
        -------
        tuple[Snapshot, str]
            The persisted snapshot and its document id.

        Raises
        ------
        StorageError
            If the append fails. The snapshot itself never fails.
        """
        logger.info("Recording oracle prices")
        snapshot = await self._aggregator.take_snapshot()
        doc_id = await self._store.append_price_history(snapshot)
        logger.info("Stored price snapshot %s taken at %s", doc_id, snapshot.taken_at.isoformat())
        return snapshot, doc_id
