"""Long-lived service wiring shared by the scheduler, CLI, and API."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

import httpx

from oracle_sentinel.alerts.evaluator import AlertEvaluator
from oracle_sentinel.alerts.notifier import Notifier, create_notifier
from oracle_sentinel.core.config import SentinelConfig
from oracle_sentinel.core.exceptions import OracleSentinelError
from oracle_sentinel.core.models import CycleReport, OracleName, Snapshot
from oracle_sentinel.oracles.base import OracleAdapter
from oracle_sentinel.oracles.registry import build_adapters, close_adapters
from oracle_sentinel.pipeline.aggregator import SnapshotAggregator
from oracle_sentinel.pipeline.recorder import HistoryRecorder
from oracle_sentinel.storage.store import DocumentStore, create_store

logger = logging.getLogger(__name__)


class Sentinel:
    """Owns the store, adapters, and notifier for one process.

    Use as an async context manager. Collaborators passed in are used as-is
    and not closed on exit; anything built here is closed on exit.

    The alert job and the history job each hold their own lock. An
    invocation that finds its lock taken is skipped, so at most one run of
    each kind is in flight while the two kinds may overlap.
    """

    def __init__(
        self,
        config: SentinelConfig,
        *,
        store: DocumentStore | None = None,
        adapters: dict[OracleName, OracleAdapter] | None = None,
        notifier: Notifier | None = None,
        client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.config = config
        self._store = store
        self._adapters = adapters
        self._notifier = notifier
        self._client = client
        self._sleep = sleep
        self._owns_store = store is None
        self._owns_adapters = adapters is None
        self._alert_lock = asyncio.Lock()
        self._history_lock = asyncio.Lock()
        self.evaluator: AlertEvaluator | None = None
        self.aggregator: SnapshotAggregator | None = None
        self.recorder: HistoryRecorder | None = None

    @property
    def store(self) -> DocumentStore:
        self._require_started()
        return self._store

    @property
    def adapters(self) -> dict[OracleName, OracleAdapter]:
        self._require_started()
        return self._adapters

    async def start(self) -> None:
        if self._store is None:
            self._store = await create_store(self.config.storage)
        if self._adapters is None:
            self._adapters = build_adapters(self.config.oracles, client=self._client)
        if self._notifier is None:
            self._notifier = create_notifier(self.config.notifier)

        self.aggregator = SnapshotAggregator(self._adapters)
        self.recorder = HistoryRecorder(self.aggregator, self._store)
        self.evaluator = AlertEvaluator(
            self._store,
            self._adapters,
            self._notifier,
            self.config.evaluator,
            sleep=self._sleep,
        )
        logger.info(
            "Sentinel started with oracles: %s",
            ", ".join(str(o) for o in self._adapters) or "none",
        )

    async def close(self) -> None:
        if self._adapters is not None and self._owns_adapters:
            await close_adapters(self._adapters)
            self._adapters = None
        if self._store is not None and self._owns_store:
            await self._store.close()
            self._store = None

    async def __aenter__(self) -> Sentinel:
        await self.start()
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    async def run_alert_cycle(self) -> CycleReport | None:
        """One evaluator pass; None when a previous pass is still running."""
        self._require_started()
        if self._alert_lock.locked():
            logger.warning("Alert cycle still running, skipping this invocation")
            return None
        async with self._alert_lock:
            return await self.evaluator.run_cycle()

    async def run_history_cycle(self) -> Snapshot | None:
        """One snapshot append; None when skipped or when the append failed."""
        self._require_started()
        if self._history_lock.locked():
            logger.warning("History cycle still running, skipping this invocation")
            return None
        async with self._history_lock:
            try:
                snapshot, _ = await self.recorder.record()
            except OracleSentinelError as e:
                logger.error("Error recording price history: %s", e)
                return None
            return snapshot

    def _require_started(self) -> None:
        if self.evaluator is None or self._store is None:
            raise RuntimeError("Sentinel is not started")
