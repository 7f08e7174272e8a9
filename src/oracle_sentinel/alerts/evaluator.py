"""Threshold alert evaluation.

One cycle reads every alert definition and checks it against a live price
from the alert's oracle. Alerts are processed one at a time with a fixed
delay between them so that per-alert oracle calls stay under upstream
per-minute limits.

A condition that stays true triggers again on every cycle; there is no
cooldown between cycles.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping
from datetime import datetime

from oracle_sentinel.alerts.notifier import Notifier, format_alert_message
from oracle_sentinel.core.config import EvaluatorConfig
from oracle_sentinel.core.exceptions import StorageError
from oracle_sentinel.core.models import (
    AlertDefinition,
    AlertHistoryEntry,
    AlertType,
    CycleReport,
    OracleName,
)
from oracle_sentinel.oracles.base import OracleAdapter, utcnow
from oracle_sentinel.storage.store import DocumentStore, StoredDocument, parse_alert

logger = logging.getLogger(__name__)


def evaluate_condition(alert_type: AlertType, price: float, threshold: float) -> bool:
    """Strict comparison; a price equal to the threshold never triggers."""
    if alert_type == AlertType.PRICE_ABOVE:
        return price > threshold
    if alert_type == AlertType.PRICE_BELOW:
        return price < threshold
    raise ValueError(f"Unknown alert type: {alert_type!r}")


class AlertEvaluator:
    """Runs evaluation cycles over the stored alert definitions.

    Parameters
    ----------
    store : DocumentStore
        Source of alert documents and sink for history entries.
    adapters : Mapping[OracleName, OracleAdapter]
        Configured oracles. Alerts naming an oracle that is not here are
        skipped.
    notifier : Notifier
        Delivery channel for triggered alerts.
    config : EvaluatorConfig
        Inter-alert pacing.
    sleep, clock : callables
        Injection points for tests.
    """

    def __init__(
        self,
        store: DocumentStore,
        adapters: Mapping[OracleName, OracleAdapter],
        notifier: Notifier,
        config: EvaluatorConfig,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._adapters = dict(adapters)
        self._notifier = notifier
        self._config = config
        self._sleep = sleep
        self._clock = clock

    async def run_cycle(self) -> CycleReport:
        """Evaluate every stored alert once. Never raises."""
        report = CycleReport(started_at=self._clock())

        try:
            docs = await self._store.list_alerts()
        except StorageError as e:
            logger.error("Could not load alerts, ending cycle: %s", e)
            report.aborted = True
            report.finished_at = self._clock()
            return report

        report.alerts_loaded = len(docs)
        if not docs:
            logger.info("No alerts found")
            report.finished_at = self._clock()
            return report

        for index, doc in enumerate(docs):
            if index:
                await self._sleep(self._config.inter_alert_delay)
            try:
                await self._process(doc, report)
            except Exception:
                report.errors += 1
                logger.exception("Error processing alert %s", doc.id)

        report.finished_at = self._clock()
        logger.info(
            "Alert cycle done: %d loaded, %d evaluated, %d skipped, %d triggered, %d errors",
            report.alerts_loaded, report.evaluated, report.skipped,
            report.triggered, report.errors,
        )
        return report

    async def _process(self, doc: StoredDocument, report: CycleReport) -> None:
        alert = parse_alert(doc)
        adapter = self._adapters.get(alert.oracle)
        if adapter is None:
            logger.warning(
                "Alert %s uses %s oracle, which is not configured; skipping",
                alert.id, alert.oracle,
            )
            report.skipped += 1
            return

        logger.info("Checking %s with %s oracle...", alert.asset, alert.oracle)
        record = await adapter.fetch_one(alert.asset)
        if not record.ok:
            logger.info(
                "No valid price found for %s using %s oracle: %s",
                alert.asset, alert.oracle, record.error,
            )
            report.skipped += 1
            return

        price = record.price
        report.evaluated += 1
        logger.info("%s (%s): $%s", alert.asset, alert.oracle, price)

        if not evaluate_condition(alert.type, price, alert.threshold):
            return

        report.triggered += 1
        if not alert.notify.email:
            logger.info("Alert %s triggered but has no email target", alert.id)
            return

        logger.info(
            "Alert triggered for %s using %s oracle at $%s", alert.asset, alert.oracle, price
        )
        evaluated_at = self._clock()
        if await self._notify(alert, price, evaluated_at):
            report.notifications_sent += 1
        if await self._write_history(alert, price, evaluated_at):
            report.history_written += 1

    async def _notify(
        self, alert: AlertDefinition, price: float, evaluated_at: datetime
    ) -> bool:
        subject, body = format_alert_message(alert, alert.oracle, price, evaluated_at)
        try:
            sent = await self._notifier.send(alert.notify.email, subject, body)
        except Exception:
            logger.exception("Notifier raised for alert %s", alert.id)
            return False
        if not sent:
            logger.warning("Notification for alert %s was not delivered", alert.id)
        return sent

    async def _write_history(
        self, alert: AlertDefinition, price: float, evaluated_at: datetime
    ) -> bool:
        entry = AlertHistoryEntry(
            alert_id=alert.id,
            asset=alert.asset,
            oracle=alert.oracle,
            price=price,
            type=alert.type,
            threshold=alert.threshold,
            triggered_at=evaluated_at,
        )
        try:
            await self._store.append_alert_history(entry)
        except Exception:
            logger.exception("Failed to store history for alert %s", alert.id)
            return False
        logger.debug("Stored alert history: %s", entry.model_dump(mode="json"))
        return True
