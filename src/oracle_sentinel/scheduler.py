"""Periodic job scheduling for the long-running daemon.

Two jobs run on an ``AsyncIOScheduler`` in UTC:

- ``alert-cycle``: every ``alert_interval_seconds``
- ``price-history``: at ``history_minute`` past every hour

Both use ``max_instances=1`` and ``coalesce=True``, so a late tick never
queues up behind a running job. The ``Sentinel`` locks skip overlap for
callers outside the scheduler too.
"""

from __future__ import annotations

import asyncio
import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from oracle_sentinel.core.config import SchedulerConfig
from oracle_sentinel.runtime import Sentinel

logger = logging.getLogger(__name__)

ALERT_JOB_ID = "alert-cycle"
HISTORY_JOB_ID = "price-history"


def build_scheduler(sentinel: Sentinel, config: SchedulerConfig) -> AsyncIOScheduler:
    """Create a scheduler with both jobs registered but not started."""
    scheduler = AsyncIOScheduler(timezone="UTC")
    scheduler.add_job(
        sentinel.run_alert_cycle,
        "interval",
        seconds=config.alert_interval_seconds,
        id=ALERT_JOB_ID,
        name="Evaluate price alerts",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    scheduler.add_job(
        sentinel.run_history_cycle,
        "cron",
        minute=config.history_minute,
        id=HISTORY_JOB_ID,
        name="Record oracle price history",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    return scheduler


async def run_forever(
    sentinel: Sentinel,
    config: SchedulerConfig,
    stop_event: asyncio.Event | None = None,
) -> None:
    """Run both jobs until ``stop_event`` is set or the task is cancelled."""
    stop_event = stop_event or asyncio.Event()
    scheduler = build_scheduler(sentinel, config)

    if config.run_on_start:
        await sentinel.run_alert_cycle()

    scheduler.start()
    logger.info(
        "Scheduler started: alerts every %ds, price history at minute %02d",
        config.alert_interval_seconds,
        config.history_minute,
    )
    try:
        await stop_event.wait()
    finally:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
