"""Tests for oracle_sentinel.runtime.Sentinel."""

from __future__ import annotations

import asyncio

import pytest

from conftest import StubAdapter
from oracle_sentinel.alerts.notifier import LogNotifier
from oracle_sentinel.core.models import OracleName
from oracle_sentinel.runtime import Sentinel


@pytest.fixture
def adapters() -> dict:
    return {
        OracleName.CHAINLINK: StubAdapter(OracleName.CHAINLINK, {"BTC": 61000.0}),
        OracleName.PYTH: StubAdapter(OracleName.PYTH, {"BTC": 60950.0}),
    }


class TestSentinel:
    async def test_builds_owned_collaborators(self, sentinel_config):
        async with Sentinel(sentinel_config) as sentinel:
            assert set(sentinel.adapters) == set(OracleName)
            assert await sentinel.store.health_check()

    async def test_not_started_raises(self, sentinel_config):
        with pytest.raises(RuntimeError, match="not started"):
            await Sentinel(sentinel_config).run_alert_cycle()

    async def test_injected_collaborators_not_closed(self, sentinel_config, store, adapters):
        async with Sentinel(sentinel_config, store=store, adapters=adapters) as sentinel:
            assert sentinel.store is store
        assert await store.health_check()
        assert not any(a.closed for a in adapters.values())

    async def test_alert_cycle(self, sentinel_config, store, adapters, btc_alert_doc):
        notifier = LogNotifier()
        await store.add_alert(btc_alert_doc)
        async with Sentinel(
            sentinel_config, store=store, adapters=adapters, notifier=notifier
        ) as sentinel:
            report = await sentinel.run_alert_cycle()
        assert report.triggered == 1
        assert len(notifier.sent) == 1

    async def test_history_cycle(self, sentinel_config, store, adapters):
        async with Sentinel(sentinel_config, store=store, adapters=adapters) as sentinel:
            snapshot = await sentinel.run_history_cycle()
        assert snapshot.get(OracleName.PYTH, "BTC").price == 60950.0
        assert await store.get_latest_snapshot() == snapshot

    async def test_history_storage_failure_returns_none(self, sentinel_config, adapters, tmp_path):
        from oracle_sentinel.core.config import StorageConfig
        from oracle_sentinel.storage.store import SqliteDocumentStore

        closed_store = SqliteDocumentStore(StorageConfig(sqlite_path=str(tmp_path / "x.db")))
        async with Sentinel(sentinel_config, store=closed_store, adapters=adapters) as sentinel:
            assert await sentinel.run_history_cycle() is None

    async def test_overlapping_alert_cycle_is_skipped(self, sentinel_config, store, btc_alert_doc):
        release = asyncio.Event()
        entered = asyncio.Event()

        class SlowAdapter(StubAdapter):
            async def fetch_batch(self, assets):
                entered.set()
                await release.wait()
                return await super().fetch_batch(assets)

        adapters = {OracleName.CHAINLINK: SlowAdapter(OracleName.CHAINLINK, {"BTC": 61000.0})}
        await store.add_alert(btc_alert_doc)

        async with Sentinel(
            sentinel_config, store=store, adapters=adapters, notifier=LogNotifier()
        ) as sentinel:
            first = asyncio.create_task(sentinel.run_alert_cycle())
            await entered.wait()

            assert await sentinel.run_alert_cycle() is None

            release.set()
            report = await first
        assert report.triggered == 1

    async def test_alert_and_history_locks_are_independent(self, sentinel_config, store):
        release = asyncio.Event()
        entered = asyncio.Event()

        class SlowAdapter(StubAdapter):
            async def fetch_batch(self, assets):
                entered.set()
                await release.wait()
                return await super().fetch_batch(assets)

        slow = {OracleName.CHAINLINK: SlowAdapter(OracleName.CHAINLINK, {"BTC": 1.0})}
        async with Sentinel(sentinel_config, store=store, adapters=slow) as sentinel:
            history = asyncio.create_task(sentinel.run_history_cycle())
            await entered.wait()

            report = await sentinel.run_alert_cycle()
            assert report is not None

            release.set()
            assert await history is not None
