"""Tests for oracle_sentinel.pipeline.aggregator."""

from __future__ import annotations

import asyncio

import pytest

from conftest import StubAdapter
from oracle_sentinel.core.models import OracleName, PriceStatus
from oracle_sentinel.pipeline.aggregator import SnapshotAggregator


class TestSnapshotAggregator:
    async def test_combines_all_oracles(self):
        adapters = {
            OracleName.CHAINLINK: StubAdapter(OracleName.CHAINLINK, {"BTC": 61000.0, "ETH": 3400.0}),
            OracleName.REDSTONE: StubAdapter(OracleName.REDSTONE, {"BTC": 61001.0}),
            OracleName.PYTH: StubAdapter(OracleName.PYTH, {"BTC": 60999.0, "SOL": None}),
        }

        snap = await SnapshotAggregator(adapters).take_snapshot()

        assert set(snap.by_oracle) == set(OracleName)
        assert snap.get(OracleName.CHAINLINK, "ETH").price == 3400.0
        assert snap.get(OracleName.REDSTONE, "BTC").price == 61001.0
        assert snap.get(OracleName.PYTH, "SOL").status == PriceStatus.FAILED
        assert snap.active_count(OracleName.PYTH) == 1

    async def test_each_adapter_queries_its_own_assets(self):
        chainlink = StubAdapter(OracleName.CHAINLINK, {"BTC": 1.0, "ETH": 2.0})
        pyth = StubAdapter(OracleName.PYTH, {"SOL": 3.0})

        await SnapshotAggregator(
            {OracleName.CHAINLINK: chainlink, OracleName.PYTH: pyth}
        ).take_snapshot()

        assert sorted(chainlink.calls[0]) == ["BTC", "ETH"]
        assert pyth.calls[0] == ["SOL"]

    async def test_all_oracles_failing_still_completes(self):
        adapters = {
            name: StubAdapter(name, {"BTC": None, "ETH": None}) for name in OracleName
        }

        snap = await SnapshotAggregator(adapters).take_snapshot()

        for name in OracleName:
            assert snap.active_count(name) == 0
            assert len(snap.by_oracle[name]) == 2

    async def test_raising_adapter_becomes_failed_records(self):
        adapters = {
            OracleName.CHAINLINK: StubAdapter(OracleName.CHAINLINK, {"BTC": 61000.0}),
            OracleName.REDSTONE: StubAdapter(
                OracleName.REDSTONE, {"BTC": RuntimeError("bug"), "ETH": 1.0}
            ),
        }

        snap = await SnapshotAggregator(adapters).take_snapshot()

        assert snap.get(OracleName.CHAINLINK, "BTC").ok
        redstone = snap.by_oracle[OracleName.REDSTONE]
        assert set(redstone) == {"BTC", "ETH"}
        assert all(not r.ok for r in redstone.values())
        assert "bug" in redstone["BTC"].error

    async def test_branches_run_concurrently(self):
        started: list[OracleName] = []
        release = asyncio.Event()

        class SlowAdapter(StubAdapter):
            async def fetch_batch(self, assets):
                started.append(self.name)
                await release.wait()
                return await super().fetch_batch(assets)

        adapters = {name: SlowAdapter(name, {"BTC": 1.0}) for name in OracleName}
        task = asyncio.create_task(SnapshotAggregator(adapters).take_snapshot())
        for _ in range(10):
            await asyncio.sleep(0)
        assert set(started) == set(OracleName)
        release.set()
        snap = await task
        assert all(snap.active_count(name) == 1 for name in OracleName)

    async def test_no_adapters_gives_empty_snapshot(self):
        snap = await SnapshotAggregator({}).take_snapshot()
        assert snap.by_oracle == {}

    async def test_records_sorted_by_ticker(self):
        adapter = StubAdapter(OracleName.PYTH, {"SOL": 1.0, "BTC": 2.0, "ETH": 3.0})
        snap = await SnapshotAggregator({OracleName.PYTH: adapter}).take_snapshot()
        assert list(snap.by_oracle[OracleName.PYTH]) == ["BTC", "ETH", "SOL"]
