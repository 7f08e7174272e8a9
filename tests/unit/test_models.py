"""Tests for oracle_sentinel.core.models."""

from __future__ import annotations

import math
from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from oracle_sentinel.core.models import (
    PRIMARY_ORACLE,
    AlertDefinition,
    AlertHistoryEntry,
    AlertType,
    CycleReport,
    NotifyTarget,
    OracleName,
    PriceRecord,
    PriceStatus,
    Snapshot,
)


class TestOracleName:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("Chainlink", OracleName.CHAINLINK),
            ("chainlink", OracleName.CHAINLINK),
            ("REDSTONE", OracleName.REDSTONE),
            (" pyth ", OracleName.PYTH),
        ],
    )
    def test_parse_case_insensitive(self, raw, expected):
        assert OracleName.parse(raw) is expected

    def test_parse_unknown_raises(self):
        with pytest.raises(ValueError, match="Unknown oracle"):
            OracleName.parse("Band")

    def test_primary_is_chainlink(self):
        assert PRIMARY_ORACLE is OracleName.CHAINLINK


class TestAlertType:
    @pytest.mark.parametrize(
        "raw", ["Price Above", "PriceAbove", "price_above", "price-above"]
    )
    def test_parse_above_variants(self, raw):
        assert AlertType.parse(raw) is AlertType.PRICE_ABOVE

    def test_parse_below(self):
        assert AlertType.parse("Price Below") is AlertType.PRICE_BELOW

    def test_parse_unknown_raises(self):
        with pytest.raises(ValueError):
            AlertType.parse("Price Equals")


class TestPriceRecord:
    def test_active_record(self):
        rec = PriceRecord.active(OracleName.PYTH, "btc", 61409.93501)
        assert rec.asset == "BTC"
        assert rec.status == PriceStatus.ACTIVE
        assert rec.ok
        assert rec.error is None

    def test_failed_record_has_no_price(self):
        rec = PriceRecord.failed(OracleName.REDSTONE, "ETH", "timed out")
        assert rec.price is None
        assert not rec.ok
        assert rec.error == "timed out"

    def test_failed_with_price_rejected(self):
        with pytest.raises(ValidationError):
            PriceRecord(
                oracle=OracleName.PYTH, asset="BTC", price=1.0, status=PriceStatus.FAILED
            )

    @pytest.mark.parametrize("bad", [0.0, -1.0, math.inf, math.nan])
    def test_active_requires_positive_finite(self, bad):
        with pytest.raises(ValidationError):
            PriceRecord.active(OracleName.CHAINLINK, "BTC", bad)

    def test_active_requires_price(self):
        with pytest.raises(ValidationError):
            PriceRecord(oracle=OracleName.CHAINLINK, asset="BTC", status=PriceStatus.ACTIVE)

    def test_empty_asset_rejected(self):
        with pytest.raises(ValidationError):
            PriceRecord.failed(OracleName.CHAINLINK, "  ", "x")

    def test_frozen(self):
        rec = PriceRecord.active(OracleName.CHAINLINK, "BTC", 1.0)
        with pytest.raises(ValidationError):
            rec.price = 2.0


class TestSnapshot:
    def test_get_and_active_count(self):
        snap = Snapshot(
            by_oracle={
                OracleName.CHAINLINK: {
                    "BTC": PriceRecord.active(OracleName.CHAINLINK, "BTC", 61000.0),
                    "ETH": PriceRecord.failed(OracleName.CHAINLINK, "ETH", "No price available"),
                }
            }
        )
        assert snap.get(OracleName.CHAINLINK, "btc").price == 61000.0
        assert snap.get(OracleName.PYTH, "BTC") is None
        assert snap.active_count(OracleName.CHAINLINK) == 1
        assert snap.active_count(OracleName.PYTH) == 0

    def test_json_round_trip_keeps_failed_records(self):
        snap = Snapshot(
            by_oracle={
                OracleName.REDSTONE: {
                    "BTC": PriceRecord.failed(OracleName.REDSTONE, "BTC", "HTTP 500"),
                }
            }
        )
        restored = Snapshot.model_validate(snap.model_dump(mode="json"))
        assert restored.get(OracleName.REDSTONE, "BTC").error == "HTTP 500"


class TestNotifyTarget:
    def test_blank_email_is_none(self):
        assert NotifyTarget(email="  ").email is None

    def test_invalid_email_rejected(self):
        with pytest.raises(ValidationError):
            NotifyTarget(email="not-an-address")


class TestAlertDefinition:
    def _alert(self, **overrides) -> AlertDefinition:
        data = {
            "id": "a1",
            "asset": "btc",
            "type": "Price Above",
            "threshold": 60000,
            "notify": {"email": "t@example.com"},
        }
        data.update(overrides)
        return AlertDefinition.model_validate(data)

    def test_defaults_to_primary_oracle(self):
        assert self._alert().oracle is OracleName.CHAINLINK

    def test_empty_oracle_uses_primary(self):
        assert self._alert(oracle="").oracle is OracleName.CHAINLINK

    def test_unknown_oracle_falls_back_to_primary(self):
        assert self._alert(oracle="Band").oracle is OracleName.CHAINLINK

    def test_named_oracle(self):
        assert self._alert(oracle="pyth").oracle is OracleName.PYTH

    def test_asset_uppercased(self):
        assert self._alert().asset == "BTC"

    def test_type_variants(self):
        assert self._alert(type="PriceBelow").type is AlertType.PRICE_BELOW

    def test_unknown_type_rejected(self):
        with pytest.raises(ValidationError):
            self._alert(type="Crosses")

    def test_non_finite_threshold_rejected(self):
        with pytest.raises(ValidationError):
            self._alert(threshold=float("inf"))

    def test_missing_notify_means_no_email(self):
        data = {"id": "a2", "asset": "ETH", "type": "Price Below", "threshold": 3000}
        assert AlertDefinition.model_validate(data).notify.email is None


class TestAlertHistoryEntry:
    def test_construction(self):
        entry = AlertHistoryEntry(
            alert_id="a1",
            asset="BTC",
            oracle="Chainlink",
            price=61000.0,
            type="Price Above",
            threshold=60000.0,
            triggered_at=datetime(2024, 6, 10, tzinfo=timezone.utc),
        )
        assert entry.oracle is OracleName.CHAINLINK
        assert entry.type is AlertType.PRICE_ABOVE


class TestCycleReport:
    def test_counters_start_at_zero(self):
        report = CycleReport(started_at=datetime.now(timezone.utc))
        assert report.evaluated == 0
        assert report.triggered == 0
        assert not report.aborted
