"""Pydantic data models — the system's type contracts."""

from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

logger = logging.getLogger(__name__)

# --- Type Aliases ---

Ticker = str
AlertId = str

# --- Enumerations ---


class OracleName(StrEnum):
    """Upstream price oracles.

    Chainlink prices are read through the CoinGecko market index, RedStone
    is the decentralized feed, and Pyth is the pull-based attestation feed.
    """

    CHAINLINK = "Chainlink"
    REDSTONE = "RedStone"
    PYTH = "Pyth"

    @classmethod
    def parse(cls, value: str) -> OracleName:
        """Case-insensitive lookup by value or member name."""
        key = value.strip().lower()
        for member in cls:
            if key in (member.value.lower(), member.name.lower()):
                return member
        raise ValueError(f"Unknown oracle: {value!r}")


PRIMARY_ORACLE = OracleName.CHAINLINK


class PriceStatus(StrEnum):
    """Outcome of a single price lookup."""

    ACTIVE = "Active"
    FAILED = "Failed"


class AlertType(StrEnum):
    """Threshold comparison applied to the live price."""

    PRICE_ABOVE = "Price Above"
    PRICE_BELOW = "Price Below"

    @classmethod
    def parse(cls, value: str) -> AlertType:
        """Accept "Price Above", "PriceAbove", "price_above" and friends."""
        key = value.replace(" ", "").replace("_", "").replace("-", "").lower()
        for member in cls:
            if key == member.value.replace(" ", "").lower():
                return member
        raise ValueError(f"Unknown alert type: {value!r}")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _normalize_ticker(v: str) -> str:
    ticker = v.strip().upper()
    if not ticker:
        raise ValueError("asset must not be empty")
    return ticker


# --- Price Models ---


class PriceRecord(BaseModel):
    """One oracle's price for one asset: the canonical price record.

    A record is either Active (price present, finite, > 0) or Failed (price
    absent, `error` explains why). Adapters return Failed records instead of
    raising, so this model doubles as the success/failure result type.
    """

    model_config = ConfigDict(frozen=True)

    oracle: OracleName
    asset: Ticker
    price: float | None = None
    confidence: float | None = None
    status: PriceStatus
    observed_at: datetime = Field(default_factory=_utcnow)
    error: str | None = None

    @field_validator("asset")
    @classmethod
    def asset_uppercase(cls, v: str) -> str:
        return _normalize_ticker(v)

    @model_validator(mode="after")
    def status_matches_price(self) -> PriceRecord:
        if self.status == PriceStatus.FAILED:
            if self.price is not None:
                raise ValueError("Failed records must not carry a price")
        else:
            if self.price is None:
                raise ValueError("Active records require a price")
            if not math.isfinite(self.price) or self.price <= 0:
                raise ValueError(f"price must be finite and > 0, got {self.price}")
        return self

    @classmethod
    def active(
        cls,
        oracle: OracleName,
        asset: Ticker,
        price: float,
        confidence: float | None = None,
        observed_at: datetime | None = None,
    ) -> PriceRecord:
        return cls(
            oracle=oracle,
            asset=asset,
            price=price,
            confidence=confidence,
            status=PriceStatus.ACTIVE,
            observed_at=observed_at or _utcnow(),
        )

    @classmethod
    def failed(
        cls,
        oracle: OracleName,
        asset: Ticker,
        error: str,
        observed_at: datetime | None = None,
    ) -> PriceRecord:
        return cls(
            oracle=oracle,
            asset=asset,
            status=PriceStatus.FAILED,
            observed_at=observed_at or _utcnow(),
            error=error,
        )

    @property
    def ok(self) -> bool:
        return self.status == PriceStatus.ACTIVE


class Snapshot(BaseModel):
    """Point-in-time prices across every oracle for every supported asset."""

    model_config = ConfigDict(frozen=True)

    by_oracle: dict[OracleName, dict[Ticker, PriceRecord]]
    taken_at: datetime = Field(default_factory=_utcnow)

    def get(self, oracle: OracleName, asset: Ticker) -> PriceRecord | None:
        return self.by_oracle.get(oracle, {}).get(asset.upper())

    def active_count(self, oracle: OracleName) -> int:
        return sum(1 for r in self.by_oracle.get(oracle, {}).values() if r.ok)


# --- Alert Models ---


class NotifyTarget(BaseModel):
    """Where to send a triggered alert."""

    model_config = ConfigDict(frozen=True)

    email: str | None = None

    @field_validator("email")
    @classmethod
    def email_shape(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        if not v:
            return None
        if "@" not in v:
            raise ValueError(f"Invalid email address: {v!r}")
        return v


class AlertDefinition(BaseModel):
    """A user-defined threshold rule, owned by the external alert store."""

    model_config = ConfigDict(frozen=True)

    id: AlertId
    asset: Ticker
    oracle: OracleName = PRIMARY_ORACLE
    type: AlertType
    threshold: float
    notify: NotifyTarget = NotifyTarget()

    @field_validator("asset")
    @classmethod
    def asset_uppercase(cls, v: str) -> str:
        return _normalize_ticker(v)

    @field_validator("oracle", mode="before")
    @classmethod
    def oracle_or_primary(cls, v: Any) -> Any:
        if v is None or v == "":
            return PRIMARY_ORACLE
        if isinstance(v, str):
            try:
                return OracleName.parse(v)
            except ValueError:
                logger.warning("Unknown oracle %r, falling back to %s", v, PRIMARY_ORACLE)
                return PRIMARY_ORACLE
        return v

    @field_validator("type", mode="before")
    @classmethod
    def parse_type(cls, v: Any) -> Any:
        if isinstance(v, str):
            return AlertType.parse(v)
        return v

    @field_validator("threshold")
    @classmethod
    def threshold_finite(cls, v: float) -> float:
        if not math.isfinite(v):
            raise ValueError(f"threshold must be finite, got {v}")
        return v


class AlertHistoryEntry(BaseModel):
    """Append-only record of one trigger event."""

    model_config = ConfigDict(frozen=True)

    alert_id: AlertId
    asset: Ticker
    oracle: OracleName
    price: float
    type: AlertType
    threshold: float
    triggered_at: datetime


class CycleReport(BaseModel):
    """Counters for one evaluator cycle."""

    started_at: datetime
    finished_at: datetime | None = None
    alerts_loaded: int = 0
    evaluated: int = 0
    skipped: int = 0
    triggered: int = 0
    notifications_sent: int = 0
    history_written: int = 0
    errors: int = 0
    aborted: bool = False
