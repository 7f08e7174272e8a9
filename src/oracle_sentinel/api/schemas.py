"""API-specific request/response schemas (Pydantic v2)."""

from __future__ import annotations

from datetime import datetime

from pydantic import AliasChoices, BaseModel, Field

from oracle_sentinel.core.models import AlertDefinition, AlertHistoryEntry, Snapshot


# -- Error --


class ErrorResponse(BaseModel):
    """Standard error envelope."""

    error: str
    detail: str | None = None


# -- Alerts --


class AlertCreateRequest(BaseModel):
    """Body for POST /api/alerts.

    Also accepts the legacy ``coin`` and ``alertType`` field names.
    """

    asset: str = Field(validation_alias=AliasChoices("asset", "coin"))
    oracle: str | None = None
    type: str = Field(validation_alias=AliasChoices("type", "alertType"))
    threshold: float
    email: str

    def to_document(self) -> dict:
        """Shape the body the way alert documents are stored."""
        doc = {
            "asset": self.asset,
            "type": self.type,
            "threshold": self.threshold,
            "notify": {"email": self.email},
        }
        if self.oracle:
            doc["oracle"] = self.oracle
        return doc


class AlertResponse(BaseModel):
    """Alert definition in API response format."""

    id: str
    asset: str
    oracle: str
    type: str
    threshold: float
    email: str | None = None

    @classmethod
    def from_alert(cls, alert: AlertDefinition) -> AlertResponse:
        return cls(
            id=alert.id,
            asset=alert.asset,
            oracle=str(alert.oracle),
            type=str(alert.type),
            threshold=alert.threshold,
            email=alert.notify.email,
        )


class AlertListResponse(BaseModel):
    """All parseable alert definitions."""

    total: int
    invalid: int
    items: list[AlertResponse]


# -- History --


class AlertHistoryResponse(BaseModel):
    """One trigger event."""

    alert_id: str
    asset: str
    oracle: str
    price: float
    type: str
    threshold: float
    triggered_at: datetime

    @classmethod
    def from_entry(cls, entry: AlertHistoryEntry) -> AlertHistoryResponse:
        return cls(
            alert_id=entry.alert_id,
            asset=entry.asset,
            oracle=str(entry.oracle),
            price=entry.price,
            type=str(entry.type),
            threshold=entry.threshold,
            triggered_at=entry.triggered_at,
        )


# -- Prices --


class PriceResponse(BaseModel):
    """One oracle price lookup."""

    oracle: str
    asset: str
    status: str
    price: float | None = None
    confidence: float | None = None
    observed_at: datetime
    error: str | None = None


class SnapshotResponse(BaseModel):
    """A persisted snapshot, grouped by oracle then ticker."""

    taken_at: datetime
    prices: dict[str, dict[str, PriceResponse]]

    @classmethod
    def from_snapshot(cls, snapshot: Snapshot) -> SnapshotResponse:
        return cls(
            taken_at=snapshot.taken_at,
            prices={
                str(oracle): {
                    ticker: PriceResponse.model_validate(record.model_dump(mode="json"))
                    for ticker, record in records.items()
                }
                for oracle, records in snapshot.by_oracle.items()
            },
        )


# -- System --


class HealthResponse(BaseModel):
    """GET /api/health response."""

    status: str
    version: str
    storage_ok: bool
    oracles: list[str]
