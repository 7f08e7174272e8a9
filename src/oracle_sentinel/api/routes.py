"""FastAPI route definitions for the Oracle Sentinel API."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import ValidationError

import oracle_sentinel
from oracle_sentinel.api.deps import get_sentinel, get_store
from oracle_sentinel.api.schemas import (
    AlertCreateRequest,
    AlertHistoryResponse,
    AlertListResponse,
    AlertResponse,
    HealthResponse,
    PriceResponse,
    SnapshotResponse,
)
from oracle_sentinel.core.models import AlertDefinition, OracleName
from oracle_sentinel.runtime import Sentinel
from oracle_sentinel.storage.store import DocumentStore, parse_alert

logger = logging.getLogger(__name__)

router = APIRouter()


def _parse_oracle(value: str) -> OracleName:
    try:
        return OracleName.parse(value)
    except ValueError:
        raise HTTPException(status_code=404, detail=f"Unknown oracle '{value}'")


# -- Health --


@router.get("/health", response_model=HealthResponse)
async def health_check(sentinel: Sentinel = Depends(get_sentinel)):
    """Liveness plus store connectivity."""
    storage_ok = await sentinel.store.health_check()
    return HealthResponse(
        status="ok" if storage_ok else "degraded",
        version=oracle_sentinel.__version__,
        storage_ok=storage_ok,
        oracles=[str(o) for o in sentinel.adapters],
    )


# -- Alerts --


@router.get("/alerts", response_model=AlertListResponse)
async def list_alerts(store: DocumentStore = Depends(get_store)):
    """List stored alert definitions; unparseable documents are counted, not returned."""
    docs = await store.list_alerts()
    items = []
    invalid = 0
    for doc in docs:
        try:
            items.append(AlertResponse.from_alert(parse_alert(doc)))
        except ValidationError as e:
            invalid += 1
            logger.warning("Alert document %s is invalid: %s", doc.id, e)
    return AlertListResponse(total=len(items), invalid=invalid, items=items)


@router.post("/alerts", response_model=AlertResponse, status_code=201)
async def create_alert(
    request: AlertCreateRequest,
    store: DocumentStore = Depends(get_store),
):
    """Validate and store a new alert definition."""
    doc = request.to_document()
    try:
        alert = AlertDefinition.model_validate({**doc, "id": "pending"})
    except ValidationError as e:
        raise HTTPException(
            status_code=422,
            detail=[{"loc": err["loc"], "msg": err["msg"]} for err in e.errors()],
        )

    normalized = {
        "asset": alert.asset,
        "oracle": str(alert.oracle),
        "type": str(alert.type),
        "threshold": alert.threshold,
        "notify": {"email": alert.notify.email},
    }
    alert_id = await store.add_alert(normalized)
    logger.info("Created alert %s for %s (%s)", alert_id, alert.asset, alert.oracle)
    return AlertResponse.from_alert(alert.model_copy(update={"id": alert_id}))


@router.get("/alerts/{alert_id}/history", response_model=list[AlertHistoryResponse])
async def get_alert_history(
    alert_id: str,
    limit: int = Query(10, ge=1, le=500),
    store: DocumentStore = Depends(get_store),
):
    """Newest-first trigger history for one alert."""
    entries = await store.get_alert_history(alert_id, limit=limit)
    return [AlertHistoryResponse.from_entry(e) for e in entries]


@router.get("/history", response_model=list[AlertHistoryResponse])
async def list_history(
    oracle: str | None = Query(None, description="Filter by oracle"),
    asset: str | None = Query(None, description="Filter by ticker"),
    limit: int = Query(50, ge=1, le=500),
    store: DocumentStore = Depends(get_store),
):
    """Newest-first trigger history across all alerts."""
    entries = await store.get_all_alert_history(
        oracle=_parse_oracle(oracle) if oracle else None,
        asset=asset,
        limit=limit,
    )
    return [AlertHistoryResponse.from_entry(e) for e in entries]


# -- Prices --


@router.get("/prices/latest", response_model=SnapshotResponse)
async def latest_snapshot(store: DocumentStore = Depends(get_store)):
    """The most recently recorded price snapshot."""
    snapshot = await store.get_latest_snapshot()
    if snapshot is None:
        raise HTTPException(status_code=404, detail="No price history recorded yet")
    return SnapshotResponse.from_snapshot(snapshot)


@router.get("/prices/{oracle}/{asset}", response_model=PriceResponse)
async def live_price(
    oracle: str,
    asset: str,
    sentinel: Sentinel = Depends(get_sentinel),
):
    """Fetch one live price. Failed lookups are returned, not raised."""
    name = _parse_oracle(oracle)
    adapter = sentinel.adapters.get(name)
    if adapter is None:
        raise HTTPException(status_code=404, detail=f"Oracle '{name}' is not enabled")
    if not asset.strip():
        raise HTTPException(status_code=422, detail="Asset must not be empty")
    record = await adapter.fetch_one(asset)
    return PriceResponse.model_validate(record.model_dump(mode="json"))
