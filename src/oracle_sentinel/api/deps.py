"""Dependency injection for FastAPI routes."""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import Request
from fastapi.responses import JSONResponse

from oracle_sentinel.api.schemas import ErrorResponse
from oracle_sentinel.core.config import SentinelConfig
from oracle_sentinel.runtime import Sentinel
from oracle_sentinel.storage.store import DocumentStore


@dataclass
class AppState:
    """Shared application state, attached to app.state during lifespan."""

    config: SentinelConfig
    sentinel: Sentinel


def get_app_state(request: Request) -> AppState:
    """Dependency: retrieve AppState from the request."""
    return request.app.state.app_state


def get_config(request: Request) -> SentinelConfig:
    """Dependency: retrieve config."""
    return request.app.state.app_state.config


def get_sentinel(request: Request) -> Sentinel:
    return request.app.state.app_state.sentinel


def get_store(request: Request) -> DocumentStore:
    """Dependency: retrieve storage backend."""
    return request.app.state.app_state.sentinel.store


EXEMPT_PATHS = {"/api/health"}


async def api_key_middleware(request: Request, call_next):  # type: ignore[no-untyped-def]
    """Middleware: validate X-API-Key header when authentication is enabled."""
    if request.url.path in EXEMPT_PATHS:
        return await call_next(request)

    config = request.app.state.app_state.config
    if config.api.api_key:
        api_key = request.headers.get("X-API-Key")
        if api_key != config.api.api_key:
            return JSONResponse(
                status_code=401,
                content=ErrorResponse(
                    error="Unauthorized", detail="Invalid or missing API key"
                ).model_dump(),
            )
    return await call_next(request)
