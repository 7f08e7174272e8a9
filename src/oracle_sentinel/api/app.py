"""FastAPI application factory."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from oracle_sentinel.api.deps import AppState, api_key_middleware
from oracle_sentinel.api.routes import router
from oracle_sentinel.api.schemas import ErrorResponse
from oracle_sentinel.core.config import SentinelConfig, load_config
from oracle_sentinel.core.exceptions import (
    ConfigError,
    OracleError,
    OracleSentinelError,
    StorageError,
)
from oracle_sentinel.runtime import Sentinel


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup/shutdown lifecycle."""
    config = app.state._pending_config or load_config()
    sentinel = Sentinel(config)
    await sentinel.start()

    app.state.app_state = AppState(config=config, sentinel=sentinel)

    yield

    await sentinel.close()


def create_app(config: SentinelConfig | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    import oracle_sentinel

    app = FastAPI(
        title="Oracle Sentinel API",
        description="Multi-oracle crypto price alerts and history",
        version=oracle_sentinel.__version__,
        lifespan=lifespan,
    )

    # Stash config so lifespan can retrieve it
    app.state._pending_config = config

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if config and config.api.api_key:
        app.middleware("http")(api_key_middleware)

    app.include_router(router, prefix="/api")

    @app.exception_handler(OracleSentinelError)
    async def sentinel_exception_handler(request: Request, exc: OracleSentinelError):
        status_map = {
            ConfigError: 400,
            StorageError: 500,
            OracleError: 502,
        }
        status = next(
            (code for cls, code in status_map.items() if isinstance(exc, cls)), 500
        )
        return JSONResponse(
            status_code=status,
            content=ErrorResponse(error=type(exc).__name__, detail=str(exc)).model_dump(),
        )

    return app
