"""Configuration-driven construction of the oracle adapters."""

from __future__ import annotations

import logging

import httpx

from oracle_sentinel.core.config import OraclesConfig
from oracle_sentinel.core.models import OracleName
from oracle_sentinel.oracles.assets import resolve_asset_table
from oracle_sentinel.oracles.base import BaseOracleAdapter
from oracle_sentinel.oracles.chainlink import ChainlinkAdapter
from oracle_sentinel.oracles.pyth import PythAdapter
from oracle_sentinel.oracles.redstone import RedStoneAdapter

logger = logging.getLogger(__name__)

ADAPTER_CLASSES: dict[OracleName, type[BaseOracleAdapter]] = {
    OracleName.CHAINLINK: ChainlinkAdapter,
    OracleName.REDSTONE: RedStoneAdapter,
    OracleName.PYTH: PythAdapter,
}


def build_adapter(
    oracle: OracleName,
    config: OraclesConfig,
    client: httpx.AsyncClient | None = None,
) -> BaseOracleAdapter:
    """Instantiate one adapter with its frozen asset table."""
    oracle_config = config.for_oracle(oracle)
    assets = resolve_asset_table(oracle, oracle_config.assets)
    return ADAPTER_CLASSES[oracle](oracle_config, assets, client=client)


def build_adapters(
    config: OraclesConfig,
    client: httpx.AsyncClient | None = None,
) -> dict[OracleName, BaseOracleAdapter]:
    """Build every enabled adapter, keyed by oracle name."""
    adapters: dict[OracleName, BaseOracleAdapter] = {}
    for oracle in OracleName:
        if not config.for_oracle(oracle).enabled:
            logger.info("%s oracle disabled in config", oracle)
            continue
        adapters[oracle] = build_adapter(oracle, config, client=client)
    return adapters


async def close_adapters(adapters: dict[OracleName, BaseOracleAdapter]) -> None:
    for adapter in adapters.values():
        await adapter.close()
