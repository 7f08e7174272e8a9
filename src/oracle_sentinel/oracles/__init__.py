"""Oracle adapters: one per upstream price source.

    Ticker set -> OracleAdapter.fetch_batch -> dict[Ticker, PriceRecord]

Key abstractions:

- ``OracleAdapter``: protocol every consumer depends on.
- ``BaseOracleAdapter``: shared fail-fast, 429 retry, rate limiting and
  error-to-Failed conversion.
- ``ChainlinkAdapter``, ``RedStoneAdapter``, ``PythAdapter``: the three
  concrete sources.
- ``build_adapters``: config-driven factory.
"""

from oracle_sentinel.oracles.base import (
    BaseOracleAdapter,
    OracleAdapter,
    scale_price,
    valid_price,
)
from oracle_sentinel.oracles.chainlink import ChainlinkAdapter
from oracle_sentinel.oracles.pyth import PythAdapter
from oracle_sentinel.oracles.redstone import RedStoneAdapter
from oracle_sentinel.oracles.registry import (
    ADAPTER_CLASSES,
    build_adapter,
    build_adapters,
    close_adapters,
)

__all__ = [
    # Protocols
    "OracleAdapter",
    "BaseOracleAdapter",
    # Adapters
    "ChainlinkAdapter",
    "RedStoneAdapter",
    "PythAdapter",
    # Factory
    "ADAPTER_CLASSES",
    "build_adapter",
    "build_adapters",
    "close_adapters",
    # Helpers
    "scale_price",
    "valid_price",
]
