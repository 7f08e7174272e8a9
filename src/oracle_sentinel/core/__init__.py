"""oracle_sentinel.core — Foundation types, config, and exceptions."""

from oracle_sentinel.core.config import (
    APIConfig,
    EvaluatorConfig,
    NotifierBackend,
    NotifierConfig,
    OracleConfig,
    OraclesConfig,
    SchedulerConfig,
    SentinelConfig,
    StorageConfig,
    load_config,
)
from oracle_sentinel.core.exceptions import (
    ConfigError,
    MalformedResponseError,
    NotificationError,
    OracleError,
    OracleSentinelError,
    RateLimitError,
    StorageError,
)
from oracle_sentinel.core.models import (
    PRIMARY_ORACLE,
    AlertDefinition,
    AlertHistoryEntry,
    AlertId,
    AlertType,
    CycleReport,
    NotifyTarget,
    OracleName,
    PriceRecord,
    PriceStatus,
    Snapshot,
    Ticker,
)

__all__ = [
    # Type aliases
    "AlertId",
    "Ticker",
    # Enums
    "OracleName",
    "PriceStatus",
    "AlertType",
    "NotifierBackend",
    "PRIMARY_ORACLE",
    # Price models
    "PriceRecord",
    "Snapshot",
    # Alert models
    "NotifyTarget",
    "AlertDefinition",
    "AlertHistoryEntry",
    "CycleReport",
    # Config
    "SentinelConfig",
    "OracleConfig",
    "OraclesConfig",
    "EvaluatorConfig",
    "SchedulerConfig",
    "StorageConfig",
    "NotifierConfig",
    "APIConfig",
    "load_config",
    # Exceptions
    "OracleSentinelError",
    "ConfigError",
    "OracleError",
    "RateLimitError",
    "MalformedResponseError",
    "StorageError",
    "NotificationError",
]
