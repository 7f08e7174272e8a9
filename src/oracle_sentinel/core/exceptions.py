"""Custom exception hierarchy for oracle-sentinel."""

from typing import Any


class OracleSentinelError(Exception):
    """Base exception for all oracle-sentinel errors.

    All exceptions carry an optional `context` dict for structured error
    metadata that can be logged or serialized without parsing the message.
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message)
        self.context = context or {}


class ConfigError(OracleSentinelError):
    """Invalid or missing configuration.

    Raised by load_config() during startup. Should be treated as fatal.

    Context keys:
        field: str — the config field that failed validation
        value: Any — the invalid value (redacted for secrets)
    """


class OracleError(OracleSentinelError):
    """An upstream oracle request failed (transport, status, or timeout).

    Policy: never propagates past the adapter. The adapter converts it into
    Failed price records for every asset in the request.

    Context keys:
        oracle: str — the oracle being queried
        url: str — the URL that was being fetched
        status_code: int | None — HTTP status if a response was received
    """


class RateLimitError(OracleError):
    """Oracle answered HTTP 429 again after the single backoff retry.

    Context keys:
        oracle: str
        backoff: float — seconds waited before the retry
    """


class MalformedResponseError(OracleError):
    """Oracle payload did not have the expected shape.

    Context keys:
        oracle: str
        reason: str — what was missing or invalid
    """


class StorageError(OracleSentinelError):
    """Document store operation failed.

    Policy: at alert load time, log and end the cycle. At history append
    time, log and continue.

    Context keys:
        operation: str — "insert", "query", "migrate", etc.
        collection: str — the collection involved
    """


class NotificationError(OracleSentinelError):
    """Notifier could not deliver a message.

    Policy: log only. Never retried, never fatal to an evaluation cycle.

    Context keys:
        to: str — recipient address
        backend: str — "smtp" or "log"
    """
