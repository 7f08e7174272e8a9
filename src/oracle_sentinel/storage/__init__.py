"""Document storage for alerts, alert history, and price history."""

from oracle_sentinel.storage.store import (
    ALERT_HISTORY,
    ALERTS,
    PRICE_HISTORY,
    DocumentStore,
    SqliteDocumentStore,
    StoredDocument,
    create_store,
    parse_alert,
)

__all__ = [
    "ALERTS",
    "ALERT_HISTORY",
    "PRICE_HISTORY",
    "DocumentStore",
    "SqliteDocumentStore",
    "StoredDocument",
    "create_store",
    "parse_alert",
]
