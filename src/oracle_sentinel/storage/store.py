"""Document store: Protocol definition, SQLite implementation, factory.

Documents are JSON bodies grouped into named collections, mirroring the
managed document store the alert front end writes to:

- ``alerts``: alert definitions (read by the evaluator every cycle)
- ``alertHistory``: one entry per triggered alert (append-only)
- ``priceHistory``: one snapshot per history cycle (append-only)
"""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, ClassVar, Protocol, runtime_checkable

import aiosqlite

from oracle_sentinel.core.config import StorageConfig
from oracle_sentinel.core.exceptions import StorageError
from oracle_sentinel.core.models import (
    AlertDefinition,
    AlertHistoryEntry,
    OracleName,
    Snapshot,
)

logger = logging.getLogger(__name__)

ALERTS = "alerts"
ALERT_HISTORY = "alertHistory"
PRICE_HISTORY = "priceHistory"


@dataclass(frozen=True)
class StoredDocument:
    """A document as read back from a collection."""

    id: str
    collection: str
    data: dict[str, Any]
    created_at: datetime


@runtime_checkable
class DocumentStore(Protocol):
    """Abstract storage interface for oracle-sentinel data."""

    async def add_document(self, collection: str, data: dict[str, Any]) -> str: ...
    async def list_documents(
        self, collection: str, limit: int | None = None, newest_first: bool = False
    ) -> list[StoredDocument]: ...
    async def add_alert(self, alert: dict[str, Any]) -> str: ...
    async def list_alerts(self) -> list[StoredDocument]: ...
    async def append_alert_history(self, entry: AlertHistoryEntry) -> str: ...
    async def get_alert_history(
        self, alert_id: str, limit: int = 10
    ) -> list[AlertHistoryEntry]: ...
    async def get_all_alert_history(
        self,
        oracle: OracleName | None = None,
        asset: str | None = None,
        limit: int = 50,
    ) -> list[AlertHistoryEntry]: ...
    async def append_price_history(self, snapshot: Snapshot) -> str: ...
    async def get_latest_snapshot(self) -> Snapshot | None: ...
    async def initialize(self) -> None: ...
    async def close(self) -> None: ...
    async def health_check(self) -> bool: ...


class SqliteDocumentStore:
    """SQLite implementation of the document store protocol.

    Uses aiosqlite for async access, WAL mode for concurrent reads,
    and a version-tracked migration system.
    """

    _MIGRATIONS: ClassVar[dict[int, tuple[str, list[str]]]] = {
        1: (
            "Initial schema",
            [
                """CREATE TABLE IF NOT EXISTS schema_version (
                    version INTEGER PRIMARY KEY,
                    applied_at TEXT DEFAULT (datetime('now'))
                )""",
                """CREATE TABLE IF NOT EXISTS documents (
                    seq INTEGER PRIMARY KEY AUTOINCREMENT,
                    id TEXT NOT NULL,
                    collection TEXT NOT NULL,
                    data_json TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    alert_id TEXT,
                    oracle TEXT,
                    asset TEXT,
                    UNIQUE(collection, id)
                )""",
                "CREATE INDEX IF NOT EXISTS idx_documents_collection ON documents(collection, seq)",
                "CREATE INDEX IF NOT EXISTS idx_documents_alert_id ON documents(collection, alert_id)",
            ],
        ),
    }

    def __init__(self, config: StorageConfig) -> None:
        self._path = config.sqlite_path
        self._db: aiosqlite.Connection | None = None

    async def initialize(self) -> None:
        """Open connection, enable WAL, run migrations."""
        try:
            if self._path != ":memory:":
                Path(self._path).parent.mkdir(parents=True, exist_ok=True)
            self._db = await aiosqlite.connect(self._path)
            self._db.row_factory = aiosqlite.Row
            await self._db.execute("PRAGMA journal_mode=WAL")
            current = await self._get_schema_version()
            await self._apply_migrations(current)
            await self._db.commit()
        except Exception as e:
            raise StorageError(
                f"Failed to initialize SQLite store: {e}",
                context={"operation": "initialize", "path": self._path},
            ) from e

    async def close(self) -> None:
        if self._db is not None:
            await self._db.close()
            self._db = None

    async def health_check(self) -> bool:
        if self._db is None:
            return False
        try:
            async with self._db.execute("SELECT 1") as cursor:
                row = await cursor.fetchone()
            return row is not None
        except Exception:
            return False

    # --- Schema Migration ---

    async def _get_schema_version(self) -> int:
        try:
            async with self._db.execute(
                "SELECT MAX(version) FROM schema_version"
            ) as cursor:
                row = await cursor.fetchone()
            return row[0] if row[0] is not None else 0
        except aiosqlite.OperationalError:
            return 0

    async def _apply_migrations(self, current_version: int) -> None:
        for version in sorted(self._MIGRATIONS.keys()):
            if version <= current_version:
                continue
            desc, statements = self._MIGRATIONS[version]
            logger.info("Applying migration %d: %s", version, desc)
            for sql in statements:
                await self._db.execute(sql)
            await self._db.execute(
                "INSERT INTO schema_version (version) VALUES (?)", (version,)
            )

    # --- Generic Documents ---

    async def add_document(
        self,
        collection: str,
        data: dict[str, Any],
        *,
        alert_id: str | None = None,
        oracle: str | None = None,
        asset: str | None = None,
    ) -> str:
        """Insert a document and return its generated id."""
        doc_id = uuid.uuid4().hex
        try:
            self._require_open()
            await self._db.execute(
                """INSERT INTO documents
                   (id, collection, data_json, created_at, alert_id, oracle, asset)
                   VALUES (?, ?, ?, ?, ?, ?, ?)""",
                (
                    doc_id,
                    collection,
                    json.dumps(data),
                    datetime.now(timezone.utc).isoformat(),
                    alert_id,
                    oracle,
                    asset,
                ),
            )
            await self._db.commit()
        except Exception as e:
            if isinstance(e, StorageError):
                raise
            raise StorageError(
                f"Failed to add document: {e}",
                context={"operation": "insert", "collection": collection},
            ) from e
        return doc_id

    async def list_documents(
        self, collection: str, limit: int | None = None, newest_first: bool = False
    ) -> list[StoredDocument]:
        """Return documents of a collection in insertion order."""
        query = "SELECT * FROM documents WHERE collection = ?"
        query += " ORDER BY seq DESC" if newest_first else " ORDER BY seq"
        params: list[Any] = [collection]
        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)
        return await self._query_documents(query, params, collection)

    # --- Alerts ---

    async def add_alert(self, alert: dict[str, Any]) -> str:
        """Store an alert document (the shape the front end writes)."""
        return await self.add_document(ALERTS, alert)

    async def list_alerts(self) -> list[StoredDocument]:
        """Raw alert documents in store order.

        Parsing into ``AlertDefinition`` is left to the caller so that one
        malformed document cannot hide the others.
        """
        return await self.list_documents(ALERTS)

    # --- Alert History ---

    async def append_alert_history(self, entry: AlertHistoryEntry) -> str:
        return await self.add_document(
            ALERT_HISTORY,
            _history_to_document(entry),
            alert_id=entry.alert_id,
            oracle=str(entry.oracle),
            asset=entry.asset,
        )

    async def get_alert_history(
        self, alert_id: str, limit: int = 10
    ) -> list[AlertHistoryEntry]:
        """Newest-first history for one alert."""
        docs = await self._query_documents(
            """SELECT * FROM documents
               WHERE collection = ? AND alert_id = ?
               ORDER BY seq DESC LIMIT ?""",
            [ALERT_HISTORY, alert_id, limit],
            ALERT_HISTORY,
        )
        return [_document_to_history(doc) for doc in docs]

    async def get_all_alert_history(
        self,
        oracle: OracleName | None = None,
        asset: str | None = None,
        limit: int = 50,
    ) -> list[AlertHistoryEntry]:
        """Newest-first history across alerts, optionally filtered."""
        query = "SELECT * FROM documents WHERE collection = ?"
        params: list[Any] = [ALERT_HISTORY]
        if oracle is not None:
            query += " AND oracle = ?"
            params.append(str(oracle))
        if asset is not None:
            query += " AND asset = ?"
            params.append(asset.strip().upper())
        query += " ORDER BY seq DESC LIMIT ?"
        params.append(limit)
        docs = await self._query_documents(query, params, ALERT_HISTORY)
        return [_document_to_history(doc) for doc in docs]

    # --- Price History ---

    async def append_price_history(self, snapshot: Snapshot) -> str:
        return await self.add_document(PRICE_HISTORY, snapshot.model_dump(mode="json"))

    async def get_latest_snapshot(self) -> Snapshot | None:
        docs = await self.list_documents(PRICE_HISTORY, limit=1, newest_first=True)
        if not docs:
            return None
        return Snapshot.model_validate(docs[0].data)

    # --- Internals ---

    def _require_open(self) -> None:
        if self._db is None:
            raise StorageError(
                "Store is not initialized",
                context={"operation": "connect", "path": self._path},
            )

    async def _query_documents(
        self, query: str, params: list[Any], collection: str
    ) -> list[StoredDocument]:
        try:
            self._require_open()
            async with self._db.execute(query, params) as cursor:
                rows = await cursor.fetchall()
            return [self._row_to_document(row) for row in rows]
        except Exception as e:
            if isinstance(e, StorageError):
                raise
            raise StorageError(
                f"Failed to query documents: {e}",
                context={"operation": "query", "collection": collection},
            ) from e

    @staticmethod
    def _row_to_document(row: aiosqlite.Row) -> StoredDocument:
        return StoredDocument(
            id=row["id"],
            collection=row["collection"],
            data=json.loads(row["data_json"]),
            created_at=datetime.fromisoformat(row["created_at"]),
        )


def _history_to_document(entry: AlertHistoryEntry) -> dict[str, Any]:
    """Serialize with the field names the alert front end reads."""
    return {
        "alertId": entry.alert_id,
        "asset": entry.asset,
        "oracle": str(entry.oracle),
        "price": entry.price,
        "type": str(entry.type),
        "threshold": entry.threshold,
        "timestamp": entry.triggered_at.isoformat(),
    }


def _document_to_history(doc: StoredDocument) -> AlertHistoryEntry:
    data = doc.data
    return AlertHistoryEntry(
        alert_id=data["alertId"],
        asset=data["asset"],
        oracle=data["oracle"],
        price=data["price"],
        type=data["type"],
        threshold=data["threshold"],
        triggered_at=datetime.fromisoformat(data["timestamp"]),
    )


def parse_alert(doc: StoredDocument) -> AlertDefinition:
    """Build an ``AlertDefinition`` from a stored alert document.

    The document id wins over any ``id`` field inside the body.
    """
    return AlertDefinition.model_validate({**doc.data, "id": doc.id})


async def create_store(config: StorageConfig) -> SqliteDocumentStore:
    """Create and initialize the document store."""
    store = SqliteDocumentStore(config)
    await store.initialize()
    return store
