"""SQLite-backed document store with live collection listeners."""

from __future__ import annotations

import copy
import itertools
import json
import logging
import sqlite3
import threading
import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Callable

from broker_console.core.errors import StoreError
from broker_console.repositories.boundaries import (
    SERVER_TIMESTAMP,
    DocumentSnapshot,
    SnapshotCallback,
    Subscription,
)
from broker_console.repositories.db_pool import ThreadLocalConnection

logger = logging.getLogger(__name__)


def _json_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    raise TypeError(f"Unsupported field value: {value!r}")


class SqliteDocumentStore:
    """Stores JSON documents per collection path and pushes full snapshots."""

    def __init__(
        self,
        pool: ThreadLocalConnection,
        clock: Callable[[], datetime] | None = None,
    ):
        self._pool = pool
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        # Writes and their snapshot deliveries run under one reentrant lock so
        # listeners see snapshots in commit order.
        self._write_lock = threading.RLock()
        self._listener_lock = threading.Lock()
        self._listeners: dict[str, dict[int, SnapshotCallback]] = {}
        self._tokens = itertools.count()

    def server_timestamp(self) -> Any:
        return SERVER_TIMESTAMP

    def list_documents(self, path: str) -> list[DocumentSnapshot]:
        """Return every document in a collection, oldest write first."""
        try:
            rows = self._pool.fetchall(
                "SELECT id, data FROM documents WHERE path = ? ORDER BY rowid",
                (path,),
            )
        except sqlite3.Error as error:
            logger.error("Reading %s failed: %s", path, error)
            raise StoreError(str(error)) from error
        return [DocumentSnapshot(id=row["id"], data=json.loads(row["data"])) for row in rows]

    def get(self, path: str, doc_id: str) -> DocumentSnapshot | None:
        try:
            row = self._pool.fetchone(
                "SELECT id, data FROM documents WHERE path = ? AND id = ?",
                (path, doc_id),
            )
        except sqlite3.Error as error:
            raise StoreError(str(error)) from error
        if not row:
            return None
        return DocumentSnapshot(id=row["id"], data=json.loads(row["data"]))

    def create(self, path: str, fields: dict[str, Any]) -> str:
        """Insert a document under a new id and return the id."""
        doc_id = uuid.uuid4().hex[:20]
        data = self._resolve_sentinels(fields)
        with self._write_lock:
            try:
                self._pool.execute(
                    "INSERT INTO documents (path, id, data) VALUES (?, ?, ?)",
                    (path, doc_id, self._encode(data)),
                )
            except sqlite3.Error as error:
                logger.error("Create in %s failed: %s", path, error)
                raise StoreError(str(error)) from error
            self._notify(path)
        return doc_id

    def update(self, path: str, doc_id: str, fields: dict[str, Any]) -> None:
        """Merge fields into a document; dotted keys replace one nested value."""
        with self._write_lock:
            current = self.get(path, doc_id)
            if current is None:
                raise StoreError(f"No document to update: {path}/{doc_id}")
            data = copy.deepcopy(current.data)
            for key, value in self._resolve_sentinels(fields).items():
                self._assign(data, key, value)
            try:
                self._pool.execute(
                    """
                    UPDATE documents
                    SET data = ?, updated_at = CURRENT_TIMESTAMP
                    WHERE path = ? AND id = ?
                    """,
                    (self._encode(data), path, doc_id),
                )
            except sqlite3.Error as error:
                logger.error("Update of %s/%s failed: %s", path, doc_id, error)
                raise StoreError(str(error)) from error
            self._notify(path)

    def delete(self, path: str, doc_id: str) -> None:
        """Delete a document; deleting a missing document is a no-op."""
        with self._write_lock:
            try:
                cursor = self._pool.execute(
                    "DELETE FROM documents WHERE path = ? AND id = ?",
                    (path, doc_id),
                )
            except sqlite3.Error as error:
                logger.error("Delete of %s/%s failed: %s", path, doc_id, error)
                raise StoreError(str(error)) from error
            if cursor.rowcount:
                self._notify(path)

    def subscribe_collection(self, path: str, callback: SnapshotCallback) -> Subscription:
        """Push the current snapshot now and a fresh one after every write."""
        token = next(self._tokens)
        subscription = Subscription(lambda: self._remove_listener(path, token))
        with self._write_lock:
            snapshot = self.list_documents(path)
            with self._listener_lock:
                self._listeners.setdefault(path, {})[token] = callback
            callback(snapshot)
        return subscription

    def listener_count(self, path: str) -> int:
        with self._listener_lock:
            return len(self._listeners.get(path, {}))

    def _remove_listener(self, path: str, token: int) -> None:
        with self._listener_lock:
            listeners = self._listeners.get(path, {})
            listeners.pop(token, None)
            if not listeners:
                self._listeners.pop(path, None)

    def _notify(self, path: str) -> None:
        with self._listener_lock:
            callbacks = list(self._listeners.get(path, {}).values())
        if not callbacks:
            return
        snapshot = self.list_documents(path)
        for callback in callbacks:
            try:
                callback(list(snapshot))
            except Exception:  # pylint: disable=broad-except
                # Listener boundary: a failing view must not fail the committed write.
                logger.exception("Snapshot listener for %s raised", path)

    def _resolve_sentinels(self, value: Any) -> Any:
        if value is SERVER_TIMESTAMP:
            return self._clock().isoformat()
        if isinstance(value, dict):
            return {key: self._resolve_sentinels(item) for key, item in value.items()}
        if isinstance(value, list):
            return [self._resolve_sentinels(item) for item in value]
        return value

    @staticmethod
    def _assign(data: dict[str, Any], dotted_key: str, value: Any) -> None:
        parts = dotted_key.split(".")
        target = data
        for part in parts[:-1]:
            child = target.get(part)
            if not isinstance(child, dict):
                child = {}
                target[part] = child
            target = child
        target[parts[-1]] = value

    @staticmethod
    def _encode(data: dict[str, Any]) -> str:
        try:
            return json.dumps(data, default=_json_default, ensure_ascii=False)
        except (TypeError, ValueError) as error:
            raise StoreError(str(error)) from error
