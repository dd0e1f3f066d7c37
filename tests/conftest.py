"""Shared fixtures: in-memory store and identity fakes, record builders."""

from __future__ import annotations

import itertools
from datetime import datetime, timezone
from typing import Any

import pytest

from broker_console.core.errors import StoreError
from broker_console.models.ledger import LedgerEntry
from broker_console.models.policy import Policy
from broker_console.repositories.boundaries import (
    SERVER_TIMESTAMP,
    DocumentSnapshot,
    Subscription,
    User,
)
from broker_console.repositories.db_pool import ThreadLocalConnection
from broker_console.repositories.schema import initialize_schema
from broker_console.services.mutation_gateway import MutationGateway
from broker_console.services.record_store import RecordStore

FIXED_NOW = datetime(2024, 5, 10, 9, 30, tzinfo=timezone.utc)


class FakeDocumentStore:
    """Dict-backed store that records every call and can fail chosen writes."""

    def __init__(self) -> None:
        self.collections: dict[str, dict[str, dict[str, Any]]] = {}
        self.calls: list[tuple[str, str, str | None]] = []
        self.failures: set[tuple[str, str]] = set()
        self.subscribed: list[tuple[str, Any]] = []
        self._listeners: dict[str, dict[int, Any]] = {}
        self._ids = itertools.count(1)
        self._tokens = itertools.count()

    def server_timestamp(self) -> Any:
        return SERVER_TIMESTAMP

    def seed(self, path: str, doc_id: str, data: dict[str, Any]) -> None:
        self.collections.setdefault(path, {})[doc_id] = dict(data)
        self._notify(path)

    def create(self, path: str, fields: dict[str, Any]) -> str:
        doc_id = f"doc-{next(self._ids)}"
        self.calls.append(("create", path, doc_id))
        self._maybe_fail("create", doc_id)
        data = {
            key: FIXED_NOW.isoformat() if value is SERVER_TIMESTAMP else value
            for key, value in fields.items()
        }
        self.collections.setdefault(path, {})[doc_id] = data
        self._notify(path)
        return doc_id

    def update(self, path: str, doc_id: str, fields: dict[str, Any]) -> None:
        self.calls.append(("update", path, doc_id))
        self._maybe_fail("update", doc_id)
        document = self.collections.get(path, {}).get(doc_id)
        if document is None:
            raise StoreError(f"No document to update: {path}/{doc_id}")
        for key, value in fields.items():
            if "." in key:
                parent, child = key.split(".", 1)
                document.setdefault(parent, {})[child] = value
            else:
                document[key] = value
        self._notify(path)

    def delete(self, path: str, doc_id: str) -> None:
        self.calls.append(("delete", path, doc_id))
        self._maybe_fail("delete", doc_id)
        self.collections.get(path, {}).pop(doc_id, None)
        self._notify(path)

    def subscribe_collection(self, path: str, callback: Any) -> Subscription:
        self._maybe_fail("subscribe", path)
        self.subscribed.append((path, callback))
        token = next(self._tokens)
        self._listeners.setdefault(path, {})[token] = callback
        callback(self._snapshot(path))
        return Subscription(lambda: self._listeners.get(path, {}).pop(token, None))

    def listener_count(self, path: str) -> int:
        return len(self._listeners.get(path, {}))

    def calls_of(self, kind: str) -> list[tuple[str, str, str | None]]:
        return [call for call in self.calls if call[0] == kind]

    def _snapshot(self, path: str) -> list[DocumentSnapshot]:
        return [
            DocumentSnapshot(id=doc_id, data=dict(data))
            for doc_id, data in self.collections.get(path, {}).items()
        ]

    def _notify(self, path: str) -> None:
        for callback in list(self._listeners.get(path, {}).values()):
            callback(self._snapshot(path))

    def _maybe_fail(self, kind: str, target: str) -> None:
        if (kind, target) in self.failures:
            raise StoreError("PERMISSION_DENIED: Missing or insufficient permissions.")


class FakeIdentity:
    def __init__(self) -> None:
        self._user: User | None = None
        self._listeners: dict[int, Any] = {}
        self._tokens = itertools.count()

    def current_user(self) -> User | None:
        return self._user

    def subscribe_auth_state(self, callback: Any) -> Subscription:
        token = next(self._tokens)
        self._listeners[token] = callback
        callback(self._user)
        return Subscription(lambda: self._listeners.pop(token, None))

    def sign_in(self, user: User | None) -> None:
        self._user = user
        for callback in list(self._listeners.values()):
            callback(user)

    def login(self, email: str, password: str) -> User:
        user = User(id=email, email=email)
        self.sign_in(user)
        return user

    def register(self, email: str, password: str) -> User:
        return self.login(email, password)

    def logout(self) -> None:
        self.sign_in(None)


@pytest.fixture
def fake_store() -> FakeDocumentStore:
    return FakeDocumentStore()


@pytest.fixture
def fake_identity() -> FakeIdentity:
    return FakeIdentity()


@pytest.fixture
def records(fake_store: FakeDocumentStore, fake_identity: FakeIdentity) -> RecordStore:
    """Record store following a signed-in user 'u1' under deployment 'test'."""
    store = RecordStore(fake_store, fake_identity, "test")
    store.start()
    fake_identity.sign_in(User(id="u1", email="broker@example.com"))
    yield store
    store.close()


@pytest.fixture
def gateway(fake_store: FakeDocumentStore, records: RecordStore) -> MutationGateway:
    return MutationGateway(fake_store, records)


@pytest.fixture
def pool(tmp_path) -> ThreadLocalConnection:
    connection_pool = ThreadLocalConnection(str(tmp_path / "console.db"))
    initialize_schema(connection_pool)
    yield connection_pool
    connection_pool.close_connection()


@pytest.fixture
def make_policy():
    """Build a Policy from stored-document style overrides."""
    counter = itertools.count(1)

    def build(doc_id: str | None = None, **overrides: Any) -> Policy:
        number = next(counter)
        data: dict[str, Any] = {
            "policyType": "New Policy",
            "policyNumber": f"POL-{number:03d}",
            "policyDate": "2024-01-15",
            "validUntil": "2025-01-15",
            "totalAmount": 100,
            "commission": 10,
            "paidByCustomer": False,
            "paidToInsurer": False,
            "customer": {
                "firstName": "Ivan",
                "lastName": "Petrov",
                "idNumber": f"ID{number}",
            },
            "createdAt": "2024-01-15T10:00:00+00:00",
        }
        data.update(overrides)
        return Policy.from_document(doc_id or f"p{number}", data)

    return build


@pytest.fixture
def make_entry():
    counter = itertools.count(1)

    def build(doc_id: str | None = None, **overrides: Any) -> LedgerEntry:
        number = next(counter)
        data: dict[str, Any] = {
            "type": "Payment",
            "date": "2024-02-01",
            "amount": 50,
            "reason": "",
            "policyId": None,
            "createdAt": "2024-02-01T12:00:00+00:00",
        }
        data.update(overrides)
        return LedgerEntry.from_document(doc_id or f"e{number}", data)

    return build
