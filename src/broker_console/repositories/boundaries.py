"""Contracts for the identity service and document store the console talks to."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any, Callable, Protocol

POLICIES_COLLECTION = "policies"
LEDGER_COLLECTION = "payments_expenses"


class _ServerTimestamp:
    """Sentinel replaced by the store's own clock at write time."""

    _instance: _ServerTimestamp | None = None

    def __new__(cls) -> _ServerTimestamp:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()


@dataclass(frozen=True)
class User:
    id: str
    email: str


@dataclass(frozen=True)
class DocumentSnapshot:
    """One stored document: its store-assigned id and field data."""

    id: str
    data: dict[str, Any]


class Subscription:
    """Cancellable handle for a live listener."""

    def __init__(self, on_cancel: Callable[[], None]):
        self._on_cancel = on_cancel
        self._lock = threading.Lock()
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        """Release the listener; repeated calls are no-ops."""
        with self._lock:
            if not self._active:
                return
            self._active = False
        self._on_cancel()

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.cancel()


SnapshotCallback = Callable[[list[DocumentSnapshot]], None]
AuthStateCallback = Callable[["User | None"], None]


class DocumentStore(Protocol):
    def subscribe_collection(self, path: str, callback: SnapshotCallback) -> Subscription: ...

    def create(self, path: str, fields: dict[str, Any]) -> str: ...

    def update(self, path: str, doc_id: str, fields: dict[str, Any]) -> None: ...

    def delete(self, path: str, doc_id: str) -> None: ...

    def server_timestamp(self) -> Any: ...


class IdentityService(Protocol):
    def current_user(self) -> User | None: ...

    def subscribe_auth_state(self, callback: AuthStateCallback) -> Subscription: ...

    def login(self, email: str, password: str) -> User: ...

    def register(self, email: str, password: str) -> User: ...

    def logout(self) -> None: ...


def collection_path(deployment: str, user_id: str, collection: str) -> str:
    """Return the per-user collection path under a deployment namespace."""
    return f"artifacts/{deployment}/users/{user_id}/{collection}"
