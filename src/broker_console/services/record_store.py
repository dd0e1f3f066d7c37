"""Live cache of the signed-in user's policies and ledger entries."""

from __future__ import annotations

import itertools
import logging
import threading
from functools import partial
from typing import Callable

from broker_console.core.errors import NotSignedInError
from broker_console.models.ledger import LedgerEntry
from broker_console.models.policy import Policy
from broker_console.repositories.boundaries import (
    LEDGER_COLLECTION,
    POLICIES_COLLECTION,
    DocumentSnapshot,
    DocumentStore,
    IdentityService,
    Subscription,
    User,
    collection_path,
)

logger = logging.getLogger(__name__)

POLICIES_CHANGED = "policies"
LEDGER_CHANGED = "ledger"
USER_CHANGED = "user"

ChangeListener = Callable[[str], None]


class RecordStore:
    """Holds the latest full snapshots and re-subscribes when the user changes."""

    def __init__(self, store: DocumentStore, identity: IdentityService, deployment: str):
        self._store = store
        self._identity = identity
        self._deployment = deployment
        self._user: User | None = None
        self._policies: tuple[Policy, ...] = ()
        self._ledger_entries: tuple[LedgerEntry, ...] = ()
        self._collection_subscriptions: list[Subscription] = []
        self._auth_subscription: Subscription | None = None
        self._listeners: dict[int, ChangeListener] = {}
        self._lock = threading.Lock()
        self._tokens = itertools.count()
        # Bumped on every user change; deliveries from older subscriptions are dropped.
        self._generation = 0

    @property
    def user(self) -> User | None:
        return self._user

    @property
    def policies(self) -> tuple[Policy, ...]:
        return self._policies

    @property
    def ledger_entries(self) -> tuple[LedgerEntry, ...]:
        return self._ledger_entries

    def start(self) -> None:
        """Follow the identity service; the first callback arrives immediately."""
        if self._auth_subscription is None:
            self._auth_subscription = self._identity.subscribe_auth_state(self._on_auth_state)

    def close(self) -> None:
        """Release the auth listener and both collection listeners."""
        if self._auth_subscription is not None:
            self._auth_subscription.cancel()
            self._auth_subscription = None
        self._release_collections()

    def add_listener(self, listener: ChangeListener) -> Subscription:
        """Register a callback receiving which part of the cache changed."""
        token = next(self._tokens)
        with self._lock:
            self._listeners[token] = listener
        return Subscription(lambda: self._remove_listener(token))

    def policies_path(self) -> str:
        return collection_path(self._deployment, self._require_user().id, POLICIES_COLLECTION)

    def ledger_path(self) -> str:
        return collection_path(self._deployment, self._require_user().id, LEDGER_COLLECTION)

    def _require_user(self) -> User:
        if self._user is None:
            raise NotSignedInError()
        return self._user

    def _on_auth_state(self, user: User | None) -> None:
        if user == self._user and (user is None or len(self._collection_subscriptions) == 2):
            return

        self._release_collections()
        with self._lock:
            self._generation += 1
            generation = self._generation
            self._user = user
            self._policies = ()
            self._ledger_entries = ()
        self._emit(USER_CHANGED)

        if user is None:
            return

        logger.info("Subscribing to collections for user %s", user.id)
        subscriptions: list[Subscription] = []
        try:
            subscriptions.append(
                self._store.subscribe_collection(
                    self.policies_path(), partial(self._on_policies, generation)
                )
            )
            subscriptions.append(
                self._store.subscribe_collection(
                    self.ledger_path(), partial(self._on_ledger_entries, generation)
                )
            )
        except Exception:
            logger.error("Subscribing for user %s failed; cache left signed out", user.id)
            for subscription in subscriptions:
                subscription.cancel()
            with self._lock:
                self._generation += 1
                self._user = None
                self._policies = ()
                self._ledger_entries = ()
            self._emit(USER_CHANGED)
            raise
        self._collection_subscriptions = subscriptions

    def _on_policies(self, generation: int, snapshot: list[DocumentSnapshot]) -> None:
        policies = tuple(Policy.from_document(doc.id, doc.data) for doc in snapshot)
        with self._lock:
            if generation != self._generation:
                return
            self._policies = policies
        self._emit(POLICIES_CHANGED)

    def _on_ledger_entries(self, generation: int, snapshot: list[DocumentSnapshot]) -> None:
        entries = tuple(LedgerEntry.from_document(doc.id, doc.data) for doc in snapshot)
        with self._lock:
            if generation != self._generation:
                return
            self._ledger_entries = entries
        self._emit(LEDGER_CHANGED)

    def _release_collections(self) -> None:
        for subscription in self._collection_subscriptions:
            subscription.cancel()
        self._collection_subscriptions = []

    def _emit(self, change: str) -> None:
        with self._lock:
            listeners = list(self._listeners.values())
        for listener in listeners:
            listener(change)

    def _remove_listener(self, token: int) -> None:
        with self._lock:
            self._listeners.pop(token, None)
