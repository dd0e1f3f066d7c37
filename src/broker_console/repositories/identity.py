"""Local email/password identity service."""

from __future__ import annotations

import itertools
import logging
import re
import sqlite3
import threading
import uuid

from broker_console.core.errors import AuthError
from broker_console.core.passwords import generate_salt, hash_password, verify_password
from broker_console.repositories.boundaries import AuthStateCallback, Subscription, User
from broker_console.repositories.db_pool import ThreadLocalConnection

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MIN_PASSWORD_LENGTH = 6


class LocalIdentityService:
    """Registers and signs in users against the local users table."""

    def __init__(self, pool: ThreadLocalConnection):
        self._pool = pool
        self._current: User | None = None
        self._lock = threading.Lock()
        self._listeners: dict[int, AuthStateCallback] = {}
        self._tokens = itertools.count()

    def current_user(self) -> User | None:
        return self._current

    def subscribe_auth_state(self, callback: AuthStateCallback) -> Subscription:
        """Call back now with the current user and again on every change."""
        token = next(self._tokens)
        with self._lock:
            self._listeners[token] = callback
        subscription = Subscription(lambda: self._remove_listener(token))
        callback(self._current)
        return subscription

    def register(self, email: str, password: str) -> User:
        """Create an account and sign it in."""
        normalized = self._validate_email(email)
        if len(password or "") < MIN_PASSWORD_LENGTH:
            raise AuthError(f"Password should be at least {MIN_PASSWORD_LENGTH} characters.")

        salt = generate_salt()
        user = User(id=uuid.uuid4().hex, email=normalized)
        try:
            self._pool.execute(
                "INSERT INTO users (id, email, password_hash, salt) VALUES (?, ?, ?, ?)",
                (user.id, user.email, hash_password(password, salt), salt),
            )
        except sqlite3.IntegrityError as error:
            raise AuthError("Email already in use.") from error
        except sqlite3.Error as error:
            raise AuthError(str(error)) from error

        logger.info("Registered user %s", user.id)
        self._set_current(user)
        return user

    def login(self, email: str, password: str) -> User:
        normalized = self._validate_email(email)
        try:
            row = self._pool.fetchone(
                "SELECT id, email, password_hash, salt FROM users WHERE email = ?",
                (normalized,),
            )
        except sqlite3.Error as error:
            raise AuthError(str(error)) from error

        if not row or not verify_password(password or "", row["salt"], row["password_hash"]):
            raise AuthError("Invalid email or password.")

        user = User(id=row["id"], email=row["email"])
        logger.info("Signed in user %s", user.id)
        self._set_current(user)
        return user

    def logout(self) -> None:
        if self._current is None:
            return
        logger.info("Signed out user %s", self._current.id)
        self._set_current(None)

    @staticmethod
    def _validate_email(email: str) -> str:
        normalized = (email or "").strip().lower()
        if not EMAIL_PATTERN.match(normalized):
            raise AuthError("Invalid email address.")
        return normalized

    def _set_current(self, user: User | None) -> None:
        self._current = user
        with self._lock:
            callbacks = list(self._listeners.values())
        for callback in callbacks:
            callback(user)

    def _remove_listener(self, token: int) -> None:
        with self._lock:
            self._listeners.pop(token, None)
