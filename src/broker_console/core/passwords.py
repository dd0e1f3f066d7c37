"""Scrypt helpers for storing account passwords."""

from __future__ import annotations

import base64
import os

from cryptography.exceptions import InvalidKey
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

SALT_SIZE = 16
KEY_SIZE = 32
SCRYPT_N = 2**14
SCRYPT_R = 8
SCRYPT_P = 1


def _kdf(salt: bytes) -> Scrypt:
    return Scrypt(salt=salt, length=KEY_SIZE, n=SCRYPT_N, r=SCRYPT_R, p=SCRYPT_P)


def generate_salt() -> str:
    """Generate a base64-encoded random salt."""
    return base64.urlsafe_b64encode(os.urandom(SALT_SIZE)).decode("utf-8")


def hash_password(password: str, salt_b64: str) -> str:
    """Derive a base64-encoded scrypt hash for password and salt."""
    salt = base64.urlsafe_b64decode(salt_b64.encode("utf-8"))
    derived = _kdf(salt).derive(password.encode("utf-8"))
    return base64.urlsafe_b64encode(derived).decode("utf-8")


def verify_password(password: str, salt_b64: str, hash_b64: str) -> bool:
    """Return True when password derives to the stored hash."""
    salt = base64.urlsafe_b64decode(salt_b64.encode("utf-8"))
    expected = base64.urlsafe_b64decode(hash_b64.encode("utf-8"))
    try:
        _kdf(salt).verify(password.encode("utf-8"), expected)
    except InvalidKey:
        return False
    return True
