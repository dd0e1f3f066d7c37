"""Exception hierarchy for the broker console."""

from __future__ import annotations


class ConsoleError(Exception):
    """Base exception for all console errors."""


class ValidationError(ConsoleError, ValueError):
    """Raised when form input is missing or malformed, before any store call."""


class StoreError(ConsoleError):
    """Raised when the document store rejects or fails an operation."""


class AuthError(ConsoleError):
    """Raised when sign-in, registration, or sign-out fails."""


class NotSignedInError(ConsoleError):
    """Raised when a mutation is attempted without an active user."""

    def __init__(self, message: str = "Database not ready or user not authenticated. Please log in."):
        super().__init__(message)


def describe_failure(action: str, error: BaseException) -> str:
    """Build the one-line notification text for a failed operation."""
    return f"Error {action}: {error}"
