"""Background worker tasks used by the main window."""

from __future__ import annotations

from typing import Any, Callable

from PySide6.QtCore import QObject, QRunnable, Signal

from broker_console.core.errors import describe_failure


class TaskSignals(QObject):
    """Signals for background store calls."""

    done = Signal(object)
    error = Signal(str)


class StoreCallTask(QRunnable):
    """Run one identity or gateway call without blocking the UI thread.

    `action` names the operation for the failure notification, e.g. "adding policy".
    """

    def __init__(self, action: str, call: Callable[[], Any]):
        super().__init__()
        self.action = action
        self.call = call
        self.signals = TaskSignals()

    def run(self) -> None:
        try:
            result = self.call()
        except Exception as error:  # pylint: disable=broad-except
            # Worker boundary: convert any failure to a user-visible message.
            self.signals.error.emit(describe_failure(self.action, error))
            return
        self.signals.done.emit(result)


class SnapshotBridge(QObject):
    """Re-emits record store changes so slots run on the UI thread."""

    changed = Signal(str)

    def forward(self, change: str) -> None:
        self.changed.emit(change)
