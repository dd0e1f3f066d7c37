"""Outcome models for multi-write operations."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class BatchStatus(str, Enum):
    COMPLETE = "complete"
    PARTIAL = "partial"
    FAILED = "failed"


@dataclass(frozen=True)
class ItemOutcome:
    """Result of one write within a batch."""

    target_id: str
    action: str
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class BatchResult:
    """Per-item outcomes of a non-transactional fan-out."""

    operation: str
    outcomes: list[ItemOutcome] = field(default_factory=list)

    def record_success(self, target_id: str, action: str) -> None:
        self.outcomes.append(ItemOutcome(target_id=target_id, action=action))

    def record_failure(self, target_id: str, action: str, error: BaseException | str) -> None:
        self.outcomes.append(ItemOutcome(target_id=target_id, action=action, error=str(error)))

    @property
    def succeeded(self) -> list[ItemOutcome]:
        return [outcome for outcome in self.outcomes if outcome.ok]

    @property
    def failed(self) -> list[ItemOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.ok]

    @property
    def status(self) -> BatchStatus:
        """Complete when nothing failed, including an empty batch."""
        if not self.failed:
            return BatchStatus.COMPLETE
        if not self.succeeded:
            return BatchStatus.FAILED
        return BatchStatus.PARTIAL

    @property
    def ok(self) -> bool:
        return self.status is BatchStatus.COMPLETE

    def summary(self) -> str:
        """Render a user-facing message describing how the batch ended."""
        total = len(self.outcomes)
        if self.status is BatchStatus.COMPLETE:
            return f"{self.operation}: {total} of {total} writes succeeded."
        failures = self.failed
        first_error = failures[0].error
        if self.status is BatchStatus.FAILED:
            return f"{self.operation} failed: all {total} writes failed ({first_error})."
        return (
            f"{self.operation} partially failed: {len(failures)} of {total} writes failed "
            f"({first_error}). Affected records may need manual correction."
        )
