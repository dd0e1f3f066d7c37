"""Payment and expense ledger models."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from broker_console.core.validation import parse_date, parse_decimal, parse_timestamp


class LedgerType(str, Enum):
    PAYMENT = "Payment"
    EXPENSE = "Expense"


@dataclass(frozen=True)
class LedgerEntry:
    """A payment or expense, optionally linked to a policy."""

    id: str
    type: str
    date: date | None
    amount: Decimal
    reason: str | None
    policy_id: str | None
    created_at: datetime | None

    @property
    def timestamp(self) -> date | datetime | None:
        """Creation time, or the entry's own date when the store has not stamped it."""
        return self.created_at or self.date

    @classmethod
    def from_document(cls, doc_id: str, data: dict[str, Any]) -> LedgerEntry:
        return cls(
            id=doc_id,
            type=str(data.get("type") or ""),
            date=parse_date(data.get("date")),
            amount=parse_decimal(data.get("amount")),
            reason=data.get("reason") or None,
            policy_id=data.get("policyId") or None,
            created_at=parse_timestamp(data.get("createdAt")),
        )
