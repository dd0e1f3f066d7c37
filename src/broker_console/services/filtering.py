"""Filtering and ordering for the policy and ledger lists."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date
from typing import Any, Callable, Iterable

from broker_console.core.validation import local_date, timestamp_value, within_days
from broker_console.models.ledger import LedgerEntry
from broker_console.models.policy import Policy

ALL = "all"
YES = "yes"
NO = "no"
PAID_CHOICES = (ALL, YES, NO)

ASCENDING = "asc"
DESCENDING = "desc"


def _customer_sort_value(policy: Policy) -> str:
    if policy.customer is None:
        return ""
    return f"{policy.customer.first_name} {policy.customer.last_name}".lower()


SORT_KEYS: dict[str, Callable[[Policy], Any]] = {
    "policyNumber": lambda policy: policy.policy_number.lower(),
    "customer": _customer_sort_value,
    "policyType": lambda policy: policy.policy_type.lower(),
    "totalAmount": lambda policy: policy.total_amount,
    "policyDate": lambda policy: timestamp_value(policy.policy_date),
    "validUntil": lambda policy: timestamp_value(policy.valid_until),
    "createdAt": lambda policy: timestamp_value(policy.created_at),
}


@dataclass(frozen=True)
class PolicyFilter:
    """User-selected criteria; a policy is listed only when all of them hold."""

    policy_type: str = ""
    customer_name: str = ""
    policy_number: str = ""
    paid_by_customer: str = ALL
    paid_to_insurer: str = ALL
    valid_from: date | None = None
    valid_to: date | None = None

    def __post_init__(self) -> None:
        for name in ("paid_by_customer", "paid_to_insurer"):
            if getattr(self, name) not in PAID_CHOICES:
                raise ValueError(f"{name} must be one of {', '.join(PAID_CHOICES)}")

    def matches(self, policy: Policy) -> bool:
        if not _contains(policy.policy_type, self.policy_type):
            return False
        if self.customer_name:
            customer = policy.customer
            if customer is None or not (
                _contains(customer.first_name, self.customer_name)
                or _contains(customer.last_name, self.customer_name)
            ):
                return False
        if not _contains(policy.policy_number, self.policy_number):
            return False
        if not _flag_matches(policy.paid_by_customer, self.paid_by_customer):
            return False
        if not _flag_matches(policy.paid_to_insurer, self.paid_to_insurer):
            return False
        if policy.valid_until is not None:
            valid_until = local_date(policy.valid_until)
            if self.valid_from is not None and valid_until < self.valid_from:
                return False
            if self.valid_to is not None and valid_until > self.valid_to:
                return False
        return True


@dataclass(frozen=True)
class SortState:
    """Selected sort column and direction; newest first by default."""

    key: str = "createdAt"
    direction: str = DESCENDING

    def __post_init__(self) -> None:
        if self.key not in SORT_KEYS:
            raise ValueError(f"Unknown sort key: {self.key}")
        if self.direction not in (ASCENDING, DESCENDING):
            raise ValueError(f"Unknown sort direction: {self.direction}")

    def select(self, key: str) -> SortState:
        """Selecting the same key flips direction; a new key starts ascending."""
        if key == self.key:
            flipped = ASCENDING if self.direction == DESCENDING else DESCENDING
            return replace(self, direction=flipped)
        return SortState(key=key, direction=ASCENDING)


@dataclass(frozen=True)
class LedgerFilter:
    type: str = ALL
    policy_id: str | None = None
    start: date | None = None
    end: date | None = None

    def matches(self, entry: LedgerEntry) -> bool:
        if self.type != ALL and entry.type != self.type:
            return False
        if self.policy_id is not None and entry.policy_id != self.policy_id:
            return False
        if self.start is None and self.end is None:
            return True
        moment = entry.timestamp
        if moment is None:
            return False
        return within_days(moment, self.start or date.min, self.end or date.max)


def filter_policies(policies: Iterable[Policy], policy_filter: PolicyFilter) -> list[Policy]:
    return [policy for policy in policies if policy_filter.matches(policy)]


def sort_policies(policies: Iterable[Policy], sort_state: SortState) -> list[Policy]:
    """Stable sort; ties keep their incoming order in both directions."""
    return sorted(
        policies,
        key=SORT_KEYS[sort_state.key],
        reverse=sort_state.direction == DESCENDING,
    )


def filter_and_sort_policies(
    policies: Iterable[Policy],
    policy_filter: PolicyFilter,
    sort_state: SortState,
) -> list[Policy]:
    return sort_policies(filter_policies(policies, policy_filter), sort_state)


def filter_ledger_entries(
    entries: Iterable[LedgerEntry],
    ledger_filter: LedgerFilter,
) -> list[LedgerEntry]:
    """Matching entries, newest first."""
    matching = [entry for entry in entries if ledger_filter.matches(entry)]
    return _newest_first(matching)


def linked_ledger_entries(entries: Iterable[LedgerEntry], policy_id: str) -> list[LedgerEntry]:
    """Entries linked to one policy, newest first."""
    return _newest_first(entry for entry in entries if entry.policy_id == policy_id)


def _newest_first(entries: Iterable[LedgerEntry]) -> list[LedgerEntry]:
    return sorted(entries, key=lambda entry: timestamp_value(entry.timestamp), reverse=True)


def _contains(value: str | None, needle: str) -> bool:
    if not needle:
        return True
    return needle.lower() in (value or "").lower()


def _flag_matches(value: bool, choice: str) -> bool:
    return choice == ALL or value == (choice == YES)
