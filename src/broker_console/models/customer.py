"""Derived customer view models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal


@dataclass(frozen=True)
class PolicyRef:
    """Lightweight reference to a policy held by a derived customer."""

    id: str
    policy_number: str
    policy_type: str
    total_amount: Decimal
    policy_date: date | None


@dataclass
class DerivedCustomer:
    """One row per distinct customer id number, folded over all policies."""

    id_number: str
    first_name: str
    last_name: str
    phone_number: str
    address: str
    city: str
    postal_code: str
    policies_count: int = 0
    total_policy_value: Decimal = Decimal("0")
    associated_policies: list[PolicyRef] = field(default_factory=list)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
