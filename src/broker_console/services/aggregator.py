"""Dashboard and financial report totals over the current snapshots."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable

from broker_console.core.validation import ZERO, local_date, within_days
from broker_console.models.ledger import LedgerEntry, LedgerType
from broker_console.models.policy import Policy


@dataclass(frozen=True)
class DateRange:
    """Inclusive calendar window, from the start of start to the end of end."""

    start: date
    end: date

    def contains(self, moment: date | None) -> bool:
        if moment is None:
            return False
        return within_days(moment, self.start, self.end)


@dataclass(frozen=True)
class DashboardSummary:
    total_policies: int
    total_policy_value: Decimal
    total_commission: Decimal
    paid_by_customer_count: int
    paid_to_insurer_count: int
    overdue_count: int


@dataclass(frozen=True)
class FinancialReport:
    total_income: Decimal
    total_commission: Decimal
    total_expenses: Decimal
    total_payments: Decimal
    commission_not_paid_to_insurer: Decimal
    total_unpaid_to_insurer: Decimal
    amount_due_to_insurer: Decimal
    policy_count: int
    ledger_entry_count: int


def is_overdue(policy: Policy, today: date) -> bool:
    """A policy is overdue once its validity ended before today."""
    return policy.valid_until is not None and local_date(policy.valid_until) < today


def dashboard_summary(policies: Iterable[Policy], today: date | None = None) -> DashboardSummary:
    """Count and sum the policies for the dashboard cards."""
    today = today or date.today()
    items = list(policies)
    return DashboardSummary(
        total_policies=len(items),
        total_policy_value=sum((policy.total_amount for policy in items), ZERO),
        total_commission=sum((policy.commission for policy in items), ZERO),
        paid_by_customer_count=sum(1 for policy in items if policy.paid_by_customer),
        paid_to_insurer_count=sum(1 for policy in items if policy.paid_to_insurer),
        overdue_count=sum(1 for policy in items if is_overdue(policy, today)),
    )


def financial_report(
    policies: Iterable[Policy],
    ledger_entries: Iterable[LedgerEntry],
    date_range: DateRange | None = None,
) -> FinancialReport:
    """Income, expenses, and insurer balances, optionally restricted to a window.

    Policies are placed in the window by their creation time. Ledger entries use
    their creation time and fall back to their own date when it is missing.
    """
    selected_policies = list(policies)
    selected_entries = list(ledger_entries)
    if date_range is not None:
        selected_policies = [
            policy for policy in selected_policies if date_range.contains(policy.created_at)
        ]
        selected_entries = [
            entry for entry in selected_entries if date_range.contains(entry.timestamp)
        ]

    unpaid = [policy for policy in selected_policies if not policy.paid_to_insurer]
    commission_not_paid = sum((policy.commission for policy in unpaid), ZERO)
    total_unpaid = sum((policy.total_amount for policy in unpaid), ZERO)

    return FinancialReport(
        total_income=sum((policy.total_amount for policy in selected_policies), ZERO),
        total_commission=sum((policy.commission for policy in selected_policies), ZERO),
        total_expenses=_sum_ledger(selected_entries, LedgerType.EXPENSE),
        total_payments=_sum_ledger(selected_entries, LedgerType.PAYMENT),
        commission_not_paid_to_insurer=commission_not_paid,
        total_unpaid_to_insurer=total_unpaid,
        amount_due_to_insurer=total_unpaid - commission_not_paid,
        policy_count=len(selected_policies),
        ledger_entry_count=len(selected_entries),
    )


def _sum_ledger(entries: list[LedgerEntry], ledger_type: LedgerType) -> Decimal:
    return sum((entry.amount for entry in entries if entry.type == ledger_type.value), ZERO)
