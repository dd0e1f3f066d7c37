"""Tests for validated writes through the mutation gateway."""

from __future__ import annotations

import pytest

from broker_console.core.errors import NotSignedInError, StoreError, ValidationError
from broker_console.models.forms import CustomerForm, LedgerForm, PolicyForm
from broker_console.models.results import BatchStatus
from broker_console.services.mutation_gateway import (
    DELETE_LEDGER_WARNING,
    DELETE_POLICY_WARNING,
    MutationGateway,
)

POLICIES = "artifacts/test/users/u1/policies"
LEDGER = "artifacts/test/users/u1/payments_expenses"


def _policy_form(**overrides) -> PolicyForm:
    values = {
        "policy_type": "New Policy",
        "policy_number": "POL-1",
        "policy_date": "2024-01-10",
        "valid_until": "2025-01-10",
        "total_amount": "120.50",
        "commission": "12",
        "customer": CustomerForm(first_name=" Ivan ", last_name="Petrov", id_number="7501"),
    }
    values.update(overrides)
    return PolicyForm(**values)


def _seed_policy(fake_store, doc_id: str, id_number: str) -> None:
    fake_store.seed(
        POLICIES,
        doc_id,
        {
            "policyNumber": doc_id.upper(),
            "totalAmount": 10,
            "customer": {"firstName": "Old", "lastName": "Name", "idNumber": id_number},
        },
    )


def test_add_policy_coerces_and_stamps(gateway, fake_store, records) -> None:
    policy_id = gateway.add_policy(_policy_form())

    stored = fake_store.collections[POLICIES][policy_id]
    assert stored["totalAmount"] == 120.5
    assert stored["commission"] == 12.0
    assert stored["policyDate"] == "2024-01-10"
    assert stored["customer"]["firstName"] == "Ivan"
    assert stored["customer"]["idNumber"] == "7501"
    assert stored["createdAt"] == "2024-05-10T09:30:00+00:00"
    assert [policy.id for policy in records.policies] == [policy_id]


def test_add_policy_defaults_missing_commission_to_zero(gateway, fake_store) -> None:
    policy_id = gateway.add_policy(_policy_form(commission=""))

    assert fake_store.collections[POLICIES][policy_id]["commission"] == 0.0


def test_add_policy_rejects_missing_required_fields_without_writing(gateway, fake_store) -> None:
    with pytest.raises(ValidationError) as info:
        gateway.add_policy(_policy_form(policy_number="", total_amount=" "))

    assert "Policy Number" in str(info.value)
    assert "Total Amount" in str(info.value)
    assert fake_store.calls_of("create") == []


@pytest.mark.parametrize(
    "overrides",
    [
        {"total_amount": "lots"},
        {"total_amount": "-1"},
        {"policy_date": "10.01.2024"},
        {"policy_type": "Life"},
    ],
)
def test_add_policy_rejects_malformed_values(gateway, fake_store, overrides) -> None:
    with pytest.raises(ValidationError):
        gateway.add_policy(_policy_form(**overrides))

    assert fake_store.calls == []


def test_update_policy_replaces_fields(gateway, fake_store) -> None:
    _seed_policy(fake_store, "p1", "7501")

    gateway.update_policy("p1", _policy_form(policy_number="POL-9", paid_to_insurer=True))

    stored = fake_store.collections[POLICIES]["p1"]
    assert stored["policyNumber"] == "POL-9"
    assert stored["paidToInsurer"] is True
    assert "createdAt" not in stored


def test_update_policy_requires_an_id(gateway, fake_store) -> None:
    with pytest.raises(ValidationError):
        gateway.update_policy(" ", _policy_form())

    assert fake_store.calls == []


def test_store_errors_propagate_unchanged(gateway, fake_store) -> None:
    with pytest.raises(StoreError) as info:
        gateway.update_policy("missing", _policy_form())

    assert "missing" in str(info.value)


def test_writes_require_a_signed_in_user(gateway, fake_store, fake_identity) -> None:
    fake_identity.logout()

    with pytest.raises(NotSignedInError):
        gateway.add_policy(_policy_form())
    with pytest.raises(NotSignedInError):
        gateway.add_ledger_entry(LedgerForm(date="2024-01-01", amount="5"))
    assert fake_store.calls_of("create") == []


def test_declined_policy_delete_makes_no_calls(gateway, fake_store) -> None:
    _seed_policy(fake_store, "p1", "7501")
    warnings = []

    def decline(warning: str) -> bool:
        warnings.append(warning)
        return False

    assert gateway.delete_policy("p1", decline) is None
    assert warnings == [DELETE_POLICY_WARNING]
    assert fake_store.calls == []


def test_policy_delete_cascades_to_linked_entries_only(gateway, fake_store) -> None:
    _seed_policy(fake_store, "p1", "7501")
    fake_store.seed(LEDGER, "e1", {"type": "Payment", "amount": 5, "policyId": "p1"})
    fake_store.seed(LEDGER, "e2", {"type": "Expense", "amount": 6, "policyId": "p2"})
    fake_store.seed(LEDGER, "e3", {"type": "Expense", "amount": 7, "policyId": "p1"})

    result = gateway.delete_policy("p1", lambda _warning: True)

    assert result.status is BatchStatus.COMPLETE
    assert fake_store.calls_of("delete") == [
        ("delete", POLICIES, "p1"),
        ("delete", LEDGER, "e1"),
        ("delete", LEDGER, "e3"),
    ]
    assert set(fake_store.collections[LEDGER]) == {"e2"}


def test_policy_delete_reports_partial_cascade(gateway, fake_store) -> None:
    _seed_policy(fake_store, "p1", "7501")
    fake_store.seed(LEDGER, "e1", {"type": "Payment", "amount": 5, "policyId": "p1"})
    fake_store.seed(LEDGER, "e2", {"type": "Payment", "amount": 5, "policyId": "p1"})
    fake_store.failures.add(("delete", "e2"))

    result = gateway.delete_policy("p1", lambda _warning: True)

    assert result.status is BatchStatus.PARTIAL
    assert [outcome.target_id for outcome in result.failed] == ["e2"]
    assert "PERMISSION_DENIED" in result.summary()
    assert "p1" not in fake_store.collections[POLICIES]


def test_policy_delete_failure_stops_before_cascade(gateway, fake_store) -> None:
    _seed_policy(fake_store, "p1", "7501")
    fake_store.seed(LEDGER, "e1", {"type": "Payment", "amount": 5, "policyId": "p1"})
    fake_store.failures.add(("delete", "p1"))

    with pytest.raises(StoreError):
        gateway.delete_policy("p1", lambda _warning: True)

    assert fake_store.calls_of("delete") == [("delete", POLICIES, "p1")]


def test_add_ledger_entry(gateway, fake_store, records) -> None:
    entry_id = gateway.add_ledger_entry(
        LedgerForm(type="Expense", date="2024-02-03", amount="40", reason=" Fuel ", policy_id="")
    )

    stored = fake_store.collections[LEDGER][entry_id]
    assert stored == {
        "type": "Expense",
        "date": "2024-02-03",
        "amount": 40.0,
        "reason": "Fuel",
        "policyId": None,
        "createdAt": "2024-05-10T09:30:00+00:00",
    }
    assert [entry.id for entry in records.ledger_entries] == [entry_id]


def test_add_ledger_entry_validates(gateway, fake_store) -> None:
    with pytest.raises(ValidationError):
        gateway.add_ledger_entry(LedgerForm(date="", amount=""))
    with pytest.raises(ValidationError):
        gateway.add_ledger_entry(LedgerForm(type="Refund", date="2024-02-03", amount="1"))

    assert fake_store.calls == []


def test_ledger_entry_delete_follows_confirmation(gateway, fake_store) -> None:
    fake_store.seed(LEDGER, "e1", {"type": "Payment", "amount": 5})
    seen = []

    assert gateway.delete_ledger_entry("e1", lambda warning: seen.append(warning) or False) is False
    assert fake_store.calls == []
    assert seen == [DELETE_LEDGER_WARNING]

    assert gateway.delete_ledger_entry("e1", lambda _warning: True) is True
    assert LEDGER in fake_store.collections and "e1" not in fake_store.collections[LEDGER]


def test_customer_update_fans_out_with_nested_keys(gateway, fake_store) -> None:
    _seed_policy(fake_store, "p1", "7501")
    _seed_policy(fake_store, "p2", "9999")
    _seed_policy(fake_store, "p3", "7501")

    result = gateway.update_customer_across_policies(
        "7501",
        CustomerForm(first_name="Ivan", last_name="Georgiev", city="Plovdiv", id_number="CHANGED"),
    )

    assert result.ok
    assert [call[2] for call in fake_store.calls_of("update")] == ["p1", "p3"]
    customer = fake_store.collections[POLICIES]["p3"]["customer"]
    assert customer["lastName"] == "Georgiev"
    assert customer["city"] == "Plovdiv"
    assert customer["idNumber"] == "7501"
    assert fake_store.collections[POLICIES]["p2"]["customer"]["lastName"] == "Name"


def test_customer_update_records_failed_policies(gateway, fake_store) -> None:
    _seed_policy(fake_store, "p1", "7501")
    _seed_policy(fake_store, "p2", "7501")
    fake_store.failures.add(("update", "p1"))

    result = gateway.update_customer_across_policies("7501", CustomerForm(first_name="Ivan"))

    assert result.status is BatchStatus.PARTIAL
    assert [outcome.target_id for outcome in result.succeeded] == ["p2"]
    assert [outcome.target_id for outcome in result.failed] == ["p1"]


def test_customer_update_requires_id_number(gateway: MutationGateway) -> None:
    with pytest.raises(ValidationError):
        gateway.update_customer_across_policies("", CustomerForm())
