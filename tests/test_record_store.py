"""Tests for the live record cache and its subscriptions."""

from __future__ import annotations

import pytest

from broker_console.core.errors import NotSignedInError, StoreError
from broker_console.repositories.boundaries import DocumentSnapshot, User
from broker_console.services.record_store import (
    LEDGER_CHANGED,
    POLICIES_CHANGED,
    USER_CHANGED,
    RecordStore,
)

U1_POLICIES = "artifacts/test/users/u1/policies"
U1_LEDGER = "artifacts/test/users/u1/payments_expenses"
U2_POLICIES = "artifacts/test/users/u2/policies"


def test_snapshots_replace_cached_records(records, fake_store) -> None:
    fake_store.seed(U1_POLICIES, "p1", {"policyNumber": "A", "totalAmount": "5"})
    fake_store.seed(U1_POLICIES, "p2", {"policyNumber": "B"})
    fake_store.seed(U1_LEDGER, "e1", {"type": "Expense", "amount": 3})

    assert [policy.policy_number for policy in records.policies] == ["A", "B"]
    assert [entry.id for entry in records.ledger_entries] == ["e1"]

    fake_store.collections[U1_POLICIES].pop("p1")
    fake_store.seed(U1_POLICIES, "p3", {"policyNumber": "C"})
    assert [policy.id for policy in records.policies] == ["p2", "p3"]


def test_listeners_hear_which_part_changed(records, fake_store) -> None:
    changes = []
    subscription = records.add_listener(changes.append)

    fake_store.seed(U1_POLICIES, "p1", {"policyNumber": "A"})
    fake_store.seed(U1_LEDGER, "e1", {"type": "Payment"})
    subscription.cancel()
    fake_store.seed(U1_LEDGER, "e2", {"type": "Payment"})

    assert changes == [POLICIES_CHANGED, LEDGER_CHANGED]


def test_switching_user_moves_subscriptions(records, fake_store, fake_identity) -> None:
    fake_store.seed(U1_POLICIES, "p1", {"policyNumber": "A"})
    changes = []
    records.add_listener(changes.append)

    fake_identity.sign_in(User(id="u2", email="second@example.com"))

    assert fake_store.listener_count(U1_POLICIES) == 0
    assert fake_store.listener_count(U1_LEDGER) == 0
    assert fake_store.listener_count(U2_POLICIES) == 1
    assert records.policies == ()
    assert records.policies_path() == U2_POLICIES
    assert changes[0] == USER_CHANGED


def test_logout_releases_subscriptions_and_clears_cache(records, fake_store, fake_identity) -> None:
    fake_store.seed(U1_POLICIES, "p1", {"policyNumber": "A"})

    fake_identity.logout()

    assert records.user is None
    assert records.policies == ()
    assert fake_store.listener_count(U1_POLICIES) == 0
    with pytest.raises(NotSignedInError):
        records.ledger_path()


def test_repeated_auth_callback_for_same_user_keeps_one_subscription(
    records, fake_store, fake_identity
) -> None:
    fake_identity.sign_in(User(id="u1", email="broker@example.com"))

    assert fake_store.listener_count(U1_POLICIES) == 1
    assert fake_store.listener_count(U1_LEDGER) == 1


def test_close_releases_everything(fake_store, fake_identity) -> None:
    store = RecordStore(fake_store, fake_identity, "test")
    store.start()
    fake_identity.sign_in(User(id="u1", email="broker@example.com"))
    assert fake_store.listener_count(U1_POLICIES) == 1

    store.close()
    fake_identity.sign_in(User(id="u2", email="second@example.com"))

    assert fake_store.listener_count(U1_POLICIES) == 0
    assert fake_store.listener_count(U2_POLICIES) == 0


def test_late_snapshot_from_previous_user_is_ignored(records, fake_store, fake_identity) -> None:
    previous_callback = next(
        callback for path, callback in fake_store.subscribed if path == U1_POLICIES
    )

    fake_identity.sign_in(User(id="u2", email="second@example.com"))
    previous_callback([DocumentSnapshot(id="p1", data={"policyNumber": "U1-ONLY"})])

    assert records.user.id == "u2"
    assert records.policies == ()


def test_failed_subscription_leaves_cache_signed_out(records, fake_store, fake_identity) -> None:
    fake_identity.logout()
    fake_store.failures.add(("subscribe", U1_LEDGER))

    with pytest.raises(StoreError):
        fake_identity.sign_in(User(id="u1", email="broker@example.com"))

    assert records.user is None
    assert fake_store.listener_count(U1_POLICIES) == 0
    with pytest.raises(NotSignedInError):
        records.policies_path()

    fake_store.failures.clear()
    fake_identity.sign_in(User(id="u1", email="broker@example.com"))

    assert fake_store.listener_count(U1_POLICIES) == 1
    assert fake_store.listener_count(U1_LEDGER) == 1
