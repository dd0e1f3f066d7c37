"""Fold policies into one customer row per national id number."""

from __future__ import annotations

from typing import Iterable

from broker_console.models.customer import DerivedCustomer, PolicyRef
from broker_console.models.policy import Policy


def derive_customers(policies: Iterable[Policy]) -> list[DerivedCustomer]:
    """Return customers in order of first appearance.

    Policies without an embedded customer or id number are skipped. The first
    policy seen for an id number supplies the contact fields.
    """
    customers: dict[str, DerivedCustomer] = {}
    for policy in policies:
        customer = policy.customer
        if customer is None or not customer.id_number:
            continue

        row = customers.get(customer.id_number)
        if row is None:
            row = DerivedCustomer(
                id_number=customer.id_number,
                first_name=customer.first_name,
                last_name=customer.last_name,
                phone_number=customer.phone_number,
                address=customer.address,
                city=customer.city,
                postal_code=customer.postal_code,
            )
            customers[customer.id_number] = row

        row.policies_count += 1
        row.total_policy_value += policy.total_amount
        row.associated_policies.append(
            PolicyRef(
                id=policy.id,
                policy_number=policy.policy_number,
                policy_type=policy.policy_type,
                total_amount=policy.total_amount,
                policy_date=policy.policy_date,
            )
        )
    return list(customers.values())


def find_customer(policies: Iterable[Policy], id_number: str) -> DerivedCustomer | None:
    for row in derive_customers(policies):
        if row.id_number == id_number:
            return row
    return None


def policies_for_customer(policies: Iterable[Policy], id_number: str) -> list[Policy]:
    if not id_number:
        return []
    return [
        policy
        for policy in policies
        if policy.customer is not None and policy.customer.id_number == id_number
    ]
