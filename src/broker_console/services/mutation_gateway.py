"""Validated writes for policies, ledger entries, and customer details."""

from __future__ import annotations

import logging
from typing import Any, Callable

from broker_console.core.errors import StoreError, ValidationError
from broker_console.core.validation import (
    ZERO,
    require_fields,
    validate_amount,
    validate_date,
)
from broker_console.models.forms import CustomerForm, LedgerForm, PolicyForm
from broker_console.models.ledger import LedgerType
from broker_console.models.policy import CUSTOMER_DOCUMENT_FIELDS, PolicyType
from broker_console.models.results import BatchResult
from broker_console.repositories.boundaries import DocumentStore
from broker_console.services.customer_deriver import policies_for_customer
from broker_console.services.record_store import RecordStore

logger = logging.getLogger(__name__)

Confirm = Callable[[str], bool]

DELETE_POLICY_WARNING = (
    "Delete this policy? Its payments and expenses will be deleted too. "
    "This cannot be undone."
)
DELETE_LEDGER_WARNING = "Delete this payment/expense entry? This cannot be undone."

# Customer fields a customer-wide edit may change; the id number is the key.
EDITABLE_CUSTOMER_FIELDS = {
    attr: key for attr, key in CUSTOMER_DOCUMENT_FIELDS.items() if attr != "id_number"
}


class MutationGateway:
    """Validates form input and forwards writes to the document store."""

    def __init__(self, store: DocumentStore, records: RecordStore):
        self._store = store
        self._records = records

    def add_policy(self, form: PolicyForm) -> str:
        """Validate, coerce, and create a policy stamped with the store's clock."""
        fields = self._policy_fields(form)
        fields["createdAt"] = self._store.server_timestamp()
        policy_id = self._store.create(self._records.policies_path(), fields)
        logger.info("Created policy %s (%s)", policy_id, fields["policyNumber"])
        return policy_id

    def update_policy(self, policy_id: str, form: PolicyForm) -> None:
        """Replace every field of a policy except its id and creation time."""
        if not (policy_id or "").strip():
            raise ValidationError("Policy ID is missing.")
        fields = self._policy_fields(form)
        self._store.update(self._records.policies_path(), policy_id, fields)
        logger.info("Updated policy %s", policy_id)

    def delete_policy(self, policy_id: str, confirm: Confirm) -> BatchResult | None:
        """Delete a policy, then each ledger entry linked to it.

        Returns None when the confirmation is declined. A failure deleting the
        policy itself propagates; failures on linked entries are recorded in the
        result so a partial cascade can be reported.
        """
        if not (policy_id or "").strip():
            raise ValidationError("Policy ID is missing.")
        if not confirm(DELETE_POLICY_WARNING):
            return None

        policies_path = self._records.policies_path()
        ledger_path = self._records.ledger_path()
        linked = [entry for entry in self._records.ledger_entries if entry.policy_id == policy_id]

        result = BatchResult(operation="Delete policy")
        self._store.delete(policies_path, policy_id)
        result.record_success(policy_id, "delete policy")

        for entry in linked:
            try:
                self._store.delete(ledger_path, entry.id)
            except StoreError as error:
                result.record_failure(entry.id, "delete ledger entry", error)
            else:
                result.record_success(entry.id, "delete ledger entry")

        self._log_batch(result, policy_id)
        return result

    def add_ledger_entry(self, form: LedgerForm) -> str:
        require_fields({"Date": form.date, "Amount": form.amount, "Type": form.type})
        ledger_type = self._choice(form.type, LedgerType, "Type")
        amount = validate_amount(form.amount, "Amount")
        entry_date = validate_date(form.date, "Date")

        fields = {
            "type": ledger_type,
            "date": entry_date.isoformat(),
            "amount": float(amount),
            "reason": form.reason.strip(),
            "policyId": form.policy_id.strip() or None,
            "createdAt": self._store.server_timestamp(),
        }
        entry_id = self._store.create(self._records.ledger_path(), fields)
        logger.info("Created %s entry %s", ledger_type, entry_id)
        return entry_id

    def delete_ledger_entry(self, entry_id: str, confirm: Confirm) -> bool:
        """Delete one entry after confirmation; returns False when declined."""
        if not (entry_id or "").strip():
            raise ValidationError("Entry ID is missing.")
        if not confirm(DELETE_LEDGER_WARNING):
            return False
        self._store.delete(self._records.ledger_path(), entry_id)
        logger.info("Deleted ledger entry %s", entry_id)
        return True

    def update_customer_across_policies(self, id_number: str, form: CustomerForm) -> BatchResult:
        """Write the customer's contact fields into every policy sharing the id number."""
        id_number = (id_number or "").strip()
        if not id_number:
            raise ValidationError("Customer ID Number is missing.")

        path = self._records.policies_path()
        fields = {
            f"customer.{key}": getattr(form, attr).strip()
            for attr, key in EDITABLE_CUSTOMER_FIELDS.items()
        }

        result = BatchResult(operation="Update customer")
        for policy in policies_for_customer(self._records.policies, id_number):
            try:
                self._store.update(path, policy.id, fields)
            except StoreError as error:
                result.record_failure(policy.id, "update policy customer", error)
            else:
                result.record_success(policy.id, "update policy customer")

        self._log_batch(result, id_number)
        return result

    def _policy_fields(self, form: PolicyForm) -> dict[str, Any]:
        customer = form.customer
        require_fields(
            {
                "Policy Number": form.policy_number,
                "Total Amount": form.total_amount,
                "Policy Date": form.policy_date,
                "Valid Until": form.valid_until,
                "Customer First Name": customer.first_name,
                "Customer Last Name": customer.last_name,
            }
        )
        policy_type = self._choice(form.policy_type, PolicyType, "Policy Type")
        total_amount = validate_amount(form.total_amount, "Total Amount")
        commission = validate_amount(form.commission, "Commission", default=ZERO)
        policy_date = validate_date(form.policy_date, "Policy Date")
        valid_until = validate_date(form.valid_until, "Valid Until")

        return {
            "policyType": policy_type,
            "policyNumber": form.policy_number.strip(),
            "policyDate": policy_date.isoformat(),
            "validUntil": valid_until.isoformat(),
            "totalAmount": float(total_amount),
            "commission": float(commission),
            "vehicleNumber": form.vehicle_number.strip(),
            "insuranceType": form.insurance_type.strip(),
            "paidByCustomer": bool(form.paid_by_customer),
            "paidToInsurer": bool(form.paid_to_insurer),
            "customer": {
                key: getattr(customer, attr).strip()
                for attr, key in CUSTOMER_DOCUMENT_FIELDS.items()
            },
        }

    @staticmethod
    def _choice(value: str, choices: type, field_name: str) -> str:
        allowed = [member.value for member in choices]
        if value not in allowed:
            raise ValidationError(f"{field_name} must be one of: {', '.join(allowed)}.")
        return allowed[allowed.index(value)]

    @staticmethod
    def _log_batch(result: BatchResult, subject: str) -> None:
        if result.ok:
            logger.info("%s %s: %d writes", result.operation, subject, len(result.outcomes))
        else:
            logger.warning("%s %s: %s", result.operation, subject, result.summary())
