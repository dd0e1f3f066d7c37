"""Policy domain models."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from broker_console.core.validation import (
    parse_bool,
    parse_date,
    parse_decimal,
    parse_timestamp,
)


class PolicyType(str, Enum):
    """Kinds of insurance transaction a policy record can hold."""

    NEW_POLICY = "New Policy"
    POLICY_PAYMENT = "Policy Payment"
    TOLL = "Toll"
    ASSESSMENT = "Assessment"
    STICKER = "Sticker"
    CERTIFICATE = "Certificate"


# Model attribute -> stored document key for the embedded customer block.
CUSTOMER_DOCUMENT_FIELDS = {
    "first_name": "firstName",
    "last_name": "lastName",
    "phone_number": "phoneNumber",
    "id_number": "idNumber",
    "address": "address",
    "city": "city",
    "postal_code": "postalCode",
}


@dataclass(frozen=True)
class Customer:
    """Customer snapshot embedded in a policy."""

    first_name: str = ""
    last_name: str = ""
    phone_number: str = ""
    id_number: str = ""
    address: str = ""
    city: str = ""
    postal_code: str = ""

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @classmethod
    def from_document(cls, raw: Any) -> Customer | None:
        if not isinstance(raw, dict):
            return None
        values = {
            attr: str(raw.get(key) or "") for attr, key in CUSTOMER_DOCUMENT_FIELDS.items()
        }
        return cls(**values)


@dataclass(frozen=True)
class Policy:
    """One insurance transaction as read from the store."""

    id: str
    policy_type: str
    policy_number: str
    policy_date: date | None
    valid_until: date | None
    total_amount: Decimal
    commission: Decimal
    vehicle_number: str | None
    insurance_type: str | None
    paid_by_customer: bool
    paid_to_insurer: bool
    customer: Customer | None
    created_at: datetime | None

    @classmethod
    def from_document(cls, doc_id: str, data: dict[str, Any]) -> Policy:
        """Build a typed policy from a stored document, coercing loose values."""
        return cls(
            id=doc_id,
            policy_type=str(data.get("policyType") or ""),
            policy_number=str(data.get("policyNumber") or ""),
            policy_date=parse_date(data.get("policyDate")),
            valid_until=parse_date(data.get("validUntil")),
            total_amount=parse_decimal(data.get("totalAmount")),
            commission=parse_decimal(data.get("commission")),
            vehicle_number=data.get("vehicleNumber") or None,
            insurance_type=data.get("insuranceType") or None,
            paid_by_customer=parse_bool(data.get("paidByCustomer")),
            paid_to_insurer=parse_bool(data.get("paidToInsurer")),
            customer=Customer.from_document(data.get("customer")),
            created_at=parse_timestamp(data.get("createdAt")),
        )
