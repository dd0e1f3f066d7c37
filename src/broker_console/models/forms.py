"""Immutable form states and the reducers that update them."""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from typing import Any, TypeVar

from broker_console.models.ledger import LedgerType
from broker_console.models.policy import Policy, PolicyType

SET_FIELD = "set_field"
SET_CUSTOMER_FIELD = "set_customer_field"
LOAD = "load"
RESET = "reset"
TOGGLE_MODE = "toggle_mode"

FormT = TypeVar("FormT")


@dataclass(frozen=True)
class FormAction:
    """One user edit dispatched to a form reducer."""

    kind: str
    field: str | None = None
    value: Any = None


@dataclass(frozen=True)
class CustomerForm:
    first_name: str = ""
    last_name: str = ""
    phone_number: str = ""
    id_number: str = ""
    address: str = ""
    city: str = ""
    postal_code: str = ""

    @classmethod
    def from_customer(cls, customer: Any) -> CustomerForm:
        """Preload from an embedded or derived customer."""
        if customer is None:
            return cls()
        return cls(**{item.name: getattr(customer, item.name, "") or "" for item in fields(cls)})


@dataclass(frozen=True)
class PolicyForm:
    policy_type: str = PolicyType.NEW_POLICY.value
    policy_number: str = ""
    policy_date: str = ""
    valid_until: str = ""
    total_amount: str = ""
    commission: str = ""
    vehicle_number: str = ""
    insurance_type: str = ""
    paid_by_customer: bool = False
    paid_to_insurer: bool = False
    customer: CustomerForm = field(default_factory=CustomerForm)

    @classmethod
    def from_policy(cls, policy: Policy) -> PolicyForm:
        """Preload the edit dialog from a stored policy."""
        return cls(
            policy_type=policy.policy_type or PolicyType.NEW_POLICY.value,
            policy_number=policy.policy_number,
            policy_date=policy.policy_date.isoformat() if policy.policy_date else "",
            valid_until=policy.valid_until.isoformat() if policy.valid_until else "",
            total_amount=str(policy.total_amount),
            commission=str(policy.commission),
            vehicle_number=policy.vehicle_number or "",
            insurance_type=policy.insurance_type or "",
            paid_by_customer=policy.paid_by_customer,
            paid_to_insurer=policy.paid_to_insurer,
            customer=CustomerForm.from_customer(policy.customer),
        )


@dataclass(frozen=True)
class LedgerForm:
    type: str = LedgerType.PAYMENT.value
    date: str = ""
    amount: str = ""
    reason: str = ""
    policy_id: str = ""


@dataclass(frozen=True)
class AuthForm:
    email: str = ""
    password: str = ""
    is_login: bool = True


def _set_field(state: FormT, name: str | None, value: Any, skip: tuple[str, ...] = ()) -> FormT:
    allowed = {item.name: item for item in fields(state)}
    if name not in allowed or name in skip:
        raise ValueError(f"Unknown field for {type(state).__name__}: {name}")
    current = getattr(state, name)
    if isinstance(current, bool):
        value = bool(value)
    else:
        value = "" if value is None else str(value)
    return replace(state, **{name: value})


def _load(state: FormT, value: Any) -> FormT:
    if not isinstance(value, type(state)):
        raise ValueError(f"Cannot load {type(value).__name__} into {type(state).__name__}")
    return value


def reduce_customer_form(state: CustomerForm, action: FormAction) -> CustomerForm:
    if action.kind == SET_FIELD:
        return _set_field(state, action.field, action.value)
    if action.kind == LOAD:
        return _load(state, action.value)
    if action.kind == RESET:
        return CustomerForm()
    raise ValueError(f"Unsupported action: {action.kind}")


def reduce_policy_form(state: PolicyForm, action: FormAction) -> PolicyForm:
    if action.kind == SET_FIELD:
        return _set_field(state, action.field, action.value, skip=("customer",))
    if action.kind == SET_CUSTOMER_FIELD:
        customer = reduce_customer_form(
            state.customer, FormAction(SET_FIELD, action.field, action.value)
        )
        return replace(state, customer=customer)
    if action.kind == LOAD:
        return _load(state, action.value)
    if action.kind == RESET:
        return PolicyForm()
    raise ValueError(f"Unsupported action: {action.kind}")


def reduce_ledger_form(state: LedgerForm, action: FormAction) -> LedgerForm:
    if action.kind == SET_FIELD:
        return _set_field(state, action.field, action.value)
    if action.kind == LOAD:
        return _load(state, action.value)
    if action.kind == RESET:
        return LedgerForm()
    raise ValueError(f"Unsupported action: {action.kind}")


def reduce_auth_form(state: AuthForm, action: FormAction) -> AuthForm:
    if action.kind == SET_FIELD:
        return _set_field(state, action.field, action.value, skip=("is_login",))
    if action.kind == TOGGLE_MODE:
        return replace(state, is_login=not state.is_login, password="")
    if action.kind == RESET:
        return AuthForm(is_login=state.is_login)
    raise ValueError(f"Unsupported action: {action.kind}")
