"""
Treatment funding ledger: pure aggregate logic.

Nothing in this module touches the ORM.  The storage layer
(:mod:`core.services.treatments`) loads a :class:`TreatmentState`
snapshot, asks this module for the next state and writes it back inside
its own transaction.  All amounts are :class:`~decimal.Decimal` values
quantized to cents.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Iterable, Optional

from core.exceptions import ValidationError

CENT = Decimal('0.01')
MAX_DIGITS = 10

STATUS_ACTIVE = 'active'
STATUS_FUNDED = 'funded'
STATUS_COMPLETED = 'completed'

CATEGORIES = ('surgery', 'cancer', 'dialysis', 'rehabilitation', 'other')

ANONYMOUS_DONOR = 'Anonymous Donor'


@dataclass(frozen=True)
class TreatmentState:
    id: Optional[int]
    patient_id: int
    goal_amount: Decimal
    funded_amount: Decimal
    status: str


@dataclass(frozen=True)
class DonationEntry:
    donor_name: str
    amount: Decimal
    receipt_url: Optional[str]
    donated_at: datetime


def parse_amount(value, *, field: str = 'amount') -> Decimal:
    """Return ``value`` as a positive two-place Decimal or raise ValidationError.

    Floats are converted through ``str`` so ``0.1`` stays ``0.10`` instead of
    carrying binary noise.  Extra decimal places are rejected, not rounded.
    """
    if value is None or isinstance(value, bool) or value == '':
        raise ValidationError(f'{field} is required', field=field)
    if isinstance(value, float):
        value = str(value)
    try:
        amount = Decimal(str(value).strip()) if not isinstance(value, Decimal) else value
    except (InvalidOperation, ValueError):
        raise ValidationError(f'{field} must be a decimal number', field=field)
    if not amount.is_finite():
        raise ValidationError(f'{field} must be a decimal number', field=field)
    if amount <= 0:
        raise ValidationError(f'{field} must be greater than zero', field=field)
    # checked before quantize, which overflows the decimal context on huge exponents
    if amount.adjusted() >= MAX_DIGITS - 2:
        raise ValidationError(f'{field} must have at most {MAX_DIGITS} digits', field=field)
    if amount != amount.quantize(CENT):
        raise ValidationError(f'{field} must have at most 2 decimal places', field=field)
    amount = amount.quantize(CENT)
    if len(amount.as_tuple().digits) > MAX_DIGITS:
        raise ValidationError(f'{field} must have at most {MAX_DIGITS} digits', field=field)
    return amount


def new_treatment(patient_id: int, goal_amount) -> TreatmentState:
    return TreatmentState(
        id=None,
        patient_id=patient_id,
        goal_amount=parse_amount(goal_amount, field='goal_amount'),
        funded_amount=Decimal('0.00'),
        status=STATUS_ACTIVE,
    )


def status_for(goal_amount: Decimal, funded_amount: Decimal, current: str) -> str:
    # funded is sticky; completed is never left through the ledger
    if current in (STATUS_FUNDED, STATUS_COMPLETED):
        return current
    return STATUS_FUNDED if funded_amount >= goal_amount else STATUS_ACTIVE


def apply_donation(state: TreatmentState, amount) -> TreatmentState:
    """Return the state after one donation of ``amount``."""
    amount = parse_amount(amount)
    if state.status == STATUS_COMPLETED:
        raise ValidationError('treatment is completed and no longer accepts donations', field='treatment_id')
    funded = (state.funded_amount + amount).quantize(CENT)
    if len(funded.as_tuple().digits) > MAX_DIGITS:
        raise ValidationError('donation would exceed the maximum fundable amount', field='amount')
    return replace(state, funded_amount=funded, status=status_for(state.goal_amount, funded, state.status))


def total(amounts: Iterable[Decimal]) -> Decimal:
    return sum((Decimal(a) for a in amounts), Decimal('0.00')).quantize(CENT)


def donor_label(donor_name: Optional[str], is_anonymous: bool) -> str:
    if is_anonymous or not donor_name:
        return ANONYMOUS_DONOR
    return donor_name


def format_amount(amount: Decimal) -> str:
    """Exact two-place decimal string used on the wire."""
    return str(Decimal(amount).quantize(CENT))
