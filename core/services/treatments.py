"""
Treatment sponsorship services.

Creation, the public listing, the donation recorder and the transparency
report.  The recorder is the only writer of ``Treatment.funded_amount``:
it locks the treatment row, appends the donation and stores the next
aggregate state from :mod:`core.services.ledger` in one transaction.
"""
from __future__ import annotations

import logging
import time
from decimal import Decimal
from typing import List, Optional, Tuple

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.conf import settings
from django.db import DatabaseError, OperationalError, transaction
from django.db.models import DecimalField, Sum, Value
from django.db.models.functions import Coalesce

from core.exceptions import ConflictError, NotFoundError, StorageError, ValidationError
from core.models import Donation, Treatment, User
from core.services import ledger
from core.services.audit import log_action

logger = logging.getLogger(__name__)


def treatment_group(treatment_id: int) -> str:
    return f"treatment.{treatment_id}"


def _state(t: Treatment) -> ledger.TreatmentState:
    return ledger.TreatmentState(
        id=t.id,
        patient_id=t.patient_id,
        goal_amount=t.goal_amount,
        funded_amount=t.funded_amount,
        status=t.status,
    )


def serialize_treatment(t: Treatment) -> dict:
    return {
        'id': t.id,
        'patient_id': t.patient_id,
        'title': t.title,
        'description': t.description,
        'category': t.category,
        'goal_amount': ledger.format_amount(t.goal_amount),
        'funded_amount': ledger.format_amount(t.funded_amount),
        'status': t.status,
        'consent_given': t.consent_given,
        'created_at': t.created_at.isoformat() if t.created_at else None,
        'updated_at': t.updated_at.isoformat() if t.updated_at else None,
    }


def serialize_public(t: Treatment) -> dict:
    return {
        'id': t.id,
        'title': t.title,
        'description': t.description,
        'category': t.category,
        'goal_amount': ledger.format_amount(t.goal_amount),
        'funded_amount': ledger.format_amount(t.funded_amount),
        'status': t.status,
        'created_at': t.created_at.isoformat() if t.created_at else None,
        'patient': {'name': t.patient.display_name, 'language': t.patient.language},
    }


def serialize_donation(d: Donation) -> dict:
    return {
        'id': d.id,
        'treatment_id': d.treatment_id,
        'amount': ledger.format_amount(d.amount),
        'receipt_url': d.receipt_url or None,
        'is_anonymous': d.is_anonymous,
        'created_at': d.created_at.isoformat() if d.created_at else None,
    }


@transaction.atomic
def create_treatment(patient: User, *, title: str, description: str, goal_amount, category: Optional[str]=None, consent_given: bool=False) -> Treatment:
    title = (title or '').strip()
    description = (description or '').strip()
    if not title:
        raise ValidationError('title is required', field='title')
    if not description:
        raise ValidationError('description is required', field='description')
    category = category or 'other'
    if category not in ledger.CATEGORIES:
        raise ValidationError(f'unknown category: {category}', field='category')
    state = ledger.new_treatment(patient.id, goal_amount)

    t = Treatment.objects.create(
        patient=patient,
        title=title,
        description=description,
        category=category,
        goal_amount=state.goal_amount,
        funded_amount=state.funded_amount,
        status=state.status,
        consent_given=bool(consent_given),
    )
    log_action(user=patient, action='treatment_create', object_type='treatment', object_id=t.id,
               detail={'goal': ledger.format_amount(t.goal_amount), 'category': category})
    logger.info("treatment %s created by patient %s goal=%s", t.id, patient.id, t.goal_amount)
    return t


def list_public_treatments() -> List[dict]:
    qs = (Treatment.objects.filter(status=Treatment.STATUS_ACTIVE)
          .select_related('patient')
          .order_by('-created_at', '-id'))
    return [serialize_public(t) for t in qs]


def _publish_funding(treatment_id: int, payload: dict) -> None:
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return
    async_to_sync(channel_layer.group_send)(treatment_group(treatment_id), {'type': 'treatment.funding', **payload})


def _record(donor: Optional[User], treatment_id: int, amount: Decimal, receipt_url: Optional[str], is_anonymous: bool) -> Tuple[Donation, Treatment]:
    with transaction.atomic():
        t = Treatment.objects.select_for_update().filter(pk=treatment_id).first()
        if t is None:
            raise NotFoundError(f'treatment {treatment_id} not found', field='treatment_id')
        nxt = ledger.apply_donation(_state(t), amount)

        donation = Donation.objects.create(
            donor=donor,
            treatment=t,
            amount=amount,
            receipt_url=receipt_url or None,
            is_anonymous=is_anonymous,
        )
        t.funded_amount = nxt.funded_amount
        t.status = nxt.status
        t.save(update_fields=['funded_amount', 'status', 'updated_at'])

        log_action(user=donor, action='donation_create', object_type='treatment', object_id=t.id,
                   detail={'donationId': donation.id, 'amount': ledger.format_amount(amount)})

        payload = {
            'treatment_id': t.id,
            'donation_id': donation.id,
            'amount': ledger.format_amount(amount),
            'funded_amount': ledger.format_amount(t.funded_amount),
            'goal_amount': ledger.format_amount(t.goal_amount),
            'status': t.status,
        }
        transaction.on_commit(lambda: _publish_funding(t.id, payload), robust=True)
    return donation, t


def donate(donor: Optional[User], treatment_id, amount, receipt_url: Optional[str]=None, *, is_anonymous: bool=False) -> Tuple[Donation, Treatment]:
    """Record one donation and return ``(donation, treatment)`` after commit.

    Input is validated before any row is touched.  Lock timeouts and
    deadlocks re-run the whole transaction with a growing pause; once
    ``LEDGER_MAX_ATTEMPTS`` is used up the caller gets ConflictError.
    """
    amount = ledger.parse_amount(amount)
    try:
        treatment_id = int(treatment_id)
    except (TypeError, ValueError):
        raise ValidationError('treatment_id must be an integer', field='treatment_id')

    max_attempts = max(1, int(getattr(settings, 'LEDGER_MAX_ATTEMPTS', 5)))
    backoff = float(getattr(settings, 'LEDGER_RETRY_BACKOFF', 0.05))
    attempt = 0
    while True:
        attempt += 1
        try:
            donation, t = _record(donor, treatment_id, amount, receipt_url, is_anonymous)
        except OperationalError as exc:
            if attempt >= max_attempts:
                logger.error("donation to treatment %s gave up after %s attempts: %s", treatment_id, attempt, exc)
                raise ConflictError('treatment is busy, please retry the donation') from exc
            logger.warning("donation to treatment %s hit %s (attempt %s/%s)", treatment_id, exc, attempt, max_attempts)
            time.sleep(backoff * attempt)
            continue
        except DatabaseError as exc:
            logger.exception("donation to treatment %s failed in storage", treatment_id)
            raise StorageError('could not store the donation') from exc
        logger.info("donation %s: %s to treatment %s (funded %s/%s, %s)",
                    donation.id, amount, t.id, t.funded_amount, t.goal_amount, t.status)
        return donation, t


def transparency_report(treatment_id) -> dict:
    try:
        t = Treatment.objects.get(pk=int(treatment_id))
    except (TypeError, ValueError, Treatment.DoesNotExist):
        raise NotFoundError(f'treatment {treatment_id} not found')

    donations = t.donations.select_related('donor').order_by('created_at', 'id')
    entries = [
        ledger.DonationEntry(
            donor_name=ledger.donor_label(d.donor.display_name if d.donor else None, d.is_anonymous),
            amount=d.amount,
            receipt_url=d.receipt_url or None,
            donated_at=d.created_at,
        )
        for d in donations
    ]
    return {
        'treatment': {
            'id': t.id,
            'title': t.title,
            'goal_amount': ledger.format_amount(t.goal_amount),
            'funded_amount': ledger.format_amount(t.funded_amount),
            'status': t.status,
        },
        'donations': [{
            'donor_name': e.donor_name,
            'amount': ledger.format_amount(e.amount),
            'receipt_url': e.receipt_url,
            'donated_at': e.donated_at.isoformat(),
        } for e in entries],
    }


def ledger_mismatches() -> List[dict]:
    """Treatments whose stored totals or status disagree with their donations."""
    qs = Treatment.objects.annotate(
        donated=Coalesce(
            Sum('donations__amount'),
            Value(Decimal('0.00')),
            output_field=DecimalField(max_digits=12, decimal_places=2),
        )
    ).order_by('id')
    problems = []
    for t in qs:
        donated = ledger.total([t.donated])
        expected_status = ledger.status_for(t.goal_amount, t.funded_amount, ledger.STATUS_ACTIVE)
        status_ok = t.status == ledger.STATUS_COMPLETED or t.status == expected_status
        if donated != t.funded_amount or not status_ok:
            problems.append({
                'treatment_id': t.id,
                'funded_amount': ledger.format_amount(t.funded_amount),
                'donated': ledger.format_amount(donated),
                'status': t.status,
            })
    return problems
