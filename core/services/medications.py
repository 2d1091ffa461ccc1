"""
Medicine and equipment coordination.

Providers (pharmacies, NGOs, donors) list stock; any user can request an
item; NGOs and admins fulfil requests.  Fulfilment locks both the request
and the stock row so concurrent fulfilments never drive stock below zero.
"""
import logging
from typing import List

from django.db import transaction

from core.exceptions import NotFoundError, ValidationError
from core.models import Medication, MedicationRequest, User
from core.services.audit import log_action

logger = logging.getLogger(__name__)

PROVIDER_TYPE_BY_ROLE = {
    User.ROLE_NGO: 'ngo',
    User.ROLE_DONOR: 'donor',
    User.ROLE_ADMIN: 'pharmacy',
}


def serialize_medication(m: Medication) -> dict:
    return {
        'id': m.id,
        'name': m.name,
        'description': m.description,
        'quantity': m.quantity,
        'category': m.category,
        'provider_type': m.provider_type,
        'provider_id': m.provider_id,
        'created_at': m.created_at.isoformat() if m.created_at else None,
    }


def serialize_request(r: MedicationRequest) -> dict:
    return {
        'id': r.id,
        'medication_id': r.medication_id,
        'requester_id': r.requester_id,
        'status': r.status,
        'delivery_address': r.delivery_address,
        'fulfilled_by': r.fulfilled_by_id,
        'created_at': r.created_at.isoformat() if r.created_at else None,
    }


def list_available() -> List[dict]:
    qs = Medication.objects.filter(quantity__gt=0).order_by('-created_at', '-id')
    return [serialize_medication(m) for m in qs]


def add_stock(provider: User, *, name: str, description: str='', quantity: int=0, category: str='medicine') -> Medication:
    m = Medication.objects.create(
        name=name.strip(),
        description=description or '',
        quantity=quantity,
        category=category,
        provider_type=PROVIDER_TYPE_BY_ROLE.get(provider.role, 'pharmacy'),
        provider=provider,
    )
    log_action(user=provider, action='medication_add', object_type='medication', object_id=m.id,
               detail={'quantity': quantity})
    return m


def request_item(requester: User, *, medication_id: int, delivery_address: str='') -> MedicationRequest:
    m = Medication.objects.filter(id=medication_id).first()
    if m is None:
        raise ValidationError('unknown medication', field='medication_id')
    if m.quantity <= 0:
        raise ValidationError('medication is out of stock', field='medication_id')
    r = MedicationRequest.objects.create(requester=requester, medication=m, delivery_address=delivery_address or None)
    log_action(user=requester, action='medication_request', object_type='medication_request', object_id=r.id,
               detail={'medicationId': m.id})
    return r


@transaction.atomic
def fulfill_request(actor: User, request_id: int) -> MedicationRequest:
    r = MedicationRequest.objects.select_for_update().filter(id=request_id).first()
    if r is None:
        raise NotFoundError('medication request not found')
    if r.status != MedicationRequest.STATUS_PENDING:
        raise ValidationError(f'request is already {r.status}', field='status')
    m = Medication.objects.select_for_update().get(id=r.medication_id)
    if m.quantity <= 0:
        raise ValidationError('medication is out of stock', field='medication_id')

    m.quantity -= 1
    m.save(update_fields=['quantity', 'updated_at'])
    r.status = MedicationRequest.STATUS_FULFILLED
    r.fulfilled_by = actor
    r.save(update_fields=['status', 'fulfilled_by', 'updated_at'])

    log_action(user=actor, action='medication_fulfill', object_type='medication_request', object_id=r.id,
               detail={'medicationId': m.id, 'remaining': m.quantity})
    logger.info("medication request %s fulfilled by %s, %s left of medication %s", r.id, actor.id, m.quantity, m.id)
    return r
