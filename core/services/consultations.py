from typing import List, Optional

from django.db import transaction

from core.exceptions import ForbiddenError, NotFoundError, ValidationError
from core.models import Consultation, User
from core.services.audit import log_action


def _person(user: User) -> dict:
    return {'id': user.id, 'name': user.display_name, 'language': user.language}


def serialize_consultation(c: Consultation, *, viewer: Optional[User]=None) -> dict:
    data = {
        'id': c.id,
        'patient_id': c.patient_id,
        'doctor_id': c.doctor_id,
        'scheduled_at': c.scheduled_at.isoformat(),
        'mode': c.mode,
        'status': c.status,
        'needs_translation': c.needs_translation,
        'created_at': c.created_at.isoformat() if c.created_at else None,
    }
    if viewer is not None and viewer.id == c.patient_id:
        data['doctor'] = _person(c.doctor)
    elif viewer is not None and viewer.id == c.doctor_id:
        data['patient'] = _person(c.patient)
    return data


@transaction.atomic
def book_consultation(patient: User, *, doctor_id: int, scheduled_at, mode: str='video') -> Consultation:
    doctor = User.objects.filter(id=doctor_id, role=User.ROLE_DOCTOR).first()
    if doctor is None:
        raise ValidationError('doctor_id does not refer to a doctor', field='doctor_id')
    c = Consultation.objects.create(
        patient=patient,
        doctor=doctor,
        scheduled_at=scheduled_at,
        mode=mode or 'video',
        needs_translation=patient.language != doctor.language,
    )
    log_action(user=patient, action='consultation_book', object_type='consultation', object_id=c.id,
               detail={'doctorId': doctor.id, 'mode': c.mode})
    return c


def list_consultations(user: User) -> List[dict]:
    if user.role == User.ROLE_PATIENT:
        qs = Consultation.objects.filter(patient=user)
    elif user.role == User.ROLE_DOCTOR:
        qs = Consultation.objects.filter(doctor=user)
    else:
        raise ForbiddenError('Only patients and doctors have consultations.')
    qs = qs.select_related('patient', 'doctor').order_by('scheduled_at', 'id')
    return [serialize_consultation(c, viewer=user) for c in qs]


@transaction.atomic
def set_status(user: User, consultation_id: int, status: str) -> Consultation:
    c = Consultation.objects.select_for_update().filter(id=consultation_id).first()
    if c is None:
        raise NotFoundError('consultation not found')
    if user.id not in (c.patient_id, c.doctor_id):
        raise ForbiddenError('Not a participant of this consultation.')
    if user.id == c.patient_id and status != Consultation.STATUS_CANCELLED:
        raise ValidationError('patients can only cancel a consultation', field='status')
    if c.status != Consultation.STATUS_SCHEDULED and status != c.status:
        raise ValidationError(f'consultation is already {c.status}', field='status')
    c.status = status
    c.save(update_fields=['status', 'updated_at'])
    log_action(user=user, action='consultation_status', object_type='consultation', object_id=c.id,
               detail={'status': status})
    return c
