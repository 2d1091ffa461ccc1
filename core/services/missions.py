from typing import List, Optional

from django.db import IntegrityError, transaction

from core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from core.models import MedicalMission, MissionRequest, User
from core.services.audit import log_action


def serialize_mission(m: MedicalMission) -> dict:
    return {
        'id': m.id,
        'title': m.title,
        'description': m.description,
        'ngo_id': m.ngo_id,
        'ngo_name': m.ngo.display_name if m.ngo_id else None,
        'location': m.location,
        'start_date': m.start_date.isoformat(),
        'end_date': m.end_date.isoformat(),
        'status': m.status,
        'specialties': list(m.specialties or []),
    }


def serialize_request(r: MissionRequest) -> dict:
    return {
        'id': r.id,
        'mission_id': r.mission_id,
        'patient': {'id': r.patient_id, 'name': r.patient.display_name},
        'status': r.status,
        'notes': r.notes,
        'created_at': r.created_at.isoformat() if r.created_at else None,
    }


def list_upcoming(location: Optional[str]=None) -> List[dict]:
    qs = MedicalMission.objects.filter(status=MedicalMission.STATUS_UPCOMING).select_related('ngo')
    if location:
        qs = qs.filter(location__icontains=location.strip())
    return [serialize_mission(m) for m in qs.order_by('start_date', 'id')]


def create_mission(ngo: User, *, title: str, description: str, location: str, start_date, end_date, specialties=None) -> MedicalMission:
    if end_date < start_date:
        raise ValidationError('end_date must not be before start_date', field='end_date')
    m = MedicalMission.objects.create(
        title=title.strip(), description=description.strip(), ngo=ngo, location=location.strip(),
        start_date=start_date, end_date=end_date,
        specialties=[s.strip() for s in (specialties or []) if s and s.strip()],
    )
    log_action(user=ngo, action='mission_create', object_type='mission', object_id=m.id,
               detail={'location': m.location})
    return m


def request_join(patient: User, mission_id: int, notes: Optional[str]=None) -> MissionRequest:
    mission = MedicalMission.objects.filter(id=mission_id, status=MedicalMission.STATUS_UPCOMING).first()
    if mission is None:
        raise NotFoundError('mission not found or not open for requests')
    if MissionRequest.objects.filter(mission=mission, patient=patient).exists():
        raise ConflictError('you already requested to join this mission', field='mission_id')
    try:
        with transaction.atomic():
            r = MissionRequest.objects.create(mission=mission, patient=patient, notes=notes or None)
    except IntegrityError as exc:
        raise ConflictError('you already requested to join this mission', field='mission_id') from exc
    return r


def _owned_mission(ngo: User, mission_id: int) -> MedicalMission:
    mission = MedicalMission.objects.filter(id=mission_id).first()
    if mission is None:
        raise NotFoundError('mission not found')
    if mission.ngo_id != ngo.id:
        raise ForbiddenError('Only the organising NGO can manage this mission.')
    return mission


def list_requests(ngo: User, mission_id: int) -> List[dict]:
    mission = _owned_mission(ngo, mission_id)
    qs = mission.requests.select_related('patient').order_by('created_at', 'id')
    return [serialize_request(r) for r in qs]


@transaction.atomic
def review_request(ngo: User, request_id: int, status: str) -> MissionRequest:
    r = MissionRequest.objects.select_for_update().select_related('mission').filter(id=request_id).first()
    if r is None:
        raise NotFoundError('mission request not found')
    if r.mission.ngo_id != ngo.id:
        raise ForbiddenError('Only the organising NGO can review requests.')
    if r.status != MissionRequest.STATUS_PENDING:
        raise ValidationError(f'request is already {r.status}', field='status')
    r.status = status
    r.save(update_fields=['status', 'updated_at'])
    log_action(user=ngo, action='mission_review', object_type='mission_request', object_id=r.id,
               detail={'status': status})
    return r
