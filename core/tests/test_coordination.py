"""
Consultations, medications, health alerts, therapy chats and medical
missions.
"""
from datetime import date, timedelta

import pytest
from rest_framework.test import APIClient

from core.models import ChatMessage, Consultation, MedicalMission, Medication, MedicationRequest, MissionRequest

pytestmark = pytest.mark.django_db


def as_user(user):
    client = APIClient()
    client.force_authenticate(user)
    return client


# ---------------------------------------------------------------------------
# Consultations
# ---------------------------------------------------------------------------

def test_patient_books_consultation_with_translation_flag(make_user):
    patient = make_user('patient', language='ar')
    doctor = make_user('doctor', language='en')
    r = as_user(patient).post('/api/consultations', {
        'doctor_id': doctor.id, 'scheduled_at': '2030-01-05T10:00:00Z', 'mode': 'audio',
    }, format='json')
    assert r.status_code == 201
    assert r.data['consultation']['needs_translation'] is True
    assert r.data['consultation']['mode'] == 'audio'
    assert r.data['consultation']['doctor']['id'] == doctor.id


def test_booking_requires_a_doctor(make_user):
    patient = make_user('patient')
    other = make_user('donor')
    r = as_user(patient).post('/api/consultations', {
        'doctor_id': other.id, 'scheduled_at': '2030-01-05T10:00:00Z',
    }, format='json')
    assert r.status_code == 400
    assert r.data['error']['field'] == 'doctor_id'


def test_only_patients_book(make_user):
    doctor = make_user('doctor')
    r = as_user(doctor).post('/api/consultations', {
        'doctor_id': doctor.id, 'scheduled_at': '2030-01-05T10:00:00Z',
    }, format='json')
    assert r.status_code == 403


def test_consultation_lists_are_per_participant(make_user):
    patient = make_user('patient')
    doctor = make_user('doctor')
    as_user(patient).post('/api/consultations', {
        'doctor_id': doctor.id, 'scheduled_at': '2030-01-05T10:00:00Z',
    }, format='json')

    mine = as_user(patient).get('/api/consultations')
    assert len(mine.data['consultations']) == 1
    assert mine.data['consultations'][0]['mode'] == 'video'
    theirs = as_user(doctor).get('/api/consultations')
    assert theirs.data['consultations'][0]['patient']['id'] == patient.id
    assert as_user(make_user('patient')).get('/api/consultations').data['consultations'] == []
    assert as_user(make_user('donor')).get('/api/consultations').status_code == 403


def test_consultation_status_rules(make_user):
    patient = make_user('patient')
    doctor = make_user('doctor')
    c = Consultation.objects.create(patient=patient, doctor=doctor, scheduled_at='2030-01-05T10:00:00Z')
    url = f'/api/consultations/{c.id}/status'

    assert as_user(patient).put(url, {'status': 'completed'}, format='json').status_code == 400
    assert as_user(make_user('doctor')).put(url, {'status': 'completed'}, format='json').status_code == 403
    assert as_user(doctor).put('/api/consultations/999/status', {'status': 'completed'}, format='json').status_code == 404

    r = as_user(doctor).put(url, {'status': 'completed'}, format='json')
    assert r.status_code == 200
    assert r.data['consultation']['status'] == 'completed'


def test_finished_consultation_cannot_be_reopened(make_user):
    patient = make_user('patient')
    doctor = make_user('doctor')
    done = Consultation.objects.create(patient=patient, doctor=doctor, scheduled_at='2030-01-05T10:00:00Z',
                                       status=Consultation.STATUS_COMPLETED)
    r = as_user(patient).put(f'/api/consultations/{done.id}/status', {'status': 'cancelled'}, format='json')
    assert r.status_code == 400
    assert r.data['error']['field'] == 'status'

    c = Consultation.objects.create(patient=patient, doctor=doctor, scheduled_at='2030-01-06T10:00:00Z')
    url = f'/api/consultations/{c.id}/status'
    assert as_user(patient).put(url, {'status': 'cancelled'}, format='json').status_code == 200
    r = as_user(doctor).put(url, {'status': 'scheduled'}, format='json')
    assert r.status_code == 400
    assert r.data['error']['code'] == 'validation_error'
    c.refresh_from_db()
    assert c.status == Consultation.STATUS_CANCELLED


# ---------------------------------------------------------------------------
# Medications
# ---------------------------------------------------------------------------

def test_providers_list_stock_and_public_sees_available(make_user):
    ngo = make_user('ngo')
    admin = make_user('admin')
    r = as_user(ngo).post('/api/medications', {'name': 'Insulin', 'quantity': 5}, format='json')
    assert r.status_code == 201
    assert r.data['medication']['provider_type'] == 'ngo'
    r = as_user(admin).post('/api/medications', {'name': 'Crutches', 'quantity': 0, 'category': 'equipment'}, format='json')
    assert r.data['medication']['provider_type'] == 'pharmacy'

    assert as_user(make_user('patient')).post('/api/medications', {'name': 'x'}, format='json').status_code == 403

    available = APIClient().get('/api/medications/available')
    assert available.status_code == 200
    assert [m['name'] for m in available.data['medications']] == ['Insulin']


def test_request_and_fulfil_medication(make_user):
    ngo = make_user('ngo')
    patient = make_user('patient')
    med = Medication.objects.create(name='Insulin', quantity=1, provider=ngo, provider_type='ngo')

    r = as_user(patient).post('/api/medications/requests',
                              {'medication_id': med.id, 'delivery_address': 'Gaza City'}, format='json')
    assert r.status_code == 201
    req_id = r.data['request']['id']

    assert as_user(patient).put(f'/api/medications/requests/{req_id}/fulfill').status_code == 403
    done = as_user(ngo).put(f'/api/medications/requests/{req_id}/fulfill')
    assert done.status_code == 200
    assert done.data['request']['status'] == 'fulfilled'
    med.refresh_from_db()
    assert med.quantity == 0

    # second fulfilment of the same request is refused
    assert as_user(ngo).put(f'/api/medications/requests/{req_id}/fulfill').status_code == 400
    assert as_user(ngo).put('/api/medications/requests/999/fulfill').status_code == 404


def test_request_out_of_stock_or_unknown(make_user):
    ngo = make_user('ngo')
    patient = make_user('patient')
    med = Medication.objects.create(name='Bandage', quantity=0, provider=ngo, provider_type='ngo')
    client = as_user(patient)
    assert client.post('/api/medications/requests', {'medication_id': med.id}, format='json').status_code == 400
    assert client.post('/api/medications/requests', {'medication_id': 999}, format='json').status_code == 400


def test_fulfil_refused_when_stock_ran_out(make_user):
    ngo = make_user('ngo')
    med = Medication.objects.create(name='Insulin', quantity=1, provider=ngo, provider_type='ngo')
    first = MedicationRequest.objects.create(requester=make_user('patient'), medication=med)
    second = MedicationRequest.objects.create(requester=make_user('patient'), medication=med)
    client = as_user(ngo)
    assert client.put(f'/api/medications/requests/{first.id}/fulfill').status_code == 200
    assert client.put(f'/api/medications/requests/{second.id}/fulfill').status_code == 400
    med.refresh_from_db()
    assert med.quantity == 0


# ---------------------------------------------------------------------------
# Health alerts
# ---------------------------------------------------------------------------

def test_alerts_publish_and_filter(make_user):
    admin = make_user('admin')
    client = as_user(admin)
    r = client.post('/api/alerts', {'title': 'Heat wave', 'content': 'Stay hydrated', 'region': 'Gaza'}, format='json')
    assert r.status_code == 201
    assert r.data['alert']['severity'] == 'medium'
    client.post('/api/alerts', {'title': 'Measles', 'content': 'Vaccinate', 'region': 'Jenin', 'severity': 'high'}, format='json')

    everything = APIClient().get('/api/alerts')
    assert [a['title'] for a in everything.data['alerts']] == ['Measles', 'Heat wave']
    gaza = APIClient().get('/api/alerts', {'region': 'gaza'})
    assert [a['title'] for a in gaza.data['alerts']] == ['Heat wave']


def test_only_admins_publish_alerts(make_user):
    r = as_user(make_user('ngo')).post('/api/alerts', {'title': 't', 'content': 'c', 'region': 'r'}, format='json')
    assert r.status_code == 403


# ---------------------------------------------------------------------------
# Mental health
# ---------------------------------------------------------------------------

def test_therapy_chat_flow_hides_identity(make_user):
    user = make_user('patient')
    counselor = make_user('doctor')
    r = as_user(user).post('/api/mental-health/chat', {'topic': 'grief'}, format='json')
    assert r.status_code == 201
    chat_id = r.data['chatId']

    m1 = as_user(user).post(f'/api/mental-health/chat/{chat_id}/message',
                            {'content': '<b>hello</b><script>x</script>'}, format='json')
    assert m1.status_code == 201
    assert as_user(counselor).post(f'/api/mental-health/chat/{chat_id}/message',
                                   {'content': 'I am here'}, format='json').status_code == 201

    detail = as_user(user).get(f'/api/mental-health/chat/{chat_id}')
    assert detail.status_code == 200
    msgs = detail.data['chat']['messages']
    assert [m['sender_role'] for m in msgs] == ['user', 'counselor']
    assert '<' not in msgs[0]['content']
    assert all('sender_id' not in m and 'sender' not in m for m in msgs)


def test_therapy_chat_access_and_limits(make_user, settings):
    owner = make_user('patient')
    chat_id = as_user(owner).post('/api/mental-health/chat', {}, format='json').data['chatId']
    url = f'/api/mental-health/chat/{chat_id}'

    assert as_user(make_user('patient')).get(url).status_code == 403
    assert as_user(owner).get('/api/mental-health/chat/999').status_code == 404
    assert as_user(owner).post(f'{url}/message', {'content': '   '}, format='json').status_code == 400
    settings.CHAT_MESSAGE_MAX_CHARS = 10
    assert as_user(owner).post(f'{url}/message', {'content': 'x' * 11}, format='json').status_code == 400

    closed = as_user(owner).post(f'{url}/close')
    assert closed.status_code == 200
    assert closed.data['status'] == 'closed'
    assert as_user(owner).post(f'{url}/message', {'content': 'hi'}, format='json').status_code == 400
    assert ChatMessage.objects.count() == 0


# ---------------------------------------------------------------------------
# Medical missions
# ---------------------------------------------------------------------------

def _mission_body(**overrides):
    start = date.today() + timedelta(days=10)
    body = {'title': 'Eye care', 'description': 'Cataract surgery', 'location': 'Rafah',
            'start_date': start.isoformat(), 'end_date': (start + timedelta(days=3)).isoformat(),
            'specialties': ['ophthalmology']}
    body.update(overrides)
    return body


def test_ngo_creates_mission_and_public_lists_upcoming(make_user):
    ngo = make_user('ngo')
    r = as_user(ngo).post('/api/missions', _mission_body(), format='json')
    assert r.status_code == 201
    assert r.data['mission']['specialties'] == ['ophthalmology']
    MedicalMission.objects.create(title='Old', description='d', ngo=ngo, location='Rafah',
                                  start_date=date(2020, 1, 1), end_date=date(2020, 1, 2), status='completed')

    listed = APIClient().get('/api/missions', {'location': 'raf'})
    assert [m['title'] for m in listed.data['missions']] == ['Eye care']
    assert APIClient().get('/api/missions', {'location': 'Jenin'}).data['missions'] == []


def test_mission_dates_must_be_ordered(make_user):
    start = date.today() + timedelta(days=5)
    body = _mission_body(start_date=start.isoformat(), end_date=(start - timedelta(days=1)).isoformat())
    assert as_user(make_user('ngo')).post('/api/missions', body, format='json').status_code == 400


def test_mission_join_and_review(make_user):
    ngo = make_user('ngo')
    patient = make_user('patient')
    mission_id = as_user(ngo).post('/api/missions', _mission_body(), format='json').data['mission']['id']

    r = as_user(patient).post(f'/api/missions/{mission_id}/request', {'notes': 'cataract left eye'}, format='json')
    assert r.status_code == 201
    request_id = r.data['requestId']
    assert as_user(patient).post(f'/api/missions/{mission_id}/request', {}, format='json').status_code == 409
    assert as_user(patient).post('/api/missions/999/request', {}, format='json').status_code == 404

    assert as_user(make_user('ngo')).get(f'/api/missions/{mission_id}/requests').status_code == 403
    listed = as_user(ngo).get(f'/api/missions/{mission_id}/requests')
    assert listed.data['requests'][0]['patient']['id'] == patient.id

    review_url = f'/api/missions/requests/{request_id}/review'
    assert as_user(ngo).put(review_url, {'status': 'pending'}, format='json').status_code == 400
    done = as_user(ngo).put(review_url, {'status': 'approved'}, format='json')
    assert done.status_code == 200
    assert MissionRequest.objects.get(id=request_id).status == 'approved'
    assert as_user(ngo).put(review_url, {'status': 'rejected'}, format='json').status_code == 400
