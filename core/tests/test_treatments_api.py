"""
API tests for treatment sponsorship: creation, public listing, donations
and transparency reports.
"""
from decimal import Decimal
from unittest import mock

from django.db import DatabaseError, OperationalError
from django.test import override_settings
from rest_framework import status
from rest_framework.test import APITestCase

from core.models import AuditEvent, Donation, Treatment, User
from core.services import treatments as svc


def _user(email, role, name='', language='ar'):
    return User.objects.create_user(username=email, email=email, password='Cedar-Lantern-42',
                                    first_name=name, role=role, language=language)


class TreatmentAPITests(APITestCase):
    def setUp(self) -> None:
        self.patient = _user('amal@example.org', 'patient', 'Amal Haddad', 'ar')
        self.donor = _user('omar@example.org', 'donor', 'Omar Nasser', 'en')
        self.doctor = _user('dr.lina@example.org', 'doctor', 'Lina Saleh', 'en')
        self.treatment = svc.create_treatment(
            self.patient, title='Heart surgery', description='Valve replacement',
            goal_amount='100.00', category='surgery', consent_given=True,
        )

    def _donate(self, amount, treatment_id=None, **extra):
        self.client.force_authenticate(self.donor)
        body = {'treatment_id': treatment_id or self.treatment.id, 'amount': amount, **extra}
        return self.client.post('/api/treatments/donations', body, format='json')

    # -- creation ---------------------------------------------------------

    def test_patient_creates_treatment(self):
        self.client.force_authenticate(self.patient)
        resp = self.client.post('/api/treatments', {
            'title': 'Dialysis', 'description': 'Weekly sessions', 'goal_amount': '1500.50',
        }, format='json')
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        t = resp.data['treatment']
        self.assertEqual(t['goal_amount'], '1500.50')
        self.assertEqual(t['funded_amount'], '0.00')
        self.assertEqual(t['status'], 'active')
        self.assertEqual(t['category'], 'other')
        self.assertEqual(t['patient_id'], self.patient.id)
        self.assertTrue(AuditEvent.objects.filter(action='treatment_create', object_id=t['id']).exists())

    def test_only_patients_create_treatments(self):
        self.client.force_authenticate(self.donor)
        resp = self.client.post('/api/treatments', {
            'title': 'x', 'description': 'y', 'goal_amount': '10',
        }, format='json')
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

    def test_anonymous_cannot_create_treatment(self):
        resp = self.client.post('/api/treatments', {'title': 'x', 'description': 'y', 'goal_amount': '10'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_create_rejects_bad_goal_and_category(self):
        self.client.force_authenticate(self.patient)
        for body in (
            {'title': 'x', 'description': 'y', 'goal_amount': '0'},
            {'title': 'x', 'description': 'y', 'goal_amount': 'lots'},
            {'title': 'x', 'description': 'y', 'goal_amount': '1E+40'},
            {'title': 'x', 'description': 'y', 'goal_amount': '10', 'category': 'cosmetic'},
            {'title': '   ', 'description': 'y', 'goal_amount': '10'},
            {'description': 'y', 'goal_amount': '10'},
        ):
            resp = self.client.post('/api/treatments', body, format='json')
            self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST, body)
            self.assertEqual(resp.data['error']['code'], 'validation_error')
        self.assertEqual(Treatment.objects.count(), 1)

    # -- public listing ---------------------------------------------------

    def test_public_list_shows_active_treatments_newest_first(self):
        newer = svc.create_treatment(self.patient, title='Chemo', description='Cycle 2', goal_amount='50')
        funded = svc.create_treatment(self.patient, title='Done', description='Fully funded', goal_amount='5')
        svc.donate(self.donor, funded.id, '5')

        resp = self.client.get('/api/treatments')
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        ids = [t['id'] for t in resp.data['treatments']]
        self.assertEqual(ids, [newer.id, self.treatment.id])
        first = resp.data['treatments'][0]
        self.assertEqual(first['patient'], {'name': 'Amal Haddad', 'language': 'ar'})
        self.assertEqual(first['goal_amount'], '50.00')
        self.assertNotIn('email', first['patient'])

    # -- donations --------------------------------------------------------

    def test_donation_updates_funding(self):
        resp = self._donate('40.00', receipt_url='https://receipts.example.org/1')
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        self.assertEqual(resp.data['donation']['amount'], '40.00')
        self.assertEqual(resp.data['donation']['receipt_url'], 'https://receipts.example.org/1')
        self.assertEqual(resp.data['treatment']['funded_amount'], '40.00')
        self.assertEqual(resp.data['treatment']['status'], 'active')

    def test_donations_reaching_goal_mark_treatment_funded(self):
        for amount in ('40.00', '40.00', '30.00'):
            self.assertEqual(self._donate(amount).status_code, status.HTTP_201_CREATED)
        self.treatment.refresh_from_db()
        self.assertEqual(self.treatment.funded_amount, Decimal('110.00'))
        self.assertEqual(self.treatment.status, Treatment.STATUS_FUNDED)
        self.assertEqual(Donation.objects.filter(treatment=self.treatment).count(), 3)

    def test_funded_treatment_still_accepts_donations(self):
        self._donate('100.00')
        resp = self._donate('5')
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        self.assertEqual(resp.data['treatment']['funded_amount'], '105.00')
        self.assertEqual(resp.data['treatment']['status'], 'funded')

    def test_numeric_json_amount_is_accepted(self):
        resp = self._donate(12.5)
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        self.assertEqual(resp.data['donation']['amount'], '12.50')

    def test_invalid_amounts_are_rejected_without_rows(self):
        for amount in ('0', '0.00', '-5', 'ten', '10.001', '123456789.00', '1e30', 10**30):
            resp = self._donate(amount)
            self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST, amount)
            self.assertEqual(resp.data['error']['code'], 'validation_error')
            self.assertEqual(resp.data['error']['field'], 'amount')
        self.assertEqual(Donation.objects.count(), 0)
        self.treatment.refresh_from_db()
        self.assertEqual(self.treatment.funded_amount, Decimal('0.00'))

    def test_donation_to_missing_treatment_is_404(self):
        resp = self._donate('10.00', treatment_id=999)
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(resp.data['error']['code'], 'not_found')
        self.assertEqual(Donation.objects.count(), 0)

    def test_donation_to_completed_treatment_is_rejected(self):
        Treatment.objects.filter(id=self.treatment.id).update(status=Treatment.STATUS_COMPLETED)
        resp = self._donate('10.00')
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(Donation.objects.count(), 0)

    def test_only_donors_can_donate(self):
        self.client.force_authenticate(self.doctor)
        resp = self.client.post('/api/treatments/donations',
                                {'treatment_id': self.treatment.id, 'amount': '10'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(resp.data['error']['message'], 'Only donors can make donations.')

    def test_unauthenticated_donation_is_401(self):
        resp = self.client.post('/api/treatments/donations',
                                {'treatment_id': self.treatment.id, 'amount': '10'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_401_UNAUTHORIZED)

    # -- transparency -----------------------------------------------------

    def test_transparency_report_lists_donations_oldest_first(self):
        self._donate('40.00', receipt_url='https://receipts.example.org/a')
        self._donate('25.00', is_anonymous=True)

        resp = self.client.get(f'/api/treatments/{self.treatment.id}/transparency')
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data['treatment'], {
            'id': self.treatment.id, 'title': 'Heart surgery',
            'goal_amount': '100.00', 'funded_amount': '65.00', 'status': 'active',
        })
        rows = resp.data['donations']
        self.assertEqual([r['amount'] for r in rows], ['40.00', '25.00'])
        self.assertEqual(rows[0]['donor_name'], 'Omar Nasser')
        self.assertEqual(rows[0]['receipt_url'], 'https://receipts.example.org/a')
        self.assertEqual(rows[1]['donor_name'], 'Anonymous Donor')
        self.assertIsNone(rows[1]['receipt_url'])

    def test_transparency_report_hides_deleted_donor(self):
        svc.donate(self.donor, self.treatment.id, '10')
        self.donor.delete()
        report = svc.transparency_report(self.treatment.id)
        self.assertEqual(report['donations'][0]['donor_name'], 'Anonymous Donor')
        self.assertEqual(report['treatment']['funded_amount'], '10.00')

    def test_transparency_report_is_idempotent(self):
        self._donate('15.00')
        first = self.client.get(f'/api/treatments/{self.treatment.id}/transparency').data
        second = self.client.get(f'/api/treatments/{self.treatment.id}/transparency').data
        self.assertEqual(first, second)

    def test_transparency_report_for_missing_treatment_is_404(self):
        resp = self.client.get('/api/treatments/999/transparency')
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)

    # -- storage failures -------------------------------------------------

    @override_settings(LEDGER_MAX_ATTEMPTS=3)
    def test_busy_treatment_gives_up_with_conflict(self):
        locked = OperationalError('database is locked')
        with mock.patch('core.services.treatments._record', side_effect=locked) as record, \
                mock.patch('core.services.treatments.time.sleep') as sleep:
            resp = self._donate('10.00')
        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(resp.data['error']['code'], 'conflict')
        self.assertEqual(resp['Retry-After'], '1')
        self.assertEqual(record.call_count, 3)
        self.assertEqual(sleep.call_count, 2)
        self.assertEqual(Donation.objects.count(), 0)

    def test_transient_lock_is_retried_once(self):
        real_record = svc._record
        calls = []

        def flaky(*args, **kwargs):
            calls.append(args)
            if len(calls) == 1:
                raise OperationalError('database is locked')
            return real_record(*args, **kwargs)

        with mock.patch('core.services.treatments._record', side_effect=flaky), \
                mock.patch('core.services.treatments.time.sleep'):
            resp = self._donate('25.00')
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        self.assertEqual(len(calls), 2)
        self.assertEqual(Donation.objects.count(), 1)
        self.treatment.refresh_from_db()
        self.assertEqual(self.treatment.funded_amount, Decimal('25.00'))

    def test_storage_failure_rolls_back_donation(self):
        with mock.patch.object(Treatment, 'save', side_effect=DatabaseError('disk I/O error')):
            resp = self._donate('30.00')
        self.assertEqual(resp.status_code, status.HTTP_503_SERVICE_UNAVAILABLE)
        self.assertEqual(resp.data['error']['code'], 'storage_error')
        self.assertEqual(resp['Retry-After'], '1')
        self.assertEqual(Donation.objects.count(), 0)
        self.treatment.refresh_from_db()
        self.assertEqual(self.treatment.funded_amount, Decimal('0.00'))
        self.assertEqual(self.treatment.status, Treatment.STATUS_ACTIVE)
