from decimal import Decimal
from io import StringIO

import pytest
from django.core.management import CommandError, call_command

from core.models import Donation, HealthAlert, MedicalMission, Treatment, User
from core.services import treatments as svc

pytestmark = pytest.mark.django_db


def test_ensure_demo_users_is_idempotent():
    call_command('ensure_demo_users', stdout=StringIO())
    call_command('ensure_demo_users', stdout=StringIO())
    roles = sorted(User.objects.values_list('role', flat=True))
    assert roles == ['admin', 'doctor', 'donor', 'ngo', 'patient']


def test_seed_demo_data_keeps_ledger_balanced():
    call_command('seed_demo_data', stdout=StringIO())
    call_command('seed_demo_data', stdout=StringIO())
    assert Treatment.objects.count() == 3
    assert Donation.objects.count() == 3
    assert HealthAlert.objects.count() == 2
    assert MedicalMission.objects.count() == 1
    out = StringIO()
    call_command('audit_ledger', stdout=out)
    assert 'Ledger balanced for 3 treatment(s)' in out.getvalue()


def test_audit_ledger_reports_mismatch_without_repairing(make_user):
    patient = make_user('patient')
    donor = make_user('donor')
    t = svc.create_treatment(patient, title='Surgery', description='Knee', goal_amount='100')
    svc.donate(donor, t.id, '30')
    Treatment.objects.filter(id=t.id).update(funded_amount=Decimal('45.00'))

    err = StringIO()
    with pytest.raises(CommandError):
        call_command('audit_ledger', stdout=StringIO(), stderr=err)
    assert f'treatment {t.id}' in err.getvalue()
    assert 'donations=30.00' in err.getvalue()
    t.refresh_from_db()
    assert t.funded_amount == Decimal('45.00')


def test_audit_ledger_flags_status_out_of_step(make_user):
    t = svc.create_treatment(make_user('patient'), title='Dialysis', description='x', goal_amount='10')
    Treatment.objects.filter(id=t.id).update(status=Treatment.STATUS_FUNDED)
    with pytest.raises(CommandError):
        call_command('audit_ledger', stdout=StringIO(), stderr=StringIO())
