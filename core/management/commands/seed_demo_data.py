"""
Management command to populate the database with demo data.

Requires the users from ``ensure_demo_users``.  Donations go through the
donation recorder so funding totals stay consistent.
"""
from datetime import timedelta

from django.core.management import call_command
from django.core.management.base import BaseCommand
from django.utils import timezone

from core.models import HealthAlert, MedicalMission, Medication, Treatment, User
from core.services import treatments as treatment_svc


class Command(BaseCommand):
    help = 'Populate database with demo treatments, medications, alerts and missions'

    def handle(self, *args, **options):
        call_command('ensure_demo_users', stdout=self.stdout)
        users = {u.role: u for u in User.objects.filter(email__endswith='@healthpal.local')}

        self.create_treatments(users[User.ROLE_PATIENT], users[User.ROLE_DONOR])
        self.create_medications(users[User.ROLE_NGO], users[User.ROLE_ADMIN])
        self.create_alerts(users[User.ROLE_ADMIN])
        self.create_missions(users[User.ROLE_NGO])

        self.stdout.write(self.style.SUCCESS('Demo data ready.'))

    def create_treatments(self, patient, donor):
        specs = [
            ('Kidney dialysis sessions', 'Three months of dialysis', 'dialysis', '2400.00', ['300.00', '150.50']),
            ('Knee surgery', 'Reconstruction after injury', 'surgery', '5000.00', ['1000.00']),
            ('Physiotherapy', 'Post-surgery rehabilitation', 'rehabilitation', '800.00', []),
        ]
        for title, description, category, goal, gifts in specs:
            if Treatment.objects.filter(patient=patient, title=title).exists():
                continue
            t = treatment_svc.create_treatment(
                patient, title=title, description=description, goal_amount=goal,
                category=category, consent_given=True,
            )
            for amount in gifts:
                treatment_svc.donate(donor, t.id, amount)
            self.stdout.write(f'treatment: {title}')

    def create_medications(self, ngo, admin):
        items = [
            ('Insulin', 'Rapid-acting, 10ml vials', 25, 'medicine', ngo, 'ngo'),
            ('Wheelchair', 'Foldable adult wheelchair', 3, 'equipment', ngo, 'ngo'),
            ('Amoxicillin', '500mg capsules', 120, 'medicine', admin, 'pharmacy'),
        ]
        for name, description, qty, category, provider, provider_type in items:
            Medication.objects.get_or_create(
                name=name, provider=provider,
                defaults={'description': description, 'quantity': qty, 'category': category,
                          'provider_type': provider_type},
            )

    def create_alerts(self, admin):
        HealthAlert.objects.get_or_create(
            title='Cholera prevention', region='Gaza',
            defaults={'content': 'Boil drinking water for at least one minute.', 'severity': 'high',
                      'created_by': admin},
        )
        HealthAlert.objects.get_or_create(
            title='Vaccination campaign', region='Nablus',
            defaults={'content': 'Polio vaccines available at all clinics this week.', 'created_by': admin},
        )

    def create_missions(self, ngo):
        today = timezone.localdate()
        MedicalMission.objects.get_or_create(
            title='Eye care mission', ngo=ngo,
            defaults={
                'description': 'Cataract screening and surgery',
                'location': 'Khan Younis',
                'start_date': today + timedelta(days=14),
                'end_date': today + timedelta(days=18),
                'specialties': ['ophthalmology'],
            },
        )
