# core/management/commands/ensure_demo_users.py
from django.core.management.base import BaseCommand
from django.contrib.auth.hashers import make_password

from core.models import User

DEMO_SET = [
    ("patient@healthpal.local", "Demo Patient", User.ROLE_PATIENT, "ar"),
    ("doctor@healthpal.local", "Demo Doctor", User.ROLE_DOCTOR, "en"),
    ("donor@healthpal.local", "Demo Donor", User.ROLE_DONOR, "en"),
    ("ngo@healthpal.local", "Demo NGO", User.ROLE_NGO, "ar"),
    ("admin@healthpal.local", "Demo Admin", User.ROLE_ADMIN, "en"),
]


class Command(BaseCommand):
    help = "Ensure one demo user per role exists with the given password (idempotent)."

    def add_arguments(self, parser):
        parser.add_argument("--password", default="HealthPal#2024")

    def handle(self, *args, **opts):
        password = make_password(opts["password"])
        for email, name, role, language in DEMO_SET:
            u, created = User.objects.get_or_create(
                email=email,
                defaults={
                    "username": email, "first_name": name, "role": role, "language": language,
                    "password": password, "is_active": True,
                },
            )
            if not created:
                # reset password, role and activation
                u.password = password
                u.role = role
                u.is_active = True
                u.save(update_fields=["password", "role", "is_active"])
            self.stdout.write(self.style.SUCCESS(f"ok: {email} ({role})"))
        self.stdout.write(self.style.SUCCESS("All demo users ensured."))
