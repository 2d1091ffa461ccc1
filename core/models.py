"""
Database models for the HealthPal backend.

These models capture the concepts of the system: user accounts with
roles, remote consultations, treatment sponsorship with its donation
ledger, medication stock and requests, public health alerts, anonymous
therapy chats and NGO medical missions.  Amounts are stored as
``DecimalField`` values and never pass through binary floating point.
"""
from __future__ import annotations

from decimal import Decimal

from django.contrib.auth.models import AbstractUser
from django.core.validators import MinValueValidator
from django.db import models


class User(AbstractUser):
    """Custom user model with a role and a preferred language.

    The email address is the login identifier; ``username`` mirrors it so
    Django's auth machinery keeps working.  The display name is stored in
    ``first_name``.
    """
    ROLE_PATIENT = 'patient'
    ROLE_DOCTOR = 'doctor'
    ROLE_DONOR = 'donor'
    ROLE_NGO = 'ngo'
    ROLE_ADMIN = 'admin'
    ROLE_CHOICES = [
        (ROLE_PATIENT, 'Patient'),
        (ROLE_DOCTOR, 'Doctor'),
        (ROLE_DONOR, 'Donor'),
        (ROLE_NGO, 'NGO'),
        (ROLE_ADMIN, 'Administrator'),
    ]
    LANGUAGE_CHOICES = [
        ('ar', 'Arabic'),
        ('en', 'English'),
    ]

    email = models.EmailField(unique=True)
    role = models.CharField(max_length=10, choices=ROLE_CHOICES, default=ROLE_PATIENT, db_index=True)
    language = models.CharField(max_length=2, choices=LANGUAGE_CHOICES, default='ar')
    phone = models.CharField(max_length=20, blank=True)
    verified = models.BooleanField(default=False)

    @property
    def display_name(self) -> str:
        return self.get_full_name() or self.username

    def __str__(self) -> str:
        return f"{self.username} ({self.role})"


# ---------------------------------------------------------------------------
# Consultations
# ---------------------------------------------------------------------------

class Consultation(models.Model):
    MODE_CHOICES = (('video', 'video'), ('audio', 'audio'), ('chat', 'chat'))

    STATUS_SCHEDULED = 'scheduled'
    STATUS_COMPLETED = 'completed'
    STATUS_CANCELLED = 'cancelled'
    STATUS_CHOICES = (
        (STATUS_SCHEDULED, 'scheduled'),
        (STATUS_COMPLETED, 'completed'),
        (STATUS_CANCELLED, 'cancelled'),
    )

    patient = models.ForeignKey(User, on_delete=models.CASCADE, related_name='patient_consultations')
    doctor = models.ForeignKey(User, on_delete=models.CASCADE, related_name='doctor_consultations')
    scheduled_at = models.DateTimeField()
    mode = models.CharField(max_length=8, choices=MODE_CHOICES, default='video')
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_SCHEDULED)
    # Patient and doctor speak different languages (Arabic/English)
    needs_translation = models.BooleanField(default=False)
    transcript = models.TextField(blank=True, null=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=['patient', 'scheduled_at'], name='consult_patient_sched_idx'),
            models.Index(fields=['doctor', 'scheduled_at'], name='consult_doctor_sched_idx'),
        ]

    def __str__(self):
        return f"consult d={self.doctor_id} p={self.patient_id} @ {self.scheduled_at:%F %T}"


# ---------------------------------------------------------------------------
# Treatment sponsorship ledger
# ---------------------------------------------------------------------------

class Treatment(models.Model):
    """A patient's funding campaign for a medical need.

    ``funded_amount`` always equals the sum of the related donations and
    is only written by :func:`core.services.treatments.donate`.
    """
    CATEGORY_CHOICES = (
        ('surgery', 'surgery'),
        ('cancer', 'cancer'),
        ('dialysis', 'dialysis'),
        ('rehabilitation', 'rehabilitation'),
        ('other', 'other'),
    )

    STATUS_ACTIVE = 'active'
    STATUS_FUNDED = 'funded'
    STATUS_COMPLETED = 'completed'
    STATUS_CHOICES = (
        (STATUS_ACTIVE, 'active'),
        (STATUS_FUNDED, 'funded'),
        (STATUS_COMPLETED, 'completed'),
    )

    patient = models.ForeignKey(User, on_delete=models.PROTECT, related_name='treatments')
    title = models.CharField(max_length=200)
    description = models.TextField()
    category = models.CharField(max_length=16, choices=CATEGORY_CHOICES, default='other')
    goal_amount = models.DecimalField(
        max_digits=10, decimal_places=2, validators=[MinValueValidator(Decimal('0.01'))]
    )
    funded_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_ACTIVE, db_index=True)
    # Patient consent to share medical details publicly
    consent_given = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.CheckConstraint(condition=models.Q(goal_amount__gt=0), name='treatment_goal_positive'),
            models.CheckConstraint(condition=models.Q(funded_amount__gte=0), name='treatment_funded_non_negative'),
        ]

    def __str__(self) -> str:
        return f"{self.title} ({self.funded_amount}/{self.goal_amount})"


class Donation(models.Model):
    """An immutable contribution against a treatment."""
    donor = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL, related_name='donations')
    treatment = models.ForeignKey(Treatment, on_delete=models.PROTECT, related_name='donations')
    amount = models.DecimalField(max_digits=10, decimal_places=2)
    # Link to digital receipt or invoice
    receipt_url = models.URLField(max_length=255, blank=True, null=True)
    is_anonymous = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [models.Index(fields=['treatment', 'created_at'], name='donation_treatment_time_idx')]
        constraints = [
            models.CheckConstraint(condition=models.Q(amount__gt=0), name='donation_amount_positive'),
        ]

    def __str__(self):
        return f"donation {self.id} t={self.treatment_id} {self.amount}"


# ---------------------------------------------------------------------------
# Medication coordination
# ---------------------------------------------------------------------------

class Medication(models.Model):
    """A medicine or equipment item offered by a pharmacy, NGO or donor."""
    CATEGORY_CHOICES = (('medicine', 'medicine'), ('equipment', 'equipment'))
    PROVIDER_CHOICES = (('pharmacy', 'pharmacy'), ('ngo', 'ngo'), ('donor', 'donor'))

    name = models.CharField(max_length=100)
    description = models.TextField(blank=True)
    quantity = models.PositiveIntegerField(default=0)
    category = models.CharField(max_length=16, choices=CATEGORY_CHOICES, default='medicine')
    provider_type = models.CharField(max_length=16, choices=PROVIDER_CHOICES)
    provider = models.ForeignKey(User, on_delete=models.CASCADE, related_name='medications')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"{self.name} x{self.quantity}"


class MedicationRequest(models.Model):
    STATUS_PENDING = 'pending'
    STATUS_FULFILLED = 'fulfilled'
    STATUS_CANCELLED = 'cancelled'
    STATUS_CHOICES = (
        (STATUS_PENDING, 'pending'),
        (STATUS_FULFILLED, 'fulfilled'),
        (STATUS_CANCELLED, 'cancelled'),
    )

    requester = models.ForeignKey(User, on_delete=models.CASCADE, related_name='medication_requests')
    medication = models.ForeignKey(Medication, on_delete=models.CASCADE, related_name='requests')
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)
    delivery_address = models.TextField(blank=True, null=True)
    fulfilled_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='fulfilled_requests'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"request {self.id} for {self.medication_id} ({self.status})"


# ---------------------------------------------------------------------------
# Health alerts
# ---------------------------------------------------------------------------

class HealthAlert(models.Model):
    SEVERITY_CHOICES = (('low', 'low'), ('medium', 'medium'), ('high', 'high'))

    title = models.CharField(max_length=200)
    content = models.TextField()
    region = models.CharField(max_length=100, db_index=True)
    severity = models.CharField(max_length=8, choices=SEVERITY_CHOICES, default='medium')
    created_by = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL, related_name='alerts')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"[{self.severity}] {self.title} ({self.region})"


# ---------------------------------------------------------------------------
# Mental health support
# ---------------------------------------------------------------------------

class TherapyChat(models.Model):
    STATUS_ACTIVE = 'active'
    STATUS_CLOSED = 'closed'
    STATUS_CHOICES = ((STATUS_ACTIVE, 'active'), (STATUS_CLOSED, 'closed'))

    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='therapy_chats')
    counselor = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='counseled_chats'
    )
    is_anonymous = models.BooleanField(default=True)
    # e.g. PTSD, grief, anxiety
    topic = models.CharField(max_length=100, blank=True, null=True)
    status = models.CharField(max_length=8, choices=STATUS_CHOICES, default=STATUS_ACTIVE)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"chat {self.id} ({self.status})"


class ChatMessage(models.Model):
    SENDER_USER = 'user'
    SENDER_COUNSELOR = 'counselor'
    SENDER_CHOICES = ((SENDER_USER, 'user'), (SENDER_COUNSELOR, 'counselor'))

    chat = models.ForeignKey(TherapyChat, on_delete=models.CASCADE, related_name='messages')
    sender = models.ForeignKey(User, on_delete=models.CASCADE, related_name='chat_messages')
    sender_role = models.CharField(max_length=16, choices=SENDER_CHOICES)
    content = models.TextField()
    is_anonymous = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [models.Index(fields=['chat', 'created_at'], name='chatmsg_chat_time_idx')]

    def __str__(self):
        return f"msg {self.id} chat={self.chat_id}"


# ---------------------------------------------------------------------------
# NGO medical missions
# ---------------------------------------------------------------------------

class MedicalMission(models.Model):
    STATUS_UPCOMING = 'upcoming'
    STATUS_ACTIVE = 'active'
    STATUS_COMPLETED = 'completed'
    STATUS_CHOICES = (
        (STATUS_UPCOMING, 'upcoming'),
        (STATUS_ACTIVE, 'active'),
        (STATUS_COMPLETED, 'completed'),
    )

    title = models.CharField(max_length=200)
    description = models.TextField()
    ngo = models.ForeignKey(User, on_delete=models.CASCADE, related_name='missions')
    location = models.CharField(max_length=100, db_index=True)
    start_date = models.DateField()
    end_date = models.DateField()
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_UPCOMING, db_index=True)
    specialties = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"{self.title} @ {self.location}"


class MissionRequest(models.Model):
    STATUS_PENDING = 'pending'
    STATUS_APPROVED = 'approved'
    STATUS_REJECTED = 'rejected'
    STATUS_CHOICES = (
        (STATUS_PENDING, 'pending'),
        (STATUS_APPROVED, 'approved'),
        (STATUS_REJECTED, 'rejected'),
    )

    patient = models.ForeignKey(User, on_delete=models.CASCADE, related_name='mission_requests')
    mission = models.ForeignKey(MedicalMission, on_delete=models.CASCADE, related_name='requests')
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_PENDING)
    notes = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = [('mission', 'patient')]

    def __str__(self) -> str:
        return f"{self.patient} -> {self.mission} ({self.status})"


# ---------------------------------------------------------------------------
# Audit trail
# ---------------------------------------------------------------------------

class AuditEvent(models.Model):
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True)
    action = models.CharField(max_length=64)
    object_type = models.CharField(max_length=64, blank=True, null=True)
    object_id = models.BigIntegerField(blank=True, null=True)
    detail = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['action', 'created_at'], name='audit_action_time_idx'),
            models.Index(fields=['object_type', 'object_id', 'created_at'], name='audit_object_time_idx'),
        ]

    def __str__(self):
        return f"{self.action}:{self.user_id}@{self.created_at:%F %T}"
