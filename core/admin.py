"""
Django admin registrations for the core models.

Treatments and donations are shown read-only: the donation recorder is
the only writer of funding totals, so the admin never edits them.
"""

from django.contrib import admin

from .models import (
    User,
    Consultation,
    Treatment,
    Donation,
    Medication,
    MedicationRequest,
    HealthAlert,
    TherapyChat,
    MedicalMission,
    MissionRequest,
    AuditEvent,
)


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ('email', 'first_name', 'role', 'language', 'verified', 'is_staff')
    list_filter = ('role', 'language', 'verified')
    search_fields = ('email', 'username', 'first_name', 'phone')


@admin.register(Consultation)
class ConsultationAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient', 'doctor', 'scheduled_at', 'mode', 'status', 'needs_translation')
    list_filter = ('status', 'mode')


class DonationInline(admin.TabularInline):
    model = Donation
    extra = 0
    can_delete = False
    readonly_fields = ('donor', 'amount', 'receipt_url', 'is_anonymous', 'created_at')

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Treatment)
class TreatmentAdmin(admin.ModelAdmin):
    list_display = ('id', 'title', 'patient', 'category', 'goal_amount', 'funded_amount', 'status', 'created_at')
    list_filter = ('status', 'category')
    search_fields = ('title', 'patient__email')
    readonly_fields = ('goal_amount', 'funded_amount', 'status')
    inlines = [DonationInline]


@admin.register(Donation)
class DonationAdmin(admin.ModelAdmin):
    list_display = ('id', 'treatment', 'donor', 'amount', 'is_anonymous', 'created_at')
    list_filter = ('is_anonymous',)

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Medication)
class MedicationAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'category', 'quantity', 'provider_type', 'provider')
    list_filter = ('category', 'provider_type')
    search_fields = ('name',)


@admin.register(MedicationRequest)
class MedicationRequestAdmin(admin.ModelAdmin):
    list_display = ('id', 'medication', 'requester', 'status', 'fulfilled_by', 'created_at')
    list_filter = ('status',)


@admin.register(HealthAlert)
class HealthAlertAdmin(admin.ModelAdmin):
    list_display = ('id', 'title', 'region', 'severity', 'created_at')
    list_filter = ('severity', 'region')


@admin.register(TherapyChat)
class TherapyChatAdmin(admin.ModelAdmin):
    # message content is not exposed here
    list_display = ('id', 'topic', 'status', 'created_at')
    list_filter = ('status',)


@admin.register(MedicalMission)
class MedicalMissionAdmin(admin.ModelAdmin):
    list_display = ('id', 'title', 'ngo', 'location', 'start_date', 'end_date', 'status')
    list_filter = ('status', 'location')


@admin.register(MissionRequest)
class MissionRequestAdmin(admin.ModelAdmin):
    list_display = ('id', 'mission', 'patient', 'status', 'created_at')
    list_filter = ('status',)


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = ('id', 'action', 'user', 'object_type', 'object_id', 'created_at')
    list_filter = ('action', 'object_type')
    search_fields = ('action', 'object_type')
