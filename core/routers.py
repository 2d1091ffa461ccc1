"""
URL mappings for the HealthPal API.

Every endpoint lives under ``/api/``; paths carry no trailing slash.
``/metrics`` (Prometheus) and ``/healthz`` sit at the root.
"""
from django.urls import path, include

from .views import health
from .views.accounts import register_view, login_view, jwt_refresh_view, jwt_logout_view, me_view
from .views.treatments import treatments_collection, donate_view, transparency_view
from .views.consultations import consultations_collection, consultation_status
from .views.medications import (
    available_medications,
    add_medication,
    request_medication,
    fulfill_medication_request,
)
from .views.alerts import alerts_collection
from .views.mental_health import start_chat, chat_detail, post_message, close_chat
from .views.missions import missions_collection, join_mission, mission_requests, review_mission_request


urlpatterns = [
    path('', include('django_prometheus.urls')),
    path('healthz', health.healthz),

    # Authentication
    path('api/auth/register', register_view, name='auth-register'),
    path('api/auth/login', login_view, name='auth-login'),
    path('api/auth/refresh', jwt_refresh_view, name='auth-refresh'),
    path('api/auth/logout', jwt_logout_view, name='auth-logout'),
    path('api/auth/me', me_view, name='auth-me'),

    # Treatment sponsorship
    path('api/treatments', treatments_collection, name='treatments'),
    path('api/treatments/donations', donate_view, name='treatment-donate'),
    path('api/treatments/<int:treatment_id>/transparency', transparency_view, name='treatment-transparency'),

    # Consultations
    path('api/consultations', consultations_collection, name='consultations'),
    path('api/consultations/<int:consultation_id>/status', consultation_status, name='consultation-status'),

    # Medications
    path('api/medications', add_medication, name='medications'),
    path('api/medications/available', available_medications, name='medications-available'),
    path('api/medications/requests', request_medication, name='medication-requests'),
    path('api/medications/requests/<int:request_id>/fulfill', fulfill_medication_request, name='medication-fulfill'),

    # Health alerts
    path('api/alerts', alerts_collection, name='alerts'),

    # Mental health
    path('api/mental-health/chat', start_chat, name='therapy-start'),
    path('api/mental-health/chat/<int:chat_id>', chat_detail, name='therapy-detail'),
    path('api/mental-health/chat/<int:chat_id>/message', post_message, name='therapy-message'),
    path('api/mental-health/chat/<int:chat_id>/close', close_chat, name='therapy-close'),

    # Medical missions
    path('api/missions', missions_collection, name='missions'),
    path('api/missions/<int:mission_id>/request', join_mission, name='mission-join'),
    path('api/missions/<int:mission_id>/requests', mission_requests, name='mission-requests'),
    path('api/missions/requests/<int:request_id>/review', review_mission_request, name='mission-review'),
]
