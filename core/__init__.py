"""Core application for the HealthPal backend.

This package contains models, services, serializers, views and route
registrations for accounts, consultations, treatment sponsorship,
medications, health alerts, mental health support and medical missions.
"""
