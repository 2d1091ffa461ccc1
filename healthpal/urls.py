"""
URL configuration for the HealthPal backend project.

The `urlpatterns` list routes URLs to views.  This module includes
both the Django admin and the API routes provided by the core app.
OpenAPI documentation is exposed at ``/swagger/`` and ``/redoc/``.
"""
from django.contrib import admin
from django.urls import path, include

from rest_framework import permissions
from drf_yasg.views import get_schema_view
from drf_yasg import openapi

# API metadata for Swagger/OpenAPI documentation
api_info = openapi.Info(
    title="HealthPal API",
    default_version='v1',
    description=(
        "Healthcare coordination: consultations, treatment sponsorship, "
        "medication requests, health alerts, mental health support and NGO missions."
    ),
)

schema_view = get_schema_view(
    api_info,
    public=True,
    permission_classes=(permissions.AllowAny,),
)

urlpatterns = [
    path('admin/', admin.site.urls),
    path('', include('core.routers')),
    path('swagger/', schema_view.with_ui('swagger', cache_timeout=0), name='schema-swagger-ui'),
    path('redoc/', schema_view.with_ui('redoc', cache_timeout=0), name='schema-redoc'),
]
