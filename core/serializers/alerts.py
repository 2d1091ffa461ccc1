from rest_framework import serializers

from core.models import HealthAlert


class AlertCreateSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=200)
    content = serializers.CharField()
    region = serializers.CharField(max_length=100)
    severity = serializers.ChoiceField(choices=[s for s, _ in HealthAlert.SEVERITY_CHOICES], required=False, default='medium')
