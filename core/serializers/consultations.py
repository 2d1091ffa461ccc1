from rest_framework import serializers

from core.models import Consultation


class ConsultationCreateSerializer(serializers.Serializer):
    doctor_id = serializers.IntegerField(min_value=1)
    scheduled_at = serializers.DateTimeField()
    mode = serializers.ChoiceField(choices=[m for m, _ in Consultation.MODE_CHOICES], required=False, default='video')


class ConsultationStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[s for s, _ in Consultation.STATUS_CHOICES])
