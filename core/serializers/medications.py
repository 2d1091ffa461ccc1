from rest_framework import serializers

from core.models import Medication


class MedicationCreateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=100)
    description = serializers.CharField(required=False, allow_blank=True, default='')
    quantity = serializers.IntegerField(min_value=0, required=False, default=0)
    category = serializers.ChoiceField(choices=[c for c, _ in Medication.CATEGORY_CHOICES], required=False, default='medicine')


class MedicationRequestSerializer(serializers.Serializer):
    medication_id = serializers.IntegerField(min_value=1)
    delivery_address = serializers.CharField(required=False, allow_blank=True, default='')
