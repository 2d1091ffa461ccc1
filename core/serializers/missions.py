from rest_framework import serializers

from core.models import MissionRequest


class MissionCreateSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=200)
    description = serializers.CharField()
    location = serializers.CharField(max_length=100)
    start_date = serializers.DateField()
    end_date = serializers.DateField()
    specialties = serializers.ListField(child=serializers.CharField(max_length=64), required=False, default=list)

    def validate(self, attrs):
        if attrs['end_date'] < attrs['start_date']:
            raise serializers.ValidationError({'end_date': 'end_date must not be before start_date'})
        return attrs


class MissionJoinSerializer(serializers.Serializer):
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class MissionReviewSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[MissionRequest.STATUS_APPROVED, MissionRequest.STATUS_REJECTED])
