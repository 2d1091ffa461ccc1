from rest_framework import serializers


class TreatmentCreateSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=200)
    description = serializers.CharField()
    category = serializers.CharField(max_length=16, required=False, allow_blank=True)
    # amount rules live in core.services.ledger so services and API agree
    goal_amount = serializers.CharField(max_length=32)
    consent_given = serializers.BooleanField(required=False, default=False)


class DonationSerializer(serializers.Serializer):
    treatment_id = serializers.IntegerField(min_value=1)
    amount = serializers.CharField(max_length=32)
    receipt_url = serializers.URLField(max_length=255, required=False, allow_blank=True, allow_null=True)
    is_anonymous = serializers.BooleanField(required=False, default=False)
