from rest_framework import serializers

from core.models import User


class RegisterSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=150)
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, trim_whitespace=False)
    phone = serializers.CharField(max_length=20, required=False, allow_blank=True)
    role = serializers.ChoiceField(choices=[r for r, _ in User.ROLE_CHOICES])
    language = serializers.ChoiceField(choices=[c for c, _ in User.LANGUAGE_CHOICES], required=False, default='ar')

    def validate_name(self, v):
        v = (v or '').strip()
        if not v:
            raise serializers.ValidationError('name may not be blank')
        return v


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(trim_whitespace=False)

    def validate_password(self, v):
        if not v:
            raise serializers.ValidationError('password may not be blank')
        return v


class LogoutSerializer(serializers.Serializer):
    refresh = serializers.CharField(required=False, allow_blank=True)
