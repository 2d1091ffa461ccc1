from rest_framework import serializers


class ChatStartSerializer(serializers.Serializer):
    topic = serializers.CharField(max_length=100, required=False, allow_blank=True, allow_null=True)


class ChatMessageSerializer(serializers.Serializer):
    # length is checked after sanitising, in the service
    content = serializers.CharField(allow_blank=True, trim_whitespace=False)
