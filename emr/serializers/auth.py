from rest_framework import serializers


class LoginSerializer(serializers.Serializer):
    """Staff login.  Any role sent by the client is ignored."""

    username = serializers.CharField(max_length=150)
    password = serializers.CharField(max_length=128, trim_whitespace=False, style={'input_type': 'password'})


class LogoutSerializer(serializers.Serializer):
    refresh = serializers.CharField(required=False, allow_blank=True)
