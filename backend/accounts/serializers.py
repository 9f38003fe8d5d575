import logging

from django.contrib.auth import authenticate
from rest_framework import serializers

from .models import User

logger = logging.getLogger(__name__)


class UserSerializer(serializers.ModelSerializer):
    """Public identity of a rider or driver."""

    class Meta:
        model = User
        fields = ["id", "username", "email", "role", "phone_number"]
        read_only_fields = fields


class LoginSerializer(serializers.Serializer):
    """Validates credentials; ``validated_data`` is the authenticated User."""

    username = serializers.CharField(max_length=150)
    password = serializers.CharField(write_only=True, trim_whitespace=False)

    def validate(self, data):
        user = authenticate(
            request=self.context.get("request"),
            username=data["username"],
            password=data["password"],
        )
        if user is None:
            logger.info("Failed login for username %r", data["username"])
            raise serializers.ValidationError("Invalid username or password")
        if user.role not in User.Role.values:
            raise serializers.ValidationError("Account has no ride role")
        return user
