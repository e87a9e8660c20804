from django.contrib.auth import get_user_model
from django.contrib.auth.password_validation import validate_password
from django.utils.translation import gettext_lazy as _
from rest_framework import serializers

from tasktracker.users.models import User
from tasktracker.users.models import username_validators


class UserSerializer(serializers.ModelSerializer[User]):
    _id = serializers.IntegerField(source="id", read_only=True)
    id = serializers.IntegerField(read_only=True)
    role = serializers.CharField(source="effective_role", read_only=True)

    # Identity fields are changed through the admin only.
    username = serializers.CharField(read_only=True)
    email = serializers.EmailField(read_only=True)

    class Meta:
        model = User
        fields = [
            "_id",
            "id",
            "username",
            "email",
            "role",
        ]


class RegisterSerializer(serializers.Serializer):
    username = serializers.CharField(
        min_length=3, max_length=30, validators=username_validators
    )
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, min_length=6)
    confirm_password = serializers.CharField(write_only=True)

    def validate_email(self, value: str) -> str:
        return get_user_model().objects.normalize_email(value).lower()

    def validate(self, attrs):
        if attrs["password"] != attrs["confirm_password"]:
            raise serializers.ValidationError(
                {"confirm_password": _("Passwords do not match.")}
            )
        validate_password(attrs["password"])

        users = get_user_model().objects
        taken = users.filter(email__iexact=attrs["email"]).exists() or (
            users.filter(username__iexact=attrs["username"]).exists()
        )
        if taken:
            msg = _("A user with this email or username already exists.")
            raise serializers.ValidationError(msg)
        return attrs

    def create(self, validated_data):
        return get_user_model().objects.create_user(
            username=validated_data["username"],
            email=validated_data["email"],
            password=validated_data["password"],
        )


class LoginSerializer(serializers.Serializer):
    email = serializers.CharField()
    password = serializers.CharField(write_only=True, trim_whitespace=False)
