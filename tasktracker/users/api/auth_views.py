"""Account endpoints.

The access token travels in the JSON body (the frontend sends it back as a
Bearer header, also to the Socket.IO handshake); the refresh token only ever
lives in an HttpOnly cookie.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from django.conf import settings
from django.contrib.auth import authenticate
from drf_spectacular.utils import extend_schema
from rest_framework import permissions
from rest_framework import status
from rest_framework.exceptions import AuthenticationFailed
from rest_framework.views import APIView
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import RefreshToken

from tasktracker.utils.responses import success_response

from .serializers import LoginSerializer
from .serializers import RegisterSerializer
from .serializers import UserSerializer

if TYPE_CHECKING:  # pragma: no cover - typing only
    from datetime import timedelta

    from rest_framework.response import Response

logger = logging.getLogger(__name__)

# Frontend key -> serializer field.
PAYLOAD_ALIASES = {"confirmPassword": "confirm_password"}


def _normalize_payload(data) -> dict:
    out = data.dict() if hasattr(data, "dict") else dict(data)
    for alias, name in PAYLOAD_ALIASES.items():
        if alias in out and name not in out:
            out[name] = out.pop(alias)
    return out


def _set_refresh_cookie(response: Response, refresh: str) -> None:
    refresh_lifetime: timedelta = settings.SIMPLE_JWT["REFRESH_TOKEN_LIFETIME"]
    response.set_cookie(
        settings.JWT_REFRESH_COOKIE,
        refresh,
        max_age=int(refresh_lifetime.total_seconds()),
        httponly=True,
        secure=getattr(settings, "JWT_AUTH_COOKIE_SECURE", not settings.DEBUG),
        samesite=getattr(settings, "JWT_AUTH_COOKIE_SAMESITE", "Lax"),
        path="/",
    )


def _session_response(user, *, message: str, status_code: int) -> Response:
    refresh = RefreshToken.for_user(user)
    response = success_response(
        {
            "user": UserSerializer(user).data,
            "token": str(refresh.access_token),
        },
        message=message,
        status=status_code,
    )
    _set_refresh_cookie(response, str(refresh))
    return response


class PublicAuthView(APIView):
    """Endpoint reachable without an access token.

    A stale Authorization header is ignored, and credential failures still
    answer 401 with a Bearer challenge.
    """

    permission_classes = [permissions.AllowAny]
    authentication_classes: list = []

    def get_authenticate_header(self, request):
        return 'Bearer realm="api"'


class RegisterView(PublicAuthView):
    @extend_schema(tags=["Authentication"], request=RegisterSerializer)
    def post(self, request, *args, **kwargs):
        serializer = RegisterSerializer(data=_normalize_payload(request.data))
        serializer.is_valid(raise_exception=True)
        user = serializer.save()
        logger.info("User %s registered", user.pk)
        return _session_response(
            user, message="User created", status_code=status.HTTP_201_CREATED
        )


class LoginView(PublicAuthView):
    @extend_schema(tags=["Authentication"], request=LoginSerializer)
    def post(self, request, *args, **kwargs):
        serializer = LoginSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = authenticate(
            request,
            username=serializer.validated_data["email"],
            password=serializer.validated_data["password"],
        )
        if user is None:
            msg = "Incorrect email or password"
            raise AuthenticationFailed(msg, code="invalid_credentials")
        return _session_response(
            user, message="Login successful", status_code=status.HTTP_200_OK
        )


class RefreshView(PublicAuthView):
    """Exchange the refresh cookie for a fresh access token."""

    @extend_schema(tags=["Authentication"], request=None)
    def post(self, request, *args, **kwargs):
        raw = request.COOKIES.get(settings.JWT_REFRESH_COOKIE)
        if not raw:
            msg = "Refresh token missing"
            raise AuthenticationFailed(msg, code="missing")
        try:
            refresh = RefreshToken(raw)
        except TokenError as exc:
            msg = "Invalid refresh token"
            raise AuthenticationFailed(msg, code="invalid") from exc

        access = str(refresh.access_token)
        return success_response(
            {"token": access},
            message="Token refreshed",
            accessToken=access,
        )


class LogoutView(APIView):
    @extend_schema(tags=["Authentication"], request=None)
    def post(self, request, *args, **kwargs):
        response = success_response(message="Logout successful")
        response.delete_cookie(settings.JWT_REFRESH_COOKIE, path="/")
        return response


class ProfileView(APIView):
    @extend_schema(tags=["Authentication"], responses=UserSerializer)
    def get(self, request, *args, **kwargs):
        return success_response({"user": UserSerializer(request.user).data})
