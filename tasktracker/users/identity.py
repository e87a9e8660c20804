"""Credential verification shared by the REST API and the Socket.IO gateway.

A credential is a simplejwt access token. Verification never touches the
database except to re-resolve the token subject, so an account deleted after
the token was issued fails with ``UserNotFound`` instead of being trusted.

The failure messages are part of the wire contract: the frontend refreshes
its access token and retries once when it sees ``"jwt expired"``.
"""

from __future__ import annotations

import logging
from dataclasses import asdict
from dataclasses import dataclass
from typing import Any

from channels.db import database_sync_to_async
from django.contrib.auth import get_user_model
from jwt.exceptions import ExpiredSignatureError
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.settings import api_settings
from rest_framework_simplejwt.tokens import AccessToken

logger = logging.getLogger(__name__)

MSG_MISSING = "authentication token required"
MSG_INVALID = "invalid token"
MSG_EXPIRED = "jwt expired"
MSG_USER_NOT_FOUND = "user not found"

ROLE_ADMIN = "admin"


class CredentialError(Exception):
    """Base class for every way a credential can be refused."""

    kind = "invalid"
    message = MSG_INVALID

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.message
        super().__init__(self.message)


class MissingCredential(CredentialError):
    kind = "missing"
    message = MSG_MISSING


class MalformedCredential(CredentialError):
    kind = "invalid"
    message = MSG_INVALID


class ExpiredCredential(CredentialError):
    kind = "expired"
    message = MSG_EXPIRED


class UserNotFound(CredentialError):
    kind = "user_not_found"
    message = MSG_USER_NOT_FOUND


@dataclass(frozen=True)
class Identity:
    """The verified actor behind a request or a socket."""

    user_id: int
    username: str
    email: str
    role: str

    @classmethod
    def from_user(cls, user: Any) -> Identity:
        role = getattr(user, "effective_role", None) or getattr(user, "role", "")
        return cls(
            user_id=int(user.pk),
            username=user.username,
            email=user.email or "",
            role=str(role),
        )

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def display(self) -> dict[str, Any]:
        """Actor block embedded in outbound events (``createdBy`` etc)."""
        return {"_id": self.user_id, "username": self.username}

    def as_session(self) -> dict[str, Any]:
        return asdict(self)


def extract_bearer(value: str | None) -> str | None:
    """Return the token of an ``Authorization: Bearer <token>`` value."""

    if not value:
        return None
    parts = value.strip().split()
    if len(parts) != 2 or parts[0].lower() not in {  # noqa: PLR2004
        t.lower() for t in api_settings.AUTH_HEADER_TYPES
    }:
        return None
    return parts[1] or None


def _is_expiry(exc: BaseException) -> bool:
    # simplejwt re-raises PyJWT errors; the original cause tells expiry apart
    # from a bad signature regardless of the simplejwt release.
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        if isinstance(current, ExpiredSignatureError):
            return True
        seen.add(id(current))
        current = current.__cause__ or current.__context__
    return "has expired" in str(exc).lower()


def decode_access_token(credential: str) -> AccessToken:
    try:
        return AccessToken(credential)
    except TokenError as exc:
        if _is_expiry(exc):
            raise ExpiredCredential from exc
        raise MalformedCredential from exc


def verify_user(credential: str | None):
    """Validate ``credential`` and return the matching active user."""

    if not credential:
        raise MissingCredential
    token = decode_access_token(credential)
    user_id = token.get(api_settings.USER_ID_CLAIM)
    if user_id is None:
        raise MalformedCredential

    user_model = get_user_model()
    user = user_model.objects.filter(**{api_settings.USER_ID_FIELD: user_id}).first()
    if user is None or not user.is_active:
        logger.info("Token subject %s no longer resolves to an active user", user_id)
        raise UserNotFound
    return user


def verify(credential: str | None) -> Identity:
    return Identity.from_user(verify_user(credential))


averify = database_sync_to_async(verify)
