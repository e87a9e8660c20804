import pytest
from rest_framework_simplejwt.tokens import AccessToken

from tasktracker.users import identity
from tasktracker.users.identity import ExpiredCredential
from tasktracker.users.identity import Identity
from tasktracker.users.identity import MalformedCredential
from tasktracker.users.identity import MissingCredential
from tasktracker.users.identity import UserNotFound
from tests.factories import access_token_for
from tests.factories import create_admin
from tests.factories import create_user

pytestmark = pytest.mark.django_db


def test_verify_returns_identity_for_valid_token():
    user = create_user("dana")
    actor = identity.verify(access_token_for(user))
    assert actor == Identity(
        user_id=user.pk,
        username="dana",
        email="dana@example.com",
        role="member",
    )
    assert actor.is_admin is False


def test_verify_reports_admin_role():
    actor = identity.verify(access_token_for(create_admin()))
    assert actor.is_admin is True


def test_superuser_is_treated_as_admin():
    user = create_user("root")
    user.is_superuser = True
    user.save(update_fields=["is_superuser"])
    assert identity.verify(access_token_for(user)).is_admin is True


@pytest.mark.parametrize("credential", [None, ""])
def test_missing_credential(credential):
    with pytest.raises(MissingCredential) as exc_info:
        identity.verify(credential)
    assert exc_info.value.message == "authentication token required"
    assert exc_info.value.kind == "missing"


def test_garbage_credential_is_invalid():
    with pytest.raises(MalformedCredential) as exc_info:
        identity.verify("not-a-jwt")
    assert exc_info.value.message == "invalid token"


def test_tampered_signature_is_invalid():
    header, payload, signature = access_token_for(create_user("erin")).split(".")
    forged = f"{header}.{payload}.{'A' * len(signature)}"
    with pytest.raises(MalformedCredential):
        identity.verify(forged)


def test_expired_credential_is_distinguished_from_invalid():
    token = access_token_for(create_user("frank"), expired=True)
    with pytest.raises(ExpiredCredential) as exc_info:
        identity.verify(token)
    assert exc_info.value.message == "jwt expired"
    assert exc_info.value.kind == "expired"


def test_token_for_deleted_user():
    user = create_user("gone")
    token = access_token_for(user)
    user.delete()
    with pytest.raises(UserNotFound) as exc_info:
        identity.verify(token)
    assert exc_info.value.message == "user not found"


def test_token_for_inactive_user():
    user = create_user("idle", is_active=False)
    with pytest.raises(UserNotFound):
        identity.verify(access_token_for(user))


def test_token_without_subject_is_invalid():
    token = AccessToken()
    with pytest.raises(MalformedCredential):
        identity.verify(str(token))


@pytest.mark.parametrize(
    ("header", "expected"),
    [
        ("Bearer abc.def.ghi", "abc.def.ghi"),
        ("bearer abc", "abc"),
        ("  Bearer   abc  ", "abc"),
        ("Token abc", None),
        ("Bearer", None),
        ("Bearer a b", None),
        ("", None),
        (None, None),
    ],
)
def test_extract_bearer(header, expected):
    assert identity.extract_bearer(header) == expected


def test_identity_display_and_session():
    actor = Identity(user_id=7, username="hal", email="hal@example.com", role="admin")
    assert actor.display() == {"_id": 7, "username": "hal"}
    assert Identity(**actor.as_session()) == actor
