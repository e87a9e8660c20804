from rest_framework.authentication import BaseAuthentication
from rest_framework.authentication import get_authorization_header
from rest_framework.exceptions import AuthenticationFailed

from tasktracker.users.identity import CredentialError
from tasktracker.users.identity import MissingCredential
from tasktracker.users.identity import extract_bearer
from tasktracker.users.identity import verify_user


class VerifiedJWTAuthentication(BaseAuthentication):
    """Bearer authentication backed by the same verifier as the socket gateway.

    Requests without an Authorization header are left anonymous so the
    permission classes answer with 401; a present but unusable header fails
    with the verifier's message (``"jwt expired"``, ``"invalid token"``...).
    """

    www_authenticate_realm = "api"

    def authenticate(self, request):
        header = get_authorization_header(request)
        if not header:
            return None

        token = extract_bearer(header.decode("latin-1"))
        try:
            if token is None:
                raise MissingCredential
            user = verify_user(token)
        except CredentialError as exc:
            raise AuthenticationFailed(exc.message, code=exc.kind) from exc
        return user, token

    def authenticate_header(self, request):
        return f'Bearer realm="{self.www_authenticate_realm}"'
