from django.contrib.auth import get_user_model
from django.contrib.auth.backends import ModelBackend


class UsernameOrEmailBackend(ModelBackend):
    """Login with either the e-mail address or the username."""

    def authenticate(self, request, username=None, password=None, **kwargs):
        usermodel = get_user_model()
        if username is None:
            username = kwargs.get(usermodel.EMAIL_FIELD)
        if not username or password is None:
            return None
        try:
            user = usermodel.objects.get(email__iexact=username)
        except usermodel.DoesNotExist:
            try:
                user = usermodel.objects.get(username__iexact=username)
            except usermodel.DoesNotExist:
                # Run the hasher once to keep timing uniform for unknown users.
                usermodel().set_password(password)
                return None

        if user.check_password(password) and self.user_can_authenticate(user):
            return user

        return None
