from django.contrib.auth.models import AbstractUser
from django.core.validators import MinLengthValidator
from django.core.validators import RegexValidator
from django.db import models
from django.db.models import CharField
from django.db.models import EmailField
from django.utils.translation import gettext_lazy as _

username_validators = [
    MinLengthValidator(3),
    RegexValidator(
        r"^[a-zA-Z0-9_]+$",
        _("Username may only contain letters, digits and underscores."),
    ),
]


class User(AbstractUser):
    """
    Default custom user model for tasktracker.

    ``role`` drives task permissions: admins may assign tasks to anyone and
    reassign them later, members only work on their own tasks.
    """

    class Role(models.TextChoices):
        MEMBER = "member", _("Member")
        ADMIN = "admin", _("Admin")

    username = CharField(
        _("username"),
        max_length=30,
        unique=True,
        validators=username_validators,
        error_messages={"unique": _("A user with that username already exists.")},
    )
    email = EmailField(_("email address"), unique=True)
    role = CharField(
        _("Role"),
        max_length=10,
        choices=Role.choices,
        default=Role.MEMBER,
    )
    # Audit timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    @property
    def effective_role(self) -> str:
        # Superusers created from the CLI act as admins without a role edit.
        if self.is_superuser:
            return self.Role.ADMIN
        return self.role
