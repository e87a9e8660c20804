from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from tasktracker.users.models import User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ["id", "username", "email", "role", "is_active"]
    list_filter = ["role", "is_active", "is_superuser"]
    search_fields = ["username", "email"]
    fieldsets = (*BaseUserAdmin.fieldsets, ("Tasks", {"fields": ("role",)}))
