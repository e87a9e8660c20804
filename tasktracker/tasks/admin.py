from django.contrib import admin

from tasktracker.tasks import models


@admin.register(models.Task)
class TaskAdmin(admin.ModelAdmin):
    list_display = ["id", "title", "status", "priority", "assigned_to", "created_by"]
    search_fields = ["title", "description"]
    list_filter = ["status", "priority", "created_at"]
    raw_id_fields = ["assigned_to"]
