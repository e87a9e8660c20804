from django.conf import settings
from django.urls import include
from django.urls import path
from rest_framework.routers import DefaultRouter
from rest_framework.routers import SimpleRouter

from tasktracker.tasks.api.views import TaskViewSet

router = DefaultRouter() if settings.DEBUG else SimpleRouter()

router.register("tasks", TaskViewSet, basename="task")


app_name = "api"
urlpatterns = [
    path("auth/", include("tasktracker.users.api.auth_urls")),
    *router.urls,
]
