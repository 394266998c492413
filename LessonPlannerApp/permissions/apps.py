"""Permissions app configuration (tenant override storage)."""

from django.apps import AppConfig


class PermissionsConfig(AppConfig):
    """AppConfig for tenant permission overrides and the default registry."""
    default_auto_field = "django.db.models.BigAutoField"
    name = "LessonPlannerApp.permissions"
