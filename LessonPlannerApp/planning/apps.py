"""Planning app configuration (lesson plans and their scheduled activities)."""

from django.apps import AppConfig


class PlanningConfig(AppConfig):
    """AppConfig for the planning domain (lesson plans, scheduled activities)."""
    default_auto_field = "django.db.models.BigAutoField"
    name = "LessonPlannerApp.planning"
