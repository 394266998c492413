"""Core app configuration and startup checks (permission registry consistency)."""

from django.apps import AppConfig
from django.core.checks import register, Error


class CoreConfig(AppConfig):
    """AppConfig registering a system check for the permission registry."""
    default_auto_field = "django.db.models.BigAutoField"
    name = "LessonPlannerApp.core"

    def ready(self):
        """Register a Django system check that every registry role is a known role."""
        @register()
        def permission_registry_check(app_configs, **kwargs):
            from LessonPlannerApp.core.choices import UserRole
            from LessonPlannerApp.permissions.registry import PERMISSIONS

            known = set(UserRole.values)
            errors = []
            for definition in PERMISSIONS.values():
                unknown = (definition.default_roles | definition.auto_approve_roles) - known
                if unknown:
                    errors.append(Error(
                        f"Permission {definition.name} references unknown roles: {sorted(unknown)}",
                        id="core.E001",
                    ))
            return errors
