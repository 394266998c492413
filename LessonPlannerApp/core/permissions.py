"""Custom DRF permission classes for tenant membership and settings access."""

from typing import Any

from rest_framework.permissions import BasePermission
from rest_framework.request import Request

from LessonPlannerApp.core.access import same_tenant
from LessonPlannerApp.permissions import registry
from LessonPlannerApp.permissions.resolver import PermissionResolver


class IsTenantMember(BasePermission):
    """Authenticated user assigned to a tenant; objects must belong to that tenant."""
    message = "User is not assigned to a tenant."

    def has_permission(self, request: Request, view: Any) -> bool:
        user = request.user
        return bool(user and user.is_authenticated and getattr(user, "tenant_id", None) is not None)

    def has_object_permission(self, request: Request, view: Any, obj: Any) -> bool:
        return same_tenant(request.user, obj)


class TenantPermissionRequired(BasePermission):
    """Grant access when the user's role resolves as allowed for ``permission_name``.

    Subclasses set ``permission_name``. The resolver is cached on the request so one
    request loads the tenant's overrides at most once.
    """
    permission_name: str = ""

    def _resolver(self, request: Request) -> PermissionResolver:
        resolver = getattr(request, "_permission_resolver", None)
        if resolver is None:
            resolver = PermissionResolver(request.user.tenant_id)
            request._permission_resolver = resolver
        return resolver

    def has_permission(self, request: Request, view: Any) -> bool:
        user = request.user
        if not (user and user.is_authenticated and getattr(user, "tenant_id", None) is not None):
            return False
        return self._resolver(request).is_allowed(user.role, self.permission_name)


class CanAccessSettings(TenantPermissionRequired):
    """Settings screen and permission overrides."""
    permission_name = registry.SETTINGS_ACCESS
    message = "Settings access required."
