"""Effective permission resolution: tenant override first, registry defaults second.

Role strings are normalized with ``core.access.normalize_role`` before any comparison,
on both the caller's role and the role lists stored on overrides.
"""

import logging
from dataclasses import dataclass
from typing import Any

from LessonPlannerApp.core.access import normalize_role, normalize_roles
from LessonPlannerApp.core.choices import UserRole
from LessonPlannerApp.permissions import registry
from LessonPlannerApp.permissions.models import TenantPermissionOverride

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PermissionCheck:
    allowed: bool
    requires_approval: bool
    reason: str = ""

    @property
    def bypasses_review(self) -> bool:
        return self.allowed and not self.requires_approval


def _denied(reason: str) -> PermissionCheck:
    # A denied check never reads as "skip review".
    return PermissionCheck(allowed=False, requires_approval=True, reason=reason)


class PermissionResolver:
    """Resolves permissions for one tenant.

    Overrides are loaded lazily on first use and memoized for the lifetime of the
    instance. Create one per request or service call; a fresh instance always sees
    the latest committed overrides.
    """

    def __init__(self, tenant: Any):
        self.tenant_id = getattr(tenant, "pk", tenant)
        self._overrides: dict[str, TenantPermissionOverride] | None = None

    def _load(self) -> dict[str, TenantPermissionOverride]:
        if self._overrides is None:
            if self.tenant_id is None:
                self._overrides = {}
            else:
                self._overrides = {
                    o.permission_name: o
                    for o in TenantPermissionOverride.objects.filter(tenant_id=self.tenant_id)
                }
        return self._overrides

    def override_for(self, permission_name: str) -> TenantPermissionOverride | None:
        return self._load().get(permission_name)

    def has_override(self, permission_name: str) -> bool:
        return permission_name in self._load()

    def resolve(self, role: Any, permission_name: str) -> PermissionCheck:
        key = normalize_role(role)
        if key == registry.SUPERADMIN:
            return PermissionCheck(allowed=True, requires_approval=False, reason="superadmin")

        override = self.override_for(permission_name)
        if override is not None:
            if key in normalize_roles(override.auto_approve_roles):
                return PermissionCheck(allowed=True, requires_approval=False, reason="override:auto_approve")
            if key in normalize_roles(override.roles_required):
                return PermissionCheck(allowed=True, requires_approval=True, reason="override:required")
            return _denied("override:not_listed")

        definition = registry.get_definition(permission_name)
        if definition is None:
            logger.warning("Unknown permission %s requested; denying", permission_name)
            return _denied("unknown_permission")
        if key not in definition.default_roles:
            return _denied("default:not_granted")
        requires_approval = definition.has_approval_policy and key not in definition.auto_approve_roles
        return PermissionCheck(allowed=True, requires_approval=requires_approval, reason="default")

    def is_allowed(self, role: Any, permission_name: str) -> bool:
        return self.resolve(role, permission_name).allowed

    def matrix(self, roles=None) -> dict[str, dict[str, PermissionCheck]]:
        """permission name -> role -> check, for every registry permission."""
        roles = roles or list(UserRole.values)
        return {
            name: {role: self.resolve(role, name) for role in roles}
            for name in sorted(registry.PERMISSIONS)
        }


def resolve(tenant: Any, role: Any, permission_name: str) -> PermissionCheck:
    """One-shot resolution; prefer a shared ``PermissionResolver`` when checking repeatedly."""
    return PermissionResolver(tenant).resolve(role, permission_name)
