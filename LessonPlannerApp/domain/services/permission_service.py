"""Domain service functions for tenant permission overrides.

Overrides are edited from the settings screen by roles holding ``settings.access``.
Every write runs in one atomic transaction which also covers the mirrored
``lesson_plan.reject`` record when ``lesson_plan.approve`` is saved. A role is never
left in both ``roles_required`` and ``auto_approve_roles``.
"""
import logging
from typing import Any, Iterable

from django.db import transaction
from django.db.models import QuerySet
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError

from LessonPlannerApp.core.access import normalize_role, normalize_roles
from LessonPlannerApp.core.choices import OverrideListKind, UserRole
from LessonPlannerApp.permissions import registry
from LessonPlannerApp.permissions.models import TenantPermissionOverride
from LessonPlannerApp.permissions.resolver import PermissionResolver
from LessonPlannerApp.users.models import User

logger = logging.getLogger(__name__)


def ensure_settings_access(actor: User, resolver: PermissionResolver | None = None) -> None:
    """Raise PermissionDenied unless the actor may manage tenant settings."""
    if actor.tenant_id is None:
        raise PermissionDenied("User is not assigned to a tenant")
    resolver = resolver or PermissionResolver(actor.tenant_id)
    if not resolver.is_allowed(actor.role, registry.SETTINGS_ACCESS):
        logger.warning("User %s (%s) denied settings access", actor.pk, actor.role)
        raise PermissionDenied("Settings access required")


def _clean_roles(roles: Iterable[Any] | None, field: str) -> list[str]:
    if roles is None:
        return []
    if isinstance(roles, str) or not isinstance(roles, (list, tuple, set, frozenset)):
        raise ValidationError({field: "Expected a list of role names."})
    cleaned = normalize_roles(roles)
    unknown = [r for r in cleaned if r not in UserRole.values]
    if unknown:
        raise ValidationError({field: f"Unknown roles: {', '.join(unknown)}"})
    return cleaned


def make_exclusive(
    roles_required: list[str],
    auto_approve_roles: list[str],
    previous_required: Iterable[str] = (),
    previous_auto_approve: Iterable[str] = (),
) -> tuple[list[str], list[str]]:
    """Drop every role listed in both lists from one of them.

    The list the role was just added to wins: a role previously auto-approved and
    now also required ends up required, and vice versa. A role new to both lists
    ends up required.
    """
    previous_required = set(previous_required)
    previous_auto_approve = set(previous_auto_approve)
    required = list(roles_required)
    auto = list(auto_approve_roles)
    for role in set(required) & set(auto):
        if role in previous_required and role not in previous_auto_approve:
            required.remove(role)
        else:
            auto.remove(role)
    return required, auto


def apply_toggle(roles_required, auto_approve_roles, role: str, kind: str) -> tuple[list[str], list[str]]:
    """Return both lists after flipping ``role`` in the ``kind`` list.

    Adding the role to one list takes it out of the other.
    """
    required = normalize_roles(roles_required)
    auto = normalize_roles(auto_approve_roles)
    key = normalize_role(role)
    target, other = (required, auto) if kind == OverrideListKind.ROLES_REQUIRED else (auto, required)
    if key in target:
        target.remove(key)
    else:
        target.append(key)
        if key in other:
            other.remove(key)
    return required, auto


def list_overrides(actor: User) -> QuerySet[TenantPermissionOverride]:
    """All overrides of the actor's tenant, ordered by permission name."""
    ensure_settings_access(actor)
    return TenantPermissionOverride.objects.filter(tenant_id=actor.tenant_id).order_by("permission_name")


def _write(
    tenant_id: Any,
    permission_name: str,
    roles_required: list[str],
    auto_approve_roles: list[str],
    instance: TenantPermissionOverride | None = None,
) -> TenantPermissionOverride:
    if instance is None:
        instance = (
            TenantPermissionOverride.objects.select_for_update()
            .filter(tenant_id=tenant_id, permission_name=permission_name)
            .first()
        )
    if instance is None:
        return TenantPermissionOverride.objects.create(
            tenant_id=tenant_id,
            permission_name=permission_name,
            roles_required=roles_required,
            auto_approve_roles=auto_approve_roles,
        )
    instance.roles_required = roles_required
    instance.auto_approve_roles = auto_approve_roles
    instance.save(update_fields=["roles_required", "auto_approve_roles", "updated_at"])
    return instance


def _sync_paired(tenant_id: Any, source: TenantPermissionOverride) -> TenantPermissionOverride | None:
    """Mirror ``source`` onto its paired permission, reusing the paired record's id."""
    paired_name = registry.PAIRED_PERMISSIONS.get(source.permission_name)
    if paired_name is None:
        return None
    return _write(tenant_id, paired_name, list(source.roles_required), list(source.auto_approve_roles))


def _save(
    tenant_id: Any,
    permission_name: str,
    roles_required: list[str],
    auto_approve_roles: list[str],
    instance: TenantPermissionOverride | None,
) -> TenantPermissionOverride:
    previous_required = instance.roles_required if instance else ()
    previous_auto = instance.auto_approve_roles if instance else ()
    required, auto = make_exclusive(
        roles_required, auto_approve_roles,
        normalize_roles(previous_required), normalize_roles(previous_auto),
    )
    override = _write(tenant_id, permission_name, required, auto, instance=instance)
    _sync_paired(tenant_id, override)
    logger.info(
        "Saved permission override %s for tenant %s (required=%s, auto_approve=%s)",
        permission_name, tenant_id, required, auto,
    )
    return override


@transaction.atomic
def save_override(actor: User, data: dict[str, Any]) -> tuple[TenantPermissionOverride, bool]:
    """Create or update a tenant permission override.

    Args:
        actor: Must hold ``settings.access`` in their tenant.
        data: ``permission_name``, ``roles_required``, ``auto_approve_roles`` and an
            optional ``id``. With an ``id`` the record is updated in place; without
            one the tenant's record for the permission is created or merged into.

    Returns:
        ``(override, created)`` in the manner of ``update_or_create``. Saving
        ``lesson_plan.approve`` also saves ``lesson_plan.reject`` with the same
        role lists.

    Raises:
        PermissionDenied: Actor lacks settings access.
        NotFound: ``id`` does not belong to the actor's tenant.
        ValidationError: Unknown permission name or role.
    """
    ensure_settings_access(actor)
    tenant_id = actor.tenant_id
    override_id = data.get("id")
    permission_name = data.get("permission_name")

    instance = None
    if override_id is not None:
        instance = (
            TenantPermissionOverride.objects.select_for_update()
            .filter(tenant_id=tenant_id, pk=override_id)
            .first()
        )
        if instance is None:
            raise NotFound("Permission override not found")
        if permission_name and permission_name != instance.permission_name:
            raise ValidationError({"permission_name": "Cannot change the permission of an existing override."})
        permission_name = instance.permission_name

    if not permission_name or not registry.is_known(permission_name):
        raise ValidationError({"permission_name": f"Unknown permission: {permission_name!r}"})

    if instance is None:
        instance = (
            TenantPermissionOverride.objects.select_for_update()
            .filter(tenant_id=tenant_id, permission_name=permission_name)
            .first()
        )

    default_required = instance.roles_required if instance else []
    default_auto = instance.auto_approve_roles if instance else []
    roles_required = _clean_roles(data.get("roles_required", default_required), "roles_required")
    auto_approve_roles = _clean_roles(data.get("auto_approve_roles", default_auto), "auto_approve_roles")
    created = instance is None
    override = _save(tenant_id, permission_name, roles_required, auto_approve_roles, instance)
    return override, created


def upsert_override(actor: User, data: dict[str, Any]) -> TenantPermissionOverride:
    """``save_override`` without the created flag."""
    return save_override(actor, data)[0]


@transaction.atomic
def toggle_role(actor: User, permission_name: str, role: str, kind: str) -> TenantPermissionOverride:
    """Flip one role in one list of an override, as the settings switches do.

    Adding a role to one list removes it from the other; toggling a role already in
    the list removes it.
    """
    ensure_settings_access(actor)
    if not registry.is_known(permission_name):
        raise ValidationError({"permission_name": f"Unknown permission: {permission_name!r}"})
    if kind not in OverrideListKind.values:
        raise ValidationError({"kind": f"Expected one of {', '.join(OverrideListKind.values)}."})
    key = normalize_role(role)
    if key not in UserRole.values:
        raise ValidationError({"role": f"Unknown role: {role!r}"})

    instance = (
        TenantPermissionOverride.objects.select_for_update()
        .filter(tenant_id=actor.tenant_id, permission_name=permission_name)
        .first()
    )
    required, auto = apply_toggle(
        instance.roles_required if instance else [],
        instance.auto_approve_roles if instance else [],
        key,
        kind,
    )
    return _save(actor.tenant_id, permission_name, required, auto, instance)
