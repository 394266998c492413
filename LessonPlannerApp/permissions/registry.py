"""
Default permission catalog.

Permission names are ``resource.action``. Each entry carries the roles granted by
default and, for actions that go through review, the roles whose actions bypass it.
Tenant overrides (``permissions.models.TenantPermissionOverride``) replace these
defaults per tenant; this module is never mutated at runtime.
"""

from dataclasses import dataclass, field

from LessonPlannerApp.core.access import normalize_role
from LessonPlannerApp.core.choices import UserRole

TEACHER = UserRole.TEACHER.value
ASSISTANT_DIRECTOR = UserRole.ASSISTANT_DIRECTOR.value
DIRECTOR = UserRole.DIRECTOR.value
ADMIN = UserRole.ADMIN.value
SUPERADMIN = UserRole.SUPERADMIN.value

LESSON_PLAN_SUBMIT = "lesson_plan.submit"
LESSON_PLAN_APPROVE = "lesson_plan.approve"
LESSON_PLAN_REJECT = "lesson_plan.reject"
LESSON_PLAN_COPY = "lesson_plan.copy"
LESSON_PLAN_AUTO_APPROVE = "lesson_plan.auto_approve"
SETTINGS_ACCESS = "settings.access"

# Overrides saved for the key are mirrored onto the value.
PAIRED_PERMISSIONS = {
    LESSON_PLAN_APPROVE: LESSON_PLAN_REJECT,
}

# Submissions by these roles skip review unless a tenant says otherwise.
SYSTEM_AUTO_APPROVE_ROLES = frozenset({DIRECTOR, ADMIN, SUPERADMIN})

STAFF = frozenset({TEACHER, ASSISTANT_DIRECTOR, DIRECTOR, ADMIN})
MANAGEMENT = frozenset({ASSISTANT_DIRECTOR, DIRECTOR, ADMIN})


@dataclass(frozen=True)
class PermissionDefinition:
    name: str
    description: str
    default_roles: frozenset[str]
    # Empty: the permission has no review step, so holders never require approval.
    auto_approve_roles: frozenset[str] = field(default_factory=frozenset)

    @property
    def resource(self) -> str:
        return self.name.split(".", 1)[0]

    @property
    def action(self) -> str:
        return self.name.split(".", 1)[1]

    @property
    def has_approval_policy(self) -> bool:
        return bool(self.auto_approve_roles)


RESOURCES = {
    "lesson_plan": {
        "submit": ("Submit lesson plans for review", STAFF, SYSTEM_AUTO_APPROVE_ROLES),
        "approve": ("Review lesson plans (approve/reject)", MANAGEMENT, frozenset()),
        "reject": ("Return lesson plans for revision", MANAGEMENT, frozenset()),
        "copy": ("Copy lesson plans to other rooms", STAFF, frozenset()),
        "auto_approve": ("Submitted lesson plans skip review", frozenset({DIRECTOR, ADMIN}), frozenset()),
    },
    "activity": {
        "create": ("Create new activities", STAFF, frozenset()),
        "update": ("Edit existing activities", STAFF, frozenset()),
        "delete": ("Delete activities", MANAGEMENT, frozenset()),
    },
    "material": {
        "create": ("Create new materials", STAFF, frozenset()),
        "update": ("Edit existing materials", STAFF, frozenset()),
        "delete": ("Delete materials", MANAGEMENT, frozenset()),
    },
    "settings": {
        "access": ("Access the settings page and permission overrides", MANAGEMENT, frozenset()),
    },
}


def _build_registry() -> dict[str, PermissionDefinition]:
    registry = {}
    for resource, actions in RESOURCES.items():
        for action, (description, roles, auto_approve) in actions.items():
            name = f"{resource}.{action}"
            registry[name] = PermissionDefinition(
                name=name,
                description=description,
                default_roles=frozenset(roles),
                auto_approve_roles=frozenset(auto_approve),
            )
    return registry


PERMISSIONS = _build_registry()


def get_definition(permission_name: str) -> PermissionDefinition | None:
    return PERMISSIONS.get(permission_name)


def is_known(permission_name: str) -> bool:
    return permission_name in PERMISSIONS


def default_roles(permission_name: str) -> frozenset[str]:
    """Roles granted ``permission_name`` by default; unknown permissions grant nobody."""
    definition = PERMISSIONS.get(permission_name)
    return definition.default_roles if definition else frozenset()


def role_defaults(role: str) -> frozenset[str]:
    """Permission names granted to ``role`` by default (superadmin: all of them)."""
    key = normalize_role(role)
    if key == SUPERADMIN:
        return frozenset(PERMISSIONS)
    return frozenset(name for name, d in PERMISSIONS.items() if key in d.default_roles)
