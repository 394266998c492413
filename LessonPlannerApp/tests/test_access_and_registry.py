import pytest

from LessonPlannerApp.core.access import normalize_role, normalize_roles
from LessonPlannerApp.permissions import registry


@pytest.mark.parametrize("raw", [
    "Assistant Director",
    " assistant_director ",
    "ASSISTANT  DIRECTOR",
    "assistant\tdirector",
])
def test_normalize_role_variants(raw):
    assert normalize_role(raw) == "assistant_director"


def test_normalize_role_none_and_blank():
    assert normalize_role(None) == ""
    assert normalize_role("   ") == ""


def test_normalize_roles_dedupes_and_drops_blanks():
    assert normalize_roles(["Director", "director ", "", None, "Admin"]) == ["director", "admin"]
    assert normalize_roles(None) == []


def test_registry_names_are_resource_action():
    for name, definition in registry.PERMISSIONS.items():
        assert name == f"{definition.resource}.{definition.action}"


def test_default_role_map():
    assert registry.default_roles(registry.LESSON_PLAN_SUBMIT) == registry.STAFF
    assert registry.default_roles(registry.LESSON_PLAN_APPROVE) == registry.MANAGEMENT
    assert "teacher" not in registry.default_roles(registry.SETTINGS_ACCESS)
    assert registry.default_roles("lesson_plan.publish") == frozenset()


def test_only_submit_has_review_policy():
    with_policy = {n for n, d in registry.PERMISSIONS.items() if d.has_approval_policy}
    assert with_policy == {registry.LESSON_PLAN_SUBMIT}
    assert registry.get_definition(registry.LESSON_PLAN_SUBMIT).auto_approve_roles == registry.SYSTEM_AUTO_APPROVE_ROLES


def test_role_defaults():
    assert registry.role_defaults("superadmin") == frozenset(registry.PERMISSIONS)
    assert registry.role_defaults("parent") == frozenset()
    teacher = registry.role_defaults("Teacher")
    assert registry.LESSON_PLAN_SUBMIT in teacher
    assert registry.LESSON_PLAN_APPROVE not in teacher


def test_approve_is_paired_with_reject():
    assert registry.PAIRED_PERMISSIONS == {registry.LESSON_PLAN_APPROVE: registry.LESSON_PLAN_REJECT}
