from unittest import mock

import pytest
from hypothesis import given, strategies as st
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError

from LessonPlannerApp.core.choices import OverrideListKind, UserRole
from LessonPlannerApp.domain.services import permission_service
from LessonPlannerApp.domain.services.permission_service import apply_toggle, make_exclusive
from LessonPlannerApp.permissions import registry
from LessonPlannerApp.permissions.models import TenantPermissionOverride

ROLES = st.sampled_from(UserRole.values)
ROLE_LISTS = st.lists(ROLES, unique=True)
KINDS = st.sampled_from(OverrideListKind.values)


def test_make_exclusive_new_role_in_both_goes_to_required():
    assert make_exclusive(["teacher"], ["teacher", "director"]) == (["teacher"], ["director"])


def test_make_exclusive_newly_added_list_wins():
    # director was auto-approved and is now also required: required wins
    required, auto = make_exclusive(["director"], ["director"], previous_auto_approve=["director"])
    assert (required, auto) == (["director"], [])
    # teacher was required and is now also auto-approved: auto wins
    required, auto = make_exclusive(["teacher"], ["teacher"], previous_required=["teacher"])
    assert (required, auto) == ([], ["teacher"])


@given(ROLE_LISTS, ROLE_LISTS, ROLE_LISTS, ROLE_LISTS)
def test_make_exclusive_lists_are_disjoint(required, auto, prev_required, prev_auto):
    out_required, out_auto = make_exclusive(required, auto, prev_required, prev_auto)
    assert not set(out_required) & set(out_auto)
    assert set(out_required) | set(out_auto) == set(required) | set(auto)


@given(st.lists(st.tuples(ROLES, KINDS), max_size=25))
def test_toggle_sequences_keep_lists_disjoint(toggles):
    required, auto = [], []
    for role, kind in toggles:
        required, auto = apply_toggle(required, auto, role, kind)
        assert not set(required) & set(auto)
        assert len(required) == len(set(required))
        assert len(auto) == len(set(auto))


@given(ROLE_LISTS, ROLES, KINDS)
def test_toggle_adds_to_one_list_and_removes_from_other(start, role, kind):
    required, auto = make_exclusive(start, [])
    new_required, new_auto = apply_toggle(required, auto, role, kind)
    target = new_required if kind == OverrideListKind.ROLES_REQUIRED else new_auto
    before = required if kind == OverrideListKind.ROLES_REQUIRED else auto
    assert (role in target) is (role not in before)


@given(ROLE_LISTS, ROLE_LISTS, ROLES, KINDS)
def test_double_toggle_restores_target_list(required, auto, role, kind):
    required, auto = make_exclusive(required, auto)
    once = apply_toggle(required, auto, role, kind)
    twice = apply_toggle(*once, role, kind)
    index = 0 if kind == OverrideListKind.ROLES_REQUIRED else 1
    assert set(twice[index]) == set((required, auto)[index])


@pytest.mark.django_db
class TestUpsertOverride:
    def test_creates_override(self, admin):
        override = permission_service.upsert_override(admin, {
            "permission_name": registry.LESSON_PLAN_SUBMIT,
            "roles_required": ["Teacher"],
            "auto_approve_roles": ["director"],
        })
        assert override.tenant_id == admin.tenant_id
        assert override.roles_required == ["teacher"]
        assert override.auto_approve_roles == ["director"]

    def test_role_in_both_lists_is_kept_in_one(self, admin):
        override = permission_service.upsert_override(admin, {
            "permission_name": registry.LESSON_PLAN_SUBMIT,
            "roles_required": ["teacher", "director"],
            "auto_approve_roles": ["director"],
        })
        assert override.roles_required == ["teacher", "director"]
        assert override.auto_approve_roles == []

    def test_merges_into_existing_by_permission(self, admin):
        first = permission_service.upsert_override(admin, {
            "permission_name": registry.LESSON_PLAN_SUBMIT, "roles_required": ["teacher"],
        })
        second = permission_service.upsert_override(admin, {
            "permission_name": registry.LESSON_PLAN_SUBMIT, "auto_approve_roles": ["teacher"],
        })
        assert second.pk == first.pk
        assert second.roles_required == []
        assert second.auto_approve_roles == ["teacher"]
        assert TenantPermissionOverride.objects.filter(tenant=admin.tenant).count() == 1

    def test_save_reports_created(self, admin):
        data = {"permission_name": registry.LESSON_PLAN_COPY, "roles_required": ["teacher"]}
        first, created = permission_service.save_override(admin, data)
        assert created is True
        again, created = permission_service.save_override(admin, {**data, "roles_required": ["admin"]})
        assert created is False
        assert again.pk == first.pk
        _, created = permission_service.save_override(admin, {"id": first.pk, "roles_required": []})
        assert created is False

    def test_update_by_id(self, admin):
        created = permission_service.upsert_override(admin, {
            "permission_name": registry.LESSON_PLAN_COPY, "roles_required": ["teacher"],
        })
        updated = permission_service.upsert_override(admin, {"id": created.pk, "roles_required": ["admin"]})
        assert updated.pk == created.pk
        assert updated.roles_required == ["admin"]

    def test_cannot_rename_permission(self, admin):
        created = permission_service.upsert_override(admin, {
            "permission_name": registry.LESSON_PLAN_COPY, "roles_required": ["teacher"],
        })
        with pytest.raises(ValidationError):
            permission_service.upsert_override(admin, {
                "id": created.pk, "permission_name": registry.LESSON_PLAN_SUBMIT,
            })

    def test_foreign_override_id_is_not_found(self, admin, foreign_admin):
        foreign = permission_service.upsert_override(foreign_admin, {
            "permission_name": registry.LESSON_PLAN_COPY, "roles_required": ["teacher"],
        })
        with pytest.raises(NotFound):
            permission_service.upsert_override(admin, {"id": foreign.pk, "roles_required": ["admin"]})
        foreign.refresh_from_db()
        assert foreign.roles_required == ["teacher"]

    @pytest.mark.parametrize("data", [
        {"permission_name": "lesson_plan.publish", "roles_required": ["teacher"]},
        {"permission_name": registry.LESSON_PLAN_SUBMIT, "roles_required": ["janitor"]},
        {"permission_name": registry.LESSON_PLAN_SUBMIT, "roles_required": "teacher"},
        {"roles_required": ["teacher"]},
    ])
    def test_invalid_payloads(self, admin, data):
        with pytest.raises(ValidationError):
            permission_service.upsert_override(admin, data)
        assert not TenantPermissionOverride.objects.exists()

    @pytest.mark.parametrize("role", ["teacher", "parent"])
    def test_requires_settings_access(self, make_user, role):
        with pytest.raises(PermissionDenied):
            permission_service.upsert_override(make_user(role), {
                "permission_name": registry.LESSON_PLAN_SUBMIT, "roles_required": ["teacher"],
            })

    def test_settings_access_follows_overrides(self, admin, teacher):
        permission_service.upsert_override(admin, {
            "permission_name": registry.SETTINGS_ACCESS, "roles_required": ["teacher", "admin"],
        })
        assert permission_service.list_overrides(teacher).count() == 1

    def test_writes_history(self, admin):
        override = permission_service.upsert_override(admin, {
            "permission_name": registry.LESSON_PLAN_COPY, "roles_required": ["teacher"],
        })
        permission_service.upsert_override(admin, {"id": override.pk, "roles_required": []})
        assert override.history.count() == 2


@pytest.mark.django_db
class TestApproveRejectPairing:
    def test_approve_override_is_mirrored_to_reject(self, admin):
        approve = permission_service.upsert_override(admin, {
            "permission_name": registry.LESSON_PLAN_APPROVE,
            "roles_required": ["assistant_director"],
            "auto_approve_roles": ["director"],
        })
        reject = TenantPermissionOverride.objects.get(
            tenant=admin.tenant, permission_name=registry.LESSON_PLAN_REJECT
        )
        assert reject.roles_required == approve.roles_required
        assert reject.auto_approve_roles == approve.auto_approve_roles

    def test_existing_reject_record_keeps_its_id(self, admin):
        reject = permission_service.upsert_override(admin, {
            "permission_name": registry.LESSON_PLAN_REJECT, "roles_required": ["admin"],
        })
        permission_service.upsert_override(admin, {
            "permission_name": registry.LESSON_PLAN_APPROVE, "roles_required": ["director"],
        })
        rows = TenantPermissionOverride.objects.filter(
            tenant=admin.tenant, permission_name=registry.LESSON_PLAN_REJECT
        )
        assert rows.count() == 1
        assert rows.get().pk == reject.pk
        assert rows.get().roles_required == ["director"]

    def test_reject_is_not_mirrored_to_approve(self, admin):
        permission_service.upsert_override(admin, {
            "permission_name": registry.LESSON_PLAN_REJECT, "roles_required": ["admin"],
        })
        assert not TenantPermissionOverride.objects.filter(permission_name=registry.LESSON_PLAN_APPROVE).exists()

    def test_failed_mirror_rolls_back_approve(self, admin):
        with mock.patch.object(permission_service, "_sync_paired", side_effect=RuntimeError("db down")):
            with pytest.raises(RuntimeError):
                permission_service.upsert_override(admin, {
                    "permission_name": registry.LESSON_PLAN_APPROVE, "roles_required": ["director"],
                })
        assert not TenantPermissionOverride.objects.filter(tenant=admin.tenant).exists()

    def test_toggle_on_approve_is_mirrored(self, admin):
        permission_service.toggle_role(
            admin, registry.LESSON_PLAN_APPROVE, "Assistant Director", OverrideListKind.AUTO_APPROVE
        )
        reject = TenantPermissionOverride.objects.get(permission_name=registry.LESSON_PLAN_REJECT)
        assert reject.auto_approve_roles == ["assistant_director"]


@pytest.mark.django_db
class TestToggleRole:
    def test_toggle_moves_role_between_lists(self, admin):
        name = registry.LESSON_PLAN_SUBMIT
        o = permission_service.toggle_role(admin, name, "teacher", OverrideListKind.ROLES_REQUIRED)
        assert (o.roles_required, o.auto_approve_roles) == (["teacher"], [])
        o = permission_service.toggle_role(admin, name, "teacher", OverrideListKind.AUTO_APPROVE)
        assert (o.roles_required, o.auto_approve_roles) == ([], ["teacher"])
        o = permission_service.toggle_role(admin, name, "teacher", OverrideListKind.AUTO_APPROVE)
        assert (o.roles_required, o.auto_approve_roles) == ([], [])

    @pytest.mark.parametrize("name,role,kind", [
        ("lesson_plan.publish", "teacher", "require"),
        (registry.LESSON_PLAN_SUBMIT, "janitor", "require"),
        (registry.LESSON_PLAN_SUBMIT, "teacher", "sometimes"),
    ])
    def test_invalid_toggle(self, admin, name, role, kind):
        with pytest.raises(ValidationError):
            permission_service.toggle_role(admin, name, role, kind)

    def test_teacher_cannot_toggle(self, teacher):
        with pytest.raises(PermissionDenied):
            permission_service.toggle_role(
                teacher, registry.LESSON_PLAN_SUBMIT, "teacher", OverrideListKind.AUTO_APPROVE
            )
