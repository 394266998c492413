from io import StringIO

import pytest
from django.core.management import call_command
from django.core.management.base import CommandError
from model_bakery import baker

pytestmark = pytest.mark.django_db


def test_permission_matrix_marks_overrides(tenant):
    baker.make(
        "permissions.TenantPermissionOverride",
        tenant=tenant,
        permission_name="lesson_plan.approve",
        roles_required=["teacher"],
        auto_approve_roles=[],
    )
    out = StringIO()
    call_command("permission_matrix", "--tenant", str(tenant.pk), "--roles", "teacher", "parent", stdout=out)
    lines = out.getvalue().splitlines()
    approve = next(line for line in lines if line.startswith("lesson_plan.approve*"))
    assert approve.split()[1:] == ["approval", "-"]
    submit = next(line for line in lines if line.startswith("lesson_plan.submit "))
    assert submit.split()[1:] == ["approval", "-"]


def test_permission_matrix_unknown_tenant():
    with pytest.raises(CommandError):
        call_command("permission_matrix", "--tenant", "9999", stdout=StringIO())


def test_permission_matrix_unknown_role(tenant):
    with pytest.raises(CommandError):
        call_command("permission_matrix", "--tenant", str(tenant.pk), "--roles", "janitor", stdout=StringIO())
