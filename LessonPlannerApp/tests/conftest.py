from datetime import date

import pytest
from rest_framework.test import APIClient
from model_bakery import baker

from LessonPlannerApp.core.choices import ScheduleType, UserRole

TOKEN_URL = "/api/v1/auth/token/"
PASSWORD = "pass1234"
WEEK = date(2025, 8, 18)


def auth_client(user):
    client = APIClient()
    token_resp = client.post(TOKEN_URL, {"email": user.email, "password": PASSWORD}, format="json")
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {token_resp.data['access']}")
    return client


@pytest.fixture
def tenant():
    return baker.make("organizations.Tenant", name="Sunny Days")


@pytest.fixture
def other_tenant():
    return baker.make("organizations.Tenant", name="Rainy Days")


@pytest.fixture
def location(tenant):
    return baker.make(
        "organizations.Location", tenant=tenant, name="Main", schedule_type=ScheduleType.POSITION_BASED
    )


@pytest.fixture
def room(tenant, location):
    return baker.make("organizations.Room", tenant=tenant, location=location, name="Butterflies")


@pytest.fixture
def room2(tenant, location):
    return baker.make("organizations.Room", tenant=tenant, location=location, name="Caterpillars")


@pytest.fixture
def foreign_room(other_tenant):
    loc = baker.make("organizations.Location", tenant=other_tenant, name="Elsewhere")
    return baker.make("organizations.Room", tenant=other_tenant, location=loc, name="Bees")


@pytest.fixture
def make_user(tenant):
    counter = {"n": 0}

    def _make(role, user_tenant=tenant, email=None):
        counter["n"] += 1
        u = baker.make(
            "users.User",
            email=email or f"{role}{counter['n']}@example.com",
            role=role,
            tenant=user_tenant,
        )
        u.set_password(PASSWORD)
        u.save()
        return u
    return _make


@pytest.fixture
def teacher(make_user):
    return make_user(UserRole.TEACHER)


@pytest.fixture
def assistant_director(make_user):
    return make_user(UserRole.ASSISTANT_DIRECTOR)


@pytest.fixture
def director(make_user):
    return make_user(UserRole.DIRECTOR)


@pytest.fixture
def admin(make_user):
    return make_user(UserRole.ADMIN)


@pytest.fixture
def superadmin(make_user):
    return make_user(UserRole.SUPERADMIN)


@pytest.fixture
def parent(make_user):
    return make_user(UserRole.PARENT)


@pytest.fixture
def foreign_admin(make_user, other_tenant):
    return make_user(UserRole.ADMIN, user_tenant=other_tenant)


@pytest.fixture
def make_plan(tenant, location, room, teacher):
    def _make(status="draft", **kwargs):
        kwargs.setdefault("teacher", teacher)
        kwargs.setdefault("week_start", WEEK)
        if status != "draft":
            kwargs.setdefault("submitted_by", kwargs["teacher"])
        return baker.make(
            "planning.LessonPlan",
            tenant=kwargs.pop("tenant", tenant),
            location=kwargs.pop("location", location),
            room=kwargs.pop("room", room),
            schedule_type=kwargs.pop("schedule_type", location.schedule_type),
            status=status,
            **kwargs,
        )
    return _make
