from django.db.models import QuerySet, Q

from LessonPlannerApp.core.choices import LessonPlanStatus, UserRole
from LessonPlannerApp.permissions import registry
from LessonPlannerApp.permissions.resolver import PermissionResolver


class LessonPlanQuerySet(QuerySet):
    def for_tenant(self, tenant_id):
        return self.filter(tenant_id=tenant_id)

    def pending_review(self):
        return self.filter(status=LessonPlanStatus.SUBMITTED)

    def for_slot(self, location, room, week_start, schedule_type):
        return self.filter(
            location=location, room=room, week_start=week_start, schedule_type=schedule_type
        )

    def visible_to(self, user, resolver=None):
        """
        Lesson plans visible to a user:
          - Reviewers (``lesson_plan.approve`` allowed, overrides applied): every plan of their tenant
          - Parent: approved plans of their tenant
          - Everyone else: plans they own or submitted
          - Anonymous / tenantless: nothing
        """
        if not user or not user.is_authenticated or user.tenant_id is None:
            return self.none()
        resolver = resolver or PermissionResolver(user.tenant_id)
        qs = self.for_tenant(user.tenant_id)
        if resolver.is_allowed(user.role, registry.LESSON_PLAN_APPROVE):
            return qs
        if user.role == UserRole.PARENT:
            return qs.filter(status=LessonPlanStatus.APPROVED)
        return qs.filter(Q(teacher=user) | Q(submitted_by=user))


class ScheduledActivityQuerySet(QuerySet):
    def for_plan(self, plan):
        return self.filter(lesson_plan=plan).order_by("day_of_week", "time_slot", "start_time", "id")
