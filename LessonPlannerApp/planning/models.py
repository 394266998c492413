"""Planning domain models: LessonPlan and ScheduledActivity."""

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from simple_history.models import HistoricalRecords

from LessonPlannerApp.core.choices import LessonPlanStatus, ScheduleType
from LessonPlannerApp.planning.querysets import LessonPlanQuerySet, ScheduledActivityQuerySet

User = settings.AUTH_USER_MODEL


def validate_monday(value):
    if value.weekday() != 0:
        raise ValidationError("week_start must be a Monday.")


class LessonPlan(models.Model):
    """A room's weekly plan; one per (location, room, week_start, schedule_type).

    Status only changes through ``domain.services.lesson_plan_service``.
    """
    tenant = models.ForeignKey("organizations.Tenant", on_delete=models.CASCADE, related_name="lesson_plans")
    location = models.ForeignKey("organizations.Location", on_delete=models.PROTECT, related_name="lesson_plans")
    room = models.ForeignKey("organizations.Room", on_delete=models.PROTECT, related_name="lesson_plans")
    teacher = models.ForeignKey(User, on_delete=models.PROTECT, related_name="lesson_plans")
    week_start = models.DateField(validators=[validate_monday])
    schedule_type = models.CharField(max_length=16, choices=ScheduleType.choices, default=ScheduleType.POSITION_BASED)
    status = models.CharField(max_length=16, choices=LessonPlanStatus.choices, default=LessonPlanStatus.DRAFT)
    submitted_at = models.DateTimeField(null=True, blank=True)
    submitted_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name="submitted_lesson_plans"
    )
    approved_at = models.DateTimeField(null=True, blank=True)
    approved_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name="approved_lesson_plans"
    )
    rejected_at = models.DateTimeField(null=True, blank=True)
    rejected_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name="rejected_lesson_plans"
    )
    review_notes = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    history = HistoricalRecords()

    objects = LessonPlanQuerySet.as_manager()

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["location", "room", "week_start", "schedule_type"], name="uq_lesson_plan_slot"
            ),
        ]

    def __str__(self):
        return f"{self.room_id}@{self.week_start} ({self.status})"


class ScheduledActivity(models.Model):
    """An activity placed in a plan's calendar slot.

    Position-based plans key rows by ``time_slot``; time-based plans by ``start_time``.
    """
    lesson_plan = models.ForeignKey(LessonPlan, on_delete=models.CASCADE, related_name="scheduled_activities")
    activity_ref = models.CharField(max_length=64)
    day_of_week = models.PositiveSmallIntegerField(validators=[MaxValueValidator(4)])
    time_slot = models.PositiveSmallIntegerField(null=True, blank=True)
    start_time = models.TimeField(null=True, blank=True)
    notes = models.TextField(blank=True)
    is_completed = models.BooleanField(default=False)
    completed_at = models.DateTimeField(null=True, blank=True)
    rating = models.PositiveSmallIntegerField(
        null=True, blank=True, validators=[MinValueValidator(1), MaxValueValidator(5)]
    )
    rating_feedback = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    objects = ScheduledActivityQuerySet.as_manager()

    # Copied verbatim onto a new plan; completion and rating start fresh.
    COPY_FIELDS = ("activity_ref", "day_of_week", "time_slot", "start_time", "notes")
