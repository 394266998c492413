"""Domain service functions for user notifications."""
import logging

from django.db import transaction
from django.db.models import QuerySet
from django.utils import timezone
from rest_framework.exceptions import NotFound

from LessonPlannerApp.core.choices import NotificationType
from LessonPlannerApp.notifications.models import Notification
from LessonPlannerApp.planning.models import LessonPlan
from LessonPlannerApp.users.models import User

logger = logging.getLogger(__name__)

RETURNED_TITLE = "Lesson Plan Returned"


def create_lesson_plan_returned(plan: LessonPlan, notes: str) -> Notification:
    """Notify the submitter (or the plan's teacher) that their plan was returned.

    Called from inside the rejection transaction; a failure here rolls the rejection back.
    """
    recipient_id = plan.submitted_by_id or plan.teacher_id
    notification = Notification.objects.create(
        tenant_id=plan.tenant_id,
        recipient_id=recipient_id,
        type=NotificationType.LESSON_PLAN_RETURNED,
        lesson_plan=plan,
        week_start=plan.week_start,
        title=RETURNED_TITLE,
        message=f"Your lesson plan for the week of {plan.week_start:%b %d, %Y} was returned for revision.",
        review_notes=notes,
    )
    logger.info("Created %s notification %s for user %s", notification.type, notification.pk, recipient_id)
    return notification


def list_active(user: User) -> QuerySet[Notification]:
    """Notifications the user has not dismissed, newest first."""
    return Notification.objects.active_for(user)


def _own(user: User, notification_id) -> Notification:
    notification = (
        Notification.objects.select_for_update()
        .filter(pk=notification_id, recipient=user)
        .first()
    )
    if notification is None:
        raise NotFound("Notification not found")
    return notification


@transaction.atomic
def mark_read(user: User, notification_id) -> Notification:
    notification = _own(user, notification_id)
    if not notification.is_read:
        notification.is_read = True
        notification.read_at = timezone.now()
        notification.save(update_fields=["is_read", "read_at"])
    return notification


@transaction.atomic
def dismiss(user: User, notification_id) -> Notification:
    notification = _own(user, notification_id)
    if not notification.is_dismissed:
        notification.is_dismissed = True
        notification.dismissed_at = timezone.now()
        notification.save(update_fields=["is_dismissed", "dismissed_at"])
    return notification
