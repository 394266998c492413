"""Domain service functions for the lesson plan review workflow.

State transitions:
    draft -> submitted (submit) -> approved (approve) | rejected (reject)
    draft | submitted | approved | rejected -> approved (submit, auto-approved role)
    approved | rejected -> submitted (resubmit)
    rejected -> approved (re-review)
    submitted -> draft (withdraw)

Review (approve and reject) is governed by the single ``lesson_plan.approve``
permission. Each operation is one atomic transaction and re-reads the plan with
``select_for_update`` before changing it; rejection and its notification commit
together or not at all.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Iterable

from django.db import IntegrityError, transaction
from django.db.models import QuerySet
from django.utils import timezone
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError

from LessonPlannerApp.core.access import ensure_same_tenant
from LessonPlannerApp.core.choices import LessonPlanStatus, ScheduleType
from LessonPlannerApp.core.exceptions import InvalidTransition
from LessonPlannerApp.domain.services import notification_service
from LessonPlannerApp.domain.services.approval_service import should_auto_approve
from LessonPlannerApp.organizations.models import Location, Room
from LessonPlannerApp.permissions import registry
from LessonPlannerApp.permissions.resolver import PermissionCheck, PermissionResolver
from LessonPlannerApp.planning.models import LessonPlan, ScheduledActivity
from LessonPlannerApp.users.models import User

logger = logging.getLogger(__name__)

APPROVABLE_FROM = {LessonPlanStatus.SUBMITTED, LessonPlanStatus.REJECTED}
REJECTABLE_FROM = {LessonPlanStatus.SUBMITTED}


@dataclass
class CopyFailure:
    room_id: Any
    reason: str
    detail: str = ""


@dataclass
class CopyResult:
    created: list[LessonPlan] = field(default_factory=list)
    failures: list[CopyFailure] = field(default_factory=list)


def _resolver_for(actor: User) -> PermissionResolver:
    if actor.tenant_id is None:
        raise PermissionDenied("User is not assigned to a tenant")
    return PermissionResolver(actor.tenant_id)


def _ensure_permission(actor: User, permission_name: str, resolver: PermissionResolver) -> PermissionCheck:
    """Raise PermissionDenied unless the actor's role is allowed ``permission_name``."""
    check = resolver.resolve(actor.role, permission_name)
    if not check.allowed:
        logger.warning("User %s (%s) denied %s: %s", actor.pk, actor.role, permission_name, check.reason)
        raise PermissionDenied(f"Permission required: {permission_name}")
    return check


def _lock(plan: LessonPlan) -> LessonPlan:
    locked = LessonPlan.objects.select_for_update().filter(pk=plan.pk).first()
    if locked is None:
        raise NotFound("Lesson plan not found")
    return locked


def _parse_week_start(value: Any, field_name: str = "week_start") -> date:
    if value in (None, ""):
        raise ValidationError({field_name: "This field is required."})
    if isinstance(value, str):
        try:
            value = date.fromisoformat(value)
        except ValueError:
            raise ValidationError({field_name: "Expected an ISO date (YYYY-MM-DD)."}) from None
    if not isinstance(value, date):
        raise ValidationError({field_name: "Expected a date."})
    if value.weekday() != 0:
        raise ValidationError({field_name: "Week start must be a Monday."})
    return value


def current_week_start(today: date | None = None) -> date:
    today = today or timezone.localdate()
    return today - timedelta(days=today.weekday())


def get_plan(actor: User, plan_id: Any) -> LessonPlan:
    """Fetch a plan visible to the actor or raise NotFound."""
    plan = LessonPlan.objects.visible_to(actor).filter(pk=plan_id).first()
    if plan is None:
        raise NotFound("Lesson plan not found")
    return plan


def review_queue(actor: User) -> QuerySet[LessonPlan]:
    """Submitted plans awaiting review in the actor's tenant (reviewers only)."""
    _ensure_permission(actor, registry.LESSON_PLAN_APPROVE, _resolver_for(actor))
    return (
        LessonPlan.objects.for_tenant(actor.tenant_id)
        .pending_review()
        .select_related("room", "location", "teacher", "submitted_by")
        .order_by("submitted_at", "id")
    )


def _resolve_slot(
    actor: User,
    room: Room | Any,
    location: Location | Any | None,
    schedule_type: str | None,
) -> tuple[Room, Location, str]:
    room_id = getattr(room, "pk", room)
    room_obj = Room.objects.select_related("location").filter(pk=room_id, tenant_id=actor.tenant_id).first()
    if room_obj is None:
        raise NotFound("Room not found")
    location_id = getattr(location, "pk", location)
    if location_id is not None and _as_pk(location_id) != room_obj.location_id:
        raise ValidationError({"location": "Room does not belong to this location."})
    schedule_type = schedule_type or room_obj.location.schedule_type
    if schedule_type not in ScheduleType.values:
        raise ValidationError({"schedule_type": f"Expected one of {', '.join(ScheduleType.values)}."})
    return room_obj, room_obj.location, schedule_type


@transaction.atomic
def submit(
    actor: User,
    plan: LessonPlan | None = None,
    *,
    room: Room | Any = None,
    week_start: Any = None,
    location: Location | Any | None = None,
    schedule_type: str | None = None,
) -> LessonPlan:
    """Submit a plan for review, creating it first when the slot has none.

    Either pass an existing ``plan`` or describe the slot (``room``, ``week_start``,
    optional ``location`` and ``schedule_type`` defaulting to the room's location).
    Find-or-create and the transition happen in one transaction; the slot's
    uniqueness constraint prevents duplicate drafts.

    Rules:
        - Actor must be allowed ``lesson_plan.submit``.
        - Auto-approved roles land in APPROVED (approved_at/by set, no notification).
        - Everyone else lands in SUBMITTED (submitted_at/by refreshed on resubmit).
    """
    resolver = _resolver_for(actor)
    _ensure_permission(actor, registry.LESSON_PLAN_SUBMIT, resolver)

    if plan is not None:
        ensure_same_tenant(actor, plan, "Lesson plan")
        plan = _lock(plan)
    else:
        if room is None:
            raise ValidationError({"room": "This field is required."})
        week = _parse_week_start(week_start)
        room_obj, location_obj, schedule_type = _resolve_slot(actor, room, location, schedule_type)
        plan, created = LessonPlan.objects.select_for_update().get_or_create(
            location=location_obj,
            room=room_obj,
            week_start=week,
            schedule_type=schedule_type,
            defaults={
                "tenant_id": actor.tenant_id,
                "teacher": actor,
                "status": LessonPlanStatus.DRAFT,
            },
        )
        if created:
            logger.info("Created draft lesson plan %s for room %s week %s", plan.pk, room_obj.pk, week)

    previous = plan.status
    now = timezone.now()
    if should_auto_approve(actor.tenant_id, actor.role, resolver):
        plan.status = LessonPlanStatus.APPROVED
        plan.approved_at = now
        plan.approved_by = actor
    else:
        plan.status = LessonPlanStatus.SUBMITTED
        plan.submitted_at = now
        plan.submitted_by = actor
    plan.save()
    logger.info("Lesson plan %s %s -> %s by user %s", plan.pk, previous, plan.status, actor.pk)
    return plan


@transaction.atomic
def approve(actor: User, plan: LessonPlan, notes: str | None = None) -> LessonPlan:
    """Approve a submitted (or previously returned) plan.

    Raises:
        PermissionDenied: Actor lacks ``lesson_plan.approve``.
        InvalidTransition: Plan is not SUBMITTED or REJECTED.
    """
    ensure_same_tenant(actor, plan, "Lesson plan")
    _ensure_permission(actor, registry.LESSON_PLAN_APPROVE, _resolver_for(actor))
    plan = _lock(plan)
    if plan.status not in APPROVABLE_FROM:
        raise InvalidTransition(f"Cannot approve a lesson plan in status '{plan.status}'.")
    previous = plan.status
    plan.status = LessonPlanStatus.APPROVED
    plan.approved_at = timezone.now()
    plan.approved_by = actor
    plan.review_notes = notes.strip() if notes and notes.strip() else None
    plan.save()
    logger.info("Lesson plan %s %s -> %s by user %s", plan.pk, previous, plan.status, actor.pk)
    return plan


@transaction.atomic
def reject(actor: User, plan: LessonPlan, notes: str | None) -> LessonPlan:
    """Return a submitted plan for revision and notify its submitter.

    Notes are mandatory. The notification is created in the same transaction.

    Raises:
        PermissionDenied: Actor lacks ``lesson_plan.approve``.
        ValidationError: Notes missing or blank.
        InvalidTransition: Plan is not SUBMITTED.
    """
    ensure_same_tenant(actor, plan, "Lesson plan")
    _ensure_permission(actor, registry.LESSON_PLAN_APPROVE, _resolver_for(actor))
    if not notes or not str(notes).strip():
        raise ValidationError({"notes": "Review notes are required when returning a lesson plan."})
    plan = _lock(plan)
    if plan.status not in REJECTABLE_FROM:
        raise InvalidTransition(f"Cannot reject a lesson plan in status '{plan.status}'.")
    previous = plan.status
    plan.status = LessonPlanStatus.REJECTED
    plan.rejected_at = timezone.now()
    plan.rejected_by = actor
    plan.review_notes = notes
    plan.save()
    notification_service.create_lesson_plan_returned(plan, notes)
    logger.info("Lesson plan %s %s -> %s by user %s", plan.pk, previous, plan.status, actor.pk)
    return plan


@transaction.atomic
def withdraw(actor: User, plan: LessonPlan) -> LessonPlan:
    """Pull a submitted plan back to DRAFT (submitter or plan teacher only)."""
    ensure_same_tenant(actor, plan, "Lesson plan")
    plan = _lock(plan)
    if actor.pk not in (plan.submitted_by_id, plan.teacher_id):
        raise PermissionDenied("Only the submitter or the plan's teacher can withdraw it")
    if plan.status != LessonPlanStatus.SUBMITTED:
        raise InvalidTransition(f"Cannot withdraw a lesson plan in status '{plan.status}'.")
    plan.status = LessonPlanStatus.DRAFT
    plan.submitted_at = None
    plan.submitted_by = None
    plan.save()
    logger.info("Lesson plan %s withdrawn to draft by user %s", plan.pk, actor.pk)
    return plan


def _dedupe(ids: Iterable[Any]) -> list[Any]:
    seen = []
    for value in ids:
        if value not in seen:
            seen.append(value)
    return seen


def _as_pk(value: Any) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


@transaction.atomic
def copy_lesson_plan(
    actor: User,
    source: LessonPlan,
    target_room_ids: Iterable[Any],
    target_week_start: Any,
    today: date | None = None,
) -> CopyResult:
    """Copy a plan's scheduled activities into new DRAFT plans, one per target room.

    The target week must start after the current week. Copies keep the source's
    schedule type and start without completion or rating data. A target whose
    (room, week, schedule type) slot already has a plan, or whose room is unknown
    in the actor's tenant, is reported in ``failures``; the remaining targets are
    still created.

    Raises:
        PermissionDenied: Actor lacks ``lesson_plan.copy``.
        ValidationError: No target rooms, or a missing/invalid/past target week.
    """
    ensure_same_tenant(actor, source, "Lesson plan")
    _ensure_permission(actor, registry.LESSON_PLAN_COPY, _resolver_for(actor))

    room_ids = _dedupe(target_room_ids or [])
    if not room_ids:
        raise ValidationError({"target_room_ids": "Select at least one target room."})
    week = _parse_week_start(target_week_start, "target_week_start")
    if week <= current_week_start(today):
        raise ValidationError({"target_week_start": "Target week must be a future week."})

    activities = list(ScheduledActivity.objects.for_plan(source))
    pks = [pk for pk in (_as_pk(r) for r in room_ids) if pk is not None]
    rooms = {
        room.pk: room
        for room in Room.objects.select_related("location").filter(tenant_id=actor.tenant_id, pk__in=pks)
    }

    result = CopyResult()
    for room_id in room_ids:
        room = rooms.get(_as_pk(room_id))
        if room is None:
            result.failures.append(CopyFailure(room_id, "not_found", "Room not found"))
            continue
        if LessonPlan.objects.for_slot(room.location, room, week, source.schedule_type).exists():
            logger.info("Copy of plan %s skipped: room %s already has a plan for %s", source.pk, room.pk, week)
            result.failures.append(CopyFailure(room.pk, "conflict", "A lesson plan already exists for this week"))
            continue
        try:
            with transaction.atomic():
                plan = LessonPlan.objects.create(
                    tenant_id=actor.tenant_id,
                    location=room.location,
                    room=room,
                    teacher=actor,
                    week_start=week,
                    schedule_type=source.schedule_type,
                    status=LessonPlanStatus.DRAFT,
                )
                ScheduledActivity.objects.bulk_create([
                    ScheduledActivity(
                        lesson_plan=plan,
                        **{name: getattr(activity, name) for name in ScheduledActivity.COPY_FIELDS},
                    )
                    for activity in activities
                ])
        except IntegrityError:
            logger.info("Copy of plan %s lost a race for room %s week %s", source.pk, room.pk, week)
            result.failures.append(CopyFailure(room.pk, "conflict", "A lesson plan already exists for this week"))
            continue
        result.created.append(plan)

    logger.info(
        "Copied lesson plan %s to %d room(s), %d failure(s)",
        source.pk, len(result.created), len(result.failures),
    )
    return result


def list_activities(actor: User, plan_id: Any) -> QuerySet[ScheduledActivity]:
    return ScheduledActivity.objects.for_plan(get_plan(actor, plan_id))


@transaction.atomic
def add_activity(actor: User, plan_id: Any, data: dict[str, Any]) -> ScheduledActivity:
    """Schedule an activity into a plan (plan teacher or reviewers only)."""
    plan = get_plan(actor, plan_id)
    if actor.pk != plan.teacher_id:
        _ensure_permission(actor, registry.LESSON_PLAN_APPROVE, _resolver_for(actor))
    activity = ScheduledActivity.objects.create(
        lesson_plan=plan,
        **{name: data[name] for name in ScheduledActivity.COPY_FIELDS if name in data},
    )
    logger.info("Scheduled activity %s added to lesson plan %s by user %s", activity.pk, plan.pk, actor.pk)
    return activity
