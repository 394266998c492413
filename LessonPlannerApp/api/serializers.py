"""Serializers for lesson plans, scheduled activities, permission overrides and notifications."""

from rest_framework import serializers
from django.contrib.auth import get_user_model

from LessonPlannerApp.core.choices import OverrideListKind, ScheduleType
from LessonPlannerApp.notifications.models import Notification
from LessonPlannerApp.permissions.models import TenantPermissionOverride
from LessonPlannerApp.planning.models import LessonPlan, ScheduledActivity

User = get_user_model()


class UserSerializer(serializers.ModelSerializer):
    """Public, safe representation of a user."""

    class Meta:
        model = User
        fields = ["id", "email", "first_name", "last_name", "role"]


class LessonPlanReadSerializer(serializers.ModelSerializer):
    teacher = UserSerializer(read_only=True)
    submitted_by = UserSerializer(read_only=True)
    approved_by = UserSerializer(read_only=True)
    rejected_by = UserSerializer(read_only=True)

    class Meta:
        model = LessonPlan
        fields = [
            "id", "tenant", "location", "room", "teacher", "week_start", "schedule_type", "status",
            "submitted_at", "submitted_by", "approved_at", "approved_by",
            "rejected_at", "rejected_by", "review_notes", "created_at", "updated_at",
        ]
        read_only_fields = fields


class LessonPlanSubmitSerializer(serializers.Serializer):
    """Describes the slot of a plan that may not exist yet."""
    room = serializers.IntegerField(help_text="Target room id.")
    week_start = serializers.DateField(help_text="Monday of the planned week.")
    location = serializers.IntegerField(required=False, allow_null=True, help_text="Defaults to the room's location.")
    schedule_type = serializers.ChoiceField(
        choices=ScheduleType.choices, required=False, allow_null=True,
        help_text="Defaults to the location's schedule type.",
    )

    def validate_week_start(self, value):
        if value.weekday() != 0:
            raise serializers.ValidationError("Week start must be a Monday.")
        return value


class ApproveSerializer(serializers.Serializer):
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class RejectSerializer(serializers.Serializer):
    notes = serializers.CharField(
        required=False, allow_blank=True, allow_null=True, trim_whitespace=False,
        help_text="Feedback for the teacher (required, stored verbatim).",
    )


class CopySerializer(serializers.Serializer):
    target_room_ids = serializers.ListField(child=serializers.IntegerField(), allow_empty=False)
    target_week_start = serializers.DateField()


class CopyFailureSerializer(serializers.Serializer):
    room_id = serializers.IntegerField()
    reason = serializers.CharField()
    detail = serializers.CharField()


class CopyResultSerializer(serializers.Serializer):
    created = LessonPlanReadSerializer(many=True)
    failures = CopyFailureSerializer(many=True)


class ScheduledActivitySerializer(serializers.ModelSerializer):
    class Meta:
        model = ScheduledActivity
        fields = [
            "id", "lesson_plan", "activity_ref", "day_of_week", "time_slot", "start_time", "notes",
            "is_completed", "completed_at", "rating", "rating_feedback", "created_at",
        ]
        read_only_fields = ["id", "lesson_plan", "is_completed", "completed_at", "rating", "rating_feedback", "created_at"]

    def validate(self, attrs):
        if attrs.get("time_slot") is None and attrs.get("start_time") is None:
            raise serializers.ValidationError("Provide either time_slot or start_time.")
        return attrs


class PermissionOverrideSerializer(serializers.ModelSerializer):
    roles_required = serializers.ListField(child=serializers.CharField(), required=False)
    auto_approve_roles = serializers.ListField(child=serializers.CharField(), required=False)

    class Meta:
        model = TenantPermissionOverride
        fields = ["id", "tenant", "permission_name", "roles_required", "auto_approve_roles", "created_at", "updated_at"]
        read_only_fields = ["id", "tenant", "created_at", "updated_at"]
        extra_kwargs = {"permission_name": {"required": False}}
        # Uniqueness per (tenant, permission) is handled by the upsert itself.
        validators = []


class PermissionToggleSerializer(serializers.Serializer):
    permission_name = serializers.CharField()
    role = serializers.CharField()
    kind = serializers.ChoiceField(choices=OverrideListKind.choices)


class PermissionCheckSerializer(serializers.Serializer):
    permission = serializers.CharField()
    role = serializers.CharField()
    allowed = serializers.BooleanField()
    requires_approval = serializers.BooleanField()
    reason = serializers.CharField()


class PermissionDefinitionSerializer(serializers.Serializer):
    name = serializers.CharField()
    resource = serializers.CharField()
    action = serializers.CharField()
    description = serializers.CharField()
    default_roles = serializers.SerializerMethodField()
    auto_approve_roles = serializers.SerializerMethodField()

    def get_default_roles(self, obj) -> list[str]:
        return sorted(obj.default_roles)

    def get_auto_approve_roles(self, obj) -> list[str]:
        return sorted(obj.auto_approve_roles)


class NotificationSerializer(serializers.ModelSerializer):
    class Meta:
        model = Notification
        fields = [
            "id", "type", "lesson_plan", "week_start", "title", "message", "review_notes",
            "is_read", "read_at", "is_dismissed", "dismissed_at", "created_at",
        ]
        read_only_fields = fields

