from django.utils.dateparse import parse_date

from rest_framework import status, mixins, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework.exceptions import ValidationError

from drf_spectacular.utils import (
    extend_schema,
    extend_schema_view,
    OpenApiResponse,
    OpenApiParameter,
)

from LessonPlannerApp.core.access import normalize_role
from LessonPlannerApp.core.choices import LessonPlanStatus
from LessonPlannerApp.core.permissions import CanAccessSettings, IsTenantMember
from LessonPlannerApp.domain.services import (
    lesson_plan_service,
    notification_service,
    permission_service,
)
from LessonPlannerApp.permissions import registry
from LessonPlannerApp.permissions.resolver import PermissionResolver
from LessonPlannerApp.planning.models import LessonPlan
from LessonPlannerApp.api.mixins import PaginationMixin
from LessonPlannerApp.api.serializers import (
    LessonPlanReadSerializer,
    LessonPlanSubmitSerializer,
    ApproveSerializer,
    RejectSerializer,
    CopySerializer,
    CopyResultSerializer,
    ScheduledActivitySerializer,
    PermissionOverrideSerializer,
    PermissionToggleSerializer,
    PermissionCheckSerializer,
    PermissionDefinitionSerializer,
    NotificationSerializer,
)
from LessonPlannerApp.api.throttles import LessonPlanSubmitThrottle

FORBIDDEN = OpenApiResponse(description="Forbidden")
NOT_FOUND = OpenApiResponse(description="Not Found")
CONFLICT = OpenApiResponse(description="Invalid status transition")


# ---------- Lesson plans ----------
@extend_schema_view(
    list=extend_schema(
        tags=["Lesson plans"],
        parameters=[
            OpenApiParameter("status", str, enum=LessonPlanStatus.values),
            OpenApiParameter("week_start", str, description="Monday, YYYY-MM-DD"),
            OpenApiParameter("room", int),
        ],
    ),
    retrieve=extend_schema(tags=["Lesson plans"]),
    review_queue=extend_schema(
        tags=["Review"], responses={200: LessonPlanReadSerializer(many=True), 403: FORBIDDEN},
    ),
    submit_new=extend_schema(
        tags=["Review"],
        request=LessonPlanSubmitSerializer,
        responses={200: LessonPlanReadSerializer, 403: FORBIDDEN, 404: NOT_FOUND},
        description="Find or create the plan for a slot and submit it (rate limited).",
    ),
    submit=extend_schema(
        tags=["Review"],
        request=None,
        responses={200: LessonPlanReadSerializer, 403: FORBIDDEN, 404: NOT_FOUND},
        description="Submit or resubmit an existing plan (rate limited).",
    ),
    approve=extend_schema(
        tags=["Review"],
        request=ApproveSerializer,
        responses={200: LessonPlanReadSerializer, 403: FORBIDDEN, 404: NOT_FOUND, 409: CONFLICT},
    ),
    reject=extend_schema(
        tags=["Review"],
        request=RejectSerializer,
        responses={200: LessonPlanReadSerializer, 400: OpenApiResponse(description="Notes required"),
                   403: FORBIDDEN, 404: NOT_FOUND, 409: CONFLICT},
    ),
    withdraw=extend_schema(
        tags=["Review"],
        request=None,
        responses={200: LessonPlanReadSerializer, 403: FORBIDDEN, 409: CONFLICT},
    ),
    copy=extend_schema(
        tags=["Lesson plans"],
        request=CopySerializer,
        responses={200: CopyResultSerializer, 400: OpenApiResponse(description="Validation error"), 403: FORBIDDEN},
    ),
)
class LessonPlanViewSet(
    PaginationMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    serializer_class = LessonPlanReadSerializer
    permission_classes = [IsAuthenticated, IsTenantMember]
    lookup_value_regex = r"\d+"
    throttle_classes = []

    def get_throttles(self):
        if self.action in ("submit", "submit_new"):
            self.throttle_classes = [LessonPlanSubmitThrottle]
        return super().get_throttles()

    def get_queryset(self):
        qs = LessonPlan.objects.visible_to(self.request.user).select_related(
            "room", "location", "teacher", "submitted_by", "approved_by", "rejected_by"
        )
        params = self.request.query_params
        if params.get("status"):
            qs = qs.filter(status=params["status"])
        if params.get("week_start"):
            try:
                week_start = parse_date(params["week_start"])
            except ValueError:
                week_start = None
            if week_start is None:
                raise ValidationError({"week_start": "Expected an ISO date (YYYY-MM-DD)."})
            qs = qs.filter(week_start=week_start)
        if params.get("room"):
            if not params["room"].isdigit():
                raise ValidationError({"room": "Expected a room id."})
            qs = qs.filter(room_id=params["room"])
        return qs.order_by("-week_start", "id")

    @action(detail=False, methods=["get"], url_path="review-queue")
    def review_queue(self, request):
        qs = lesson_plan_service.review_queue(request.user)
        return self.paginate_and_respond(qs)

    @action(detail=False, methods=["post"], url_path="submit", url_name="submit-new")
    def submit_new(self, request):
        ser = LessonPlanSubmitSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        plan = lesson_plan_service.submit(
            request.user,
            room=ser.validated_data["room"],
            week_start=ser.validated_data["week_start"],
            location=ser.validated_data.get("location"),
            schedule_type=ser.validated_data.get("schedule_type"),
        )
        return Response(LessonPlanReadSerializer(plan).data)

    @action(detail=True, methods=["post"], url_path="submit")
    def submit(self, request, pk=None):
        plan = lesson_plan_service.submit(request.user, self.get_object())
        return Response(LessonPlanReadSerializer(plan).data)

    @action(detail=True, methods=["post"], url_path="approve")
    def approve(self, request, pk=None):
        plan = self.get_object()
        ser = ApproveSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        plan = lesson_plan_service.approve(request.user, plan, ser.validated_data.get("notes"))
        return Response(LessonPlanReadSerializer(plan).data)

    @action(detail=True, methods=["post"], url_path="reject")
    def reject(self, request, pk=None):
        plan = self.get_object()
        ser = RejectSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        plan = lesson_plan_service.reject(request.user, plan, ser.validated_data.get("notes"))
        return Response(LessonPlanReadSerializer(plan).data)

    @action(detail=True, methods=["post"], url_path="withdraw")
    def withdraw(self, request, pk=None):
        plan = lesson_plan_service.withdraw(request.user, self.get_object())
        return Response(LessonPlanReadSerializer(plan).data)

    @action(detail=True, methods=["post"], url_path="copy")
    def copy(self, request, pk=None):
        source = self.get_object()
        ser = CopySerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        result = lesson_plan_service.copy_lesson_plan(
            request.user,
            source,
            ser.validated_data["target_room_ids"],
            ser.validated_data["target_week_start"],
        )
        return Response(CopyResultSerializer(result).data)


# ---------- Scheduled activities ----------
@extend_schema_view(
    list=extend_schema(tags=["Scheduled activities"]),
    create=extend_schema(
        tags=["Scheduled activities"],
        request=ScheduledActivitySerializer,
        responses={201: ScheduledActivitySerializer, 403: FORBIDDEN, 404: NOT_FOUND},
    ),
)
class ScheduledActivityViewSet(mixins.ListModelMixin, viewsets.GenericViewSet):
    serializer_class = ScheduledActivitySerializer
    permission_classes = [IsAuthenticated, IsTenantMember]
    pagination_class = None

    def get_queryset(self):
        return lesson_plan_service.list_activities(self.request.user, self.kwargs["lesson_plan_pk"])

    def create(self, request, *args, **kwargs):
        ser = self.get_serializer(data=request.data)
        ser.is_valid(raise_exception=True)
        activity = lesson_plan_service.add_activity(
            request.user, self.kwargs["lesson_plan_pk"], ser.validated_data
        )
        return Response(ScheduledActivitySerializer(activity).data, status=status.HTTP_201_CREATED)


# ---------- Permission overrides ----------
@extend_schema_view(
    list=extend_schema(tags=["Permissions"], responses={200: PermissionOverrideSerializer(many=True)}),
    create=extend_schema(
        tags=["Permissions"],
        request=PermissionOverrideSerializer,
        responses={201: PermissionOverrideSerializer, 200: PermissionOverrideSerializer, 403: FORBIDDEN},
        description="Create the tenant's override for a permission, or merge into the existing one.",
    ),
    partial_update=extend_schema(
        tags=["Permissions"],
        request=PermissionOverrideSerializer,
        responses={200: PermissionOverrideSerializer, 403: FORBIDDEN, 404: NOT_FOUND},
    ),
    toggle=extend_schema(
        tags=["Permissions"],
        request=PermissionToggleSerializer,
        responses={200: PermissionOverrideSerializer, 403: FORBIDDEN},
    ),
)
class PermissionOverrideViewSet(viewsets.GenericViewSet):
    serializer_class = PermissionOverrideSerializer
    permission_classes = [IsAuthenticated, CanAccessSettings]
    lookup_value_regex = r"\d+"
    pagination_class = None

    def get_queryset(self):
        return permission_service.list_overrides(self.request.user)

    def list(self, request):
        return Response(PermissionOverrideSerializer(self.get_queryset(), many=True).data)

    def create(self, request):
        ser = PermissionOverrideSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        override, created = permission_service.save_override(request.user, dict(ser.validated_data))
        code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
        return Response(PermissionOverrideSerializer(override).data, status=code)

    def partial_update(self, request, pk=None):
        ser = PermissionOverrideSerializer(data=request.data, partial=True)
        ser.is_valid(raise_exception=True)
        override = permission_service.upsert_override(request.user, {**ser.validated_data, "id": pk})
        return Response(PermissionOverrideSerializer(override).data)

    @action(detail=False, methods=["post"], url_path="toggle")
    def toggle(self, request):
        ser = PermissionToggleSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        override = permission_service.toggle_role(request.user, **ser.validated_data)
        return Response(PermissionOverrideSerializer(override).data)


@extend_schema(
    tags=["Permissions"],
    parameters=[
        OpenApiParameter("permission", str, required=True),
        OpenApiParameter("role", str, description="Role to check; other roles need settings access."),
    ],
    responses={200: PermissionCheckSerializer, 400: OpenApiResponse(description="Missing permission")},
    description="Effective permission for a role in the caller's tenant.",
)
class PermissionCheckView(APIView):
    permission_classes = [IsAuthenticated, IsTenantMember]

    def get(self, request):
        permission_name = request.query_params.get("permission")
        if not permission_name:
            raise ValidationError({"permission": "This query parameter is required."})
        resolver = PermissionResolver(request.user.tenant_id)
        role = request.query_params.get("role") or request.user.role
        if normalize_role(role) != normalize_role(request.user.role):
            permission_service.ensure_settings_access(request.user, resolver)
        check = resolver.resolve(role, permission_name)
        payload = {
            "permission": permission_name,
            "role": role,
            "allowed": check.allowed,
            "requires_approval": check.requires_approval,
            "reason": check.reason,
        }
        return Response(PermissionCheckSerializer(payload).data)


@extend_schema(
    tags=["Permissions"],
    responses={200: PermissionDefinitionSerializer(many=True)},
    description="System permission registry with default roles.",
)
class PermissionRegistryView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        definitions = [registry.PERMISSIONS[name] for name in sorted(registry.PERMISSIONS)]
        return Response(PermissionDefinitionSerializer(definitions, many=True).data)


# ---------- Notifications ----------
@extend_schema_view(
    list=extend_schema(tags=["Notifications"], responses={200: NotificationSerializer(many=True)}),
    read=extend_schema(tags=["Notifications"], request=None, responses={200: NotificationSerializer, 404: NOT_FOUND}),
    dismiss=extend_schema(tags=["Notifications"], request=None, responses={200: NotificationSerializer, 404: NOT_FOUND}),
)
class NotificationViewSet(PaginationMixin, viewsets.GenericViewSet):
    serializer_class = NotificationSerializer
    permission_classes = [IsAuthenticated]
    lookup_value_regex = r"\d+"

    def get_queryset(self):
        return notification_service.list_active(self.request.user)

    def list(self, request):
        return self.paginate_and_respond(self.get_queryset())

    @action(detail=True, methods=["post"], url_path="read")
    def read(self, request, pk=None):
        notification = notification_service.mark_read(request.user, pk)
        return Response(NotificationSerializer(notification).data)

    @action(detail=True, methods=["post"], url_path="dismiss")
    def dismiss(self, request, pk=None):
        notification = notification_service.dismiss(request.user, pk)
        return Response(NotificationSerializer(notification).data)
