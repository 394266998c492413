from django.urls import path, include
from rest_framework_nested import routers
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView

from LessonPlannerApp.api.views import (
    LessonPlanViewSet,
    ScheduledActivityViewSet,
    PermissionOverrideViewSet,
    PermissionCheckView,
    PermissionRegistryView,
    NotificationViewSet,
)

router = routers.SimpleRouter()
router.register(r"lesson-plans", LessonPlanViewSet, basename="lesson-plan")
router.register(r"permissions/overrides", PermissionOverrideViewSet, basename="permission-override")
router.register(r"notifications", NotificationViewSet, basename="notification")

lesson_plans_router = routers.NestedSimpleRouter(router, r"lesson-plans", lookup="lesson_plan")
lesson_plans_router.register(
    r"scheduled-activities", ScheduledActivityViewSet, basename="lesson-plan-scheduled-activities"
)

urlpatterns = [
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    path("docs/", SpectacularSwaggerView.as_view(url_name="schema"), name="docs"),
    path("auth/token/", TokenObtainPairView.as_view(), name="token_obtain_pair"),
    path("auth/token/refresh/", TokenRefreshView.as_view(), name="token_refresh"),
    path("permissions/check/", PermissionCheckView.as_view(), name="permission-check"),
    path("permissions/registry/", PermissionRegistryView.as_view(), name="permission-registry"),
    path("", include(router.urls)),
    path("", include(lesson_plans_router.urls)),
]
