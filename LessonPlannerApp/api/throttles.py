"""API throttling classes."""

from rest_framework.throttling import UserRateThrottle

class LessonPlanSubmitThrottle(UserRateThrottle):
    """Throttle limiting lesson plan submissions per user (rate from DEFAULT_THROTTLE_RATES)."""
    scope = "lesson_plan_submit"
