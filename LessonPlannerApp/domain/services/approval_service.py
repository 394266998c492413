"""Submit-time auto-approval decision.

``lesson_plan.auto_approve`` is consulted when the tenant has an override for it;
otherwise ``lesson_plan.submit`` (override or registry default) decides. Overrides on
``lesson_plan.approve`` only control who may review and never affect this decision.
"""
from typing import Any

from LessonPlannerApp.permissions import registry
from LessonPlannerApp.permissions.resolver import PermissionResolver


def decision_permission(resolver: PermissionResolver) -> str:
    """Permission key whose resolution drives auto-approval for the resolver's tenant."""
    if resolver.has_override(registry.LESSON_PLAN_AUTO_APPROVE):
        return registry.LESSON_PLAN_AUTO_APPROVE
    return registry.LESSON_PLAN_SUBMIT


def should_auto_approve(tenant: Any, role: Any, resolver: PermissionResolver | None = None) -> bool:
    """True when submissions by ``role`` in ``tenant`` land directly in ``approved``."""
    resolver = resolver or PermissionResolver(tenant)
    return resolver.resolve(role, decision_permission(resolver)).bypasses_review
