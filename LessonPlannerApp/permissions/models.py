from django.db import models

from simple_history.models import HistoricalRecords


class TenantPermissionOverride(models.Model):
    """A tenant's replacement of the default role mapping for one permission.

    ``roles_required``: roles whose actions under this permission go through review.
    ``auto_approve_roles``: roles whose actions bypass review.
    A role never appears in both lists; writes go through
    ``domain.services.permission_service`` which enforces it.
    """
    tenant = models.ForeignKey(
        "organizations.Tenant", on_delete=models.CASCADE, related_name="permission_overrides"
    )
    permission_name = models.CharField(max_length=100)
    roles_required = models.JSONField(default=list, blank=True)
    auto_approve_roles = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    history = HistoricalRecords()

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["tenant", "permission_name"], name="uq_tenant_permission"),
        ]

    def __str__(self):
        return f"{self.tenant_id}:{self.permission_name}"
