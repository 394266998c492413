from django.conf import settings
from django.db import models

from LessonPlannerApp.core.choices import NotificationType

User = settings.AUTH_USER_MODEL


class NotificationQuerySet(models.QuerySet):
    def active_for(self, user):
        return self.filter(recipient=user, is_dismissed=False).order_by("-created_at", "-id")


class Notification(models.Model):
    """A message for one user; only the recipient flips read/dismissed."""
    tenant = models.ForeignKey("organizations.Tenant", on_delete=models.CASCADE, related_name="notifications")
    recipient = models.ForeignKey(User, on_delete=models.CASCADE, related_name="notifications")
    type = models.CharField(max_length=32, choices=NotificationType.choices)
    lesson_plan = models.ForeignKey(
        "planning.LessonPlan", on_delete=models.CASCADE, null=True, blank=True, related_name="notifications"
    )
    week_start = models.DateField(null=True, blank=True)
    title = models.CharField(max_length=200)
    message = models.TextField()
    review_notes = models.TextField(blank=True)
    is_read = models.BooleanField(default=False)
    read_at = models.DateTimeField(null=True, blank=True)
    is_dismissed = models.BooleanField(default=False)
    dismissed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    objects = NotificationQuerySet.as_manager()
