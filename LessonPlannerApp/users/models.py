from django.contrib.auth.models import AbstractUser
from django.db import models

from LessonPlannerApp.core.choices import UserRole

class User(AbstractUser):
    email = models.EmailField(unique=True)
    role = models.CharField(max_length=32, choices=UserRole.choices, default=UserRole.TEACHER)
    tenant = models.ForeignKey(
        "organizations.Tenant", on_delete=models.PROTECT, related_name="users", null=True, blank=True
    )
    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = ["username"]
