"""Tenant partitioning models: Tenant, Location, Room."""

from django.db import models

from LessonPlannerApp.core.choices import ScheduleType


class Tenant(models.Model):
    """An isolated organization; every other entity is scoped to one tenant."""
    name = models.CharField(max_length=200)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.name


class Location(models.Model):
    """A centre belonging to a tenant; owns the schedule type used by its lesson plans."""
    tenant = models.ForeignKey(Tenant, on_delete=models.CASCADE, related_name="locations")
    name = models.CharField(max_length=200)
    schedule_type = models.CharField(
        max_length=16, choices=ScheduleType.choices, default=ScheduleType.POSITION_BASED
    )
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.name


class Room(models.Model):
    tenant = models.ForeignKey(Tenant, on_delete=models.CASCADE, related_name="rooms")
    location = models.ForeignKey(Location, on_delete=models.CASCADE, related_name="rooms")
    name = models.CharField(max_length=200)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["location", "name"], name="uq_location_room_name"),
        ]

    def __str__(self):
        return self.name
