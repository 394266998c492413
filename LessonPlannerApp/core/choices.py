from django.db import models

class UserRole(models.TextChoices):
    TEACHER = "teacher", "Teacher"
    ASSISTANT_DIRECTOR = "assistant_director", "Assistant Director"
    DIRECTOR = "director", "Director"
    ADMIN = "admin", "Admin"
    SUPERADMIN = "superadmin", "Super Admin"
    PARENT = "parent", "Parent"

class ScheduleType(models.TextChoices):
    POSITION_BASED = "position-based", "Position based"
    TIME_BASED = "time-based", "Time based"

class LessonPlanStatus(models.TextChoices):
    DRAFT = "draft", "Draft"
    SUBMITTED = "submitted", "Submitted"
    APPROVED = "approved", "Approved"
    REJECTED = "rejected", "Rejected"

class NotificationType(models.TextChoices):
    LESSON_PLAN_RETURNED = "lesson_plan_returned", "Lesson plan returned"

class OverrideListKind(models.TextChoices):
    ROLES_REQUIRED = "require", "Requires approval"
    AUTO_APPROVE = "autoApprove", "Auto-approve"
