# notifications/models.py
from django.db import models
from django.conf import settings


class Notification(models.Model):
    TYPE_NEW_APPLICATION = "new_application"
    TYPE_APPLICATION_ACCEPTED = "application_accepted"
    TYPE_APPLICATION_REJECTED = "application_rejected"
    TYPE_STATUS_CHANGED = "status_changed"
    TYPE_PROJECT_UPDATE = "project_update"
    TYPE_REVIEW_RECEIVED = "review_received"
    TYPE_PAYMENT_RECEIVED = "payment_received"
    TYPE_SYSTEM = "system"

    TYPE_CHOICES = [
        (TYPE_NEW_APPLICATION, "New Application"),
        (TYPE_APPLICATION_ACCEPTED, "Application Accepted"),
        (TYPE_APPLICATION_REJECTED, "Application Rejected"),
        (TYPE_STATUS_CHANGED, "Status Changed"),
        (TYPE_PROJECT_UPDATE, "Project Update"),
        (TYPE_REVIEW_RECEIVED, "Review Received"),
        (TYPE_PAYMENT_RECEIVED, "Payment Received"),
        (TYPE_SYSTEM, "System"),
    ]

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="notifications",
    )
    type = models.CharField(max_length=64, choices=TYPE_CHOICES)
    title = models.CharField(max_length=255)
    body = models.TextField(blank=True)
    is_read = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    # Optional linking to project; kept as history if the project row goes
    project = models.ForeignKey(
        "projects.Project",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="notifications",
    )

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["user", "is_read"], name="notif_user_read_idx"),
            models.Index(fields=["type"], name="notif_type_idx"),
        ]

    def __str__(self):
        return f"{self.user} - {self.type} - {self.title}"
