from decimal import Decimal

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import Q


class Project(models.Model):
    """
    A unit of trade work posted by a Client.

    `status` and `assigned_to` are written only through
    projects.state_machine; everything else may be edited by the owner
    while the project is open.
    """
    STATUS_OPEN = "open"
    STATUS_ASSIGNED = "assigned"
    STATUS_IN_PROGRESS = "in_progress"
    STATUS_REVISION = "revision"
    STATUS_SUBMITTED = "submitted"
    STATUS_COMPLETED = "completed"
    STATUS_PAID = "paid"
    STATUS_ARCHIVED = "archived"
    STATUS_CANCELLED = "cancelled"

    STATUS_CHOICES = [
        (STATUS_OPEN, "Open"),
        (STATUS_ASSIGNED, "Assigned"),
        (STATUS_IN_PROGRESS, "In progress"),
        (STATUS_REVISION, "Revision"),
        (STATUS_SUBMITTED, "Submitted"),
        (STATUS_COMPLETED, "Completed"),
        (STATUS_PAID, "Paid"),
        (STATUS_ARCHIVED, "Archived"),
        (STATUS_CANCELLED, "Cancelled"),
    ]

    # assigned_to is set exactly in these states
    ASSIGNED_STATUSES = (
        STATUS_ASSIGNED,
        STATUS_IN_PROGRESS,
        STATUS_REVISION,
        STATUS_SUBMITTED,
        STATUS_COMPLETED,
        STATUS_PAID,
        STATUS_ARCHIVED,
    )
    # Ledger accepts updates only here
    ACTIONABLE_STATUSES = (STATUS_ASSIGNED, STATUS_IN_PROGRESS, STATUS_REVISION)
    REVIEWABLE_STATUSES = (STATUS_COMPLETED, STATUS_PAID)
    # "at least completed"
    SETTLED_STATUSES = (STATUS_COMPLETED, STATUS_PAID, STATUS_ARCHIVED)

    URGENCY_LOW = "low"
    URGENCY_NORMAL = "normal"
    URGENCY_HIGH = "high"
    URGENCY_EMERGENCY = "emergency"

    URGENCY_CHOICES = [
        (URGENCY_LOW, "Low"),
        (URGENCY_NORMAL, "Normal"),
        (URGENCY_HIGH, "High"),
        (URGENCY_EMERGENCY, "Emergency"),
    ]

    client = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="client_projects",
    )
    assigned_to = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="assigned_projects",
        null=True,
        blank=True,
    )

    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    budget = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01"))],
    )
    category = models.CharField(max_length=100, blank=True)
    location = models.CharField(max_length=255, blank=True)
    required_skills = models.JSONField(default=list, blank=True)
    requirements = models.JSONField(default=list, blank=True)
    timeline = models.CharField(max_length=100, blank=True)
    urgency = models.CharField(max_length=20, choices=URGENCY_CHOICES, default=URGENCY_NORMAL)
    due_date = models.DateField(null=True, blank=True)

    status = models.CharField(
        max_length=32,
        choices=STATUS_CHOICES,
        default=STATUS_OPEN,
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=Q(budget__gt=0),
                name="project_budget_positive",
            ),
            models.CheckConstraint(
                condition=(
                    Q(status__in=(
                        "assigned", "in_progress", "revision", "submitted",
                        "completed", "paid", "archived",
                    ), assigned_to__isnull=False)
                    | (Q(status__in=("open", "cancelled"), assigned_to__isnull=True))
                ),
                name="project_assignment_matches_status",
            ),
        ]
        indexes = [
            models.Index(fields=["status", "created_at"], name="project_status_created_idx"),
            models.Index(fields=["client", "status"], name="project_client_status_idx"),
            models.Index(fields=["assigned_to", "status"], name="project_assignee_status_idx"),
        ]

    def __str__(self):
        return f"{self.title} ({self.status})"

    @property
    def is_terminal(self):
        return self.status in (self.STATUS_ARCHIVED, self.STATUS_CANCELLED)


class Application(models.Model):
    """A Professional's bid on an open Project. Never deleted."""
    STATUS_PENDING = "pending"
    STATUS_ACCEPTED = "accepted"
    STATUS_REJECTED = "rejected"
    STATUS_WITHDRAWN = "withdrawn"

    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_ACCEPTED, "Accepted"),
        (STATUS_REJECTED, "Rejected"),
        (STATUS_WITHDRAWN, "Withdrawn"),
    ]

    project = models.ForeignKey(
        Project,
        on_delete=models.PROTECT,
        related_name="applications",
    )
    professional = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="applications",
    )
    bid_amount = models.DecimalField(max_digits=12, decimal_places=2)
    proposal = models.TextField(blank=True)
    availability = models.CharField(max_length=255, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["project"],
                condition=Q(status="accepted"),
                name="one_accepted_application_per_project",
            ),
            models.UniqueConstraint(
                fields=["project", "professional"],
                condition=~Q(status="withdrawn"),
                name="one_live_application_per_professional",
            ),
        ]
        indexes = [
            models.Index(fields=["project", "status"], name="app_project_status_idx"),
            models.Index(fields=["professional", "status"], name="app_professional_status_idx"),
        ]

    def __str__(self):
        return f"{self.professional} -> {self.project_id} ({self.status})"


class ProjectUpdate(models.Model):
    """
    Ledger entry: an immutable timeline record written by the assigned
    Professional. Ordered by (created_at, id).
    """
    # Activity
    TYPE_MESSAGE = "message"
    TYPE_CHECK_IN = "check_in"
    TYPE_CHECK_OUT = "check_out"
    TYPE_ON_MY_WAY = "on_my_way"
    TYPE_SITE_CHECK = "site_check"
    TYPE_TASK_COMPLETED = "task_completed"
    # Status
    TYPE_STATUS_CHANGE = "status_change"
    TYPE_DELAYED = "delayed"
    TYPE_CANCELLED = "cancelled"
    TYPE_REVISIT_REQUIRED = "revisit_required"
    # Files & notes
    TYPE_FILE_UPLOAD = "file_upload"
    TYPE_COMPLETION_NOTE = "completion_note"
    TYPE_CUSTOM_FIELD_UPDATED = "custom_field_updated"
    # Expenses
    TYPE_EXPENSE_SUBMITTED = "expense_submitted"
    TYPE_EXPENSE_APPROVED = "expense_approved"
    TYPE_PAYMENT_PROCESSED = "payment_processed"
    # Schedule
    TYPE_START_TIME = "start_time"
    TYPE_SCHEDULE_UPDATED = "schedule_updated"

    TYPE_CHOICES = [
        (TYPE_MESSAGE, "Message"),
        (TYPE_CHECK_IN, "Check in"),
        (TYPE_CHECK_OUT, "Check out"),
        (TYPE_ON_MY_WAY, "On my way"),
        (TYPE_SITE_CHECK, "Site check"),
        (TYPE_TASK_COMPLETED, "Task completed"),
        (TYPE_STATUS_CHANGE, "Status change"),
        (TYPE_DELAYED, "Delayed"),
        (TYPE_CANCELLED, "Cancelled"),
        (TYPE_REVISIT_REQUIRED, "Revisit required"),
        (TYPE_FILE_UPLOAD, "File upload"),
        (TYPE_COMPLETION_NOTE, "Completion note"),
        (TYPE_CUSTOM_FIELD_UPDATED, "Custom field updated"),
        (TYPE_EXPENSE_SUBMITTED, "Expense submitted"),
        (TYPE_EXPENSE_APPROVED, "Expense approved"),
        (TYPE_PAYMENT_PROCESSED, "Payment processed"),
        (TYPE_START_TIME, "Start time"),
        (TYPE_SCHEDULE_UPDATED, "Schedule updated"),
    ]

    project = models.ForeignKey(
        Project,
        on_delete=models.PROTECT,
        related_name="updates",
    )
    professional = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        related_name="project_updates",
        null=True,
        blank=True,
    )
    update_type = models.CharField(max_length=32, choices=TYPE_CHOICES)
    message = models.TextField(blank=True)
    status_update = models.CharField(max_length=64, blank=True)
    attachment = models.CharField(max_length=1024, blank=True, help_text="Storage path of the attached file")
    attachment_name = models.CharField(max_length=255, blank=True)
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["project", "created_at"], name="update_project_created_idx"),
            models.Index(fields=["project", "update_type"], name="update_project_type_idx"),
        ]

    def __str__(self):
        return f"{self.project_id} - {self.update_type}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("Project updates are append-only and cannot be modified.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Project updates are append-only and cannot be deleted.")


class Review(models.Model):
    """Client review of the assigned Professional; one per Project."""
    project = models.OneToOneField(
        Project,
        on_delete=models.PROTECT,
        related_name="review",
    )
    client = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="reviews_given",
    )
    professional = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="reviews_received",
    )
    rating = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(1), MaxValueValidator(5)],
    )
    comment = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=Q(rating__gte=1, rating__lte=5),
                name="review_rating_range",
            ),
        ]
        indexes = [
            models.Index(fields=["professional", "created_at"], name="review_professional_idx"),
        ]

    def __str__(self):
        return f"{self.project_id} - {self.rating}"


class Payment(models.Model):
    STATUS_PENDING = "pending"
    STATUS_COMPLETED = "completed"
    STATUS_FAILED = "failed"

    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_COMPLETED, "Completed"),
        (STATUS_FAILED, "Failed"),
    ]

    project = models.ForeignKey(
        Project,
        on_delete=models.PROTECT,
        related_name="payments",
    )
    client = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="payments_made",
    )
    professional = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="payments_received",
    )
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)
    note = models.TextField(blank=True)
    paid_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["project"],
                condition=Q(status__in=["pending", "completed"]),
                name="one_open_payment_per_project",
            ),
        ]
        indexes = [
            models.Index(fields=["professional", "status"], name="payment_professional_idx"),
        ]

    def __str__(self):
        return f"{self.project_id} - {self.amount} ({self.status})"
