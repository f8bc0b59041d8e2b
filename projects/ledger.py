"""
Update ledger.

An append-only timeline of typed updates written by the assigned
professional. Appending is the one place where update content drives a
lifecycle transition:

    assigned | revision  + activity update          -> in_progress
    in_progress          + revisit_required         -> revision
    in_progress | revision + message containing the
                           completion keyword       -> submitted

At most one transition fires per append; when several rules match, the most
advanced target wins. The update is committed before the transition is
attempted, so a failed transition never loses history.
"""
from decimal import Decimal, InvalidOperation
import logging

from django.conf import settings
from django.db import transaction
from django.db.models import Q
from rest_framework.exceptions import ValidationError

from . import activity_verbs
from .exceptions import NotAssignedProfessional, ProjectNotActionable
from .lifecycle import get_project
from .models import Project, ProjectUpdate
from .signals import notify
from .state_machine import transition

logger = logging.getLogger('marketplace.projects')

CATEGORY_ACTIVITY = "activity"
CATEGORY_STATUS = "status"
CATEGORY_FILES = "files"
CATEGORY_EXPENSES = "expenses"
CATEGORY_SCHEDULE = "schedule"

UPDATE_TYPE_GROUPS = {
    CATEGORY_ACTIVITY: [
        ProjectUpdate.TYPE_MESSAGE,
        ProjectUpdate.TYPE_CHECK_IN,
        ProjectUpdate.TYPE_CHECK_OUT,
        ProjectUpdate.TYPE_ON_MY_WAY,
        ProjectUpdate.TYPE_SITE_CHECK,
        ProjectUpdate.TYPE_TASK_COMPLETED,
    ],
    CATEGORY_STATUS: [
        ProjectUpdate.TYPE_STATUS_CHANGE,
        ProjectUpdate.TYPE_DELAYED,
        ProjectUpdate.TYPE_CANCELLED,
        ProjectUpdate.TYPE_REVISIT_REQUIRED,
    ],
    CATEGORY_FILES: [
        ProjectUpdate.TYPE_FILE_UPLOAD,
        ProjectUpdate.TYPE_COMPLETION_NOTE,
        ProjectUpdate.TYPE_CUSTOM_FIELD_UPDATED,
    ],
    CATEGORY_EXPENSES: [
        ProjectUpdate.TYPE_EXPENSE_SUBMITTED,
        ProjectUpdate.TYPE_EXPENSE_APPROVED,
        ProjectUpdate.TYPE_PAYMENT_PROCESSED,
    ],
    CATEGORY_SCHEDULE: [
        ProjectUpdate.TYPE_START_TIME,
        ProjectUpdate.TYPE_SCHEDULE_UPDATED,
    ],
}

_CATEGORY_BY_TYPE = {
    update_type: category
    for category, types in UPDATE_TYPE_GROUPS.items()
    for update_type in types
}

METADATA_KEYS = {
    "checked_by",
    "geolocation",
    "amount",
    "description",
    "task_name",
    "field_name",
    "field_value",
    "delay_reason",
    "cancelled_by",
    "new_time",
}

# Rank of each derived target; higher wins when several rules match
_TARGET_RANK = {
    Project.STATUS_IN_PROGRESS: 1,
    Project.STATUS_REVISION: 2,
    Project.STATUS_SUBMITTED: 3,
}


def category_for(update_type):
    return _CATEGORY_BY_TYPE.get(update_type)


def completion_keyword():
    return getattr(settings, "MARKETPLACE_COMPLETION_KEYWORD", "completed")


def validate_metadata(update_type, metadata, message="", attachment=""):
    """Check the type-dependent payload. Returns a cleaned copy of metadata."""
    if update_type not in _CATEGORY_BY_TYPE:
        raise ValidationError({"update_type": f"Unknown update type: {update_type}"})

    metadata = dict(metadata or {})
    unknown = set(metadata) - METADATA_KEYS
    if unknown:
        raise ValidationError({"metadata": f"Unsupported keys: {', '.join(sorted(unknown))}"})

    geo = metadata.get("geolocation")
    if geo is not None:
        if not isinstance(geo, dict) or "latitude" not in geo or "longitude" not in geo:
            raise ValidationError({"metadata": "geolocation needs latitude and longitude."})
        try:
            metadata["geolocation"] = {
                "latitude": float(geo["latitude"]),
                "longitude": float(geo["longitude"]),
            }
        except (TypeError, ValueError):
            raise ValidationError({"metadata": "geolocation coordinates must be numbers."})

    if "amount" in metadata:
        try:
            amount = Decimal(str(metadata["amount"]))
        except (InvalidOperation, ValueError):
            raise ValidationError({"metadata": "amount must be a number."})
        if not amount.is_finite():
            raise ValidationError({"metadata": "amount must be a number."})
        # JSONField stores strings to keep decimals exact
        metadata["amount"] = str(amount)
    elif update_type == ProjectUpdate.TYPE_EXPENSE_SUBMITTED:
        raise ValidationError({"metadata": "expense_submitted requires an amount."})

    if update_type == ProjectUpdate.TYPE_TASK_COMPLETED and not metadata.get("task_name"):
        raise ValidationError({"metadata": "task_completed requires task_name."})
    if update_type == ProjectUpdate.TYPE_CUSTOM_FIELD_UPDATED and not metadata.get("field_name"):
        raise ValidationError({"metadata": "custom_field_updated requires field_name."})
    if update_type in (ProjectUpdate.TYPE_MESSAGE, ProjectUpdate.TYPE_COMPLETION_NOTE) and not message:
        raise ValidationError({"message": f"{update_type} requires a message."})
    if update_type == ProjectUpdate.TYPE_FILE_UPLOAD and not attachment:
        raise ValidationError({"attachment": "file_upload requires an attachment."})

    return metadata


def derive_transition(current_status, update):
    """Target status implied by an update on a project in current_status, or None."""
    candidates = []

    keyword = completion_keyword().lower()
    if (
        current_status in (Project.STATUS_IN_PROGRESS, Project.STATUS_REVISION)
        and keyword
        and keyword in (update.message or "").lower()
    ):
        candidates.append(Project.STATUS_SUBMITTED)

    if (
        current_status == Project.STATUS_IN_PROGRESS
        and update.update_type == ProjectUpdate.TYPE_REVISIT_REQUIRED
    ):
        candidates.append(Project.STATUS_REVISION)

    if (
        current_status in (Project.STATUS_ASSIGNED, Project.STATUS_REVISION)
        and category_for(update.update_type) == CATEGORY_ACTIVITY
    ):
        candidates.append(Project.STATUS_IN_PROGRESS)

    if not candidates:
        return None
    return max(candidates, key=_TARGET_RANK.get)


def ensure_can_append(project, author):
    if project.status not in Project.ACTIONABLE_STATUSES:
        raise ProjectNotActionable(current_status=project.status)
    if project.assigned_to_id != author.id:
        raise NotAssignedProfessional(current_status=project.status)


def append_update(project_id, author, update_type, message="", attachment="",
                  attachment_name="", metadata=None, status_update=""):
    """
    Append an update to the project's ledger and apply any derived transition.

    Raises ProjectNotActionable unless the project is assigned, in progress
    or in revision, and NotAssignedProfessional unless author is the
    assignee; no update is written in either case. If the derived transition
    fails the update is kept and InvalidTransition propagates.
    """
    metadata = validate_metadata(update_type, metadata, message=message, attachment=attachment)

    with transaction.atomic():
        project = get_project(project_id, for_update=True)
        ensure_can_append(project, author)

        update = ProjectUpdate.objects.create(
            project=project,
            professional=author,
            update_type=update_type,
            message=message or "",
            status_update=status_update or "",
            attachment=attachment or "",
            attachment_name=attachment_name or "",
            metadata=metadata,
        )
        observed_status = project.status

    logger.info(
        f"Update appended: update={update.id}, project={project.id}, "
        f"type={update_type}, author={author.id}"
    )
    notify(project, activity_verbs.UPDATE_APPENDED, actor=author, update=update)

    target = derive_transition(observed_status, update)
    if target is None:
        return update

    with transaction.atomic():
        project = get_project(project_id, for_update=True)
        transition(project, target, actor=author, sources=[observed_status], assignee=author)

    logger.info(
        f"Update triggered transition: update={update.id}, project={project.id}, "
        f"from={observed_status}, to={target}"
    )
    return update


def list_updates(project_id, update_type=None, search=None):
    """
    Reverse-chronological updates for a project.

    Returns a lazy queryset; evaluate it again to pick up new entries.
    """
    get_project(project_id)
    qs = ProjectUpdate.objects.filter(project_id=project_id).select_related("professional")
    if update_type:
        qs = qs.filter(update_type=update_type)
    if search:
        qs = qs.filter(
            Q(message__icontains=search)
            | Q(update_type__icontains=search)
            | Q(status_update__icontains=search)
        )
    return qs.order_by("-created_at", "-id")
