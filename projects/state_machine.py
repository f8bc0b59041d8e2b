# projects/state_machine.py
"""
Project State Machine.

Enforces valid state transitions for the project lifecycle:
open → assigned → in_progress ⇄ revision → submitted → completed → paid → archived
                       └──────────────→ completed         completed → archived
open | assigned | in_progress | revision | submitted | completed → cancelled

paid is not cancellable: it already carries a completed payment.

Any transition not in VALID_TRANSITIONS is rejected. This module is the only
writer of Project.status and Project.assigned_to; every write is a single
conditional UPDATE keyed on the expected prior status, so two concurrent
callers can never both apply a transition out of the same state.
"""
from typing import Tuple
import logging

from django.utils import timezone

from .activity_verbs import PROJECT_STATUS_CHANGED
from .exceptions import InvalidTransition
from .models import Project
from .signals import notify

logger = logging.getLogger('marketplace.projects')


# Valid state transitions: from_status -> list of allowed to_statuses
VALID_TRANSITIONS = {
    Project.STATUS_OPEN: [Project.STATUS_ASSIGNED, Project.STATUS_CANCELLED],
    Project.STATUS_ASSIGNED: [Project.STATUS_IN_PROGRESS, Project.STATUS_CANCELLED],
    Project.STATUS_IN_PROGRESS: [
        Project.STATUS_REVISION,
        Project.STATUS_SUBMITTED,
        Project.STATUS_COMPLETED,
        Project.STATUS_CANCELLED,
    ],
    Project.STATUS_REVISION: [
        Project.STATUS_IN_PROGRESS,
        Project.STATUS_SUBMITTED,
        Project.STATUS_CANCELLED,
    ],
    Project.STATUS_SUBMITTED: [
        Project.STATUS_COMPLETED,
        Project.STATUS_REVISION,  # client requests rework
        Project.STATUS_CANCELLED,
    ],
    Project.STATUS_COMPLETED: [
        Project.STATUS_PAID,
        Project.STATUS_ARCHIVED,
        Project.STATUS_CANCELLED,
    ],
    Project.STATUS_PAID: [Project.STATUS_ARCHIVED],
}

CANCELLABLE_STATUSES = [
    status for status, targets in VALID_TRANSITIONS.items()
    if Project.STATUS_CANCELLED in targets
]

_UNCHANGED = object()


def sources_for(new_status: str) -> list:
    """All statuses with a legal edge into new_status."""
    return [status for status, targets in VALID_TRANSITIONS.items() if new_status in targets]


def get_allowed_transitions(project: Project) -> list:
    return VALID_TRANSITIONS.get(project.status, [])


def transition(project: Project, new_status: str, actor=None, sources=None,
               assigned_to=_UNCHANGED, assignee=None) -> Project:
    """
    Atomically move a project to new_status.

    Args:
        project: The project to transition (refreshed in place)
        new_status: The target status
        actor: The user performing the action (for logging and notifications)
        sources: Expected prior statuses; defaults to every legal source.
            Sources without a legal edge to new_status are ignored.
        assigned_to: New assignee (a user or None). Cancelling clears it
            unless given explicitly.
        assignee: Only apply if the project is currently assigned to this user

    Re-applying a transition that is already in effect is a no-op success.

    Raises InvalidTransition naming the attempted edge and the current status.
    """
    if new_status not in dict(Project.STATUS_CHOICES):
        raise InvalidTransition(project.status, new_status, "unknown status")

    candidates = sources if sources is not None else sources_for(new_status)
    legal_sources = [s for s in candidates if new_status in VALID_TRANSITIONS.get(s, [])]

    changes = {"status": new_status, "updated_at": timezone.now()}
    if assigned_to is not _UNCHANGED:
        changes["assigned_to"] = assigned_to
    elif new_status == Project.STATUS_CANCELLED:
        changes["assigned_to"] = None

    guard = {"pk": project.pk, "status__in": legal_sources}
    if assignee is not None:
        guard["assigned_to"] = assignee

    old_status = project.status
    old_assignee_id = project.assigned_to_id
    updated = Project.objects.filter(**guard).update(**changes) if legal_sources else 0
    project.refresh_from_db()

    if not updated:
        if _already_applied(project, new_status, assigned_to, assignee):
            logger.debug(
                f"Project transition already applied: project={project.id}, "
                f"status={new_status}, actor={getattr(actor, 'id', 'unknown')}"
            )
            return project

        logger.warning(
            f"Invalid state transition attempted: project={project.id}, "
            f"from={project.status}, to={new_status}, actor={getattr(actor, 'id', 'unknown')}"
        )
        raise InvalidTransition(project.status, new_status)

    logger.info(
        f"Project state transition: project={project.id}, "
        f"from={old_status}, to={new_status}, actor={getattr(actor, 'id', 'unknown')}"
    )
    notify(
        project, PROJECT_STATUS_CHANGED, actor=actor,
        old_status=old_status, old_assignee_id=old_assignee_id,
    )
    return project


def _already_applied(project, new_status, assigned_to, assignee) -> bool:
    if project.status != new_status:
        return False
    if assigned_to is not _UNCHANGED:
        expected_id = assigned_to.pk if assigned_to is not None else None
        return project.assigned_to_id == expected_id
    if assignee is not None and new_status != Project.STATUS_CANCELLED:
        return project.assigned_to_id == assignee.pk
    return True


def validate_action_for_status(project: Project, action: str) -> Tuple[bool, str]:
    """
    Validate if an action is allowed given the project's current status.

    Actions and their requirements:
    - 'apply': Project must be OPEN
    - 'edit': Project must be OPEN
    - 'post_update': Project must be ASSIGNED, IN_PROGRESS or REVISION
    - 'mark_complete': Project must be IN_PROGRESS or SUBMITTED
    - 'request_revision': Project must be SUBMITTED
    - 'review': Project must be COMPLETED or PAID
    - 'pay': Project must be at least COMPLETED
    - 'cancel': Project must not be paid or terminal
    """
    status = project.status

    if action in ('apply', 'edit'):
        if status != Project.STATUS_OPEN:
            return False, "Project is no longer open"
        return True, ""

    elif action == 'post_update':
        if status not in Project.ACTIONABLE_STATUSES:
            return False, "Updates can only be added while the project is active"
        return True, ""

    elif action == 'mark_complete':
        if status not in (Project.STATUS_IN_PROGRESS, Project.STATUS_SUBMITTED):
            return False, "Only in-progress or submitted work can be marked complete"
        return True, ""

    elif action == 'request_revision':
        if status != Project.STATUS_SUBMITTED:
            return False, "Revisions can only be requested for submitted work"
        return True, ""

    elif action == 'review':
        if status not in Project.REVIEWABLE_STATUSES:
            return False, "Reviews open once the project is completed"
        return True, ""

    elif action == 'pay':
        if status not in Project.SETTLED_STATUSES:
            return False, "Payments open once the project is completed"
        return True, ""

    elif action == 'cancel':
        if status not in CANCELLABLE_STATUSES:
            return False, "Project can no longer be cancelled"
        return True, ""

    return False, f"Unknown action: {action}"


def get_allowed_actions(project: Project) -> list:
    actions = ['apply', 'edit', 'post_update', 'mark_complete', 'request_revision', 'review', 'pay', 'cancel']
    return [action for action in actions if validate_action_for_status(project, action)[0]]
