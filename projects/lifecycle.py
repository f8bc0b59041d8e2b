"""
Project lifecycle services.

Creation, owner edits and the explicit lifecycle actions (mark complete,
cancel, request revision). Status writes go through state_machine.transition.
"""
import logging

from django.db import transaction

from . import activity_verbs
from .exceptions import (
    NotAssignedProfessional,
    NotFound,
    NotProjectOwner,
    ProjectNotOpen,
)
from .models import Application, Project
from .signals import notify
from .state_machine import transition

logger = logging.getLogger('marketplace.projects')

EDITABLE_FIELDS = (
    "title",
    "description",
    "budget",
    "category",
    "location",
    "required_skills",
    "requirements",
    "timeline",
    "urgency",
    "due_date",
)


def get_project(project_id, for_update=False):
    """Fetch a project, locking its row when for_update is set (must be inside atomic)."""
    qs = Project.objects.all()
    if for_update:
        qs = qs.select_for_update()
    try:
        return qs.get(pk=project_id)
    except (Project.DoesNotExist, ValueError):
        raise NotFound("Project", project_id)


def create_project(client, **fields):
    data = {k: v for k, v in fields.items() if k in EDITABLE_FIELDS}
    project = Project.objects.create(client=client, status=Project.STATUS_OPEN, **data)
    logger.info(f"Project created: project={project.id}, client={client.id}")
    notify(project, activity_verbs.PROJECT_CREATED, actor=client)
    return project


def update_project(project_id, client, **fields):
    """Owner edits descriptive fields while the project is still open."""
    with transaction.atomic():
        project = get_project(project_id, for_update=True)
        if project.client_id != client.id:
            raise NotProjectOwner(current_status=project.status)
        if project.status != Project.STATUS_OPEN:
            raise ProjectNotOpen("Only open projects can be edited.", current_status=project.status)

        changed = []
        for name, value in fields.items():
            if name in EDITABLE_FIELDS:
                setattr(project, name, value)
                changed.append(name)
        if changed:
            project.save(update_fields=changed + ["updated_at"])

    if changed:
        notify(project, activity_verbs.PROJECT_UPDATED, actor=client, fields=changed)
    return project


def delete_project(project_id, client):
    """
    Remove a project.

    Open projects nobody has applied to are deleted outright; anything with
    history is cancelled instead. Returns the cancelled project, or None
    when the row was removed.
    """
    with transaction.atomic():
        project = get_project(project_id, for_update=True)
        if project.client_id != client.id:
            raise NotProjectOwner(current_status=project.status)

        if project.status == Project.STATUS_OPEN and not project.applications.exists():
            notify(project, activity_verbs.PROJECT_DELETED, actor=client)
            project.delete()
            logger.info(f"Project deleted: project={project_id}, client={client.id}")
            return None

    return cancel_project(project_id, client, reason="deleted by owner")


def mark_complete(project_id, professional):
    """
    Assigned professional marks in-progress or submitted work complete.

    Re-marking an already completed project is a no-op.
    """
    with transaction.atomic():
        project = get_project(project_id, for_update=True)
        if project.assigned_to_id != professional.id:
            raise NotAssignedProfessional(current_status=project.status)

        return transition(
            project,
            Project.STATUS_COMPLETED,
            actor=professional,
            sources=[Project.STATUS_SUBMITTED, Project.STATUS_IN_PROGRESS],
            assignee=professional,
        )


def _can_cancel(project, actor):
    if actor.id in (project.client_id, project.assigned_to_id):
        return True
    # cancelling clears assigned_to; the accepted bid still names the professional
    return project.status == Project.STATUS_CANCELLED and Application.objects.filter(
        project=project, professional_id=actor.id, status=Application.STATUS_ACCEPTED,
    ).exists()


def cancel_project(project_id, actor, reason=""):
    """
    Client or assigned professional cancels a non-terminal project.

    Pending applications are left untouched; every later action on them
    fails its own precondition check.
    """
    with transaction.atomic():
        project = get_project(project_id, for_update=True)
        if not _can_cancel(project, actor):
            raise NotProjectOwner(
                "Only the client or the assigned professional can cancel this project.",
                current_status=project.status,
            )
        if project.status == Project.STATUS_CANCELLED:
            return project

        transition(project, Project.STATUS_CANCELLED, actor=actor)

    logger.info(
        f"Project cancelled: project={project.id}, actor={actor.id}, reason={reason or '-'}"
    )
    return project


def request_revision(project_id, client):
    """Client sends submitted work back for rework."""
    with transaction.atomic():
        project = get_project(project_id, for_update=True)
        if project.client_id != client.id:
            raise NotProjectOwner(current_status=project.status)

        return transition(
            project,
            Project.STATUS_REVISION,
            actor=client,
            sources=[Project.STATUS_SUBMITTED],
        )
