"""
Application registry.

Bids by professionals on open projects. Every decision runs inside one
transaction with the project row locked, and every application status write
is a conditional update on the expected prior status. Accepting an
application moves the project to assigned through the state machine, so the
registry never writes Project.status itself.
"""
from decimal import Decimal, InvalidOperation
import logging

from django.db import IntegrityError, transaction
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from . import activity_verbs
from .exceptions import (
    ApplicationNotPending,
    DuplicateApplication,
    InvalidTransition,
    NotApplicationOwner,
    NotFound,
    NotProjectOwner,
    ProjectNotOpen,
)
from .lifecycle import get_project
from .models import Application, Project
from .policies import ProjectPolicy
from .signals import notify
from .state_machine import transition

logger = logging.getLogger('marketplace.projects')


def get_application(application_id):
    try:
        return Application.objects.select_related("project").get(pk=application_id)
    except (Application.DoesNotExist, ValueError):
        raise NotFound("Application", application_id)


def _clean_bid(bid, project):
    if bid in (None, ""):
        return project.budget
    try:
        amount = Decimal(str(bid))
    except (InvalidOperation, ValueError):
        raise ValidationError({"bid_amount": "Bid must be a number."})
    if not amount.is_finite() or amount <= 0:
        raise ValidationError({"bid_amount": "Bid must be greater than zero."})
    return amount


def _set_status(application, expected, new_status):
    """Compare-and-swap on Application.status. Returns True if this call won."""
    updated = Application.objects.filter(pk=application.pk, status=expected).update(
        status=new_status, updated_at=timezone.now()
    )
    application.refresh_from_db()
    return bool(updated)


def submit_application(project_id, professional, bid=None, proposal="", availability=""):
    """
    Create a pending bid. Omitted bids default to the project budget.

    Raises ProjectNotOpen unless the project is open and DuplicateApplication
    if the professional already has a non-withdrawn bid on it.
    """
    with transaction.atomic():
        project = get_project(project_id, for_update=True)
        if project.status != Project.STATUS_OPEN:
            raise ProjectNotOpen(current_status=project.status)

        amount = _clean_bid(bid, project)

        existing = (
            Application.objects
            .filter(project=project, professional=professional)
            .exclude(status=Application.STATUS_WITHDRAWN)
            .first()
        )
        if existing:
            raise DuplicateApplication(current_status=existing.status)

        try:
            with transaction.atomic():
                application = Application.objects.create(
                    project=project,
                    professional=professional,
                    bid_amount=amount,
                    proposal=proposal or "",
                    availability=availability or "",
                )
        except IntegrityError:
            # Lost a race with a concurrent submit by the same professional
            raise DuplicateApplication()

    logger.info(
        f"Application submitted: application={application.id}, project={project.id}, "
        f"professional={professional.id}, bid={amount}"
    )
    notify(project, activity_verbs.APPLICATION_SUBMITTED, actor=professional, application=application)
    return application


def accept_application(application_id, client):
    """
    Accept one bid and assign its professional.

    The project transition open -> assigned is applied first as a conditional
    update; if another accept already won, this fails with ProjectNotOpen and
    the whole transaction rolls back. Competing pending bids stay pending.
    """
    application = get_application(application_id)

    with transaction.atomic():
        project = get_project(application.project_id, for_update=True)
        if project.client_id != client.id:
            raise NotProjectOwner(current_status=project.status)

        application.refresh_from_db()
        if application.status != Application.STATUS_PENDING:
            raise ApplicationNotPending(current_status=application.status)
        if project.status != Project.STATUS_OPEN:
            raise ProjectNotOpen(current_status=project.status)

        try:
            transition(
                project,
                Project.STATUS_ASSIGNED,
                actor=client,
                sources=[Project.STATUS_OPEN],
                assigned_to=application.professional,
            )
        except InvalidTransition as exc:
            logger.warning(
                f"Accept lost race: application={application.id}, project={project.id}, "
                f"current={exc.from_status}"
            )
            raise ProjectNotOpen(current_status=exc.from_status)

        if not _set_status(application, Application.STATUS_PENDING, Application.STATUS_ACCEPTED):
            # Withdrawn concurrently; raising rolls the assignment back too
            raise ApplicationNotPending(current_status=application.status)

    logger.info(
        f"Application accepted: application={application.id}, project={project.id}, "
        f"professional={application.professional_id}"
    )
    notify(project, activity_verbs.APPLICATION_ACCEPTED, actor=client, application=application)
    return application


def reject_application(application_id, client):
    """
    Reject a pending bid.

    Once the project has moved past open (but is not cancelled or archived)
    the bid is moot and rejecting it is a no-op.
    """
    application = get_application(application_id)

    with transaction.atomic():
        project = get_project(application.project_id, for_update=True)
        if project.client_id != client.id:
            raise NotProjectOwner(current_status=project.status)
        if project.is_terminal:
            raise ProjectNotOpen(current_status=project.status)

        application.refresh_from_db()
        if project.status != Project.STATUS_OPEN or application.status == Application.STATUS_REJECTED:
            return application

        if not _set_status(application, Application.STATUS_PENDING, Application.STATUS_REJECTED):
            raise ApplicationNotPending(current_status=application.status)

    logger.info(f"Application rejected: application={application.id}, project={project.id}")
    notify(project, activity_verbs.APPLICATION_REJECTED, actor=client, application=application)
    return application


def withdraw_application(application_id, professional):
    """Professional withdraws their own pending bid."""
    application = get_application(application_id)
    if application.professional_id != professional.id:
        raise NotApplicationOwner(current_status=application.status)

    with transaction.atomic():
        project = get_project(application.project_id, for_update=True)
        application.refresh_from_db()
        if application.status != Application.STATUS_PENDING:
            raise ApplicationNotPending(current_status=application.status)
        if project.is_terminal:
            raise ProjectNotOpen(current_status=project.status)

        if not _set_status(application, Application.STATUS_PENDING, Application.STATUS_WITHDRAWN):
            raise ApplicationNotPending(current_status=application.status)

    logger.info(f"Application withdrawn: application={application.id}, project={project.id}")
    notify(project, activity_verbs.APPLICATION_WITHDRAWN, actor=professional, application=application)
    return application


def applications_for_project(project_id, client):
    """All bids on a project, visible to its owner only."""
    project = get_project(project_id)
    if not ProjectPolicy.can_view_applications(client, project):
        raise NotProjectOwner(current_status=project.status)
    return project.applications.select_related("professional").order_by("-created_at")


def applications_for_professional(professional, status=None):
    qs = Application.objects.filter(professional=professional).select_related("project")
    if status:
        qs = qs.filter(status=status)
    return qs.order_by("-created_at")
