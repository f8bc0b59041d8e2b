"""
Review and settlement gate.

Reviews and payments unlock once a project is completed. Creating the
review archives the project; completing a payment on a completed project
moves it to paid. No payment processor is involved, only bookkeeping.
"""
from decimal import Decimal, InvalidOperation
import logging

from django.db import IntegrityError, transaction
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from . import activity_verbs
from .exceptions import (
    NotFound,
    NotProjectOwner,
    PaymentNotPending,
    ProjectNotCompleted,
    ReviewAlreadyExists,
)
from .lifecycle import get_project
from .models import Application, Payment, Project, Review
from .signals import notify
from .state_machine import transition

logger = logging.getLogger('marketplace.projects')


def _clean_rating(rating):
    try:
        value = int(rating)
    except (TypeError, ValueError):
        raise ValidationError({"rating": "Rating must be an integer between 1 and 5."})
    if value != rating and str(value) != str(rating):
        raise ValidationError({"rating": "Rating must be an integer between 1 and 5."})
    if not 1 <= value <= 5:
        raise ValidationError({"rating": "Rating must be between 1 and 5."})
    return value


def submit_review(project_id, client, rating, comment=""):
    """
    Client reviews the assigned professional and archives the project.

    A second review for the same project fails with ReviewAlreadyExists.
    """
    rating = _clean_rating(rating)

    with transaction.atomic():
        project = get_project(project_id, for_update=True)
        if project.client_id != client.id:
            raise NotProjectOwner(current_status=project.status)
        if Review.objects.filter(project=project).exists():
            raise ReviewAlreadyExists(current_status=project.status)
        if project.status not in Project.REVIEWABLE_STATUSES:
            raise ProjectNotCompleted(
                "Reviews can only be left on completed or paid projects.",
                current_status=project.status,
            )

        try:
            with transaction.atomic():
                review = Review.objects.create(
                    project=project,
                    client=client,
                    professional=project.assigned_to,
                    rating=rating,
                    comment=comment or "",
                )
        except IntegrityError:
            raise ReviewAlreadyExists(current_status=project.status)

        transition(
            project,
            Project.STATUS_ARCHIVED,
            actor=client,
            sources=list(Project.REVIEWABLE_STATUSES),
        )

    logger.info(
        f"Review submitted: review={review.id}, project={project.id}, rating={rating}"
    )
    notify(project, activity_verbs.REVIEW_SUBMITTED, actor=client, review=review)
    return review


def get_payment(payment_id):
    try:
        return Payment.objects.select_related("project").get(pk=payment_id)
    except (Payment.DoesNotExist, ValueError):
        raise NotFound("Payment", payment_id)


def _default_amount(project):
    accepted = (
        Application.objects
        .filter(project=project, status=Application.STATUS_ACCEPTED)
        .values_list("bid_amount", flat=True)
        .first()
    )
    return accepted if accepted is not None else project.budget


def create_payment(project_id, client, amount=None, note=""):
    """
    Open an invoice for a completed project.

    Returns the existing pending or completed payment if there is one.
    The amount defaults to the accepted bid, falling back to the budget.
    """
    with transaction.atomic():
        project = get_project(project_id, for_update=True)
        if project.client_id != client.id:
            raise NotProjectOwner(current_status=project.status)
        if project.status not in Project.SETTLED_STATUSES:
            raise ProjectNotCompleted(current_status=project.status)

        existing = (
            Payment.objects
            .filter(project=project, status__in=[Payment.STATUS_PENDING, Payment.STATUS_COMPLETED])
            .first()
        )
        if existing:
            return existing

        if amount in (None, ""):
            amount = _default_amount(project)
        else:
            try:
                amount = Decimal(str(amount))
            except (InvalidOperation, ValueError):
                raise ValidationError({"amount": "Amount must be a number."})
            if not amount.is_finite() or amount <= 0:
                raise ValidationError({"amount": "Amount must be greater than zero."})

        payment = Payment.objects.create(
            project=project,
            client=client,
            professional=project.assigned_to,
            amount=amount,
            note=note or "",
        )

    logger.info(f"Payment created: payment={payment.id}, project={project.id}, amount={payment.amount}")
    notify(project, activity_verbs.PAYMENT_CREATED, actor=client, payment=payment)
    return payment


def _check_payment_actor(payment, actor):
    if payment.client_id != actor.id and not actor.is_staff:
        raise NotProjectOwner(
            "Only the paying client can settle this payment.",
            current_status=payment.status,
        )


def mark_payment_complete(payment_id, actor, note=""):
    """
    Record a payment as completed.

    Only allowed once the project is at least completed; a completed project
    moves to paid in the same transaction. Re-completing is a no-op.
    """
    payment = get_payment(payment_id)
    _check_payment_actor(payment, actor)

    with transaction.atomic():
        project = get_project(payment.project_id, for_update=True)
        payment.refresh_from_db()
        if payment.status == Payment.STATUS_COMPLETED:
            return payment
        if project.status not in Project.SETTLED_STATUSES:
            raise ProjectNotCompleted(
                "Payments can only be completed once the project is completed.",
                current_status=project.status,
            )

        changes = {"status": Payment.STATUS_COMPLETED, "paid_at": timezone.now(), "updated_at": timezone.now()}
        if note:
            changes["note"] = note
        updated = Payment.objects.filter(pk=payment.pk, status=Payment.STATUS_PENDING).update(**changes)
        payment.refresh_from_db()
        if not updated:
            raise PaymentNotPending(current_status=payment.status)

        if project.status == Project.STATUS_COMPLETED:
            transition(project, Project.STATUS_PAID, actor=actor, sources=[Project.STATUS_COMPLETED])

    logger.info(f"Payment completed: payment={payment.id}, project={project.id}, actor={actor.id}")
    notify(project, activity_verbs.PAYMENT_COMPLETED, actor=actor, payment=payment)
    return payment


def mark_payment_failed(payment_id, actor, note=""):
    payment = get_payment(payment_id)
    _check_payment_actor(payment, actor)

    with transaction.atomic():
        changes = {"status": Payment.STATUS_FAILED, "updated_at": timezone.now()}
        if note:
            changes["note"] = note
        updated = Payment.objects.filter(pk=payment.pk, status=Payment.STATUS_PENDING).update(**changes)
        payment.refresh_from_db()
        if not updated:
            if payment.status == Payment.STATUS_FAILED:
                return payment
            raise PaymentNotPending(current_status=payment.status)

    logger.info(f"Payment failed: payment={payment.id}, project={payment.project_id}, actor={actor.id}")
    notify(payment.project, activity_verbs.PAYMENT_FAILED, actor=actor, payment=payment)
    return payment
