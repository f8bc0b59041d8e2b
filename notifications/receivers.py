# notifications/receivers.py
"""
Turns project_changed signals into per-user notification rows.

Rows are written synchronously in the sender's transaction; status-change
emails are queued to Celery once that transaction commits.
"""
import logging

from django.db import transaction
from django.dispatch import receiver

from projects import activity_verbs
from projects.signals import project_changed
from .models import Notification
from .tasks import send_status_change_email_task

logger = logging.getLogger('marketplace')


def _create(user_id, type, title, body, project):
    if not user_id:
        return None
    # savepoint: a failed insert must not poison the sender's transaction
    with transaction.atomic():
        return Notification.objects.create(
            user_id=user_id,
            type=type,
            title=title,
            body=body,
            project=project,
        )


@receiver(project_changed)
def record_project_notification(sender, project, verb, actor=None, **extra):
    actor_id = getattr(actor, "id", None)
    try:
        if verb == activity_verbs.APPLICATION_SUBMITTED:
            application = extra["application"]
            _create(
                project.client_id,
                Notification.TYPE_NEW_APPLICATION,
                f"New application for {project.title}",
                f"{application.professional.username} bid {application.bid_amount}.",
                project,
            )

        elif verb == activity_verbs.APPLICATION_ACCEPTED:
            application = extra["application"]
            _create(
                application.professional_id,
                Notification.TYPE_APPLICATION_ACCEPTED,
                "Application accepted",
                f"You have been hired for {project.title}.",
                project,
            )

        elif verb == activity_verbs.APPLICATION_REJECTED:
            application = extra["application"]
            _create(
                application.professional_id,
                Notification.TYPE_APPLICATION_REJECTED,
                "Application not selected",
                f"Your application for {project.title} was declined.",
                project,
            )

        elif verb == activity_verbs.PROJECT_STATUS_CHANGED:
            old_status = extra.get("old_status")
            recipients = {
                project.client_id,
                project.assigned_to_id,
                extra.get("old_assignee_id"),
            } - {None, actor_id}
            for user_id in recipients:
                _create(
                    user_id,
                    Notification.TYPE_STATUS_CHANGED,
                    f"{project.title} is now {project.get_status_display().lower()}",
                    f"Status changed from {old_status} to {project.status}.",
                    project,
                )
                transaction.on_commit(
                    lambda user_id=user_id, new_status=project.status: send_status_change_email_task.delay(
                        project.id, user_id, old_status, new_status
                    )
                )

        elif verb == activity_verbs.UPDATE_APPENDED:
            update = extra["update"]
            _create(
                project.client_id,
                Notification.TYPE_PROJECT_UPDATE,
                f"New update on {project.title}",
                update.message or update.get_update_type_display(),
                project,
            )

        elif verb == activity_verbs.REVIEW_SUBMITTED:
            review = extra["review"]
            _create(
                review.professional_id,
                Notification.TYPE_REVIEW_RECEIVED,
                "You received a review",
                f"{review.rating}/5 for {project.title}.",
                project,
            )

        elif verb == activity_verbs.PAYMENT_COMPLETED:
            payment = extra["payment"]
            _create(
                payment.professional_id,
                Notification.TYPE_PAYMENT_RECEIVED,
                "Payment received",
                f"{payment.amount} for {project.title}.",
                project,
            )
    except Exception as e:
        logger.warning(f"Failed to record notification for {verb} on project {project.id}: {e}")
