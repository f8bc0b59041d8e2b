# notifications/tasks.py

import logging

from celery import shared_task
from django.contrib.auth import get_user_model

from projects.models import Project
from .emails import send_status_change_email

logger = logging.getLogger('marketplace')


@shared_task(bind=True, max_retries=3, default_retry_delay=60)
def send_status_change_email_task(self, project_id: int, user_id: int, old_status: str, new_status: str):
    """
    Async wrapper for the status change email.
    """
    try:
        project = Project.objects.get(id=project_id)
        user = get_user_model().objects.get(id=user_id)
    except (Project.DoesNotExist, get_user_model().DoesNotExist):
        return "not_found"

    try:
        send_status_change_email(project, user, old_status, new_status)
    except Exception as exc:
        logger.warning(f"Status email failed: project={project_id}, user={user_id}: {exc}")
        raise self.retry(exc=exc)
    return "sent"
