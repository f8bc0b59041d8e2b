# ux/receivers.py
"""Drops cached dashboard summaries for everyone a project change touches."""
from django.db import transaction
from django.dispatch import receiver

from projects.signals import project_changed
from ux.services.dashboard import invalidate_dashboard


@receiver(project_changed)
def invalidate_project_dashboards(sender, project, verb, actor=None, **extra):
    user_ids = {project.client_id, project.assigned_to_id, extra.get("old_assignee_id")}
    application = extra.get("application")
    if application is not None:
        user_ids.add(application.professional_id)

    invalidate_dashboard(*user_ids)
    # again after commit, in case a reader re-cached pre-commit state
    transaction.on_commit(lambda: invalidate_dashboard(*user_ids))
