"""
Change notification for projects.

`project_changed` is the single subscription point for read-models. Senders
call notify(); receivers get `project`, `verb` (see activity_verbs), `actor`
and any extra keyword arguments the sender attaches (old_status,
application, update, review, payment).
"""
from django.dispatch import Signal

from .models import Project

project_changed = Signal()


def notify(project, verb, actor=None, **extra):
    project_changed.send(sender=Project, project=project, verb=verb, actor=actor, **extra)
