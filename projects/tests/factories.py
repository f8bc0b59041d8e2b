# projects/tests/factories.py
from decimal import Decimal

from django.contrib.auth import get_user_model

from projects import applications, ledger
from projects.models import Project, ProjectUpdate

User = get_user_model()


def make_client(username="client"):
    return User.objects.create_user(username=username, password="pass123", role="client")


def make_professional(username="pro"):
    return User.objects.create_user(username=username, password="pass123", role="professional")


def make_project(client, **overrides):
    fields = {
        "title": "Fix leaking pipe",
        "description": "Under the bathroom sink",
        "budget": Decimal("600.00"),
        "category": "plumbing",
        "location": "Austin, TX",
    }
    fields.update(overrides)
    return Project.objects.create(client=client, **fields)


def assigned_project(client, professional, bid=None, **overrides):
    """Open project with an accepted bid from professional. Returns (project, application)."""
    project = make_project(client, **overrides)
    application = applications.submit_application(project.id, professional, bid=bid)
    applications.accept_application(application.id, client)
    project.refresh_from_db()
    application.refresh_from_db()
    return project, application


def in_progress_project(client, professional, **overrides):
    project, application = assigned_project(client, professional, **overrides)
    ledger.append_update(project.id, professional, ProjectUpdate.TYPE_CHECK_IN)
    project.refresh_from_db()
    return project, application


def submitted_project(client, professional, **overrides):
    project, application = in_progress_project(client, professional, **overrides)
    ledger.append_update(
        project.id, professional, ProjectUpdate.TYPE_MESSAGE,
        message="Job completed, ready for review",
    )
    project.refresh_from_db()
    return project, application
