# ux/services/dashboard_projects.py

from django.db.models import Q

from projects.models import Application, Project


def _action_needed(project, user):
    """What the caller is expected to do next on this project, if anything."""
    if project.client_id == user.id:
        if project.status == Project.STATUS_OPEN:
            return "review_applications"
        if project.status == Project.STATUS_SUBMITTED:
            return "approve_or_request_revision"
        if project.status in Project.REVIEWABLE_STATUSES and not hasattr(project, "review"):
            return "leave_review"
        return None

    if project.assigned_to_id == user.id:
        if project.status == Project.STATUS_ASSIGNED:
            return "start_work"
        if project.status in (Project.STATUS_IN_PROGRESS, Project.STATUS_REVISION):
            return "post_update"
    return None


def get_dashboard_projects(user):
    projects_qs = (
        Project.objects
        .filter(Q(client=user) | Q(assigned_to=user))
        .select_related("client", "assigned_to", "review")
        .order_by("-updated_at")
    )

    active, awaiting_action, past = [], [], []

    for project in projects_qs:
        action = _action_needed(project, user)
        project_data = {
            "id": project.id,
            "title": project.title,
            "status": project.status,
            "budget": str(project.budget),
            "is_client": project.client_id == user.id,
            "client_id": project.client_id,
            "assigned_to_id": project.assigned_to_id,
            "action_needed": action,
            "updated_at": project.updated_at,
        }

        if action:
            awaiting_action.append(project_data)
        if project.status in (Project.STATUS_ARCHIVED, Project.STATUS_CANCELLED):
            past.append(project_data)
        else:
            active.append(project_data)

    bids = [
        {
            "application_id": app.id,
            "project_id": app.project_id,
            "project_title": app.project.title,
            "bid_amount": str(app.bid_amount),
            "status": app.status,
        }
        for app in (
            Application.objects
            .filter(professional=user, status=Application.STATUS_PENDING)
            .select_related("project")
            .order_by("-created_at")
        )
    ]

    return {
        "active": active,
        "awaiting_action": awaiting_action,
        "past": past,
        "pending_bids": bids,
    }
