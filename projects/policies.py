# projects/policies.py
"""
Visibility checks for projects.

Who may *see* what. Who may *change* what is enforced by the service
functions themselves (they raise NotProjectOwner / NotAssignedProfessional).
"""
from django.db.models import Q, QuerySet

from .models import Application, Project


class ProjectPolicy:
    """All methods return bool."""

    @staticmethod
    def is_system_admin(user) -> bool:
        if not user or not user.is_authenticated:
            return False
        return user.is_superuser or user.is_staff or user.role == 'admin'

    @staticmethod
    def is_project_owner(user, project: Project) -> bool:
        if not user or not user.is_authenticated or project is None:
            return False
        return project.client_id == user.id

    @staticmethod
    def is_assigned_professional(user, project: Project) -> bool:
        if not user or not user.is_authenticated or project is None:
            return False
        return project.assigned_to_id is not None and project.assigned_to_id == user.id

    @staticmethod
    def is_participant(user, project: Project) -> bool:
        return (
            ProjectPolicy.is_project_owner(user, project)
            or ProjectPolicy.is_assigned_professional(user, project)
        )

    @staticmethod
    def can_view_project(user, project: Project) -> bool:
        """Open projects are listed to everyone; the rest only to participants."""
        if project.status == Project.STATUS_OPEN:
            return True
        if ProjectPolicy.is_system_admin(user) or ProjectPolicy.is_participant(user, project):
            return True
        return project.applications.filter(professional_id=user.id).exists()

    @staticmethod
    def can_view_updates(user, project: Project) -> bool:
        return ProjectPolicy.is_system_admin(user) or ProjectPolicy.is_participant(user, project)

    @staticmethod
    def can_view_applications(user, project: Project) -> bool:
        return ProjectPolicy.is_system_admin(user) or ProjectPolicy.is_project_owner(user, project)

    @staticmethod
    def visible_projects(user) -> QuerySet:
        qs = Project.objects.select_related("client", "assigned_to")
        if ProjectPolicy.is_system_admin(user):
            return qs
        applied = Application.objects.filter(professional=user).values('project_id')
        return qs.filter(
            Q(status=Project.STATUS_OPEN)
            | Q(client=user)
            | Q(assigned_to=user)
            | Q(pk__in=applied)
        )
