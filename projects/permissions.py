from rest_framework.permissions import BasePermission


class IsClient(BasePermission):
    """Only accounts with the client role (or admins)."""
    message = "Only clients can perform this action."

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False
        return user.role in ('client', 'admin') or user.is_superuser


class IsProfessional(BasePermission):
    """Only accounts with the professional role."""
    message = "Only professionals can perform this action."

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False
        return user.role == 'professional'
