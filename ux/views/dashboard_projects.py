# ux/views/dashboard_projects.py

from rest_framework.views import APIView
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ux.services.dashboard_projects import get_dashboard_projects


class UXDashboardProjectsView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        projects = get_dashboard_projects(request.user)

        return Response({
            "meta": {"success": True},
            "data": projects,
        })
