# ux/views/dashboard.py

from rest_framework.views import APIView
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ux.services.dashboard import get_dashboard_summary, invalidate_dashboard


class UXDashboardSummaryView(APIView):
    """
    GET /api/ux/me/dashboard/summary/

    Role-specific counters for the caller. ?refresh=1 drops the cached
    copy first (e.g. right after the client pays outside the app).
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        if request.query_params.get("refresh") in ("1", "true"):
            invalidate_dashboard(request.user.id)

        stats = get_dashboard_summary(request.user)

        return Response({
            "meta": {"success": True, "role": stats["role"]},
            "data": {"stats": stats},
        })
