# ux/views/dashboard_notifications.py

from rest_framework import serializers
from rest_framework.views import APIView
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ux.services.dashboard_notifications import (
    get_dashboard_notifications,
    mark_notifications_read,
)


class MarkReadSerializer(serializers.Serializer):
    # omitted or empty: mark everything read
    ids = serializers.ListField(child=serializers.IntegerField(min_value=1), required=False, default=list)


class UXDashboardNotificationsView(APIView):
    """
    GET  ?limit=  latest notifications for the caller plus the unread count
    POST {ids}    mark some (or all) as read
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        try:
            limit = min(max(int(request.query_params.get("limit", 30)), 1), 100)
        except ValueError:
            raise serializers.ValidationError({"limit": "Must be an integer."})

        data = get_dashboard_notifications(request.user, limit=limit)

        return Response({
            "meta": {"success": True, "unread_count": data["unread_count"]},
            "data": data,
        })

    def post(self, request):
        serializer = MarkReadSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        marked = mark_notifications_read(request.user, ids=serializer.validated_data["ids"])

        return Response({
            "meta": {"success": True},
            "data": {"marked_read": marked},
        })
