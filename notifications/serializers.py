from rest_framework import serializers

from .models import Notification


class NotificationSerializer(serializers.ModelSerializer):
    project_title = serializers.CharField(source="project.title", read_only=True, default=None)

    class Meta:
        model = Notification
        fields = [
            "id",
            "type",
            "title",
            "body",
            "is_read",
            "project",
            "project_title",
            "created_at",
        ]
        read_only_fields = fields
