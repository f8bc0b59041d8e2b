import time

from django.conf import settings
from django.core.cache import cache
from django.db import connections
from django.db.utils import InterfaceError, OperationalError
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView


class HealthCheckView(APIView):
    """
    Lightweight health endpoint for uptime checks.
    - Checks DB connectivity and the dashboard cache
    - Returns env and simple latency; 503 when the database is unreachable
    """
    permission_classes = [AllowAny]
    authentication_classes = []  # public endpoint

    def get(self, request, *args, **kwargs):
        start = time.time()

        db_ok = True
        try:
            connections["default"].cursor()
        except (OperationalError, InterfaceError):
            db_ok = False

        cache_ok = True
        try:
            cache.set("health:ping", "1", 5)
            cache_ok = cache.get("health:ping") == "1"
        except Exception:
            cache_ok = False

        duration_ms = int((time.time() - start) * 1000)

        return Response(
            {
                "status": "ok" if db_ok and cache_ok else "degraded",
                "db": db_ok,
                "cache": cache_ok,
                "env": getattr(settings, "ENV", "unknown"),
                "latency_ms": duration_ms,
            },
            status=status.HTTP_200_OK if db_ok else status.HTTP_503_SERVICE_UNAVAILABLE,
        )
