from django.contrib import admin
from django.urls import path, include
from core.views import HealthCheckView

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/users/', include('users.urls')),
    path('api/', include('projects.urls')),
    path('api/notifications/', include('notifications.urls')),
    path('api/ux/', include('ux.urls')),
    path("api/health/", HealthCheckView.as_view(), name="health-check"),
]
