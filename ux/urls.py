from django.urls import path
from ux.views.dashboard import UXDashboardSummaryView
from ux.views.dashboard_projects import UXDashboardProjectsView
from ux.views.dashboard_notifications import UXDashboardNotificationsView

urlpatterns = [
    path(
        "me/dashboard/summary/",
        UXDashboardSummaryView.as_view(),
        name="ux-dashboard-summary",
    ),
    path(
        "me/dashboard/projects/",
        UXDashboardProjectsView.as_view(),
        name="ux-dashboard-projects",
    ),
    path(
        "me/dashboard/notifications/",
        UXDashboardNotificationsView.as_view(),
        name="ux-dashboard-notifications",
    ),
]
