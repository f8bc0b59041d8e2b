from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views import ApplicationViewSet, PaymentViewSet, ProjectViewSet

router = DefaultRouter()
router.register(r'projects', ProjectViewSet, basename='project')
router.register(r'applications', ApplicationViewSet, basename='application')
router.register(r'payments', PaymentViewSet, basename='payment')

urlpatterns = [
    path('', include(router.urls)),
]
