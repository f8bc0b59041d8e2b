# users/views.py

from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.contrib.auth import get_user_model

from .serializers import UserSerializer, UpdateProfileSerializer

User = get_user_model()


class UserViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Standard User API.
    Professionals are publicly listable (marketplace directory); clients are not.
    """
    queryset = User.objects.all()
    serializer_class = UserSerializer
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        if self.action == 'list':
            qs = User.objects.filter(role=User.ROLE_PROFESSIONAL, is_active=True)
            skill = self.request.query_params.get('skill')
            if skill:
                qs = qs.filter(skills__icontains=skill)
            return qs.order_by('username')
        return super().get_queryset()

    @action(detail=False, methods=['get', 'patch'])
    def me(self, request):
        """
        GET   /api/users/me/
        PATCH /api/users/me/
        """
        if request.method == 'PATCH':
            serializer = UpdateProfileSerializer(request.user, data=request.data, partial=True)
            serializer.is_valid(raise_exception=True)
            serializer.save()
        return Response(UserSerializer(request.user).data)
