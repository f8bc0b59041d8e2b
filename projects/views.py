from django.db.models import Count, Q
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import PermissionDenied, ValidationError
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from core.supabase_client import delete_project_file, upload_project_file
from . import applications as registry
from . import ledger, lifecycle, settlement
from .exceptions import NotAssignedProfessional, ProjectNotActionable
from .models import Application, Payment, Project
from .permissions import IsClient, IsProfessional
from .policies import ProjectPolicy
from .serializers import (
    ApplicationCreateSerializer,
    ApplicationSerializer,
    PaymentActionSerializer,
    PaymentCreateSerializer,
    PaymentSerializer,
    ProjectDetailSerializer,
    ProjectSerializer,
    ProjectUpdateCreateSerializer,
    ProjectUpdateSerializer,
    ProjectWriteSerializer,
    ReviewCreateSerializer,
    ReviewSerializer,
)


class ProjectViewSet(viewsets.ModelViewSet):
    """
    Marketplace projects.

    - List: open projects plus the caller's own (?status=, ?mine=1)
    - Create / update / delete: owning client; edits only while open
    - Lifecycle actions: cancel, complete, request-revision
    - Nested: applications, updates, review, payments
    """
    permission_classes = [IsAuthenticated]
    parser_classes = [JSONParser, MultiPartParser, FormParser]
    http_method_names = ['get', 'post', 'patch', 'delete', 'head', 'options']

    def get_queryset(self):
        user = self.request.user
        qs = ProjectPolicy.visible_projects(user).annotate(
            application_count=Count(
                'applications',
                filter=~Q(applications__status=Application.STATUS_WITHDRAWN),
            )
        )

        status_filter = self.request.query_params.get('status')
        if status_filter:
            qs = qs.filter(status__in=status_filter.split(','))

        mine = self.request.query_params.get('mine')
        if mine in ('1', 'true', 'True'):
            qs = qs.filter(Q(client=user) | Q(assigned_to=user))

        category = self.request.query_params.get('category')
        if category:
            qs = qs.filter(category__iexact=category)

        return qs.order_by('-created_at')

    def get_serializer_class(self):
        if self.action == 'retrieve':
            return ProjectDetailSerializer
        return ProjectSerializer

    def get_permissions(self):
        if self.action == 'create':
            return [IsAuthenticated(), IsClient()]
        return super().get_permissions()

    def _get_visible_project(self, pk):
        project = lifecycle.get_project(pk)
        if not ProjectPolicy.can_view_project(self.request.user, project):
            raise PermissionDenied("You do not have access to this project.")
        return project

    def retrieve(self, request, pk=None):
        project = self._get_visible_project(pk)
        return Response(ProjectDetailSerializer(project).data)

    def create(self, request):
        serializer = ProjectWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        project = lifecycle.create_project(request.user, **serializer.validated_data)
        return Response(ProjectDetailSerializer(project).data, status=status.HTTP_201_CREATED)

    def update(self, request, pk=None, partial=False):
        serializer = ProjectWriteSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        project = lifecycle.update_project(pk, request.user, **serializer.validated_data)
        return Response(ProjectDetailSerializer(project).data)

    def partial_update(self, request, pk=None):
        return self.update(request, pk=pk, partial=True)

    def destroy(self, request, pk=None):
        project = lifecycle.delete_project(pk, request.user)
        if project is None:
            return Response(status=status.HTTP_204_NO_CONTENT)
        return Response(ProjectDetailSerializer(project).data)

    # ─────────────────────────────────────────────────────────────
    # Lifecycle actions
    # ─────────────────────────────────────────────────────────────

    @action(detail=True, methods=['post'])
    def cancel(self, request, pk=None):
        project = lifecycle.cancel_project(pk, request.user, reason=request.data.get('reason', ''))
        return Response(ProjectDetailSerializer(project).data)

    @action(detail=True, methods=['post'], permission_classes=[IsAuthenticated, IsProfessional])
    def complete(self, request, pk=None):
        project = lifecycle.mark_complete(pk, request.user)
        return Response(ProjectDetailSerializer(project).data)

    @action(detail=True, methods=['post'], url_path='request-revision',
            permission_classes=[IsAuthenticated, IsClient])
    def request_revision(self, request, pk=None):
        project = lifecycle.request_revision(pk, request.user)
        return Response(ProjectDetailSerializer(project).data)

    # ─────────────────────────────────────────────────────────────
    # Applications
    # ─────────────────────────────────────────────────────────────

    @action(detail=True, methods=['get', 'post'])
    def applications(self, request, pk=None):
        if request.method == 'POST':
            if not IsProfessional().has_permission(request, self):
                raise PermissionDenied(IsProfessional.message)
            serializer = ApplicationCreateSerializer(data=request.data)
            serializer.is_valid(raise_exception=True)
            application = registry.submit_application(
                pk,
                request.user,
                bid=serializer.validated_data.get('bid_amount'),
                proposal=serializer.validated_data['proposal'],
                availability=serializer.validated_data['availability'],
            )
            return Response(ApplicationSerializer(application).data, status=status.HTTP_201_CREATED)

        qs = registry.applications_for_project(pk, request.user)
        page = self.paginate_queryset(qs)
        if page is not None:
            return self.get_paginated_response(ApplicationSerializer(page, many=True).data)
        return Response(ApplicationSerializer(qs, many=True).data)

    # ─────────────────────────────────────────────────────────────
    # Update ledger
    # ─────────────────────────────────────────────────────────────

    @action(detail=True, methods=['get', 'post'])
    def updates(self, request, pk=None):
        if request.method == 'POST':
            serializer = ProjectUpdateCreateSerializer(data=request.data)
            serializer.is_valid(raise_exception=True)
            data = serializer.validated_data

            attachment = ""
            attachment_name = ""
            upload = data.get('file')
            if upload is not None:
                # Same checks append_update makes, before paying for the upload
                project = lifecycle.get_project(pk)
                ledger.ensure_can_append(project, request.user)
                attachment = upload_project_file(
                    project.id,
                    upload.name,
                    upload.read(),
                    getattr(upload, 'content_type', None) or "application/octet-stream",
                )
                attachment_name = upload.name

            try:
                update = ledger.append_update(
                    pk,
                    request.user,
                    data['update_type'],
                    message=data['message'],
                    attachment=attachment,
                    attachment_name=attachment_name,
                    metadata=data.get('metadata') or {},
                    status_update=data['status_update'],
                )
            except (ValidationError, ProjectNotActionable, NotAssignedProfessional):
                # refused before the update was written
                if attachment:
                    delete_project_file(attachment)
                raise
            return Response(ProjectUpdateSerializer(update).data, status=status.HTTP_201_CREATED)

        project = lifecycle.get_project(pk)
        if not ProjectPolicy.can_view_updates(request.user, project):
            raise PermissionDenied("You do not have access to this project's updates.")

        qs = ledger.list_updates(
            project.id,
            update_type=request.query_params.get('type'),
            search=request.query_params.get('search'),
        )
        page = self.paginate_queryset(qs)
        if page is not None:
            return self.get_paginated_response(ProjectUpdateSerializer(page, many=True).data)
        return Response(ProjectUpdateSerializer(qs, many=True).data)

    # ─────────────────────────────────────────────────────────────
    # Settlement
    # ─────────────────────────────────────────────────────────────

    @action(detail=True, methods=['post'], permission_classes=[IsAuthenticated, IsClient])
    def review(self, request, pk=None):
        serializer = ReviewCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        review = settlement.submit_review(
            pk,
            request.user,
            serializer.validated_data['rating'],
            serializer.validated_data['comment'],
        )
        return Response(ReviewSerializer(review).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'], permission_classes=[IsAuthenticated, IsClient])
    def payments(self, request, pk=None):
        serializer = PaymentCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        payment = settlement.create_payment(
            pk,
            request.user,
            amount=serializer.validated_data.get('amount'),
            note=serializer.validated_data['note'],
        )
        return Response(PaymentSerializer(payment).data, status=status.HTTP_201_CREATED)


class ApplicationViewSet(mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    """Decisions on individual applications."""
    serializer_class = ApplicationSerializer
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        user = self.request.user
        return Application.objects.select_related('project', 'professional').filter(
            Q(professional=user) | Q(project__client=user)
        )

    @action(detail=False, methods=['get'], permission_classes=[IsAuthenticated, IsProfessional])
    def mine(self, request):
        qs = registry.applications_for_professional(request.user, status=request.query_params.get('status'))
        page = self.paginate_queryset(qs)
        if page is not None:
            return self.get_paginated_response(ApplicationSerializer(page, many=True).data)
        return Response(ApplicationSerializer(qs, many=True).data)

    @action(detail=True, methods=['post'])
    def accept(self, request, pk=None):
        application = registry.accept_application(pk, request.user)
        return Response(ApplicationSerializer(application).data)

    @action(detail=True, methods=['post'])
    def reject(self, request, pk=None):
        application = registry.reject_application(pk, request.user)
        return Response(ApplicationSerializer(application).data)

    @action(detail=True, methods=['post'])
    def withdraw(self, request, pk=None):
        application = registry.withdraw_application(pk, request.user)
        return Response(ApplicationSerializer(application).data)


class PaymentViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    """Invoices the caller pays or receives."""
    serializer_class = PaymentSerializer
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        user = self.request.user
        return (
            Payment.objects.select_related('project')
            .filter(Q(client=user) | Q(professional=user))
            .order_by('-created_at')
        )

    @action(detail=True, methods=['post'])
    def complete(self, request, pk=None):
        serializer = PaymentActionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        payment = settlement.mark_payment_complete(pk, request.user, note=serializer.validated_data['note'])
        return Response(PaymentSerializer(payment).data)

    @action(detail=True, methods=['post'])
    def fail(self, request, pk=None):
        serializer = PaymentActionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        payment = settlement.mark_payment_failed(pk, request.user, note=serializer.validated_data['note'])
        return Response(PaymentSerializer(payment).data)
