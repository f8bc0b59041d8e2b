from decimal import Decimal

from rest_framework import serializers

from core.supabase_client import get_signed_url
from users.serializers import PublicUserSerializer
from .ledger import category_for
from .models import Application, Payment, Project, ProjectUpdate, Review
from .state_machine import get_allowed_actions, get_allowed_transitions


class ProjectSerializer(serializers.ModelSerializer):
    client = PublicUserSerializer(read_only=True)
    assigned_to = PublicUserSerializer(read_only=True)
    application_count = serializers.SerializerMethodField()

    class Meta:
        model = Project
        fields = [
            'id',
            'client',
            'assigned_to',
            'title',
            'description',
            'budget',
            'category',
            'location',
            'required_skills',
            'requirements',
            'timeline',
            'urgency',
            'due_date',
            'status',
            'application_count',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields

    def get_application_count(self, obj):
        annotated = getattr(obj, 'application_count', None)
        if annotated is not None:
            return annotated
        return obj.applications.exclude(status=Application.STATUS_WITHDRAWN).count()


class ProjectDetailSerializer(ProjectSerializer):
    """Detail payload; adds what can happen next from the current status."""
    allowed_transitions = serializers.SerializerMethodField()
    allowed_actions = serializers.SerializerMethodField()

    class Meta(ProjectSerializer.Meta):
        fields = ProjectSerializer.Meta.fields + ['allowed_transitions', 'allowed_actions']
        read_only_fields = fields

    def get_allowed_transitions(self, obj):
        return get_allowed_transitions(obj)

    def get_allowed_actions(self, obj):
        return get_allowed_actions(obj)


class ProjectWriteSerializer(serializers.ModelSerializer):
    """Validates client input for create / update. Status is never writable."""
    budget = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal("0.01"))

    class Meta:
        model = Project
        fields = [
            'title',
            'description',
            'budget',
            'category',
            'location',
            'required_skills',
            'requirements',
            'timeline',
            'urgency',
            'due_date',
        ]

    def _validate_string_list(self, value, name):
        if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
            raise serializers.ValidationError(f"{name} must be a list of strings.")
        return value

    def validate_required_skills(self, value):
        value = self._validate_string_list(value, "Required skills")
        # set semantics, first occurrence wins
        return list(dict.fromkeys(value))

    def validate_requirements(self, value):
        return self._validate_string_list(value, "Requirements")


class ApplicationSerializer(serializers.ModelSerializer):
    professional = PublicUserSerializer(read_only=True)
    project_title = serializers.CharField(source='project.title', read_only=True)
    project_status = serializers.CharField(source='project.status', read_only=True)

    class Meta:
        model = Application
        fields = [
            'id',
            'project',
            'project_title',
            'project_status',
            'professional',
            'bid_amount',
            'proposal',
            'availability',
            'status',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


class ApplicationCreateSerializer(serializers.Serializer):
    bid_amount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True)
    proposal = serializers.CharField(required=False, allow_blank=True, default="")
    availability = serializers.CharField(required=False, allow_blank=True, default="", max_length=255)


class ProjectUpdateSerializer(serializers.ModelSerializer):
    professional = PublicUserSerializer(read_only=True)
    category = serializers.SerializerMethodField()
    attachment_url = serializers.SerializerMethodField()

    class Meta:
        model = ProjectUpdate
        fields = [
            'id',
            'project',
            'professional',
            'update_type',
            'category',
            'message',
            'status_update',
            'attachment',
            'attachment_name',
            'attachment_url',
            'metadata',
            'created_at',
        ]
        read_only_fields = fields

    def get_category(self, obj):
        return category_for(obj.update_type)

    def get_attachment_url(self, obj):
        if not obj.attachment:
            return None
        return get_signed_url(obj.attachment)


class ProjectUpdateCreateSerializer(serializers.Serializer):
    update_type = serializers.ChoiceField(choices=ProjectUpdate.TYPE_CHOICES)
    message = serializers.CharField(required=False, allow_blank=True, default="")
    status_update = serializers.CharField(required=False, allow_blank=True, default="", max_length=64)
    metadata = serializers.JSONField(required=False, default=dict)
    file = serializers.FileField(required=False, allow_null=True)

    def validate_metadata(self, value):
        if value in (None, ""):
            return {}
        if not isinstance(value, dict):
            raise serializers.ValidationError("Metadata must be an object.")
        return value


class ReviewSerializer(serializers.ModelSerializer):
    client = PublicUserSerializer(read_only=True)
    professional = PublicUserSerializer(read_only=True)

    class Meta:
        model = Review
        fields = ['id', 'project', 'client', 'professional', 'rating', 'comment', 'created_at']
        read_only_fields = fields


class ReviewCreateSerializer(serializers.Serializer):
    rating = serializers.IntegerField(min_value=1, max_value=5)
    comment = serializers.CharField(required=False, allow_blank=True, default="")


class PaymentSerializer(serializers.ModelSerializer):
    project_title = serializers.CharField(source='project.title', read_only=True)

    class Meta:
        model = Payment
        fields = [
            'id',
            'project',
            'project_title',
            'client',
            'professional',
            'amount',
            'status',
            'note',
            'paid_at',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


class PaymentCreateSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True,
                                      min_value=Decimal("0.01"))
    note = serializers.CharField(required=False, allow_blank=True, default="")


class PaymentActionSerializer(serializers.Serializer):
    note = serializers.CharField(required=False, allow_blank=True, default="")
