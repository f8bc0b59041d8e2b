from django.contrib import admin
from .models import Project, Application, ProjectUpdate, Review, Payment


@admin.register(Project)
class ProjectAdmin(admin.ModelAdmin):
    list_display = ('title', 'status', 'client', 'assigned_to', 'budget', 'urgency', 'created_at')
    list_filter = ('status', 'urgency', 'category')
    search_fields = ('title', 'description', 'client__username', 'assigned_to__username')
    date_hierarchy = 'created_at'
    # Lifecycle fields move only through the service layer
    readonly_fields = ('status', 'assigned_to', 'created_at', 'updated_at')


@admin.register(Application)
class ApplicationAdmin(admin.ModelAdmin):
    list_display = ('professional', 'project', 'bid_amount', 'status', 'created_at')
    list_filter = ('status',)
    search_fields = ('professional__username', 'project__title')
    readonly_fields = ('status', 'created_at', 'updated_at')


@admin.register(ProjectUpdate)
class ProjectUpdateAdmin(admin.ModelAdmin):
    list_display = ('project', 'update_type', 'professional', 'created_at')
    list_filter = ('update_type', 'created_at')
    search_fields = ('message', 'project__title', 'professional__username')

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Review)
class ReviewAdmin(admin.ModelAdmin):
    list_display = ('project', 'client', 'professional', 'rating', 'created_at')
    list_filter = ('rating', 'created_at')
    search_fields = ('comment', 'project__title', 'professional__username')


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ('project', 'client', 'professional', 'amount', 'status', 'paid_at')
    list_filter = ('status',)
    search_fields = ('project__title', 'client__username', 'professional__username')
    readonly_fields = ('status', 'paid_at', 'created_at', 'updated_at')
