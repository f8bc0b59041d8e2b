from django.contrib import admin
from django.contrib.auth.admin import UserAdmin
from .models import User

@admin.register(User)
class CustomUserAdmin(UserAdmin):
    list_display = ('username', 'email', 'role', 'first_name', 'last_name', 'is_staff', 'verification_status')
    list_filter = ('role', 'is_staff', 'is_superuser', 'verification_status', 'is_active')
    search_fields = ('username', 'email', 'first_name', 'last_name')
    fieldsets = UserAdmin.fieldsets + (
        ('Marketplace Profile', {'fields': (
            'role', 'phone', 'bio', 'location', 'profile_picture', 'skills',
            'certifications', 'hourly_rate', 'years_experience', 'is_available',
            'verification_status',
        )}),
    )
    add_fieldsets = UserAdmin.add_fieldsets + (
        ('Marketplace Profile', {'fields': ('role', 'phone', 'location')}),
    )
