from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from accounts.models import User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ['username', 'email', 'display_name', 'total_raised', 'total_supporters', 'date_joined']
    list_filter = ['is_active', 'is_staff']
    search_fields = ['username', 'email', 'display_name']
    ordering = ['-date_joined']
    readonly_fields = ['total_raised', 'total_supporters', 'date_joined', 'last_login']
    fieldsets = BaseUserAdmin.fieldsets + (
        ('Creator', {'fields': ('display_name', 'bio')}),
        ('Stats', {'fields': ('total_raised', 'total_supporters')}),
    )
