from django.contrib import admin
from .models import Customer


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ['full_name', 'user', 'phone', 'city', 'approval_status', 'approved_at', 'created_at']
    list_filter = ['approval_status', 'created_at']
    search_fields = ['full_name', 'phone', 'user__email', 'user__username']
    readonly_fields = ['created_at', 'updated_at']
    ordering = ['-created_at']
