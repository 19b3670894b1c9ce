from django.contrib import admin
from .models import StoreLocation


@admin.register(StoreLocation)
class StoreLocationAdmin(admin.ModelAdmin):
    list_display = ['name', 'city', 'phone', 'display_order', 'is_active']
    list_filter = ['is_active', 'city']
    search_fields = ['name', 'city', 'address']
    prepopulated_fields = {'slug': ('name',)}
    ordering = ['display_order', 'id']
