from django.contrib import admin
from .models import CartItem, Order, OrderItem, DeliveryWindow, WeeklyDeliveryTemplate


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    readonly_fields = ['product', 'product_name', 'quantity', 'price']


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ['order_number', 'customer', 'status', 'payment_status', 'delivery_window', 'total', 'created_at']
    list_filter = ['status', 'payment_status', 'created_at']
    search_fields = ['order_number', 'customer__full_name', 'customer__phone']
    readonly_fields = ['order_number', 'subtotal', 'tax', 'delivery_fee', 'total', 'created_at', 'updated_at']
    inlines = [OrderItemInline]
    date_hierarchy = 'created_at'


@admin.register(CartItem)
class CartItemAdmin(admin.ModelAdmin):
    list_display = ['customer', 'product', 'quantity', 'updated_at']
    search_fields = ['customer__full_name', 'product__name']


@admin.register(DeliveryWindow)
class DeliveryWindowAdmin(admin.ModelAdmin):
    list_display = ['date', 'start_time', 'end_time', 'capacity', 'current_bookings', 'enabled']
    list_filter = ['enabled', 'date']
    list_editable = ['capacity', 'enabled']
    ordering = ['-date', 'start_time']
    date_hierarchy = 'date'


@admin.register(WeeklyDeliveryTemplate)
class WeeklyDeliveryTemplateAdmin(admin.ModelAdmin):
    list_display = ['day_of_week', 'start_time', 'end_time', 'capacity', 'enabled']
    list_filter = ['enabled', 'day_of_week']
    ordering = ['day_of_week', 'start_time']
