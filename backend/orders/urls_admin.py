from django.urls import path
from .views import admin_order_list, admin_order_status, admin_order_delete
from .views_windows import (
    window_list_create, window_detail, template_list_create, template_detail, generate_window_list,
)

urlpatterns = [
    path('orders', admin_order_list, name='admin-order-list'),
    path('orders/<int:pk>/status', admin_order_status, name='admin-order-status'),
    path('orders/<int:pk>', admin_order_delete, name='admin-order-delete'),

    # Delivery windows and weekly templates
    path('windows', window_list_create, name='admin-delivery-window-list-create'),
    path('windows/<int:pk>', window_detail, name='admin-delivery-window-detail'),
    path('weekly-templates', template_list_create, name='admin-weekly-template-list-create'),
    path('weekly-templates/<int:pk>', template_detail, name='admin-weekly-template-detail'),
    path('generate-windows', generate_window_list, name='admin-generate-delivery-windows'),
]
