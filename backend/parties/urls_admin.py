from django.urls import path
from .views import admin_customer_list, admin_customer_approve, admin_customer_reject

urlpatterns = [
    path('customers', admin_customer_list, name='admin-customer-list'),
    path('customers/<int:pk>/approve', admin_customer_approve, name='admin-customer-approve'),
    path('customers/<int:pk>/reject', admin_customer_reject, name='admin-customer-reject'),
]
