from django.urls import path
from .views import customer_create, customer_me

urlpatterns = [
    path('customers', customer_create, name='customer-create'),
    path('customers/me', customer_me, name='customer-me'),
]
