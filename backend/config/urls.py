"""
URL configuration for backend project.

/api/                  auth, settings, audit logs, store locations
/api/admin/delivery/   staff-only catalog, order and customer management
/api/delivery/         storefront catalog, cart, orders and customer profile
"""
from django.contrib import admin
from django.urls import path, include

admin.site.site_header = "Delivery Storefront Admin Panel"
admin.site.site_title = "Delivery Storefront Admin Portal"
admin.site.index_title = "Catalog, orders and customers"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/', include('backend.core.urls')),
    path('api/', include('backend.locations.urls')),
    path('api/admin/delivery/', include('backend.catalog.urls')),
    path('api/admin/delivery/', include('backend.orders.urls_admin')),
    path('api/admin/delivery/', include('backend.parties.urls_admin')),
    path('api/delivery/', include('backend.catalog.urls_public')),
    path('api/delivery/', include('backend.orders.urls')),
    path('api/delivery/', include('backend.parties.urls')),
]
