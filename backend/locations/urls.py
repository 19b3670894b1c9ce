from django.urls import path
from .views import public_location_list, location_list_create, location_detail, location_reorder

urlpatterns = [
    path('store-locations', public_location_list, name='store-location-list'),
    path('admin/store-locations', location_list_create, name='admin-store-location-list-create'),
    path('admin/store-locations/reorder', location_reorder, name='admin-store-location-reorder'),
    path('admin/store-locations/<int:pk>', location_detail, name='admin-store-location-detail'),
]
