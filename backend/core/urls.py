from django.urls import path
from .views import (
    CustomTokenObtainPairView, CustomTokenRefreshView, register, user_me,
    setting_public_detail, setting_list, setting_upsert,
    audit_log_list, audit_log_detail,
)

urlpatterns = [
    # Auth endpoints
    path('auth/register/', register, name='register'),
    path('auth/login/', CustomTokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('auth/refresh/', CustomTokenRefreshView.as_view(), name='token_refresh'),
    path('auth/me/', user_me, name='user-me'),

    # Setting endpoints
    path('settings/<str:key>', setting_public_detail, name='setting-public-detail'),
    path('admin/settings', setting_list, name='setting-list'),
    path('admin/settings/<str:key>', setting_upsert, name='setting-upsert'),

    # AuditLog endpoints
    path('admin/audit-logs', audit_log_list, name='audit-log-list'),
    path('admin/audit-logs/<int:pk>', audit_log_detail, name='audit-log-detail'),
]
