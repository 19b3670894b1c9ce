import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated, IsAdminUser, AllowAny
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer, TokenRefreshSerializer
from rest_framework_simplejwt.exceptions import InvalidToken, TokenError, AuthenticationFailed
from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.core.exceptions import ObjectDoesNotExist
from django.shortcuts import get_object_or_404
from .models import Setting, AuditLog
from .serializers import (
    UserSerializer, UserCreateSerializer,
    SettingSerializer, AuditLogSerializer
)
from .cache_utils import make_cache_key, SETTINGS, SETTINGS_CACHE_TTL
from .utils import create_audit_log

logger = logging.getLogger('backend.core')

User = get_user_model()


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    def validate(self, attrs):
        data = super().validate(attrs)
        if not self.user.is_active:
            raise AuthenticationFailed('User account is disabled.')
        return data

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token['username'] = user.username
        token['is_staff'] = user.is_staff
        return token


class CustomTokenObtainPairView(TokenObtainPairView):
    serializer_class = CustomTokenObtainPairSerializer


class CustomTokenRefreshSerializer(TokenRefreshSerializer):
    """Token refresh serializer that handles deleted users gracefully"""
    def validate(self, attrs):
        try:
            return super().validate(attrs)
        except (InvalidToken, TokenError):
            raise InvalidToken('Token is invalid or expired.')
        except ObjectDoesNotExist:
            raise InvalidToken('Token is invalid. User no longer exists.')


class CustomTokenRefreshView(TokenRefreshView):
    serializer_class = CustomTokenRefreshSerializer


@api_view(['POST'])
@permission_classes([AllowAny])
def register(request):
    """User registration endpoint"""
    serializer = UserCreateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response({'error': 'Invalid registration data', 'details': serializer.errors},
                        status=status.HTTP_400_BAD_REQUEST)
    user = serializer.save()
    token = CustomTokenObtainPairSerializer.get_token(user)
    logger.info(f"Registered user {user.username}")
    return Response({
        'user': UserSerializer(user).data,
        'access': str(token.access_token),
        'refresh': str(token),
    }, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def user_me(request):
    """Get current user with admin flag and customer profile status"""
    user = request.user
    user_data = UserSerializer(user).data
    user_data['is_admin'] = user.is_superuser or user.is_staff

    customer = getattr(user, 'customer_profile', None)
    user_data['customer'] = {
        'id': customer.id,
        'approval_status': customer.approval_status,
    } if customer else None

    return Response(user_data)


# Setting views
@api_view(['GET'])
@permission_classes([AllowAny])
def setting_public_detail(request, key):
    """Read a single setting by key (storefront info bar, delivery fee...)"""
    cache_key = make_cache_key(SETTINGS, key)
    cached_data = cache.get(cache_key)
    if cached_data is not None:
        return Response(cached_data)

    setting = Setting.objects.filter(key=key).first()
    if not setting:
        return Response({'error': 'Setting not found'}, status=status.HTTP_404_NOT_FOUND)
    data = {'key': setting.key, 'value': setting.value}
    cache.set(cache_key, data, SETTINGS_CACHE_TTL)
    return Response(data)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminUser])
def setting_list(request):
    """List all settings"""
    settings = Setting.objects.order_by('key')
    serializer = SettingSerializer(settings, many=True)
    return Response(serializer.data)


@api_view(['PUT'])
@permission_classes([IsAuthenticated, IsAdminUser])
def setting_upsert(request, key):
    """Create or replace the value of a setting"""
    value = request.data.get('value')
    if value is None:
        return Response({'error': 'value is required'}, status=status.HTTP_400_BAD_REQUEST)

    defaults = {'value': str(value)}
    if 'description' in request.data:
        defaults['description'] = request.data.get('description') or ''

    setting, created = Setting.objects.update_or_create(key=key, defaults=defaults)
    create_audit_log(request=request, action='create' if created else 'update',
                     model_name='Setting', object_id=setting.id, object_name=key,
                     changes={'value': setting.value})
    logger.info(f"Setting {key} {'created' if created else 'updated'} by {request.user.username}")
    return Response(SettingSerializer(setting).data,
                    status=status.HTTP_201_CREATED if created else status.HTTP_200_OK)


# AuditLog views (read-only)
@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminUser])
def audit_log_list(request):
    """List audit logs with filtering"""
    queryset = AuditLog.objects.select_related('user')

    action_filter = request.query_params.get('action', None)
    if action_filter:
        queryset = queryset.filter(action=action_filter)

    model_filter = request.query_params.get('model', None)
    if model_filter:
        queryset = queryset.filter(model_name=model_filter)

    date_from = request.query_params.get('date_from', None)
    date_to = request.query_params.get('date_to', None)
    if date_from:
        queryset = queryset.filter(created_at__gte=date_from)
    if date_to:
        queryset = queryset.filter(created_at__lte=date_to)

    queryset = queryset.order_by('-created_at')[:500]
    serializer = AuditLogSerializer(queryset, many=True)
    return Response(serializer.data)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminUser])
def audit_log_detail(request, pk):
    """Retrieve an audit log"""
    audit_log = get_object_or_404(AuditLog, pk=pk)
    serializer = AuditLogSerializer(audit_log)
    return Response(serializer.data)
