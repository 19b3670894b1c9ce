"""Store locations: public listing and admin management"""
import logging

from django.db import transaction
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated, IsAdminUser
from rest_framework.response import Response

from backend.core.cache_utils import cached_query, invalidate_resource_cache, STORE_LOCATIONS, STORE_LOCATIONS_CACHE_TTL
from backend.core.exceptions import reports_failure, NotFoundError, ConflictError, ValidationFailed
from backend.core.utils import create_audit_log, slugify_name, apply_display_order
from .models import StoreLocation
from .serializers import StoreLocationSerializer

logger = logging.getLogger('backend.locations')


@cached_query(STORE_LOCATIONS, cache_ttl=STORE_LOCATIONS_CACHE_TTL)
def active_locations_payload():
    locations = StoreLocation.objects.filter(is_active=True).order_by('display_order', 'id')
    return StoreLocationSerializer(locations, many=True).data


def _get_location(pk):
    location = StoreLocation.objects.filter(pk=pk).first()
    if location is None:
        raise NotFoundError('Store location not found')
    return location


def _unique_slug(data, name, exclude_id=None):
    slug = slugify_name(data.get('slug') or name)
    if not slug:
        raise ValidationFailed('Store name must contain letters or digits')
    duplicates = StoreLocation.objects.filter(slug=slug)
    if exclude_id is not None:
        duplicates = duplicates.exclude(pk=exclude_id)
    if duplicates.exists():
        raise ConflictError('A store location with this name already exists')
    return slug


@api_view(['GET'])
@permission_classes([AllowAny])
@reports_failure('fetch store locations')
def public_location_list(request):
    """Active store locations ordered by display order"""
    return Response(active_locations_payload())


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdminUser])
@reports_failure({'GET': 'fetch store locations', 'POST': 'create store location'})
def location_list_create(request):
    """All store locations (active and inactive), or create one"""
    if request.method == 'GET':
        locations = StoreLocation.objects.order_by('display_order', 'id')
        return Response(StoreLocationSerializer(locations, many=True).data)

    serializer = StoreLocationSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data
    data['slug'] = _unique_slug(data, data['name'])
    with transaction.atomic():
        location = StoreLocation.objects.create(**data)
    create_audit_log(request=request, action='create', model_name='StoreLocation',
                     object_id=location.id, object_name=location.name)
    logger.info(f"Created store location {location.id} ({location.slug})")
    return Response(StoreLocationSerializer(location).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminUser])
@reports_failure({'GET': 'fetch store location', 'PATCH': 'update store location',
                  'DELETE': 'delete store location'})
def location_detail(request, pk):
    location = _get_location(pk)

    if request.method == 'GET':
        return Response(StoreLocationSerializer(location).data)

    if request.method == 'PATCH':
        serializer = StoreLocationSerializer(location, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        if 'name' in data or data.get('slug'):
            data['slug'] = _unique_slug(data, data.get('name', location.name), exclude_id=location.pk)
        elif 'slug' in data:
            data.pop('slug')
        location = serializer.save()
        create_audit_log(request=request, action='update', model_name='StoreLocation',
                         object_id=location.id, object_name=location.name)
        return Response(StoreLocationSerializer(location).data)

    location.delete()
    create_audit_log(request=request, action='delete', model_name='StoreLocation',
                     object_id=pk, object_name=location.name)
    return Response({'success': True})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminUser])
@reports_failure('reorder store locations')
def location_reorder(request):
    """Persist a new order for all store locations: {orderedIds}"""
    with transaction.atomic():
        changed = apply_display_order(StoreLocation.objects.all(), request.data.get('orderedIds'))
    invalidate_resource_cache(STORE_LOCATIONS)
    create_audit_log(request=request, action='reorder', model_name='StoreLocation',
                     object_id='all', changes={'orderedIds': [location.id for location in changed]})
    return Response({'success': True})
