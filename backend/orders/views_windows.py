"""Delivery window endpoints: storefront availability and admin scheduling"""
import logging

from rest_framework import serializers, status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated, IsAdminUser
from rest_framework.response import Response

from backend.core.exceptions import reports_failure
from backend.core.utils import create_audit_log
from . import windows
from .serializers import DeliveryWindowSerializer, AvailableWindowSerializer, WeeklyDeliveryTemplateSerializer

logger = logging.getLogger('backend.orders')


def _date_param(request):
    """Optional ?date=YYYY-MM-DD"""
    value = request.query_params.get('date')
    if not value:
        return None
    return serializers.DateField().to_internal_value(value)


def _validated(serializer_class, data, partial=False):
    serializer = serializer_class(data=data, partial=partial)
    serializer.is_valid(raise_exception=True)
    return serializer.validated_data


# Storefront
@api_view(['GET'])
@permission_classes([AllowAny])
@reports_failure('fetch delivery windows')
def available_window_list(request):
    """Bookable windows from today through the next four days (?date=)"""
    return Response(AvailableWindowSerializer(windows.available_windows(_date_param(request)), many=True).data)


# Admin: windows
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdminUser])
@reports_failure({'GET': 'fetch delivery windows', 'POST': 'create delivery window'})
def window_list_create(request):
    """All windows, including past and disabled ones (?date=), or create one"""
    if request.method == 'GET':
        return Response(DeliveryWindowSerializer(windows.list_windows(_date_param(request)), many=True).data)

    window = windows.create_window(**_validated(DeliveryWindowSerializer, request.data))
    create_audit_log(request=request, action='create', model_name='DeliveryWindow',
                     object_id=window.id, object_name=str(window))
    return Response(DeliveryWindowSerializer(window).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminUser])
@reports_failure({'GET': 'fetch delivery window', 'PATCH': 'update delivery window',
                  'DELETE': 'delete delivery window'})
def window_detail(request, pk):
    if request.method == 'GET':
        return Response(DeliveryWindowSerializer(windows.get_window(pk)).data)

    if request.method == 'PATCH':
        changes = _validated(DeliveryWindowSerializer, request.data, partial=True)
        window = windows.update_window(pk, **changes)
        create_audit_log(request=request, action='update', model_name='DeliveryWindow',
                         object_id=window.id, object_name=str(window),
                         changes={key: str(value) for key, value in changes.items()})
        return Response(DeliveryWindowSerializer(window).data)

    window = windows.delete_window(pk)
    create_audit_log(request=request, action='delete', model_name='DeliveryWindow',
                     object_id=pk, object_name=str(window))
    return Response({'success': True})


# Admin: weekly templates
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdminUser])
@reports_failure({'GET': 'fetch weekly templates', 'POST': 'create weekly template'})
def template_list_create(request):
    if request.method == 'GET':
        return Response(WeeklyDeliveryTemplateSerializer(windows.list_templates(), many=True).data)

    template = windows.create_template(**_validated(WeeklyDeliveryTemplateSerializer, request.data))
    create_audit_log(request=request, action='create', model_name='WeeklyDeliveryTemplate',
                     object_id=template.id, object_name=str(template))
    return Response(WeeklyDeliveryTemplateSerializer(template).data, status=status.HTTP_201_CREATED)


@api_view(['PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminUser])
@reports_failure({'PATCH': 'update weekly template', 'DELETE': 'delete weekly template'})
def template_detail(request, pk):
    if request.method == 'PATCH':
        changes = _validated(WeeklyDeliveryTemplateSerializer, request.data, partial=True)
        template = windows.update_template(pk, **changes)
        create_audit_log(request=request, action='update', model_name='WeeklyDeliveryTemplate',
                         object_id=template.id, object_name=str(template),
                         changes={key: str(value) for key, value in changes.items()})
        return Response(WeeklyDeliveryTemplateSerializer(template).data)

    template = windows.delete_template(pk)
    create_audit_log(request=request, action='delete', model_name='WeeklyDeliveryTemplate',
                     object_id=pk, object_name=str(template))
    return Response({'success': True})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminUser])
@reports_failure('generate delivery windows')
def generate_window_list(request):
    """Create windows from the weekly templates: {daysAhead = 4}"""
    created, skipped = windows.generate_windows(request.data.get('daysAhead', windows.BOOKING_DAYS_AHEAD))
    return Response({
        'message': f'Generated {created} delivery windows, skipped {skipped} existing windows',
        'created': created,
        'skipped': skipped,
    })
