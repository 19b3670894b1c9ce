"""Delivery customer profiles and the admin approval workflow"""
import logging

from django.db import transaction
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated, IsAdminUser
from rest_framework.response import Response

from backend.core.exceptions import reports_failure, NotFoundError, ValidationFailed
from backend.core.utils import create_audit_log, parse_int
from .models import Customer
from .serializers import CustomerSerializer, CustomerWriteSerializer

logger = logging.getLogger('backend.parties')


def get_customer_for(user):
    """The signed-in user's customer profile, or None"""
    return Customer.objects.filter(user=user).select_related('user').first()


def _get_customer(pk):
    customer = Customer.objects.select_related('user').filter(pk=parse_int(pk)).first()
    if customer is None:
        raise NotFoundError('Customer not found')
    return customer


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@reports_failure('create customer profile')
def customer_create(request):
    """Create the signed-in user's customer profile (starts pending approval)"""
    if get_customer_for(request.user):
        raise ValidationFailed('Customer profile already exists')

    serializer = CustomerWriteSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    with transaction.atomic():
        customer = Customer.objects.create(user=request.user, approval_status='pending',
                                           **serializer.validated_data)
    logger.info(f"Customer profile {customer.id} created for user {request.user.id}")
    return Response(CustomerSerializer(customer).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PATCH'])
@permission_classes([IsAuthenticated])
@reports_failure({'GET': 'fetch customer profile', 'PATCH': 'update customer profile'})
def customer_me(request):
    """Read or edit the signed-in user's own profile"""
    customer = get_customer_for(request.user)
    if customer is None:
        raise NotFoundError('Customer profile not found')

    if request.method == 'PATCH':
        serializer = CustomerWriteSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        for field, value in serializer.validated_data.items():
            setattr(customer, field, value)
        customer.save()

    return Response(CustomerSerializer(customer).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminUser])
@reports_failure('fetch customers')
def admin_customer_list(request):
    """All customer profiles, newest first (?status=pending|approved|rejected)"""
    customers = Customer.objects.select_related('user')
    approval_status = request.query_params.get('status')
    if approval_status:
        if approval_status not in dict(Customer.APPROVAL_STATUS_CHOICES):
            raise ValidationFailed(f'Invalid status: {approval_status}')
        customers = customers.filter(approval_status=approval_status)
    return Response(CustomerSerializer(customers, many=True).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminUser])
@reports_failure('approve customer')
def admin_customer_approve(request, pk):
    customer = _get_customer(pk)
    customer.approval_status = 'approved'
    customer.approved_at = timezone.now()
    customer.rejection_reason = ''
    customer.save(update_fields=['approval_status', 'approved_at', 'rejection_reason', 'updated_at'])

    create_audit_log(request=request, action='customer_approve', model_name='Customer',
                     object_id=customer.id, object_name=customer.full_name)
    logger.info(f"Customer {customer.id} approved by {request.user.username}")
    return Response(CustomerSerializer(customer).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminUser])
@reports_failure('reject customer')
def admin_customer_reject(request, pk):
    """Reject an application: {reason}"""
    customer = _get_customer(pk)
    customer.approval_status = 'rejected'
    customer.approved_at = None
    customer.rejection_reason = str(request.data.get('reason') or '').strip()
    customer.save(update_fields=['approval_status', 'approved_at', 'rejection_reason', 'updated_at'])

    create_audit_log(request=request, action='customer_reject', model_name='Customer',
                     object_id=customer.id, object_name=customer.full_name,
                     changes={'reason': customer.rejection_reason})
    logger.info(f"Customer {customer.id} rejected by {request.user.username}")
    return Response(CustomerSerializer(customer).data)
