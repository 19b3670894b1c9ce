"""Cart and order endpoints (/api/delivery/...) and order admin (/api/admin/delivery/...)"""
import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated, IsAdminUser
from rest_framework.response import Response

from backend.core.exceptions import reports_failure
from backend.core.utils import create_audit_log
from backend.parties.views import get_customer_for
from . import services
from .serializers import CartItemSerializer, OrderSerializer, CartAddSerializer, CheckoutSerializer

logger = logging.getLogger('backend.orders')


def _cart_payload(customer):
    items = services.list_cart(customer)
    return CartItemSerializer(items, many=True).data


# Cart views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
@reports_failure({'GET': 'fetch cart', 'POST': 'add to cart'})
def cart(request):
    """The signed-in customer's cart, or add {productId, quantity}"""
    customer = get_customer_for(request.user)
    if request.method == 'GET':
        return Response(_cart_payload(customer))

    serializer = CartAddSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    item = services.add_to_cart(customer, **serializer.validated_data)
    return Response(CartItemSerializer(item).data, status=status.HTTP_201_CREATED)


@api_view(['PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
@reports_failure({'PATCH': 'update cart item', 'DELETE': 'remove cart item'})
def cart_item(request, pk):
    customer = get_customer_for(request.user)
    if request.method == 'PATCH':
        item = services.update_cart_item(customer, pk, request.data.get('quantity'))
        return Response(CartItemSerializer(item).data)

    services.remove_cart_item(customer, pk)
    return Response({'success': True})


@api_view(['DELETE'])
@permission_classes([IsAuthenticated])
@reports_failure('clear cart')
def cart_clear(request):
    services.clear_cart(get_customer_for(request.user))
    return Response({'success': True})


# Order views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
@reports_failure({'GET': 'fetch orders', 'POST': 'place order'})
def order_list_create(request):
    """Own order history, or check out the cart {deliveryWindowId, deliveryAddress?, notes?}"""
    customer = get_customer_for(request.user)
    if request.method == 'GET':
        return Response(OrderSerializer(services.orders_for(customer), many=True).data)

    serializer = CheckoutSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    order = services.place_order(customer, **serializer.validated_data)
    create_audit_log(request=request, action='order_create', model_name='Order',
                     object_id=order.id, object_name=order.order_number,
                     changes={'total': str(order.total)})
    return Response(OrderSerializer(services.get_order(order.id)).data, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
@reports_failure('fetch order')
def order_detail(request, pk):
    customer = get_customer_for(request.user)
    services.require_approved(customer)
    return Response(OrderSerializer(services.get_order(pk, customer=customer)).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@reports_failure('reorder')
def order_reorder(request, pk):
    """Copy a past order's available items into the cart"""
    customer = get_customer_for(request.user)
    services.require_approved(customer)
    order = services.get_order(pk, customer=customer)
    added, skipped = services.reorder(customer, order)
    return Response({
        'success': True,
        'added': len(added),
        'skipped': skipped,
        'cart': _cart_payload(customer),
    })


# Admin views
@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminUser])
@reports_failure('fetch orders')
def admin_order_list(request):
    """All orders, newest first (?status=)"""
    orders = services.list_orders(request.query_params.get('status'))
    return Response(OrderSerializer(orders, many=True).data)


@api_view(['PATCH'])
@permission_classes([IsAuthenticated, IsAdminUser])
@reports_failure('update order status')
def admin_order_status(request, pk):
    """{status}"""
    order = services.update_order_status(pk, request.data.get('status'))
    create_audit_log(request=request, action='order_status', model_name='Order',
                     object_id=order.id, object_name=order.order_number,
                     changes={'status': order.status})
    return Response(OrderSerializer(order).data)


@api_view(['DELETE'])
@permission_classes([IsAuthenticated, IsAdminUser])
@reports_failure('delete order')
def admin_order_delete(request, pk):
    order = services.delete_order(pk)
    create_audit_log(request=request, action='delete', model_name='Order',
                     object_id=pk, object_name=order.order_number)
    return Response({'success': True})
