from rest_framework import serializers

from backend.catalog.serializers import ProductSerializer
from .models import CartItem, Order, OrderItem, DeliveryWindow, WeeklyDeliveryTemplate

# "14:00", "14:00:00" or "2:00 PM"
TIME_INPUT_FORMATS = ['%H:%M', '%H:%M:%S', '%I:%M %p']


class CartItemSerializer(serializers.ModelSerializer):
    productId = serializers.IntegerField(source='product_id', read_only=True)
    product = ProductSerializer(read_only=True)
    lineTotal = serializers.SerializerMethodField()

    class Meta:
        model = CartItem
        fields = ['id', 'productId', 'product', 'quantity', 'lineTotal']

    def get_lineTotal(self, obj):
        return str(obj.product.effective_price * obj.quantity)


class DeliveryWindowSerializer(serializers.ModelSerializer):
    startTime = serializers.TimeField(source='start_time', format='%H:%M', input_formats=TIME_INPUT_FORMATS)
    endTime = serializers.TimeField(source='end_time', format='%H:%M', input_formats=TIME_INPUT_FORMATS)
    currentBookings = serializers.IntegerField(source='current_bookings', read_only=True)
    remaining = serializers.IntegerField(read_only=True)
    isFull = serializers.BooleanField(source='is_full', read_only=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)

    class Meta:
        model = DeliveryWindow
        fields = ['id', 'date', 'startTime', 'endTime', 'capacity', 'currentBookings', 'remaining',
                  'isFull', 'enabled', 'createdAt']


class AvailableWindowSerializer(DeliveryWindowSerializer):
    """Storefront view of a window, with its booking cutoff state"""
    isClosed = serializers.BooleanField(source='is_closed', read_only=True)
    closedReason = serializers.CharField(source='closed_reason', read_only=True, allow_null=True)

    class Meta(DeliveryWindowSerializer.Meta):
        fields = DeliveryWindowSerializer.Meta.fields + ['isClosed', 'closedReason']


class WeeklyDeliveryTemplateSerializer(serializers.ModelSerializer):
    dayOfWeek = serializers.ChoiceField(source='day_of_week', choices=WeeklyDeliveryTemplate.DAY_CHOICES)
    startTime = serializers.TimeField(source='start_time', format='%H:%M', input_formats=TIME_INPUT_FORMATS)
    endTime = serializers.TimeField(source='end_time', format='%H:%M', input_formats=TIME_INPUT_FORMATS)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)

    class Meta:
        model = WeeklyDeliveryTemplate
        fields = ['id', 'dayOfWeek', 'startTime', 'endTime', 'capacity', 'enabled', 'createdAt', 'updatedAt']


class OrderItemSerializer(serializers.ModelSerializer):
    productId = serializers.IntegerField(source='product_id', read_only=True)
    productName = serializers.CharField(source='product_name', read_only=True)
    lineTotal = serializers.DecimalField(source='line_total', max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = OrderItem
        fields = ['id', 'productId', 'productName', 'quantity', 'price', 'lineTotal']


class OrderSerializer(serializers.ModelSerializer):
    orderNumber = serializers.CharField(source='order_number', read_only=True)
    customerId = serializers.IntegerField(source='customer_id', read_only=True)
    customerName = serializers.CharField(source='customer.full_name', read_only=True)
    paymentMethod = serializers.CharField(source='payment_method', read_only=True)
    paymentStatus = serializers.CharField(source='payment_status', read_only=True)
    deliveryAddress = serializers.CharField(source='delivery_address', read_only=True)
    deliveryFee = serializers.DecimalField(source='delivery_fee', max_digits=10, decimal_places=2, read_only=True)
    deliveryWindowId = serializers.IntegerField(source='delivery_window_id', read_only=True)
    deliveryWindow = DeliveryWindowSerializer(source='delivery_window', read_only=True)
    items = OrderItemSerializer(many=True, read_only=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)

    class Meta:
        model = Order
        fields = ['id', 'orderNumber', 'customerId', 'customerName', 'status', 'paymentMethod',
                  'paymentStatus', 'deliveryWindowId', 'deliveryWindow', 'deliveryAddress', 'subtotal',
                  'tax', 'deliveryFee', 'total', 'notes', 'items', 'createdAt', 'updatedAt']


class CartAddSerializer(serializers.Serializer):
    productId = serializers.IntegerField(source='product_id')
    quantity = serializers.IntegerField(required=False, default=1)


class CheckoutSerializer(serializers.Serializer):
    deliveryWindowId = serializers.IntegerField(required=False, allow_null=True, source='delivery_window_id')
    deliveryAddress = serializers.CharField(required=False, allow_blank=True, allow_null=True,
                                            source='delivery_address')
    notes = serializers.CharField(required=False, allow_blank=True, default='')
