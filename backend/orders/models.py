from django.db import models
from decimal import Decimal
from backend.catalog.models import Product
from backend.parties.models import Customer


class CartItem(models.Model):
    """Line in a customer's delivery cart"""
    customer = models.ForeignKey(Customer, on_delete=models.CASCADE, related_name='cart_items')
    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name='cart_items')
    quantity = models.PositiveIntegerField(default=1)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'delivery_cart_items'
        ordering = ['id']
        constraints = [
            models.UniqueConstraint(fields=['customer', 'product'], name='uniq_cartitem_customer_product'),
        ]


class DeliveryWindow(models.Model):
    """Bookable delivery time slot on a given day"""
    date = models.DateField()
    start_time = models.TimeField()
    end_time = models.TimeField()
    capacity = models.PositiveIntegerField(default=10)
    current_bookings = models.PositiveIntegerField(default=0)
    enabled = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    @property
    def remaining(self):
        return max(self.capacity - self.current_bookings, 0)

    @property
    def is_full(self):
        return self.current_bookings >= self.capacity

    def __str__(self):
        return f"{self.date} {self.start_time:%H:%M}-{self.end_time:%H:%M}"

    class Meta:
        db_table = 'delivery_windows'
        ordering = ['date', 'start_time']
        constraints = [
            models.UniqueConstraint(fields=['date', 'start_time', 'end_time'], name='uniq_delivery_window_slot'),
        ]


class WeeklyDeliveryTemplate(models.Model):
    """Recurring slot used to generate delivery windows (day_of_week: 0=Sunday .. 6=Saturday)"""
    DAY_CHOICES = [
        (0, 'Sunday'),
        (1, 'Monday'),
        (2, 'Tuesday'),
        (3, 'Wednesday'),
        (4, 'Thursday'),
        (5, 'Friday'),
        (6, 'Saturday'),
    ]

    day_of_week = models.PositiveSmallIntegerField(choices=DAY_CHOICES)
    start_time = models.TimeField()
    end_time = models.TimeField()
    capacity = models.PositiveIntegerField(default=10)
    enabled = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.get_day_of_week_display()} {self.start_time:%H:%M}-{self.end_time:%H:%M}"

    class Meta:
        db_table = 'weekly_delivery_templates'
        ordering = ['day_of_week', 'start_time']


class Order(models.Model):
    """Delivery order"""
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('confirmed', 'Confirmed'),
        ('preparing', 'Preparing'),
        ('out_for_delivery', 'Out for Delivery'),
        ('delivered', 'Delivered'),
        ('cancelled', 'Cancelled'),
    ]

    PAYMENT_METHOD_CHOICES = [
        ('cash', 'Cash on Delivery'),
    ]

    PAYMENT_STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('paid', 'Paid'),
    ]

    order_number = models.CharField(max_length=50, unique=True)
    customer = models.ForeignKey(Customer, on_delete=models.CASCADE, related_name='orders')
    delivery_window = models.ForeignKey(DeliveryWindow, on_delete=models.SET_NULL, null=True, blank=True,
                                        related_name='orders')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending')
    payment_method = models.CharField(max_length=20, choices=PAYMENT_METHOD_CHOICES, default='cash')
    payment_status = models.CharField(max_length=20, choices=PAYMENT_STATUS_CHOICES, default='pending')
    delivery_address = models.TextField()
    subtotal = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    tax = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    delivery_fee = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    total = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.order_number

    class Meta:
        db_table = 'delivery_orders'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status'], name='idx_order_status'),
            models.Index(fields=['customer', '-created_at'], name='idx_order_customer_created'),
        ]


class OrderItem(models.Model):
    """Order line; name and price are snapshotted at checkout"""
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name='items')
    product = models.ForeignKey(Product, on_delete=models.SET_NULL, null=True, blank=True, related_name='order_items')
    product_name = models.CharField(max_length=255)
    quantity = models.PositiveIntegerField()
    price = models.DecimalField(max_digits=10, decimal_places=2)

    @property
    def line_total(self):
        return self.price * self.quantity

    class Meta:
        db_table = 'delivery_order_items'
        ordering = ['id']
