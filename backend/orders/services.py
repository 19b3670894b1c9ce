"""
Cart and checkout for approved delivery customers.

Totals are always computed here from current product prices; nothing the
client sends about money is trusted.
"""
import logging
import uuid
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation

from django.conf import settings
from django.db import transaction
from django.db.models import F
from django.utils import timezone

from backend.core.exceptions import NotFoundError, ValidationFailed
from backend.core.models import Setting
from backend.catalog.models import Product
from . import windows
from .models import CartItem, Order, OrderItem

logger = logging.getLogger('backend.orders')

CENTS = Decimal('0.01')
DEFAULT_FREE_DELIVERY_THRESHOLD = Decimal('100')


def _money(value):
    return Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def _decimal_setting(key, default):
    """Numeric value of a Setting row, falling back to `default`"""
    value = Setting.get_value(key)
    if value in (None, ''):
        return default
    try:
        return Decimal(str(value))
    except InvalidOperation:
        logger.warning(f"Setting {key} is not a number: {value!r}")
        return default


def require_approved(customer):
    if customer is None:
        raise ValidationFailed('Customer profile not found')
    if not customer.is_approved:
        raise ValidationFailed('Your account is pending approval')


def _check_stock(product, quantity):
    if not product.enabled:
        raise ValidationFailed('This product is no longer available')
    if product.stock_quantity <= 0:
        raise ValidationFailed('This product is out of stock')
    if quantity > product.stock_quantity:
        raise ValidationFailed(f'Only {product.stock_quantity} available in stock')


def _parse_quantity(quantity):
    try:
        quantity = int(quantity)
    except (TypeError, ValueError):
        raise ValidationFailed('Quantity must be a whole number')
    if quantity < 1:
        raise ValidationFailed('Quantity must be at least 1')
    return quantity


# Cart

def list_cart(customer):
    require_approved(customer)
    return customer.cart_items.select_related('product', 'product__brand', 'product__product_line')


def add_to_cart(customer, product_id, quantity=1):
    """Add a product; an existing line for the same product is merged"""
    require_approved(customer)
    quantity = _parse_quantity(quantity)
    product = Product.objects.filter(pk=product_id).first()
    if product is None:
        raise NotFoundError('Product not found')

    with transaction.atomic():
        item = CartItem.objects.select_for_update().filter(customer=customer, product=product).first()
        new_quantity = quantity + (item.quantity if item else 0)
        _check_stock(product, new_quantity)
        if item:
            item.quantity = new_quantity
            item.save(update_fields=['quantity', 'updated_at'])
        else:
            item = CartItem.objects.create(customer=customer, product=product, quantity=new_quantity)
    logger.info(f"Customer {customer.id} cart: product {product.id} x{new_quantity}")
    return item


def _get_cart_item(customer, item_id):
    item = CartItem.objects.select_related('product').filter(pk=item_id, customer=customer).first()
    if item is None:
        raise NotFoundError('Cart item not found')
    return item


def update_cart_item(customer, item_id, quantity):
    require_approved(customer)
    quantity = _parse_quantity(quantity)
    item = _get_cart_item(customer, item_id)
    _check_stock(item.product, quantity)
    item.quantity = quantity
    item.save(update_fields=['quantity', 'updated_at'])
    return item


def remove_cart_item(customer, item_id):
    require_approved(customer)
    _get_cart_item(customer, item_id).delete()


def clear_cart(customer):
    require_approved(customer)
    deleted, _ = customer.cart_items.all().delete()
    return deleted


# Checkout

def generate_order_number():
    order_number = f"DEL-{timezone.now().strftime('%Y%m%d')}-{str(uuid.uuid4())[:8].upper()}"
    while Order.objects.filter(order_number=order_number).exists():
        order_number = f"DEL-{timezone.now().strftime('%Y%m%d')}-{str(uuid.uuid4())[:8].upper()}"
    return order_number


def calculate_totals(subtotal):
    """Tax, delivery fee and total for a cart subtotal"""
    subtotal = _money(subtotal)
    tax = _money(subtotal * Decimal(str(settings.TAX_RATE)))
    threshold = _decimal_setting('free_delivery_threshold', DEFAULT_FREE_DELIVERY_THRESHOLD)
    delivery_fee = Decimal('0.00')
    if subtotal < threshold:
        delivery_fee = _money(_decimal_setting('delivery_fee', Decimal('0.00')))
    return {
        'subtotal': subtotal,
        'tax': tax,
        'delivery_fee': delivery_fee,
        'total': _money(subtotal + tax + delivery_fee),
    }


def place_order(customer, delivery_window_id=None, delivery_address=None, notes=''):
    """
    Turn the customer's cart into an order.

    Stock is re-checked under row locks and decremented, one slot of the
    delivery window is booked, and the cart is cleared, all in the same
    transaction.
    """
    require_approved(customer)
    address = (delivery_address or '').strip() or customer.full_address()
    if not address:
        raise ValidationFailed('Delivery address is required')

    with transaction.atomic():
        items = list(customer.cart_items.select_related('product').order_by('id'))
        if not items:
            raise ValidationFailed('Your cart is empty')

        products = Product.objects.select_for_update().in_bulk([item.product_id for item in items])
        subtotal = Decimal('0.00')
        lines = []
        for item in items:
            product = products[item.product_id]
            if not product.enabled:
                raise ValidationFailed(f'{product.name} is no longer available')
            if item.quantity > product.stock_quantity:
                raise ValidationFailed(f'Only {product.stock_quantity} of {product.name} available in stock')
            price = _money(product.effective_price)
            subtotal += price * item.quantity
            lines.append((product, item.quantity, price))

        totals = calculate_totals(subtotal)
        window = windows.book_window(delivery_window_id)
        order = Order.objects.create(
            order_number=generate_order_number(),
            customer=customer,
            delivery_window=window,
            delivery_address=address,
            notes=notes or '',
            **totals
        )
        OrderItem.objects.bulk_create([
            OrderItem(order=order, product=product, product_name=product.name,
                      quantity=quantity, price=price)
            for product, quantity, price in lines
        ])
        for product, quantity, _ in lines:
            Product.objects.filter(pk=product.pk).update(stock_quantity=F('stock_quantity') - quantity)
        customer.cart_items.all().delete()

    logger.info(f"Order {order.order_number} placed by customer {customer.id}: total {order.total}")
    return order


def reorder(customer, order):
    """Put a past order's still-available products back into the cart"""
    require_approved(customer)
    added = []
    skipped = []
    for line in order.items.select_related('product'):
        product = line.product
        if product is None or not product.enabled or product.stock_quantity <= 0:
            skipped.append(line.product_name)
            continue
        in_cart = CartItem.objects.filter(customer=customer, product=product).first()
        room = product.stock_quantity - (in_cart.quantity if in_cart else 0)
        if room <= 0:
            skipped.append(line.product_name)
            continue
        added.append(add_to_cart(customer, product.id, min(line.quantity, room)))
    logger.info(f"Reorder of {order.order_number}: {len(added)} added, {len(skipped)} skipped")
    return added, skipped


# Lookups and admin

def orders_for(customer):
    require_approved(customer)
    return customer.orders.prefetch_related('items')


def get_order(order_id, customer=None):
    orders = Order.objects.select_related('customer', 'delivery_window').prefetch_related('items')
    if customer is not None:
        orders = orders.filter(customer=customer)
    order = orders.filter(pk=order_id).first()
    if order is None:
        raise NotFoundError('Order not found')
    return order


def list_orders(status=None):
    orders = Order.objects.select_related('customer', 'delivery_window').prefetch_related('items')
    if status:
        if status not in dict(Order.STATUS_CHOICES):
            raise ValidationFailed(f'Invalid status: {status}')
        orders = orders.filter(status=status)
    return orders


def update_order_status(order_id, status):
    if status not in dict(Order.STATUS_CHOICES):
        raise ValidationFailed(f'Invalid status: {status}')
    order = get_order(order_id)
    previous = order.status
    order.status = status
    update_fields = ['status', 'updated_at']
    with transaction.atomic():
        if status == 'delivered' and order.payment_method == 'cash':
            order.payment_status = 'paid'
            update_fields.append('payment_status')
        order.save(update_fields=update_fields)
        if status == 'cancelled' and previous != 'cancelled':
            windows.release_window(order.delivery_window_id)
    logger.info(f"Order {order.order_number} status {previous} -> {status}")
    return order


def delete_order(order_id):
    order = get_order(order_id)
    with transaction.atomic():
        if order.status != 'cancelled':
            windows.release_window(order.delivery_window_id)
        order.delete()
    logger.info(f"Deleted order {order.order_number}")
    return order
