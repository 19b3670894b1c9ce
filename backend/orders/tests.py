"""
Test suite for the delivery cart and orders
Tests: cart merge and stock checks, approval gate, checkout totals,
stock decrement, reorder, admin status updates,
delivery window booking and weekly templates
"""
from datetime import time, timedelta
from decimal import Decimal
from io import StringIO

from django.core.management import call_command
from django.test import TestCase, override_settings
from django.utils import timezone
from rest_framework import status

from backend.core.test_utils import TestDataFactory, BaseAPITestCase
from backend.catalog.models import Product
from backend.orders import services, windows
from backend.orders.models import CartItem, Order, DeliveryWindow, WeeklyDeliveryTemplate


class CartAPITests(BaseAPITestCase):

    def setUp(self):
        super().setUp()
        self.login_customer()
        self.product = TestDataFactory.create_product(price=Decimal('12.50'), stock_quantity=5)

    def test_add_merges_quantity(self):
        self.client.post('/api/delivery/cart', {'productId': self.product.id, 'quantity': 2}, format='json')
        response = self.client.post('/api/delivery/cart', {'productId': self.product.id, 'quantity': 1},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['quantity'], 3)
        self.assertEqual(CartItem.objects.filter(customer=self.customer).count(), 1)

        response = self.client.get('/api/delivery/cart')
        self.assertEqual(response.data[0]['lineTotal'], '37.50')
        self.assertEqual(response.data[0]['product']['id'], self.product.id)

    def test_add_beyond_stock_rejected(self):
        response = self.client.post('/api/delivery/cart', {'productId': self.product.id, 'quantity': 6},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Only 5 available in stock')

    def test_out_of_stock_and_disabled_rejected(self):
        sold_out = TestDataFactory.create_product(stock_quantity=0)
        response = self.client.post('/api/delivery/cart', {'productId': sold_out.id}, format='json')
        self.assertEqual(response.data['error'], 'This product is out of stock')

        disabled = TestDataFactory.create_product(enabled=False)
        response = self.client.post('/api/delivery/cart', {'productId': disabled.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_update_quantity_bounds(self):
        item = TestDataFactory.create_cart_item(self.customer, self.product, quantity=1)

        response = self.client.patch(f'/api/delivery/cart/{item.id}', {'quantity': 4}, format='json')
        self.assertEqual(response.data['quantity'], 4)

        response = self.client.patch(f'/api/delivery/cart/{item.id}', {'quantity': 0}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Quantity must be at least 1')

    def test_cannot_touch_another_customers_item(self):
        other = TestDataFactory.create_customer()
        item = TestDataFactory.create_cart_item(other, self.product)
        response = self.client.delete(f'/api/delivery/cart/{item.id}')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertTrue(CartItem.objects.filter(id=item.id).exists())

    def test_remove_and_clear(self):
        item = TestDataFactory.create_cart_item(self.customer, self.product)
        TestDataFactory.create_cart_item(self.customer, TestDataFactory.create_product())

        response = self.client.delete(f'/api/delivery/cart/{item.id}')
        self.assertEqual(response.data, {'success': True})
        self.assertEqual(CartItem.objects.filter(customer=self.customer).count(), 1)

        response = self.client.delete('/api/delivery/cart/clear')
        self.assertEqual(response.data, {'success': True})
        self.assertFalse(CartItem.objects.filter(customer=self.customer).exists())

    def test_pending_customer_blocked(self):
        self.login_customer(approval_status='pending')
        response = self.client.post('/api/delivery/cart', {'productId': self.product.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Your account is pending approval')


@override_settings(TAX_RATE='0.0825')
class CheckoutTests(BaseAPITestCase):

    def setUp(self):
        super().setUp()
        self.login_customer()
        self.window = TestDataFactory.create_delivery_window(capacity=2)

    def test_place_order_computes_totals_and_clears_cart(self):
        TestDataFactory.create_setting('delivery_fee', '5.00')
        regular = TestDataFactory.create_product(price=Decimal('20.00'), stock_quantity=10)
        on_sale = TestDataFactory.create_product(price=Decimal('15.00'), sale_price=Decimal('10.00'),
                                                 stock_quantity=3)
        TestDataFactory.create_cart_item(self.customer, regular, quantity=2)
        TestDataFactory.create_cart_item(self.customer, on_sale, quantity=1)

        response = self.client.post('/api/delivery/orders',
                                    {'deliveryWindowId': self.window.id, 'notes': 'Ring twice'},
                                    format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Decimal(response.data['subtotal']), Decimal('50.00'))
        self.assertEqual(Decimal(response.data['tax']), Decimal('4.13'))
        self.assertEqual(Decimal(response.data['deliveryFee']), Decimal('5.00'))
        self.assertEqual(Decimal(response.data['total']), Decimal('59.13'))
        self.assertEqual(response.data['paymentMethod'], 'cash')
        self.assertEqual(response.data['deliveryAddress'], self.customer.full_address())
        self.assertTrue(response.data['orderNumber'].startswith('DEL-'))
        self.assertEqual(len(response.data['items']), 2)

        self.assertFalse(CartItem.objects.filter(customer=self.customer).exists())
        regular.refresh_from_db()
        on_sale.refresh_from_db()
        self.assertEqual(regular.stock_quantity, 8)
        self.assertEqual(on_sale.stock_quantity, 2)

    def test_delivery_fee_waived_over_threshold(self):
        TestDataFactory.create_setting('delivery_fee', '5.00')
        TestDataFactory.create_setting('free_delivery_threshold', '40')
        product = TestDataFactory.create_product(price=Decimal('40.00'))
        TestDataFactory.create_cart_item(self.customer, product)

        order = services.place_order(self.customer, delivery_window_id=self.window.id,
                                     delivery_address='1 Side St')

        self.assertEqual(order.delivery_fee, Decimal('0.00'))
        self.assertEqual(order.delivery_address, '1 Side St')

    def test_empty_cart_rejected(self):
        response = self.client.post('/api/delivery/orders', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Your cart is empty')

    def test_stock_shortfall_rolls_back(self):
        product = TestDataFactory.create_product(stock_quantity=5)
        TestDataFactory.create_cart_item(self.customer, product, quantity=3)
        Product.objects.filter(id=product.id).update(stock_quantity=2)

        response = self.client.post('/api/delivery/orders', {'deliveryWindowId': self.window.id}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(Order.objects.count(), 0)
        self.assertEqual(CartItem.objects.filter(customer=self.customer).count(), 1)
        self.window.refresh_from_db()
        self.assertEqual(self.window.current_bookings, 0)

    def test_order_history_and_detail(self):
        product = TestDataFactory.create_product()
        TestDataFactory.create_cart_item(self.customer, product)
        order = services.place_order(self.customer, delivery_window_id=self.window.id)

        response = self.client.get('/api/delivery/orders')
        self.assertEqual([o['id'] for o in response.data], [order.id])

        response = self.client.get(f'/api/delivery/orders/{order.id}')
        self.assertEqual(response.data['orderNumber'], order.order_number)

    def test_other_customers_order_is_404(self):
        other = TestDataFactory.create_customer()
        TestDataFactory.create_cart_item(other, TestDataFactory.create_product())
        order = services.place_order(other, delivery_window_id=self.window.id)
        response = self.client.get(f'/api/delivery/orders/{order.id}')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_reorder_skips_unavailable_products(self):
        keep = TestDataFactory.create_product(stock_quantity=10)
        gone = TestDataFactory.create_product(stock_quantity=10)
        TestDataFactory.create_cart_item(self.customer, keep, quantity=2)
        TestDataFactory.create_cart_item(self.customer, gone, quantity=1)
        order = services.place_order(self.customer, delivery_window_id=self.window.id)
        Product.objects.filter(id=gone.id).update(enabled=False)

        response = self.client.post(f'/api/delivery/orders/{order.id}/reorder')

        self.assertEqual(response.data['added'], 1)
        self.assertEqual(response.data['skipped'], [gone.name])
        self.assertEqual([(c['productId'], c['quantity']) for c in response.data['cart']], [(keep.id, 2)])


class OrderAdminTests(BaseAPITestCase):

    def setUp(self):
        super().setUp()
        customer = TestDataFactory.create_customer()
        TestDataFactory.create_cart_item(customer, TestDataFactory.create_product())
        self.window = TestDataFactory.create_delivery_window()
        self.order = services.place_order(customer, delivery_window_id=self.window.id)
        self.login_admin()

    def test_list_orders(self):
        response = self.client.get('/api/admin/delivery/orders')
        self.assertEqual([o['id'] for o in response.data], [self.order.id])

        response = self.client.get('/api/admin/delivery/orders', {'status': 'delivered'})
        self.assertEqual(response.data, [])

    def test_status_update_validated(self):
        response = self.client.patch(f'/api/admin/delivery/orders/{self.order.id}/status',
                                     {'status': 'shipped'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.patch(f'/api/admin/delivery/orders/{self.order.id}/status',
                                     {'status': 'delivered'}, format='json')
        self.assertEqual(response.data['status'], 'delivered')
        self.assertEqual(response.data['paymentStatus'], 'paid')

    def test_delete_order(self):
        response = self.client.delete(f'/api/admin/delivery/orders/{self.order.id}')
        self.assertEqual(response.data, {'success': True})
        self.assertFalse(Order.objects.filter(id=self.order.id).exists())

    def test_cancel_releases_window_slot(self):
        self.order.delivery_window.refresh_from_db()
        self.assertEqual(self.order.delivery_window.current_bookings, 1)

        self.client.patch(f'/api/admin/delivery/orders/{self.order.id}/status', {'status': 'cancelled'},
                          format='json')
        self.client.patch(f'/api/admin/delivery/orders/{self.order.id}/status', {'status': 'cancelled'},
                          format='json')

        self.window.refresh_from_db()
        self.assertEqual(self.window.current_bookings, 0)

    def test_delete_releases_window_slot(self):
        self.client.delete(f'/api/admin/delivery/orders/{self.order.id}')
        self.window.refresh_from_db()
        self.assertEqual(self.window.current_bookings, 0)


class WindowBookingTests(BaseAPITestCase):

    def setUp(self):
        super().setUp()
        self.login_customer()
        self.product = TestDataFactory.create_product(stock_quantity=5)
        TestDataFactory.create_cart_item(self.customer, self.product, quantity=2)

    def checkout(self, window_id):
        return self.client.post('/api/delivery/orders', {'deliveryWindowId': window_id}, format='json')

    def assertNothingBooked(self):
        self.assertEqual(Order.objects.count(), 0)
        self.assertEqual(CartItem.objects.filter(customer=self.customer).count(), 1)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, 5)

    def test_checkout_books_one_slot(self):
        window = TestDataFactory.create_delivery_window(capacity=3)

        response = self.checkout(window.id)

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['deliveryWindowId'], window.id)
        self.assertEqual(response.data['deliveryWindow']['startTime'], '14:00')
        self.assertEqual(response.data['deliveryWindow']['remaining'], 2)
        window.refresh_from_db()
        self.assertEqual(window.current_bookings, 1)

    def test_window_is_required(self):
        response = self.client.post('/api/delivery/orders', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Please select a delivery window')
        self.assertNothingBooked()

        response = self.checkout(999999)
        self.assertEqual(response.data['error'], 'Delivery window not found')
        self.assertNothingBooked()

    def test_full_window_rejected(self):
        window = TestDataFactory.create_delivery_window(capacity=1, current_bookings=1)

        response = self.checkout(window.id)

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], windows.FULL_REASON)
        self.assertNothingBooked()
        window.refresh_from_db()
        self.assertEqual(window.current_bookings, 1)

    def test_closed_window_rejected(self):
        window = TestDataFactory.create_delivery_window(date=timezone.localdate(), start_time=time(0, 0),
                                                        end_time=time(0, 30))
        response = self.checkout(window.id)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], windows.CLOSED_REASON)
        self.assertNothingBooked()

    def test_disabled_window_rejected(self):
        window = TestDataFactory.create_delivery_window(enabled=False)
        response = self.checkout(window.id)
        self.assertEqual(response.data['error'], 'This delivery window is not available')
        self.assertNothingBooked()

    def test_last_slot_goes_to_first_checkout(self):
        window = TestDataFactory.create_delivery_window(capacity=1)
        other = TestDataFactory.create_customer()
        TestDataFactory.create_cart_item(other, TestDataFactory.create_product())
        services.place_order(other, delivery_window_id=window.id)

        response = self.checkout(window.id)

        self.assertEqual(response.data['error'], windows.FULL_REASON)
        window.refresh_from_db()
        self.assertEqual(window.current_bookings, 1)


class AvailableWindowTests(BaseAPITestCase):

    def test_lists_enabled_windows_in_booking_range(self):
        today = timezone.localdate()
        closed = TestDataFactory.create_delivery_window(date=today, start_time=time(0, 0), end_time=time(0, 30))
        tomorrow = TestDataFactory.create_delivery_window()
        last_day = TestDataFactory.create_delivery_window(date=today + timedelta(days=4))
        TestDataFactory.create_delivery_window(date=today - timedelta(days=1))
        TestDataFactory.create_delivery_window(date=today + timedelta(days=5))
        TestDataFactory.create_delivery_window(start_time=time(9, 0), end_time=time(10, 0), enabled=False)

        response = self.client.get('/api/delivery/windows')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([w['id'] for w in response.data], [closed.id, tomorrow.id, last_day.id])
        flags = {w['id']: (w['isClosed'], w['closedReason']) for w in response.data}
        self.assertEqual(flags[closed.id], (True, windows.CLOSED_REASON))
        self.assertEqual(flags[tomorrow.id], (False, None))

    def test_filter_by_date(self):
        tomorrow = TestDataFactory.create_delivery_window()
        TestDataFactory.create_delivery_window(date=timezone.localdate() + timedelta(days=2))

        response = self.client.get('/api/delivery/windows', {'date': tomorrow.date.isoformat()})

        self.assertEqual([w['id'] for w in response.data], [tomorrow.id])


class WindowAdminTests(BaseAPITestCase):

    def setUp(self):
        super().setUp()
        self.login_admin()
        self.tomorrow = (timezone.localdate() + timedelta(days=1)).isoformat()

    def test_create_window_and_reject_duplicate(self):
        payload = {'date': self.tomorrow, 'startTime': '14:00', 'endTime': '16:00', 'capacity': 5}

        response = self.client.post('/api/admin/delivery/windows', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['startTime'], '14:00')
        self.assertEqual(response.data['currentBookings'], 0)
        self.assertEqual(response.data['remaining'], 5)

        response = self.client.post('/api/admin/delivery/windows', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'A delivery window already exists for this time')
        self.assertEqual(DeliveryWindow.objects.count(), 1)

    def test_end_must_follow_start(self):
        response = self.client.post('/api/admin/delivery/windows',
                                    {'date': self.tomorrow, 'startTime': '16:00', 'endTime': '14:00'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'End time must be after start time')

    def test_update_and_delete_window(self):
        window = TestDataFactory.create_delivery_window()
        customer = TestDataFactory.create_customer()
        TestDataFactory.create_cart_item(customer, TestDataFactory.create_product())
        order = services.place_order(customer, delivery_window_id=window.id)

        response = self.client.patch(f'/api/admin/delivery/windows/{window.id}', {'capacity': 3}, format='json')
        self.assertEqual(response.data['capacity'], 3)
        self.assertEqual(response.data['currentBookings'], 1)

        response = self.client.delete(f'/api/admin/delivery/windows/{window.id}')
        self.assertEqual(response.data, {'success': True})
        order.refresh_from_db()
        self.assertIsNone(order.delivery_window_id)

        response = self.client.get(f'/api/admin/delivery/windows/{window.id}')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_weekly_template_crud(self):
        response = self.client.post('/api/admin/delivery/weekly-templates',
                                    {'dayOfWeek': 1, 'startTime': '10:00 AM', 'endTime': '12:00 PM'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual((response.data['startTime'], response.data['endTime']), ('10:00', '12:00'))
        template_id = response.data['id']

        response = self.client.patch(f'/api/admin/delivery/weekly-templates/{template_id}',
                                     {'endTime': '09:00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'End time must be after start time')

        response = self.client.patch(f'/api/admin/delivery/weekly-templates/{template_id}',
                                     {'capacity': 20, 'enabled': False}, format='json')
        self.assertEqual((response.data['capacity'], response.data['enabled']), (20, False))

        response = self.client.get('/api/admin/delivery/weekly-templates')
        self.assertEqual([t['id'] for t in response.data], [template_id])

        response = self.client.delete(f'/api/admin/delivery/weekly-templates/{template_id}')
        self.assertEqual(response.data, {'success': True})
        self.assertFalse(WeeklyDeliveryTemplate.objects.exists())

    def test_generate_windows_skips_existing_slots(self):
        tomorrow = timezone.localdate() + timedelta(days=1)
        TestDataFactory.create_weekly_template(day_of_week=windows.day_of_week(tomorrow), capacity=7)

        response = self.client.post('/api/admin/delivery/generate-windows', {'daysAhead': 1}, format='json')
        self.assertEqual((response.data['created'], response.data['skipped']), (1, 0))
        window = DeliveryWindow.objects.get()
        self.assertEqual((window.date, window.start_time, window.capacity), (tomorrow, time(10, 0), 7))

        response = self.client.post('/api/admin/delivery/generate-windows', {'daysAhead': 1}, format='json')
        self.assertEqual((response.data['created'], response.data['skipped']), (0, 1))

        response = self.client.post('/api/admin/delivery/generate-windows', {'daysAhead': -1}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'daysAhead must be a non-negative integer')

    def test_customers_are_forbidden(self):
        self.login_customer()
        response = self.client.get('/api/admin/delivery/windows')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class GenerateDeliveryWindowsCommandTests(TestCase):

    def test_one_week_covers_each_template_once(self):
        for day in range(7):
            TestDataFactory.create_weekly_template(day_of_week=day)
        TestDataFactory.create_weekly_template(day_of_week=3, start_time=time(18, 0), end_time=time(20, 0),
                                               enabled=False)
        out = StringIO()

        call_command('generate_delivery_windows', '--days-ahead', '6', stdout=out)

        self.assertIn('Generated 7 delivery windows, skipped 0 existing windows', out.getvalue())
        self.assertEqual(DeliveryWindow.objects.filter(start_time=time(18, 0)).count(), 0)
        self.assertEqual(sorted(windows.day_of_week(w.date) for w in DeliveryWindow.objects.all()), list(range(7)))

    def test_rerun_skips_existing_windows(self):
        TestDataFactory.create_weekly_template(day_of_week=windows.day_of_week(timezone.localdate()))
        call_command('generate_delivery_windows', '--days-ahead', '0', stdout=StringIO())
        out = StringIO()

        call_command('generate_delivery_windows', '--days-ahead', '0', stdout=out)

        self.assertIn('Generated 0 delivery windows, skipped 1 existing windows', out.getvalue())
