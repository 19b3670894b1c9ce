"""
Test utilities and factories for creating test data
"""
import json
import random
import string
from datetime import time, timedelta
from decimal import Decimal
from urllib.parse import urlencode

from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.test import TestCase
from django.utils import timezone
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from backend.core.models import Setting
from backend.catalog.models import Category, Brand, ProductLine, Product, CategoryBanner
from backend.parties.models import Customer
from backend.orders.models import CartItem, DeliveryWindow, WeeklyDeliveryTemplate
from backend.locations.models import StoreLocation

User = get_user_model()


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def create_user(username=None, email=None, password='testpass123', is_staff=False, is_superuser=False):
        """Create a test user"""
        if not username:
            username = f'testuser_{TestDataFactory.random_string(6)}'
        if not email:
            email = f'{username}@test.com'
        return User.objects.create_user(
            username=username,
            email=email,
            password=password,
            is_staff=is_staff,
            is_superuser=is_superuser
        )

    @staticmethod
    def create_admin(username=None, password='testpass123'):
        """Create a staff user allowed on /api/admin/ endpoints"""
        return TestDataFactory.create_user(username=username, password=password, is_staff=True)

    @staticmethod
    def create_category(name=None, display_order=0, is_active=True, **kwargs):
        """Create a test category"""
        if not name:
            name = f'Category {TestDataFactory.random_string(6)}'
        return Category.objects.create(name=name, display_order=display_order, is_active=is_active, **kwargs)

    @staticmethod
    def create_brand(category=None, name=None, display_order=0, is_active=True, **kwargs):
        """Create a test brand"""
        if not category:
            category = TestDataFactory.create_category()
        if not name:
            name = f'Brand {TestDataFactory.random_string(6)}'
        return Brand.objects.create(category=category, name=name, display_order=display_order,
                                    is_active=is_active, **kwargs)

    @staticmethod
    def create_product_line(brand=None, name=None, display_order=0, is_active=True, **kwargs):
        """Create a test product line"""
        if not brand:
            brand = TestDataFactory.create_brand()
        if not name:
            name = f'Line {TestDataFactory.random_string(6)}'
        return ProductLine.objects.create(brand=brand, name=name, display_order=display_order,
                                          is_active=is_active, **kwargs)

    @staticmethod
    def create_product(name=None, price=None, brand=None, product_line=None, enabled=True,
                       stock_quantity=10, **kwargs):
        """Create a test product (unattached unless brand/product_line given)"""
        if not name:
            name = f'Product {TestDataFactory.random_string(6)}'
        if price is None:
            price = Decimal('10.00')
        return Product.objects.create(
            name=name,
            price=price,
            brand=brand,
            product_line=product_line,
            enabled=enabled,
            stock_quantity=stock_quantity,
            **kwargs
        )

    @staticmethod
    def create_customer(user=None, full_name=None, approval_status='approved', **kwargs):
        """Create a delivery customer profile (approved by default)"""
        if not user:
            user = TestDataFactory.create_user()
        if not full_name:
            full_name = f'Customer {TestDataFactory.random_string(6)}'
        defaults = {
            'phone': f'555{random.randint(1000000, 9999999)}',
            'address': '12 Main St',
            'city': 'Austin',
            'state': 'TX',
            'zip_code': '78701',
        }
        defaults.update(kwargs)
        return Customer.objects.create(
            user=user,
            full_name=full_name,
            approval_status=approval_status,
            approved_at=timezone.now() if approval_status == 'approved' else None,
            **defaults
        )

    @staticmethod
    def create_cart_item(customer, product, quantity=1):
        return CartItem.objects.create(customer=customer, product=product, quantity=quantity)

    @staticmethod
    def create_delivery_window(date=None, start_time=None, end_time=None, capacity=10, **kwargs):
        """Create a delivery window (tomorrow 14:00-16:00 unless given)"""
        return DeliveryWindow.objects.create(
            date=date or timezone.localdate() + timedelta(days=1),
            start_time=start_time or time(14, 0),
            end_time=end_time or time(16, 0),
            capacity=capacity,
            **kwargs
        )

    @staticmethod
    def create_weekly_template(day_of_week=1, start_time=None, end_time=None, capacity=10, **kwargs):
        return WeeklyDeliveryTemplate.objects.create(
            day_of_week=day_of_week,
            start_time=start_time or time(10, 0),
            end_time=end_time or time(12, 0),
            capacity=capacity,
            **kwargs
        )

    @staticmethod
    def create_category_banner(category=None, image='/catalog-images/uploads/banner', display_order=0,
                               is_active=True, **kwargs):
        if not category:
            category = TestDataFactory.create_category()
        return CategoryBanner.objects.create(category=category, image=image, display_order=display_order,
                                             is_active=is_active, **kwargs)

    @staticmethod
    def create_store_location(name=None, display_order=0, is_active=True, **kwargs):
        """Create a test store location"""
        if not name:
            name = f'Store {TestDataFactory.random_string(6)}'
        return StoreLocation.objects.create(
            name=name,
            slug=kwargs.pop('slug', None) or name.lower().replace(' ', '-'),
            city=kwargs.pop('city', 'Austin'),
            display_order=display_order,
            is_active=is_active,
            **kwargs
        )

    @staticmethod
    def create_setting(key, value, description=''):
        return Setting.objects.create(key=key, value=str(value), description=description)


class AuthenticatedAPIClient(APIClient):
    """API client with JWT authentication helpers"""

    def authenticate_user(self, user):
        """Authenticate a user and set the JWT token"""
        refresh = RefreshToken.for_user(user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        return refresh

    def logout(self):
        """Clear authentication"""
        self.credentials()


class BaseAPITestCase(TestCase):
    """TestCase with an API client and a clean cache for every test"""

    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()
        self.factory = TestDataFactory

    def login_admin(self):
        self.admin = TestDataFactory.create_admin()
        self.client.authenticate_user(self.admin)
        return self.admin

    def login_customer(self, approval_status='approved'):
        self.customer = TestDataFactory.create_customer(approval_status=approval_status)
        self.client.authenticate_user(self.customer.user)
        return self.customer


class ClientResponse:
    """The parts of requests.Response the catalog manager reads"""

    def __init__(self, response):
        self.status_code = response.status_code
        self.content = response.content
        self.reason = getattr(response, 'reason_phrase', '')

    @property
    def text(self):
        return self.content.decode('utf-8', errors='replace')

    def json(self):
        return json.loads(self.content)


class TestClientSession:
    """
    requests.Session stand-in that routes calls through Django's test client,
    so CatalogManager can be exercised against the real views.

    Every call is recorded in `calls` as (METHOD, path, json_body).
    """

    def __init__(self, client=None):
        self.client = client or APIClient()
        self.headers = {}
        self.calls = []

    def request(self, method, url, json=None, params=None, timeout=None):
        method = method.upper()
        self.calls.append((method, url, json))
        extra = {}
        if self.headers.get('Authorization'):
            extra['HTTP_AUTHORIZATION'] = self.headers['Authorization']

        if method == 'GET':
            response = self.client.get(url, data=params or None, **extra)
        else:
            if params:
                url = f"{url}?{urlencode(params)}"
            handler = getattr(self.client, method.lower())
            response = handler(url, data=json, format='json', **extra)
        return ClientResponse(response)

    def requests_for(self, method):
        return [call for call in self.calls if call[0] == method.upper()]
