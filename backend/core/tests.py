"""
Test suite for core: auth, settings, audit logs, error rendering and caching helpers
"""
from io import StringIO

from django.core.cache import cache
from django.core.management import call_command
from django.http import Http404
from django.test import TestCase
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.test import APIRequestFactory

from backend.core.cache_utils import cached_query, invalidate_resource_cache, make_cache_key
from backend.core.exceptions import reports_failure, NotFoundError
from backend.core.models import AuditLog, Setting
from backend.core.test_utils import TestDataFactory, BaseAPITestCase
from backend.core.utils import slugify_name, parse_int


class AuthTests(BaseAPITestCase):

    def test_register_returns_tokens(self):
        response = self.client.post('/api/auth/register/', {
            'username': 'newshopper', 'email': 'new@shop.test',
            'password': 'Zq7!mintIceCold', 'password_confirm': 'Zq7!mintIceCold',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIn('access', response.data)
        self.assertEqual(response.data['user']['username'], 'newshopper')

    def test_register_password_mismatch(self):
        response = self.client.post('/api/auth/register/', {
            'username': 'mismatch', 'password': 'Zq7!mintIceCold', 'password_confirm': 'other',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Invalid registration data')

    def test_login_and_me(self):
        TestDataFactory.create_user(username='shopper')
        response = self.client.post('/api/auth/login/', {'username': 'shopper', 'password': 'testpass123'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {response.data['access']}")
        response = self.client.get('/api/auth/me/')
        self.assertEqual(response.data['username'], 'shopper')
        self.assertFalse(response.data['is_admin'])
        self.assertIsNone(response.data['customer'])

    def test_me_includes_customer_status(self):
        customer = self.login_customer(approval_status='pending')
        response = self.client.get('/api/auth/me/')
        self.assertEqual(response.data['customer'], {'id': customer.id, 'approval_status': 'pending'})

    def test_bad_credentials(self):
        response = self.client.post('/api/auth/login/', {'username': 'nobody', 'password': 'x'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertIn('error', response.data)


class SettingTests(BaseAPITestCase):

    def test_public_read(self):
        TestDataFactory.create_setting('info_bar', 'Free delivery over $100')
        response = self.client.get('/api/settings/info_bar')
        self.assertEqual(response.data, {'key': 'info_bar', 'value': 'Free delivery over $100'})

    def test_missing_setting_is_404(self):
        response = self.client.get('/api/settings/nope')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_upsert_requires_staff(self):
        self.login_customer()
        response = self.client.put('/api/admin/settings/delivery_fee', {'value': '4.99'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_upsert_creates_then_updates_and_refreshes_public_read(self):
        self.login_admin()
        response = self.client.put('/api/admin/settings/delivery_fee', {'value': '4.99'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(self.client.get('/api/settings/delivery_fee').data['value'], '4.99')

        response = self.client.put('/api/admin/settings/delivery_fee', {'value': 6}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(self.client.get('/api/settings/delivery_fee').data['value'], '6')
        self.assertEqual(Setting.objects.filter(key='delivery_fee').count(), 1)

    def test_upsert_requires_value(self):
        self.login_admin()
        response = self.client.put('/api/admin/settings/delivery_fee', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class AuditLogTests(BaseAPITestCase):

    def test_admin_mutations_are_listed(self):
        self.login_admin()
        self.client.post('/api/admin/delivery/categories', {'name': 'Hookah'}, format='json')

        response = self.client.get('/api/admin/audit-logs', {'model': 'Category'})
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['action'], 'create')
        self.assertEqual(response.data[0]['object_name'], 'Hookah')
        self.assertEqual(response.data[0]['user']['id'], self.admin.id)

    def test_detail(self):
        self.login_admin()
        log = AuditLog.objects.create(user=self.admin, action='delete', model_name='Brand', object_id='3')
        response = self.client.get(f'/api/admin/audit-logs/{log.id}')
        self.assertEqual(response.data['model_name'], 'Brand')


@api_view(['GET'])
@permission_classes([AllowAny])
@reports_failure('load widgets')
def exploding_view(request):
    raise RuntimeError('database went away')


@api_view(['GET', 'POST'])
@permission_classes([AllowAny])
@reports_failure({'GET': 'fetch widget', 'POST': 'create widget'})
def missing_view(request):
    if request.method == 'POST':
        raise KeyError('boom')
    raise NotFoundError('Widget not found')


@api_view(['GET'])
@permission_classes([AllowAny])
@reports_failure('fetch widget')
def http404_view(request):
    raise Http404('gone')


class ErrorRenderingTests(TestCase):

    def setUp(self):
        self.factory = APIRequestFactory()

    def test_unexpected_exception_becomes_500(self):
        with self.assertLogs('backend.core.exceptions', level='ERROR'):
            response = exploding_view(self.factory.get('/widgets'))
        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(response.data, {'error': 'Failed to load widgets'})

    def test_per_method_action(self):
        with self.assertLogs('backend.core.exceptions', level='ERROR'):
            response = missing_view(self.factory.post('/widgets'))
        self.assertEqual(response.data, {'error': 'Failed to create widget'})

    def test_service_error_keeps_its_status(self):
        response = missing_view(self.factory.get('/widgets'))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data, {'error': 'Widget not found'})

    def test_http404_is_flattened(self):
        response = http404_view(self.factory.get('/widgets'))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertIn('error', response.data)


class CacheHelperTests(TestCase):

    def setUp(self):
        cache.clear()
        self.calls = 0

    def test_cached_query_until_invalidated(self):
        @cached_query('widgets', cache_ttl=60)
        def widgets_payload(scope=None):
            self.calls += 1
            return [scope, self.calls]

        self.assertEqual(widgets_payload(scope='a'), ['a', 1])
        self.assertEqual(widgets_payload(scope='a'), ['a', 1])
        self.assertEqual(widgets_payload(scope='b'), ['b', 2])

        invalidate_resource_cache('widgets')
        self.assertEqual(widgets_payload(scope='a'), ['a', 3])

    def test_invalidation_changes_keys(self):
        before = make_cache_key('widgets', 1)
        invalidate_resource_cache('widgets')
        self.assertNotEqual(before, make_cache_key('widgets', 1))


class UtilsTests(TestCase):

    def test_slugify_name(self):
        self.assertEqual(slugify_name('Geek Bar / Pulse X'), 'geek-bar-pulse-x')
        self.assertEqual(slugify_name('--Lost Mary!!'), 'lost-mary')
        self.assertEqual(slugify_name('!!!'), '')

    def test_parse_int(self):
        self.assertEqual(parse_int('42'), 42)
        self.assertIsNone(parse_int(''))
        self.assertIsNone(parse_int('abc'))
        self.assertIsNone(parse_int(None))


class SeedDeliverySettingsCommandTests(TestCase):

    def test_creates_missing_settings(self):
        call_command('seed_delivery_settings', stdout=StringIO())
        self.assertEqual(Setting.get_value('delivery_fee'), '5.00')
        self.assertEqual(Setting.get_value('free_delivery_threshold'), '100')

    def test_keeps_existing_values_without_overwrite(self):
        TestDataFactory.create_setting('delivery_fee', '7.50')
        out = StringIO()
        call_command('seed_delivery_settings', stdout=out)
        self.assertEqual(Setting.get_value('delivery_fee'), '7.50')
        self.assertIn('Kept delivery_fee = 7.50', out.getvalue())
        self.assertEqual(Setting.get_value('free_delivery_threshold'), '100')

    def test_overwrite_resets_to_defaults(self):
        TestDataFactory.create_setting('delivery_fee', '7.50')
        call_command('seed_delivery_settings', '--overwrite', stdout=StringIO())
        self.assertEqual(Setting.get_value('delivery_fee'), '5.00')
        self.assertEqual(Setting.objects.filter(key='delivery_fee').count(), 1)
