"""
Test suite for store locations
Tests: public listing, admin CRUD, slug uniqueness, reorder, caching
"""
from rest_framework import status

from backend.core.test_utils import TestDataFactory, BaseAPITestCase
from backend.locations.models import StoreLocation


class PublicStoreLocationTests(BaseAPITestCase):

    def test_lists_active_locations_in_display_order(self):
        second = TestDataFactory.create_store_location(name='North', display_order=1)
        first = TestDataFactory.create_store_location(name='Downtown', display_order=0)
        TestDataFactory.create_store_location(name='Closed', display_order=2, is_active=False)

        response = self.client.get('/api/store-locations')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([loc['id'] for loc in response.data], [first.id, second.id])

    def test_listing_refreshes_after_change(self):
        location = TestDataFactory.create_store_location(name='Downtown')
        self.assertEqual(len(self.client.get('/api/store-locations').data), 1)

        location.is_active = False
        location.save()
        self.assertEqual(self.client.get('/api/store-locations').data, [])


class AdminStoreLocationTests(BaseAPITestCase):

    def setUp(self):
        super().setUp()
        self.login_admin()

    def test_create_derives_slug(self):
        response = self.client.post('/api/admin/store-locations', {
            'name': 'South Congress', 'city': 'Austin', 'hours': '9am - 11pm',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['slug'], 'south-congress')
        self.assertTrue(response.data['isActive'])

    def test_duplicate_name_rejected(self):
        TestDataFactory.create_store_location(name='Downtown', slug='downtown')
        response = self.client.post('/api/admin/store-locations', {'name': 'Downtown'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'A store location with this name already exists')

    def test_admin_listing_includes_inactive(self):
        TestDataFactory.create_store_location(is_active=False)
        response = self.client.get('/api/admin/store-locations')
        self.assertEqual(len(response.data), 1)

    def test_update_and_delete(self):
        location = TestDataFactory.create_store_location(name='Downtown')

        response = self.client.patch(f'/api/admin/store-locations/{location.id}',
                                     {'phone': '5125550199', 'isActive': False}, format='json')
        self.assertEqual(response.data['phone'], '5125550199')
        self.assertFalse(response.data['isActive'])
        self.assertEqual(response.data['slug'], location.slug)

        response = self.client.delete(f'/api/admin/store-locations/{location.id}')
        self.assertEqual(response.data, {'success': True})
        self.assertFalse(StoreLocation.objects.filter(id=location.id).exists())

    def test_missing_location_is_404(self):
        response = self.client.delete('/api/admin/store-locations/4040')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_reorder(self):
        a = TestDataFactory.create_store_location(name='A', display_order=0)
        b = TestDataFactory.create_store_location(name='B', display_order=1)
        c = TestDataFactory.create_store_location(name='C', display_order=2)
        self.client.get('/api/store-locations')

        response = self.client.post('/api/admin/store-locations/reorder',
                                    {'orderedIds': [b.id, c.id, a.id]}, format='json')
        self.assertEqual(response.data, {'success': True})

        response = self.client.get('/api/store-locations')
        self.assertEqual([loc['name'] for loc in response.data], ['B', 'C', 'A'])

    def test_reorder_requires_array(self):
        response = self.client.post('/api/admin/store-locations/reorder', {'orderedIds': 'a,b'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
