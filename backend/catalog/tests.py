"""
Test suite for the delivery catalog
Tests: hierarchy CRUD, slugs, cascade deletes, reorder, featured products,
admin/public endpoints, caching, and the catalog hierarchy manager client
"""
import json
from io import StringIO
from decimal import Decimal

from django.core.cache import cache
from django.core.management import call_command
from django.test import TestCase, override_settings
from rest_framework import status

from backend.core.exceptions import ConflictError, NotFoundError, ValidationFailed
from backend.core.models import AuditLog
from backend.core.test_utils import (
    TestDataFactory, BaseAPITestCase, TestClientSession, ClientResponse,
)
from backend.catalog import services
from backend.catalog.admin_client import CatalogManager, array_move
from backend.catalog.models import Category, Brand, ProductLine, Product, CategoryBanner


class CatalogServiceTests(TestCase):
    """Data-access layer rules"""

    def setUp(self):
        cache.clear()

    def test_create_category_derives_slug_and_starts_at_zero(self):
        category = services.create_category('  Geek Bar / Pulse X  ')
        self.assertEqual(category.name, 'Geek Bar / Pulse X')
        self.assertEqual(category.slug, 'geek-bar-pulse-x')
        self.assertEqual(category.display_order, 0)
        self.assertTrue(category.is_active)
        self.assertEqual(category.featured_product_ids, [])

    def test_create_category_rejects_blank_name(self):
        with self.assertRaises(ValidationFailed) as ctx:
            services.create_category('   ')
        self.assertEqual(ctx.exception.message, 'Category name is required')

    def test_duplicate_slug_rejected(self):
        services.create_category('Disposables')
        with self.assertRaises(ConflictError) as ctx:
            services.create_category('disposables!')
        self.assertEqual(ctx.exception.message, 'A category with this name already exists')

    def test_rename_to_existing_slug_rejected(self):
        services.create_category('Vapes')
        other = services.create_category('Hookah')
        with self.assertRaises(ConflictError):
            services.update_category(other.id, name='VAPES')

    def test_rename_regenerates_slug(self):
        category = services.create_category('Old Name')
        category = services.update_category(category.id, name='New Name')
        self.assertEqual(category.slug, 'new-name')

    def test_create_brand_requires_existing_category(self):
        with self.assertRaises(ValidationFailed):
            services.create_brand('Elf Bar', category_id=None)
        with self.assertRaises(ValidationFailed):
            services.create_brand('Elf Bar', category_id=999999)

    def test_reorder_categories_assigns_positions(self):
        a = TestDataFactory.create_category(name='A', display_order=0)
        b = TestDataFactory.create_category(name='B', display_order=1)
        c = TestDataFactory.create_category(name='C', display_order=2)

        services.reorder_categories([c.id, a.id, b.id])

        ordered = list(services.list_categories().values_list('id', 'display_order'))
        self.assertEqual(ordered, [(c.id, 0), (a.id, 1), (b.id, 2)])

    def test_reorder_brands_is_scoped_to_parent(self):
        category = TestDataFactory.create_category()
        other_category = TestDataFactory.create_category()
        b1 = TestDataFactory.create_brand(category=category, display_order=0)
        b2 = TestDataFactory.create_brand(category=category, display_order=1)
        foreign = TestDataFactory.create_brand(category=other_category, display_order=7)

        services.reorder_brands(category.id, [b2.id, foreign.id, b1.id, 424242])

        foreign.refresh_from_db()
        self.assertEqual(foreign.display_order, 7)
        self.assertEqual(
            [brand.id for brand in services.list_brands(category_id=category.id)],
            [b2.id, b1.id],
        )

    def test_reorder_rejects_non_list(self):
        with self.assertRaises(ValidationFailed):
            services.reorder_categories('1,2,3')

    def test_delete_category_cascades_to_brands_and_product_lines(self):
        category = TestDataFactory.create_category()
        brand = TestDataFactory.create_brand(category=category)
        product_line = TestDataFactory.create_product_line(brand=brand)
        product = TestDataFactory.create_product(brand=brand, product_line=product_line)

        services.delete_category(category.id)

        self.assertFalse(Category.objects.filter(id=category.id).exists())
        self.assertFalse(Brand.objects.filter(id=brand.id).exists())
        self.assertFalse(ProductLine.objects.filter(id=product_line.id).exists())
        product.refresh_from_db()
        self.assertIsNone(product.brand_id)
        self.assertIsNone(product.product_line_id)

    def test_delete_brand_keeps_category(self):
        brand = TestDataFactory.create_brand()
        TestDataFactory.create_product_line(brand=brand)
        product = TestDataFactory.create_product(brand=brand)
        services.delete_brand(brand.id)
        self.assertTrue(Category.objects.filter(id=brand.category_id).exists())
        self.assertEqual(ProductLine.objects.count(), 0)
        product.refresh_from_db()
        self.assertIsNone(product.brand_id)

    def test_delete_missing_node_raises_not_found(self):
        with self.assertRaises(NotFoundError):
            services.delete_product_line(123456)

    def test_set_featured_products_is_full_replace(self):
        brand = TestDataFactory.create_brand()
        p1 = TestDataFactory.create_product(brand=brand)
        p2 = TestDataFactory.create_product(brand=brand)
        p3 = TestDataFactory.create_product(brand=brand)

        services.set_featured_products(brand, [p3.id, p1.id])
        services.set_featured_products(brand, [p2.id, p1.id, p2.id])
        brand.refresh_from_db()
        self.assertEqual(brand.featured_product_ids, [p2.id, p1.id])

        # Idempotent
        services.set_featured_products(brand, [p2.id, p1.id])
        brand.refresh_from_db()
        self.assertEqual(brand.featured_product_ids, [p2.id, p1.id])

        services.set_featured_products(brand, [])
        brand.refresh_from_db()
        self.assertEqual(brand.featured_product_ids, [])

    def test_featured_products_must_be_enabled_and_exist(self):
        category = TestDataFactory.create_category()
        disabled = TestDataFactory.create_product(enabled=False)
        with self.assertRaises(ValidationFailed) as ctx:
            services.set_featured_products(category, [disabled.id, 999999])
        self.assertEqual(ctx.exception.details, {'invalidProductIds': [disabled.id, 999999]})

    def test_featured_products_for_keeps_stored_order_and_skips_disabled(self):
        product_line = TestDataFactory.create_product_line()
        p1 = TestDataFactory.create_product(product_line=product_line)
        p2 = TestDataFactory.create_product(product_line=product_line)
        services.set_featured_products(product_line, [p2.id, p1.id])

        Product.objects.filter(id=p1.id).update(enabled=False)

        self.assertEqual([p.id for p in services.featured_products_for(product_line)], [p2.id])

    def test_bulk_update_and_assign(self):
        brand = TestDataFactory.create_brand()
        p1 = TestDataFactory.create_product()
        p2 = TestDataFactory.create_product()

        updated = services.assign_brand([p1.id, p2.id], brand.id)
        self.assertEqual(updated, 2)
        self.assertEqual(Product.objects.filter(brand=brand).count(), 2)

        services.assign_brand([p1.id], None)
        p1.refresh_from_db()
        self.assertIsNone(p1.brand_id)

        with self.assertRaises(ValidationFailed):
            services.bulk_update_products([p1.id], {'name': 'nope'})
        with self.assertRaises(ValidationFailed):
            services.bulk_update_products([], {'enabled': False})

    def test_list_products_category_filter_follows_brand(self):
        category = TestDataFactory.create_category()
        brand = TestDataFactory.create_brand(category=category)
        inside = TestDataFactory.create_product(brand=brand)
        TestDataFactory.create_product()

        ids = list(services.list_products({'categoryId': str(category.id)}).values_list('id', flat=True))
        self.assertEqual(ids, [inside.id])


class AdminCatalogAPITests(BaseAPITestCase):
    """Admin endpoints under /api/admin/delivery/"""

    def setUp(self):
        super().setUp()
        self.login_admin()

    def test_requires_staff_user(self):
        self.client.logout()
        response = self.client.get('/api/admin/delivery/categories')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

        customer_user = TestDataFactory.create_user()
        self.client.authenticate_user(customer_user)
        response = self.client.get('/api/admin/delivery/categories')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_create_category(self):
        response = self.client.post('/api/admin/delivery/categories',
                                    {'name': 'Disposables', 'image': None, 'isActive': True}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['slug'], 'disposables')
        self.assertEqual(response.data['displayOrder'], 0)
        self.assertTrue(response.data['isActive'])
        self.assertEqual(response.data['featuredProductIds'], [])
        self.assertTrue(AuditLog.objects.filter(model_name='Category', action='create').exists())

    def test_duplicate_category_returns_400(self):
        TestDataFactory.create_category(name='Disposables')
        response = self.client.post('/api/admin/delivery/categories', {'name': 'Disposables'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data, {'error': 'A category with this name already exists'})

    def test_create_brand_without_category_returns_400(self):
        response = self.client.post('/api/admin/delivery/brands', {'name': 'Elf Bar'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('error', response.data)

    def test_admin_listing_includes_inactive_nodes(self):
        TestDataFactory.create_category(name='Shown')
        TestDataFactory.create_category(name='Hidden', is_active=False)
        response = self.client.get('/api/admin/delivery/categories')
        self.assertEqual({c['name'] for c in response.data}, {'Shown', 'Hidden'})

    def test_brand_listing_filters_by_category(self):
        category = TestDataFactory.create_category()
        brand = TestDataFactory.create_brand(category=category)
        TestDataFactory.create_brand()
        response = self.client.get('/api/admin/delivery/brands', {'categoryId': category.id})
        self.assertEqual([b['id'] for b in response.data], [brand.id])
        self.assertEqual(response.data[0]['categoryId'], category.id)

    def test_reorder_scenario(self):
        a = TestDataFactory.create_category(name='A', display_order=0)
        b = TestDataFactory.create_category(name='B', display_order=1)
        c = TestDataFactory.create_category(name='C', display_order=2)

        response = self.client.post('/api/admin/delivery/categories/reorder',
                                    {'orderedIds': [c.id, a.id, b.id]}, format='json')
        self.assertEqual(response.data, {'success': True})

        response = self.client.get('/api/admin/delivery/categories')
        self.assertEqual([(x['id'], x['displayOrder']) for x in response.data],
                         [(c.id, 0), (a.id, 1), (b.id, 2)])

    def test_reorder_product_lines(self):
        brand = TestDataFactory.create_brand()
        l1 = TestDataFactory.create_product_line(brand=brand, display_order=0)
        l2 = TestDataFactory.create_product_line(brand=brand, display_order=1)
        response = self.client.post('/api/admin/delivery/product-lines/reorder',
                                    {'brandId': brand.id, 'orderedIds': [l2.id, l1.id]}, format='json')
        self.assertEqual(response.data, {'success': True})
        response = self.client.get('/api/admin/delivery/product-lines', {'brandId': brand.id})
        self.assertEqual([x['id'] for x in response.data], [l2.id, l1.id])

    def test_set_featured_products_via_patch(self):
        brand = TestDataFactory.create_brand()
        p1 = TestDataFactory.create_product(brand=brand)
        p2 = TestDataFactory.create_product(brand=brand)

        response = self.client.patch(f'/api/admin/delivery/brands/{brand.id}',
                                     {'featuredProductIds': [p2.id, p1.id]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        response = self.client.get(f'/api/admin/delivery/brands/{brand.id}')
        self.assertEqual(response.data['featuredProductIds'], [p2.id, p1.id])
        self.assertTrue(AuditLog.objects.filter(action='featured_update').exists())

    def test_featured_products_with_disabled_product_rejected(self):
        category = TestDataFactory.create_category()
        disabled = TestDataFactory.create_product(enabled=False)
        response = self.client.patch(f'/api/admin/delivery/categories/{category.id}',
                                     {'featuredProductIds': [disabled.id]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        category.refresh_from_db()
        self.assertEqual(category.featured_product_ids, [])

    def test_delete_category_cascades(self):
        category = TestDataFactory.create_category()
        brand = TestDataFactory.create_brand(category=category)
        TestDataFactory.create_product_line(brand=brand)
        product = TestDataFactory.create_product(brand=brand)

        response = self.client.delete(f'/api/admin/delivery/categories/{category.id}')
        self.assertEqual(response.data, {'success': True})

        self.assertEqual(self.client.get('/api/admin/delivery/categories').data, [])
        self.assertEqual(self.client.get('/api/admin/delivery/brands').data, [])
        self.assertEqual(self.client.get('/api/admin/delivery/product-lines').data, [])
        response = self.client.get(f'/api/admin/delivery/products/{product.id}')
        self.assertIsNone(response.data['brandId'])

    def test_missing_node_returns_404(self):
        response = self.client.patch('/api/admin/delivery/product-lines/987654', {'name': 'X'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data, {'error': 'Product line not found'})

    def test_products_list_is_paginated(self):
        for index in range(5):
            TestDataFactory.create_product(name=f'Item {index}', display_order=index)
        response = self.client.get('/api/admin/delivery/products', {'page': 2, 'limit': 2})
        self.assertEqual(response.data['totalCount'], 5)
        self.assertEqual(response.data['page'], 2)
        self.assertEqual(response.data['limit'], 2)
        self.assertEqual(response.data['totalPages'], 3)
        self.assertEqual([p['name'] for p in response.data['products']], ['Item 2', 'Item 3'])

    def test_create_and_update_product(self):
        brand = TestDataFactory.create_brand()
        response = self.client.post('/api/admin/delivery/products', {
            'name': 'Mint Ice', 'price': '19.99', 'salePrice': '15.00',
            'brandId': brand.id, 'stockQuantity': 4,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['brandId'], brand.id)
        self.assertEqual(response.data['brandName'], brand.name)
        self.assertEqual(Decimal(response.data['salePrice']), Decimal('15.00'))

        product_id = response.data['id']
        response = self.client.patch(f'/api/admin/delivery/products/{product_id}',
                                     {'enabled': False}, format='json')
        self.assertFalse(response.data['enabled'])

    def test_create_product_requires_price(self):
        response = self.client.post('/api/admin/delivery/products', {'name': 'No Price'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Price is required')

    def test_bulk_update_and_delete_products(self):
        p1 = TestDataFactory.create_product()
        p2 = TestDataFactory.create_product()

        response = self.client.patch('/api/admin/delivery/products/bulk',
                                      {'productIds': [p1.id, p2.id], 'updates': {'enabled': False}},
                                      format='json')
        self.assertEqual(response.data, {'success': True, 'updated': 2})
        self.assertEqual(Product.objects.filter(enabled=False).count(), 2)

        response = self.client.delete('/api/admin/delivery/products/bulk',
                                      {'productIds': [p1.id]}, format='json')
        self.assertEqual(response.data, {'success': True, 'deleted': 1})
        self.assertFalse(Product.objects.filter(id=p1.id).exists())

    def test_bulk_update_with_null_price_returns_400(self):
        product = TestDataFactory.create_product(price=Decimal('12.50'))
        response = self.client.patch('/api/admin/delivery/products/bulk',
                                     {'productIds': [product.id], 'updates': {'price': None}},
                                     format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Price is required')
        product.refresh_from_db()
        self.assertEqual(product.price, Decimal('12.50'))

    def test_assign_endpoints(self):
        product_line = TestDataFactory.create_product_line()
        product = TestDataFactory.create_product()

        response = self.client.patch(f'/api/admin/delivery/products/{product.id}/brand',
                                     {'brandId': product_line.brand_id}, format='json')
        self.assertEqual(response.data['brandId'], product_line.brand_id)

        response = self.client.patch(f'/api/admin/delivery/products/{product.id}/product-line',
                                     {'productLineId': product_line.id}, format='json')
        self.assertEqual(response.data['productLineId'], product_line.id)

        response = self.client.post('/api/admin/delivery/products/bulk-assign-product-line',
                                    {'productIds': [product.id], 'productLineId': None}, format='json')
        self.assertEqual(response.data, {'success': True, 'updated': 1})
        product.refresh_from_db()
        self.assertIsNone(product.product_line_id)

    def test_upload_url_requires_name(self):
        response = self.client.post('/api/admin/delivery/products/upload-url', {'size': 10}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    @override_settings(AZURE_STORAGE_ACCOUNT_NAME='', AZURE_STORAGE_ACCOUNT_KEY='')
    def test_upload_url_without_storage_returns_503(self):
        response = self.client.post('/api/admin/delivery/products/upload-url',
                                    {'name': 'logo.png'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_503_SERVICE_UNAVAILABLE)

    @override_settings(AZURE_STORAGE_ACCOUNT_NAME='teststore', AZURE_STORAGE_ACCOUNT_KEY='dGVzdGtleQ==',
                       AZURE_STORAGE_CONTAINER='catalog-images', AZURE_UPLOAD_FOLDER='uploads')
    def test_upload_url_returns_signed_url(self):
        response = self.client.post('/api/admin/delivery/products/upload-url',
                                    {'name': 'logo.png', 'size': 2048, 'contentType': 'image/png'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['uploadURL'].startswith(
            'https://teststore.blob.core.windows.net/catalog-images/uploads/'))
        self.assertIn('sig=', response.data['uploadURL'])
        self.assertTrue(response.data['objectPath'].startswith('/catalog-images/uploads/'))
        self.assertEqual(response.data['metadata'],
                         {'name': 'logo.png', 'size': 2048, 'contentType': 'image/png'})


class PublicCatalogAPITests(BaseAPITestCase):
    """Storefront endpoints under /api/delivery/"""

    def test_public_listings_exclude_inactive(self):
        active = TestDataFactory.create_category(name='Active')
        TestDataFactory.create_category(name='Inactive', is_active=False)
        TestDataFactory.create_brand(category=active, name='Hidden Brand', is_active=False)
        visible = TestDataFactory.create_brand(category=active, name='Visible Brand')

        response = self.client.get('/api/delivery/categories')
        self.assertEqual([c['id'] for c in response.data], [active.id])

        response = self.client.get('/api/delivery/brands', {'categoryId': active.id})
        self.assertEqual([b['id'] for b in response.data], [visible.id])

    def test_category_by_slug(self):
        category = TestDataFactory.create_category(name='Disposable Vapes')
        brand = TestDataFactory.create_brand(category=category)
        product = TestDataFactory.create_product(brand=brand)
        services.set_featured_products(category, [product.id])

        response = self.client.get('/api/delivery/categories/slug/disposable-vapes')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([p['id'] for p in response.data['featuredProducts']], [product.id])
        self.assertEqual([b['id'] for b in response.data['brands']], [brand.id])

    def test_inactive_node_slug_is_404(self):
        TestDataFactory.create_brand(name='Retired', is_active=False)
        response = self.client.get('/api/delivery/brands/slug/retired')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data, {'error': 'Brand not found'})

    def test_public_products_only_enabled(self):
        brand = TestDataFactory.create_brand()
        shown = TestDataFactory.create_product(brand=brand)
        TestDataFactory.create_product(brand=brand, enabled=False)

        response = self.client.get('/api/delivery/products', {'brandId': brand.id})
        self.assertEqual([p['id'] for p in response.data], [shown.id])

    def test_public_product_search(self):
        TestDataFactory.create_product(name='Blue Razz Ice')
        TestDataFactory.create_product(name='Strawberry Kiwi')
        response = self.client.get('/api/delivery/products', {'search': 'razz'})
        self.assertEqual([p['name'] for p in response.data], ['Blue Razz Ice'])

    def test_listing_cache_is_invalidated_on_change(self):
        TestDataFactory.create_category(name='First')
        self.assertEqual(len(self.client.get('/api/delivery/categories').data), 1)

        TestDataFactory.create_category(name='Second')
        self.assertEqual(len(self.client.get('/api/delivery/categories').data), 2)

        services.reorder_categories(list(Category.objects.order_by('-id').values_list('id', flat=True)))
        names = [c['name'] for c in self.client.get('/api/delivery/categories').data]
        self.assertEqual(names, ['Second', 'First'])


class CategoryBannerAPITests(BaseAPITestCase):
    """Admin banner CRUD and the storefront banner listing"""

    def setUp(self):
        super().setUp()
        self.category = TestDataFactory.create_category(name='Disposable Vapes')

    def test_create_update_and_delete_banner(self):
        self.login_admin()
        response = self.client.post('/api/admin/delivery/category-banners', {
            'categoryId': self.category.id,
            'title': 'Summer Sale',
            'image': '/catalog-images/uploads/summer',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['categorySlug'], 'disposable-vapes')
        self.assertEqual(response.data['buttonText'], 'Shop Now')
        self.assertTrue(response.data['isActive'])
        banner_id = response.data['id']

        response = self.client.patch(f'/api/admin/delivery/category-banners/{banner_id}',
                                     {'subtitle': 'All flavors', 'isActive': False}, format='json')
        self.assertEqual(response.data['subtitle'], 'All flavors')
        self.assertEqual(response.data['title'], 'Summer Sale')
        self.assertFalse(response.data['isActive'])
        self.assertTrue(AuditLog.objects.filter(model_name='CategoryBanner', action='update').exists())

        response = self.client.delete(f'/api/admin/delivery/category-banners/{banner_id}')
        self.assertEqual(response.data, {'success': True})
        response = self.client.get(f'/api/admin/delivery/category-banners/{banner_id}')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data, {'error': 'Category banner not found'})

    def test_image_and_category_are_required(self):
        self.login_admin()
        response = self.client.post('/api/admin/delivery/category-banners',
                                    {'categoryId': self.category.id, 'image': '  '}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['details']['image'], ['Banner image is required'])

        response = self.client.post('/api/admin/delivery/category-banners',
                                    {'categoryId': 999999, 'image': '/img'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('categoryId', response.data['details'])
        self.assertFalse(CategoryBanner.objects.exists())

    def test_admin_list_filters_by_category_and_reorders(self):
        other = TestDataFactory.create_category(name='Pods')
        first = TestDataFactory.create_category_banner(category=self.category, display_order=0)
        second = TestDataFactory.create_category_banner(category=self.category, display_order=1)
        elsewhere = TestDataFactory.create_category_banner(category=other, is_active=False)
        self.login_admin()

        response = self.client.get('/api/admin/delivery/category-banners', {'categoryId': self.category.id})
        self.assertEqual([b['id'] for b in response.data], [first.id, second.id])

        response = self.client.post('/api/admin/delivery/category-banners/reorder',
                                    {'orderedIds': [elsewhere.id, second.id, first.id]}, format='json')
        self.assertEqual(response.data, {'success': True})
        response = self.client.get('/api/admin/delivery/category-banners')
        self.assertEqual([b['id'] for b in response.data], [elsewhere.id, second.id, first.id])

    def test_customers_are_forbidden(self):
        self.login_customer()
        response = self.client.post('/api/admin/delivery/category-banners',
                                    {'categoryId': self.category.id, 'image': '/img'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_public_listing_shows_active_banners_of_active_categories(self):
        shown = TestDataFactory.create_category_banner(category=self.category)
        TestDataFactory.create_category_banner(category=self.category, is_active=False)
        hidden_category = TestDataFactory.create_category(name='Retired', is_active=False)
        TestDataFactory.create_category_banner(category=hidden_category)

        response = self.client.get('/api/delivery/category-banners')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([b['id'] for b in response.data], [shown.id])

        response = self.client.get('/api/delivery/category-banners', {'categoryId': hidden_category.id})
        self.assertEqual(response.data, [])

    def test_public_listing_cache_follows_changes(self):
        banner = TestDataFactory.create_category_banner(category=self.category)
        self.assertEqual(len(self.client.get('/api/delivery/category-banners').data), 1)

        banner.is_active = False
        banner.save()
        self.assertEqual(self.client.get('/api/delivery/category-banners').data, [])

        TestDataFactory.create_category_banner(category=self.category, display_order=1)
        self.assertEqual(len(self.client.get('/api/delivery/category-banners').data), 1)

    def test_category_delete_removes_its_banners(self):
        TestDataFactory.create_category_banner(category=self.category)
        self.assertEqual(len(self.client.get('/api/delivery/category-banners').data), 1)

        services.delete_category(self.category.id)

        self.assertFalse(CategoryBanner.objects.exists())
        self.assertEqual(self.client.get('/api/delivery/category-banners').data, [])


class FakeBlobSession:
    """Records PUTs made to blob storage"""

    def __init__(self, status_code=201):
        self.status_code = status_code
        self.uploads = []

    def put(self, url, data=None, headers=None, timeout=None):
        self.uploads.append((url, data, headers))
        return FakeBlobResponse(self.status_code)


class FakeBlobResponse:
    def __init__(self, status_code, content=b''):
        self.status_code = status_code
        self.content = content

    def json(self):
        return json.loads(self.content)


class IncompleteUploadURLSession:
    """Answers the upload-url request with 200 and an empty body, passes everything else through"""

    def __init__(self, session):
        self.session = session
        self.headers = session.headers

    def request(self, method, url, json=None, params=None, timeout=None):
        if url.endswith('/upload-url'):
            return FakeBlobResponse(200, b'{}')
        return self.session.request(method, url, json=json, params=params, timeout=timeout)


class CatalogManagerTests(BaseAPITestCase):
    """Hierarchy manager client driven against the real views"""

    def setUp(self):
        super().setUp()
        self.admin = TestDataFactory.create_admin(username='catalog_admin')
        self.session = TestClientSession()
        self.manager = CatalogManager(session=self.session)
        self.assertTrue(self.manager.authenticate('catalog_admin', 'testpass123'))
        self.session.calls.clear()

    def last_notification(self):
        return self.manager.notifications[-1]

    def test_blank_name_is_blocked_client_side(self):
        self.assertIsNone(self.manager.create_category('   '))
        self.assertEqual(self.session.calls, [])
        self.assertEqual(self.last_notification().title, 'Category name is required')
        self.assertEqual(self.last_notification().variant, 'destructive')

    def test_brand_without_category_is_blocked(self):
        self.assertIsNone(self.manager.create_brand('Elf Bar', None))
        self.assertEqual(self.session.calls, [])
        self.assertEqual(self.last_notification().title, 'Please select a category')

    def test_product_line_validation_messages(self):
        self.manager.create_product_line('', 1)
        self.assertEqual(self.last_notification().title, 'Product line name is required')
        self.manager.create_product_line('BC5000', None)
        self.assertEqual(self.last_notification().title, 'Please select a brand')
        self.assertEqual(self.session.calls, [])

    def test_create_category_success(self):
        created = self.manager.create_category('Disposables')
        self.assertEqual(created['slug'], 'disposables')
        self.assertEqual(self.last_notification().title, 'Category created successfully')

    def test_server_error_is_reported_and_cache_kept(self):
        TestDataFactory.create_category(name='Disposables')
        categories = self.manager.fetch_categories()

        self.assertIsNone(self.manager.create_category('Disposables'))
        notification = self.last_notification()
        self.assertEqual(notification.title, 'Error creating category')
        self.assertEqual(notification.description, 'A category with this name already exists')
        self.assertEqual(notification.variant, 'destructive')
        self.assertIn('/api/admin/delivery/categories', self.manager.cache)

    def test_query_cache_reads_through_and_invalidates(self):
        TestDataFactory.create_category(name='Only')
        self.manager.fetch_categories()
        self.manager.fetch_categories()
        self.assertEqual(len(self.session.requests_for('GET')), 1)

        self.manager.create_category('Another')
        self.assertNotIn('/api/admin/delivery/categories', self.manager.cache)
        self.assertEqual(len(self.manager.fetch_categories()), 2)
        self.assertEqual(len(self.session.requests_for('GET')), 2)

    def test_drop_onto_itself_sends_nothing(self):
        a = TestDataFactory.create_category(name='A', display_order=0)
        TestDataFactory.create_category(name='B', display_order=1)
        self.manager.fetch_categories()
        self.session.calls.clear()

        self.assertFalse(self.manager.move_category(a.id, a.id))
        self.assertFalse(self.manager.move_category(a.id, None))
        self.assertEqual(self.session.calls, [])

    def test_move_category_sends_full_permutation(self):
        a = TestDataFactory.create_category(name='A', display_order=0)
        b = TestDataFactory.create_category(name='B', display_order=1)
        c = TestDataFactory.create_category(name='C', display_order=2)

        self.assertTrue(self.manager.move_category(c.id, a.id))

        posts = self.session.requests_for('POST')
        self.assertEqual(posts[-1], ('POST', '/api/admin/delivery/categories/reorder',
                                     {'orderedIds': [c.id, a.id, b.id]}))
        refreshed = self.manager.fetch_categories()
        self.assertEqual([(x['id'], x['displayOrder']) for x in refreshed],
                         [(c.id, 0), (a.id, 1), (b.id, 2)])

    def test_move_brand_within_category(self):
        category = TestDataFactory.create_category()
        b1 = TestDataFactory.create_brand(category=category, display_order=0)
        b2 = TestDataFactory.create_brand(category=category, display_order=1)
        b3 = TestDataFactory.create_brand(category=category, display_order=2)

        self.assertTrue(self.manager.move_brand(category.id, b1.id, b3.id))
        self.assertEqual([b['id'] for b in self.manager.brands_for(category.id)], [b2.id, b3.id, b1.id])

    def test_can_reorder_needs_two_siblings(self):
        brand = TestDataFactory.create_brand()
        TestDataFactory.create_product_line(brand=brand)
        self.assertFalse(self.manager.can_reorder(self.manager.product_lines_for(brand.id)))
        TestDataFactory.create_product_line(brand=brand)
        self.manager.invalidate('/api/admin/delivery/product-lines')
        self.assertTrue(self.manager.can_reorder(self.manager.product_lines_for(brand.id)))

    def test_expand_collapse_is_local(self):
        self.manager.toggle_category(5)
        self.manager.toggle_brand(9)
        self.assertTrue(self.manager.is_expanded('category', 5))
        self.assertTrue(self.manager.is_expanded('brand', 9))
        self.manager.toggle_category(5)
        self.assertFalse(self.manager.is_expanded('category', 5))
        self.assertEqual(self.session.calls, [])

    def test_featured_selection_flow(self):
        category = TestDataFactory.create_category()
        brand = TestDataFactory.create_brand(category=category)
        other_brand = TestDataFactory.create_brand()
        p101 = TestDataFactory.create_product(brand=brand)
        p205 = TestDataFactory.create_product(brand=brand)
        TestDataFactory.create_product(brand=brand, enabled=False)
        TestDataFactory.create_product(brand=other_brand)

        self.assertEqual(self.manager.open_featured('brand', brand.id), [])
        eligible = {p['id'] for p in self.manager.eligible_products()}
        self.assertEqual(eligible, {p101.id, p205.id})

        self.manager.toggle_featured(p205.id)
        self.manager.toggle_featured(p101.id)
        self.manager.toggle_featured(p205.id)
        self.manager.toggle_featured(p205.id)
        self.assertEqual(self.manager.featured_selection, [p101.id, p205.id])

        self.assertIsNotNone(self.manager.save_featured())
        self.assertEqual(self.last_notification().title, 'Featured products updated successfully')
        brand.refresh_from_db()
        self.assertEqual(brand.featured_product_ids, [p101.id, p205.id])
        self.assertIsNone(self.manager.featured_target)

    def test_category_eligible_products_come_from_its_brands(self):
        category = TestDataFactory.create_category()
        brand = TestDataFactory.create_brand(category=category)
        inside = TestDataFactory.create_product(brand=brand)
        TestDataFactory.create_product()

        self.manager.open_featured('category', category.id)
        self.assertEqual([p['id'] for p in self.manager.eligible_products()], [inside.id])

    def test_save_featured_failure_keeps_selection(self):
        product_line = TestDataFactory.create_product_line()
        self.manager.open_featured('productLine', product_line.id)
        self.manager.toggle_featured(999999)
        self.assertIsNone(self.manager.save_featured())
        self.assertEqual(self.last_notification().title, 'Error updating featured products')
        self.assertEqual(self.manager.featured_selection, [999999])

    def test_delete_category_invalidates_children(self):
        category = TestDataFactory.create_category()
        TestDataFactory.create_brand(category=category)
        self.manager.fetch_brands()
        self.assertTrue(self.manager.delete_category(category.id))
        self.assertNotIn('/api/admin/delivery/brands', self.manager.cache)
        self.assertEqual(self.manager.fetch_brands(), [])
        self.assertEqual(self.last_notification().title, 'Category deleted successfully')

    def test_delete_brand_refreshes_cached_products(self):
        brand = TestDataFactory.create_brand()
        product = TestDataFactory.create_product(brand=brand)
        self.assertEqual(self.manager.fetch_products()[0]['brandId'], brand.id)

        self.assertTrue(self.manager.delete_brand(brand.id))

        self.assertNotIn('/api/admin/delivery/products', self.manager.cache)
        cached = next(p for p in self.manager.fetch_products() if p['id'] == product.id)
        self.assertIsNone(cached['brandId'])

    def test_delete_category_and_product_line_refresh_cached_products(self):
        category = TestDataFactory.create_category()
        product_line = TestDataFactory.create_product_line(brand=TestDataFactory.create_brand(category=category))
        TestDataFactory.create_product(product_line=product_line)

        self.manager.fetch_products()
        self.assertTrue(self.manager.delete_product_line(product_line.id))
        self.assertNotIn('/api/admin/delivery/products', self.manager.cache)
        self.assertIsNone(self.manager.fetch_products()[0]['productLineId'])

        self.assertTrue(self.manager.delete_category(category.id))
        self.assertNotIn('/api/admin/delivery/products', self.manager.cache)

    def test_rename_keeps_stored_image_and_logo(self):
        category = TestDataFactory.create_category(name='Old', image='/catalog-images/uploads/cat')
        brand = TestDataFactory.create_brand(category=category, logo='/catalog-images/uploads/brand')

        self.assertIsNotNone(self.manager.update_category(category.id, 'New'))
        self.assertIsNotNone(self.manager.update_brand(brand.id, 'Renamed', category.id))

        _, _, body = self.session.calls[0]
        self.assertEqual(body, {'name': 'New'})
        category.refresh_from_db()
        brand.refresh_from_db()
        self.assertEqual(category.image, '/catalog-images/uploads/cat')
        self.assertEqual(brand.logo, '/catalog-images/uploads/brand')

    def test_update_with_empty_image_clears_it(self):
        category = TestDataFactory.create_category(image='/catalog-images/uploads/cat')
        self.manager.update_category(category.id, category.name, image='')
        category.refresh_from_db()
        self.assertFalse(category.image)

    def test_failed_delete_is_reported(self):
        self.assertFalse(self.manager.delete_brand(424242))
        self.assertEqual(self.last_notification().title, 'Error deleting brand')
        self.assertEqual(self.last_notification().description, 'Brand not found')

    @override_settings(AZURE_STORAGE_ACCOUNT_NAME='teststore', AZURE_STORAGE_ACCOUNT_KEY='dGVzdGtleQ==')
    def test_upload_image_two_step_flow(self):
        blob_session = FakeBlobSession()
        self.manager.upload_session = blob_session

        object_path = self.manager.upload_image(b'\x89PNG...', 'logo.png', 'image/png')

        self.assertTrue(object_path.startswith('/catalog-images/uploads/'))
        url, data, headers = blob_session.uploads[0]
        self.assertIn('sig=', url)
        self.assertEqual(data, b'\x89PNG...')
        self.assertEqual(headers['Content-Type'], 'image/png')
        self.assertEqual(self.last_notification().title, 'Image uploaded successfully')

    @override_settings(AZURE_STORAGE_ACCOUNT_NAME='teststore', AZURE_STORAGE_ACCOUNT_KEY='dGVzdGtleQ==')
    def test_upload_image_failure_returns_none(self):
        self.manager.upload_session = FakeBlobSession(status_code=403)
        self.assertIsNone(self.manager.upload_image(b'data', 'logo.png', 'image/png'))
        self.assertEqual(self.last_notification().title, 'Failed to upload image')

    def test_upload_url_response_without_target_is_reported(self):
        self.manager.session = IncompleteUploadURLSession(self.session)
        blob_session = FakeBlobSession()
        self.manager.upload_session = blob_session

        self.assertIsNone(self.manager.upload_image(b'data', 'logo.png', 'image/png'))

        self.assertEqual(blob_session.uploads, [])
        self.assertEqual(self.last_notification().title, 'Failed to upload image')
        self.assertEqual(self.last_notification().variant, 'destructive')


class ArrayMoveTests(TestCase):

    def test_moves_forward_and_backward(self):
        self.assertEqual(array_move(['A', 'B', 'C'], 2, 0), ['C', 'A', 'B'])
        self.assertEqual(array_move(['A', 'B', 'C'], 0, 2), ['B', 'C', 'A'])
        self.assertEqual(array_move(['A', 'B', 'C'], 1, 1), ['A', 'B', 'C'])

    def test_client_response_wraps_json(self):
        class Raw:
            status_code = 200
            content = b'{"ok": true}'
            reason_phrase = 'OK'
        self.assertEqual(ClientResponse(Raw()).json(), {'ok': True})


class NormalizeDisplayOrderCommandTests(TestCase):

    def setUp(self):
        self.category = TestDataFactory.create_category(display_order=5)
        self.other_category = TestDataFactory.create_category(display_order=5)
        self.b1 = TestDataFactory.create_brand(category=self.category, display_order=3)
        self.b2 = TestDataFactory.create_brand(category=self.category, display_order=9)
        self.foreign = TestDataFactory.create_brand(category=self.other_category, display_order=4)
        self.l1 = TestDataFactory.create_product_line(brand=self.b1, display_order=7)
        self.l2 = TestDataFactory.create_product_line(brand=self.b1, display_order=2)

    def orders(self, model):
        return dict(model.objects.values_list('id', 'display_order'))

    def test_renumbers_each_sibling_group(self):
        out = StringIO()
        call_command('normalize_display_order', stdout=out)

        self.assertEqual(self.orders(Category), {self.category.id: 0, self.other_category.id: 1})
        self.assertEqual(self.orders(Brand), {self.b1.id: 0, self.b2.id: 1, self.foreign.id: 0})
        self.assertEqual(self.orders(ProductLine), {self.l2.id: 0, self.l1.id: 1})
        self.assertIn('Updated 2 categories', out.getvalue())

    def test_dry_run_leaves_rows_unchanged(self):
        before = (self.orders(Category), self.orders(Brand), self.orders(ProductLine))
        out = StringIO()
        call_command('normalize_display_order', '--dry-run', stdout=out)

        self.assertEqual((self.orders(Category), self.orders(Brand), self.orders(ProductLine)), before)
        self.assertIn('[DRY RUN] Would update 3 brands', out.getvalue())
