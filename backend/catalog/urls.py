from django.urls import path
from .views import (
    category_list_create, category_detail, category_reorder,
    brand_list_create, brand_detail, brand_reorder,
    product_line_list_create, product_line_detail, product_line_reorder,
    product_list_create, product_detail, product_bulk,
    product_assign_brand, product_assign_product_line,
    product_bulk_assign_brand, product_bulk_assign_product_line,
    product_upload_url,
    banner_list_create, banner_detail, banner_reorder,
)

# Mounted under /api/admin/delivery/
urlpatterns = [
    # Category endpoints
    path('categories', category_list_create, name='admin-category-list-create'),
    path('categories/reorder', category_reorder, name='admin-category-reorder'),
    path('categories/<int:pk>', category_detail, name='admin-category-detail'),

    # Brand endpoints
    path('brands', brand_list_create, name='admin-brand-list-create'),
    path('brands/reorder', brand_reorder, name='admin-brand-reorder'),
    path('brands/<int:pk>', brand_detail, name='admin-brand-detail'),

    # Product line endpoints
    path('product-lines', product_line_list_create, name='admin-product-line-list-create'),
    path('product-lines/reorder', product_line_reorder, name='admin-product-line-reorder'),
    path('product-lines/<int:pk>', product_line_detail, name='admin-product-line-detail'),

    # Product endpoints
    path('products', product_list_create, name='admin-product-list-create'),
    path('products/bulk', product_bulk, name='admin-product-bulk'),
    path('products/bulk-assign-brand', product_bulk_assign_brand, name='admin-product-bulk-assign-brand'),
    path('products/bulk-assign-product-line', product_bulk_assign_product_line,
         name='admin-product-bulk-assign-product-line'),
    path('products/upload-url', product_upload_url, name='admin-product-upload-url'),
    path('products/<int:pk>', product_detail, name='admin-product-detail'),
    path('products/<int:pk>/brand', product_assign_brand, name='admin-product-assign-brand'),
    path('products/<int:pk>/product-line', product_assign_product_line,
         name='admin-product-assign-product-line'),

    # Category banner endpoints
    path('category-banners', banner_list_create, name='admin-category-banner-list-create'),
    path('category-banners/reorder', banner_reorder, name='admin-category-banner-reorder'),
    path('category-banners/<int:pk>', banner_detail, name='admin-category-banner-detail'),
]
