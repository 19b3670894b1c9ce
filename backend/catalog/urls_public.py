from django.urls import path
from .views_public import (
    public_category_list, public_brand_list, public_product_line_list,
    public_category_by_slug, public_brand_by_slug, public_product_line_by_slug,
    public_product_list, public_product_detail, public_banner_list,
)

# Mounted under /api/delivery/
urlpatterns = [
    path('categories', public_category_list, name='delivery-category-list'),
    path('categories/slug/<slug:slug>', public_category_by_slug, name='delivery-category-by-slug'),
    path('brands', public_brand_list, name='delivery-brand-list'),
    path('brands/slug/<slug:slug>', public_brand_by_slug, name='delivery-brand-by-slug'),
    path('product-lines', public_product_line_list, name='delivery-product-line-list'),
    path('product-lines/slug/<slug:slug>', public_product_line_by_slug, name='delivery-product-line-by-slug'),
    path('products', public_product_list, name='delivery-product-list'),
    path('products/<int:pk>', public_product_detail, name='delivery-product-detail'),
    path('category-banners', public_banner_list, name='delivery-category-banner-list'),
]
