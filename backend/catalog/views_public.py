"""
Storefront (public) catalog endpoints (/api/delivery/...).

Only active nodes and enabled products are exposed. Listing payloads are
cached under versioned keys, bumped by backend.core.cache_signals.
"""
import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from backend.core.cache_utils import (
    cached_query,
    CATEGORIES, BRANDS, PRODUCT_LINES, PRODUCTS, CATEGORY_BANNERS,
    CATALOG_LIST_CACHE_TTL, PRODUCTS_LIST_CACHE_TTL, BANNERS_CACHE_TTL,
)
from backend.core.exceptions import reports_failure
from backend.core.utils import parse_int
from . import services
from .models import Category, Brand, ProductLine
from .serializers import (
    CategorySerializer, BrandSerializer, ProductLineSerializer, ProductSerializer, CategoryBannerSerializer,
)

logger = logging.getLogger('backend.catalog')

PRODUCT_QUERY_PARAMS = ('brandId', 'productLineId', 'categoryId', 'search', 'on_sale', 'in_stock')


@cached_query(CATEGORIES, cache_ttl=CATALOG_LIST_CACHE_TTL)
def active_categories_payload():
    return CategorySerializer(services.list_categories(active_only=True), many=True).data


@cached_query(BRANDS, cache_ttl=CATALOG_LIST_CACHE_TTL)
def active_brands_payload(category_id=None):
    brands = services.list_brands(category_id=category_id, active_only=True)
    return BrandSerializer(brands, many=True).data


@cached_query(PRODUCT_LINES, cache_ttl=CATALOG_LIST_CACHE_TTL)
def active_product_lines_payload(brand_id=None):
    product_lines = services.list_product_lines(brand_id=brand_id, active_only=True)
    return ProductLineSerializer(product_lines, many=True).data


@cached_query(PRODUCTS, cache_ttl=PRODUCTS_LIST_CACHE_TTL)
def enabled_products_payload(**params):
    products = services.list_products(params, enabled_only=True)
    return ProductSerializer(products, many=True).data


def _node_payload(serializer_class, node):
    data = dict(serializer_class(node).data)
    data['featuredProducts'] = ProductSerializer(services.featured_products_for(node), many=True).data
    return data


def _active_node_by_slug(model, slug):
    return model.objects.filter(slug=slug, is_active=True).first()


@api_view(['GET'])
@permission_classes([AllowAny])
@reports_failure('fetch categories')
def public_category_list(request):
    """Active categories ordered by display order"""
    return Response(active_categories_payload())


@api_view(['GET'])
@permission_classes([AllowAny])
@reports_failure('fetch brands')
def public_brand_list(request):
    """Active brands, optionally of one category (?categoryId=)"""
    category_id = parse_int(request.query_params.get('categoryId'))
    return Response(active_brands_payload(category_id=category_id))


@api_view(['GET'])
@permission_classes([AllowAny])
@reports_failure('fetch product lines')
def public_product_line_list(request):
    """Active product lines, optionally of one brand (?brandId=)"""
    brand_id = parse_int(request.query_params.get('brandId'))
    return Response(active_product_lines_payload(brand_id=brand_id))


@api_view(['GET'])
@permission_classes([AllowAny])
@reports_failure('fetch category')
def public_category_by_slug(request, slug):
    """Category page: the category, its featured products and its active brands"""
    category = _active_node_by_slug(Category, slug)
    if not category:
        return Response({'error': 'Category not found'}, status=status.HTTP_404_NOT_FOUND)
    data = _node_payload(CategorySerializer, category)
    data['brands'] = active_brands_payload(category_id=category.id)
    return Response(data)


@api_view(['GET'])
@permission_classes([AllowAny])
@reports_failure('fetch brand')
def public_brand_by_slug(request, slug):
    """Brand page: the brand, its featured products and its active product lines"""
    brand = _active_node_by_slug(Brand, slug)
    if not brand:
        return Response({'error': 'Brand not found'}, status=status.HTTP_404_NOT_FOUND)
    data = _node_payload(BrandSerializer, brand)
    data['productLines'] = active_product_lines_payload(brand_id=brand.id)
    return Response(data)


@api_view(['GET'])
@permission_classes([AllowAny])
@reports_failure('fetch product line')
def public_product_line_by_slug(request, slug):
    """Product line page: the product line and its featured products"""
    product_line = _active_node_by_slug(ProductLine, slug)
    if not product_line:
        return Response({'error': 'Product line not found'}, status=status.HTTP_404_NOT_FOUND)
    return Response(_node_payload(ProductLineSerializer, product_line))


@api_view(['GET'])
@permission_classes([AllowAny])
@reports_failure('fetch products')
def public_product_list(request):
    """Enabled products (?brandId=&productLineId=&categoryId=&search=)"""
    params = {
        key: request.query_params.get(key)
        for key in PRODUCT_QUERY_PARAMS
        if request.query_params.get(key) not in (None, '')
    }
    return Response(enabled_products_payload(**params))


@api_view(['GET'])
@permission_classes([AllowAny])
@reports_failure('fetch product')
def public_product_detail(request, pk):
    """A single enabled product"""
    product = services.get_product(pk)
    if not product.enabled:
        return Response({'error': 'Product not found'}, status=status.HTTP_404_NOT_FOUND)
    return Response(ProductSerializer(product).data)


@cached_query(CATEGORY_BANNERS, cache_ttl=BANNERS_CACHE_TTL)
def active_banners_payload(category_id=None):
    banners = services.list_banners(category_id=category_id, active_only=True)
    return CategoryBannerSerializer(banners, many=True).data


@api_view(['GET'])
@permission_classes([AllowAny])
@reports_failure('fetch category banners')
def public_banner_list(request):
    """Active banners of active categories (?categoryId=)"""
    return Response(active_banners_payload(category_id=parse_int(request.query_params.get('categoryId'))))
