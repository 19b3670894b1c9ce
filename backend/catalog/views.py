"""Admin endpoints for the delivery catalog (/api/admin/delivery/...)"""
import logging
import math

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated, IsAdminUser
from rest_framework.response import Response

from backend.core.exceptions import reports_failure, ValidationFailed
from backend.core.utils import create_audit_log, parse_int
from . import services, storage
from .serializers import (
    CategorySerializer, BrandSerializer, ProductLineSerializer, ProductSerializer,
    CategoryWriteSerializer, BrandWriteSerializer, ProductLineWriteSerializer,
    ProductWriteSerializer, ProductBulkUpdateSerializer, UploadURLRequestSerializer,
    CategoryBannerSerializer,
)

logger = logging.getLogger('backend.catalog')

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 500


def _validated(serializer_class, data, partial=False):
    serializer = serializer_class(data=data, partial=partial)
    serializer.is_valid(raise_exception=True)
    return serializer.validated_data


def _node_action(changes):
    """Audit action for a node PATCH"""
    return 'featured_update' if set(changes) == {'featured_product_ids'} else 'update'


def _audit_changes(changes):
    return {key: (str(value) if not isinstance(value, (int, bool, list, type(None))) else value)
            for key, value in changes.items()}


# Category views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdminUser])
@reports_failure({'GET': 'fetch categories', 'POST': 'create category'})
def category_list_create(request):
    """List all categories (active and inactive) or create a category"""
    if request.method == 'GET':
        serializer = CategorySerializer(services.list_categories(), many=True)
        return Response(serializer.data)

    data = _validated(CategoryWriteSerializer, request.data)
    category = services.create_category(
        name=data.get('name'),
        image=data.get('image'),
        is_active=data.get('is_active', True),
    )
    create_audit_log(request=request, action='create', model_name='Category',
                     object_id=category.id, object_name=category.name)
    return Response(CategorySerializer(category).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminUser])
@reports_failure({'GET': 'fetch category', 'PATCH': 'update category', 'DELETE': 'delete category'})
def category_detail(request, pk):
    """Retrieve, partially update or delete (cascading) a category"""
    if request.method == 'GET':
        return Response(CategorySerializer(services.get_category(pk)).data)

    if request.method == 'PATCH':
        changes = _validated(CategoryWriteSerializer, request.data, partial=True)
        category = services.update_category(pk, **changes)
        create_audit_log(request=request, action=_node_action(changes), model_name='Category',
                         object_id=category.id, object_name=category.name,
                         changes=_audit_changes(changes))
        return Response(CategorySerializer(category).data)

    category = services.delete_category(pk)
    create_audit_log(request=request, action='delete', model_name='Category',
                     object_id=pk, object_name=category.name)
    return Response({'success': True})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminUser])
@reports_failure('reorder categories')
def category_reorder(request):
    """Persist a new order for all categories: {orderedIds}"""
    ordered_ids = request.data.get('orderedIds')
    changed = services.reorder_categories(ordered_ids)
    create_audit_log(request=request, action='reorder', model_name='Category',
                     object_id='all', changes={'orderedIds': [node.id for node in changed]})
    return Response({'success': True})


# Brand views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdminUser])
@reports_failure({'GET': 'fetch brands', 'POST': 'create brand'})
def brand_list_create(request):
    """List brands (optionally ?categoryId=) or create a brand"""
    if request.method == 'GET':
        category_id = parse_int(request.query_params.get('categoryId'))
        serializer = BrandSerializer(services.list_brands(category_id=category_id), many=True)
        return Response(serializer.data)

    data = _validated(BrandWriteSerializer, request.data)
    brand = services.create_brand(
        name=data.get('name'),
        category_id=data.get('category_id'),
        logo=data.get('logo'),
        is_active=data.get('is_active', True),
    )
    create_audit_log(request=request, action='create', model_name='Brand',
                     object_id=brand.id, object_name=brand.name)
    return Response(BrandSerializer(brand).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminUser])
@reports_failure({'GET': 'fetch brand', 'PATCH': 'update brand', 'DELETE': 'delete brand'})
def brand_detail(request, pk):
    """Retrieve, partially update or delete (cascading) a brand"""
    if request.method == 'GET':
        return Response(BrandSerializer(services.get_brand(pk)).data)

    if request.method == 'PATCH':
        changes = _validated(BrandWriteSerializer, request.data, partial=True)
        brand = services.update_brand(pk, **changes)
        create_audit_log(request=request, action=_node_action(changes), model_name='Brand',
                         object_id=brand.id, object_name=brand.name,
                         changes=_audit_changes(changes))
        return Response(BrandSerializer(brand).data)

    brand = services.delete_brand(pk)
    create_audit_log(request=request, action='delete', model_name='Brand',
                     object_id=pk, object_name=brand.name)
    return Response({'success': True})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminUser])
@reports_failure('reorder brands')
def brand_reorder(request):
    """Persist a new order for one category's brands: {categoryId, orderedIds}"""
    category_id = parse_int(request.data.get('categoryId'))
    changed = services.reorder_brands(category_id, request.data.get('orderedIds'))
    create_audit_log(request=request, action='reorder', model_name='Brand',
                     object_id=category_id, changes={'orderedIds': [node.id for node in changed]})
    return Response({'success': True})


# Product line views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdminUser])
@reports_failure({'GET': 'fetch product lines', 'POST': 'create product line'})
def product_line_list_create(request):
    """List product lines (optionally ?brandId=) or create a product line"""
    if request.method == 'GET':
        brand_id = parse_int(request.query_params.get('brandId'))
        serializer = ProductLineSerializer(services.list_product_lines(brand_id=brand_id), many=True)
        return Response(serializer.data)

    data = _validated(ProductLineWriteSerializer, request.data)
    product_line = services.create_product_line(
        name=data.get('name'),
        brand_id=data.get('brand_id'),
        logo=data.get('logo'),
        is_active=data.get('is_active', True),
    )
    create_audit_log(request=request, action='create', model_name='ProductLine',
                     object_id=product_line.id, object_name=product_line.name)
    return Response(ProductLineSerializer(product_line).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminUser])
@reports_failure({'GET': 'fetch product line', 'PATCH': 'update product line',
                  'DELETE': 'delete product line'})
def product_line_detail(request, pk):
    """Retrieve, partially update or delete a product line"""
    if request.method == 'GET':
        return Response(ProductLineSerializer(services.get_product_line(pk)).data)

    if request.method == 'PATCH':
        changes = _validated(ProductLineWriteSerializer, request.data, partial=True)
        product_line = services.update_product_line(pk, **changes)
        create_audit_log(request=request, action=_node_action(changes), model_name='ProductLine',
                         object_id=product_line.id, object_name=product_line.name,
                         changes=_audit_changes(changes))
        return Response(ProductLineSerializer(product_line).data)

    product_line = services.delete_product_line(pk)
    create_audit_log(request=request, action='delete', model_name='ProductLine',
                     object_id=pk, object_name=product_line.name)
    return Response({'success': True})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminUser])
@reports_failure('reorder product lines')
def product_line_reorder(request):
    """Persist a new order for one brand's product lines: {brandId, orderedIds}"""
    brand_id = parse_int(request.data.get('brandId'))
    changed = services.reorder_product_lines(brand_id, request.data.get('orderedIds'))
    create_audit_log(request=request, action='reorder', model_name='ProductLine',
                     object_id=brand_id, changes={'orderedIds': [node.id for node in changed]})
    return Response({'success': True})


# Product views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdminUser])
@reports_failure({'GET': 'fetch products', 'POST': 'create product'})
def product_list_create(request):
    """Paginated product list for the admin, or create a product

    GET params: page (1-based), limit (default 50), plus ProductFilter params.
    """
    if request.method == 'GET':
        page = max(parse_int(request.query_params.get('page')) or 1, 1)
        limit = parse_int(request.query_params.get('limit')) or DEFAULT_PAGE_SIZE
        limit = min(max(limit, 1), MAX_PAGE_SIZE)

        queryset = services.list_products(request.query_params)
        total_count = queryset.count()
        offset = (page - 1) * limit
        products = queryset[offset:offset + limit]

        return Response({
            'products': ProductSerializer(products, many=True).data,
            'totalCount': total_count,
            'page': page,
            'limit': limit,
            'totalPages': math.ceil(total_count / limit) if total_count else 0,
        })

    data = _validated(ProductWriteSerializer, request.data)
    product = services.create_product(**data)
    create_audit_log(request=request, action='create', model_name='Product',
                     object_id=product.id, object_name=product.name)
    return Response(ProductSerializer(product).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminUser])
@reports_failure({'GET': 'fetch product', 'PATCH': 'update product', 'DELETE': 'delete product'})
def product_detail(request, pk):
    """Retrieve, partially update or delete a product"""
    if request.method == 'GET':
        return Response(ProductSerializer(services.get_product(pk)).data)

    if request.method == 'PATCH':
        changes = _validated(ProductWriteSerializer, request.data, partial=True)
        product = services.update_product(pk, **changes)
        create_audit_log(request=request, action='update', model_name='Product',
                         object_id=product.id, object_name=product.name,
                         changes=_audit_changes(changes))
        return Response(ProductSerializer(product).data)

    product = services.delete_product(pk)
    create_audit_log(request=request, action='delete', model_name='Product',
                     object_id=pk, object_name=product.name)
    return Response({'success': True})


@api_view(['PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminUser])
@reports_failure({'PATCH': 'bulk update products', 'DELETE': 'bulk delete products'})
def product_bulk(request):
    """PATCH {productIds, updates} or DELETE {productIds}"""
    product_ids = request.data.get('productIds')

    if request.method == 'PATCH':
        raw_updates = request.data.get('updates')
        if not isinstance(raw_updates, dict) or not raw_updates:
            raise ValidationFailed('updates must be a non-empty object')
        updates = _validated(ProductBulkUpdateSerializer, raw_updates, partial=True)
        updated = services.bulk_update_products(product_ids, updates)
        create_audit_log(request=request, action='bulk_update', model_name='Product',
                         object_id='bulk', changes={'productIds': product_ids,
                                                    'updates': _audit_changes(updates)})
        return Response({'success': True, 'updated': updated})

    deleted = services.bulk_delete_products(product_ids)
    create_audit_log(request=request, action='bulk_delete', model_name='Product',
                     object_id='bulk', changes={'productIds': product_ids})
    return Response({'success': True, 'deleted': deleted})


@api_view(['PATCH'])
@permission_classes([IsAuthenticated, IsAdminUser])
@reports_failure('assign brand')
def product_assign_brand(request, pk):
    """Attach one product to a brand: {brandId} (null detaches)"""
    product = services.get_product(pk)
    services.assign_brand([product.id], parse_int(request.data.get('brandId')))
    return Response(ProductSerializer(services.get_product(pk)).data)


@api_view(['PATCH'])
@permission_classes([IsAuthenticated, IsAdminUser])
@reports_failure('assign product line')
def product_assign_product_line(request, pk):
    """Attach one product to a product line: {productLineId} (null detaches)"""
    product = services.get_product(pk)
    services.assign_product_line([product.id], parse_int(request.data.get('productLineId')))
    return Response(ProductSerializer(services.get_product(pk)).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminUser])
@reports_failure('bulk assign brand')
def product_bulk_assign_brand(request):
    """{productIds, brandId}"""
    updated = services.assign_brand(request.data.get('productIds'),
                                    parse_int(request.data.get('brandId')))
    return Response({'success': True, 'updated': updated})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminUser])
@reports_failure('bulk assign product line')
def product_bulk_assign_product_line(request):
    """{productIds, productLineId}"""
    updated = services.assign_product_line(request.data.get('productIds'),
                                           parse_int(request.data.get('productLineId')))
    return Response({'success': True, 'updated': updated})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminUser])
@reports_failure('get upload URL')
def product_upload_url(request):
    """Pre-signed upload URL for an image: {name, size, contentType}"""
    data = _validated(UploadURLRequestSerializer, request.data)
    payload = storage.create_upload_url(
        name=data.get('name'),
        size=data.get('size'),
        content_type=data.get('content_type'),
    )
    return Response(payload)


# Category banner views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdminUser])
@reports_failure({'GET': 'fetch category banners', 'POST': 'create category banner'})
def banner_list_create(request):
    """All banners (?categoryId=), or create one"""
    if request.method == 'GET':
        banners = services.list_banners(category_id=parse_int(request.query_params.get('categoryId')))
        return Response(CategoryBannerSerializer(banners, many=True).data)

    serializer = CategoryBannerSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    banner = serializer.save()
    create_audit_log(request=request, action='create', model_name='CategoryBanner',
                     object_id=banner.id, object_name=str(banner))
    logger.info(f"Created category banner {banner.id} for category {banner.category_id}")
    return Response(CategoryBannerSerializer(banner).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminUser])
@reports_failure({'GET': 'fetch category banner', 'PATCH': 'update category banner',
                  'DELETE': 'delete category banner'})
def banner_detail(request, pk):
    if request.method == 'GET':
        return Response(CategoryBannerSerializer(services.get_banner(pk)).data)

    if request.method == 'PATCH':
        serializer = CategoryBannerSerializer(services.get_banner(pk), data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        banner = serializer.save()
        create_audit_log(request=request, action='update', model_name='CategoryBanner',
                         object_id=banner.id, object_name=str(banner),
                         changes=_audit_changes(request.data))
        return Response(CategoryBannerSerializer(banner).data)

    banner = services.delete_banner(pk)
    create_audit_log(request=request, action='delete', model_name='CategoryBanner',
                     object_id=pk, object_name=str(banner))
    return Response({'success': True})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminUser])
@reports_failure('reorder category banners')
def banner_reorder(request):
    """Persist a new order for all banners: {orderedIds}"""
    changed = services.reorder_banners(request.data.get('orderedIds'))
    create_audit_log(request=request, action='reorder', model_name='CategoryBanner',
                     object_id='all', changes={'orderedIds': [banner.id for banner in changed]})
    return Response({'success': True})
