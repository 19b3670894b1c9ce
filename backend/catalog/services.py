"""
Data-access layer for the delivery catalog.

Category -> Brand -> ProductLine form a strict three level tree (each child
has exactly one parent, deletes cascade downwards). Products hang off the
tree through nullable brand / product line foreign keys.

Every public function runs in a single transaction and raises
backend.core.exceptions.ServiceError subclasses for rule violations.
"""
import logging

from django.db import transaction

from backend.core.cache_signals import suspend_cache_signals
from backend.core.cache_utils import (
    invalidate_resource_cache,
    CATEGORIES, BRANDS, PRODUCT_LINES, PRODUCTS, CATEGORY_BANNERS,
)
from backend.core.exceptions import NotFoundError, ValidationFailed, ConflictError
from backend.core.utils import slugify_name, parse_int, apply_display_order
from .filters import ProductFilter
from .models import Category, Brand, ProductLine, Product, CategoryBanner

logger = logging.getLogger('backend.catalog')

# Human labels used in error messages
NODE_LABELS = {
    Category: 'category',
    Brand: 'brand',
    ProductLine: 'product line',
}

# Resources whose cached listings change when a node of this type changes
NODE_RESOURCES = {
    Category: (CATEGORIES, BRANDS, PRODUCT_LINES, PRODUCTS, CATEGORY_BANNERS),
    Brand: (BRANDS, PRODUCT_LINES, PRODUCTS),
    ProductLine: (PRODUCT_LINES, PRODUCTS),
}

PRODUCT_BULK_FIELDS = {
    'enabled', 'price', 'sale_price', 'badge', 'stock_quantity',
    'display_order', 'brand_id', 'product_line_id',
}


# Shared node helpers

def _label(model):
    return NODE_LABELS[model]


def _get_node(model, node_id):
    pk = parse_int(node_id)
    node = model.objects.filter(pk=pk).first() if pk is not None else None
    if node is None:
        raise NotFoundError(f"{_label(model).capitalize()} not found")
    return node


def _slug_for(model, name, exclude_id=None):
    """Validate the name and return its slug, rejecting duplicates"""
    if not name or not str(name).strip():
        raise ValidationFailed(f"{_label(model).capitalize()} name is required")
    slug = slugify_name(str(name))
    if not slug:
        raise ValidationFailed(f"{_label(model).capitalize()} name must contain letters or digits")
    duplicates = model.objects.filter(slug=slug)
    if exclude_id is not None:
        duplicates = duplicates.exclude(pk=exclude_id)
    if duplicates.exists():
        raise ConflictError(f"A {_label(model)} with this name already exists")
    return slug


def clean_featured_ids(product_ids):
    """
    Normalise a featured product id list.

    Keeps the given order, drops duplicates, and rejects ids that do not
    reference an existing enabled product.
    """
    if product_ids is None:
        return []
    if not isinstance(product_ids, (list, tuple)):
        raise ValidationFailed('featuredProductIds must be an array')

    cleaned = []
    for raw in product_ids:
        product_id = parse_int(raw)
        if product_id is None or isinstance(raw, bool):
            raise ValidationFailed(f'Invalid product id: {raw}')
        if product_id not in cleaned:
            cleaned.append(product_id)

    if cleaned:
        valid_ids = set(
            Product.objects.filter(id__in=cleaned, enabled=True).values_list('id', flat=True)
        )
        invalid_ids = [product_id for product_id in cleaned if product_id not in valid_ids]
        if invalid_ids:
            raise ValidationFailed(
                'Featured products must be existing, enabled products',
                details={'invalidProductIds': invalid_ids},
            )
    return cleaned


def _create_node(model, name, **fields):
    slug = _slug_for(model, name)
    with transaction.atomic():
        node = model.objects.create(
            name=str(name).strip(),
            slug=slug,
            display_order=0,
            **fields,
        )
    logger.info(f"Created {_label(model)} {node.id} ({node.slug})")
    return node


def _update_node(model, node_id, changes, parent_field=None, parent_model=None):
    """Apply a partial update. Renaming regenerates the slug."""
    with transaction.atomic():
        node = _get_node(model, node_id)
        update_fields = ['updated_at']

        if 'name' in changes:
            node.slug = _slug_for(model, changes['name'], exclude_id=node.pk)
            node.name = str(changes['name']).strip()
            update_fields += ['name', 'slug']

        if parent_field and parent_field in changes:
            parent_id = changes[parent_field]
            if parent_id is None:
                raise ValidationFailed(f"{_label(parent_model).capitalize()} is required")
            if not parent_model.objects.filter(pk=parent_id).exists():
                raise ValidationFailed(f"{_label(parent_model).capitalize()} not found")
            setattr(node, parent_field, parent_id)
            update_fields.append(parent_field)

        for field in ('image', 'logo', 'is_active', 'display_order'):
            if field in changes and hasattr(node, field):
                setattr(node, field, changes[field])
                update_fields.append(field)

        if 'featured_product_ids' in changes:
            node.featured_product_ids = clean_featured_ids(changes['featured_product_ids'])
            update_fields.append('featured_product_ids')

        node.save(update_fields=update_fields)
    logger.info(f"Updated {_label(model)} {node.id}: {sorted(set(update_fields) - {'updated_at'})}")
    return node


def _delete_node(model, node_id):
    """Delete a node; children go with it via ON DELETE CASCADE"""
    with transaction.atomic():
        node = _get_node(model, node_id)
        with suspend_cache_signals():
            deleted, per_model = node.delete()
    invalidate_resource_cache(*NODE_RESOURCES[model])
    logger.info(f"Deleted {_label(model)} {node_id} ({deleted} rows: {per_model})")
    return node


# Categories

def list_categories(active_only=False):
    queryset = Category.objects.all()
    if active_only:
        queryset = queryset.filter(is_active=True)
    return queryset.order_by('display_order', 'id')


def get_category(category_id):
    return _get_node(Category, category_id)


def create_category(name, image=None, is_active=True):
    return _create_node(Category, name, image=image or None,
                        is_active=True if is_active is None else is_active)


def update_category(category_id, **changes):
    return _update_node(Category, category_id, changes)


def delete_category(category_id):
    return _delete_node(Category, category_id)


def reorder_categories(ordered_ids):
    with transaction.atomic():
        changed = apply_display_order(Category.objects.all(), ordered_ids)
    invalidate_resource_cache(CATEGORIES)
    logger.info(f"Reordered {len(changed)} categories")
    return changed


# Brands

def list_brands(category_id=None, active_only=False):
    queryset = Brand.objects.select_related('category')
    if category_id is not None:
        queryset = queryset.filter(category_id=category_id)
    if active_only:
        queryset = queryset.filter(is_active=True)
    return queryset.order_by('display_order', 'id')


def get_brand(brand_id):
    return _get_node(Brand, brand_id)


def create_brand(name, category_id, logo=None, is_active=True):
    if category_id is None:
        raise ValidationFailed('Name and categoryId are required')
    if not Category.objects.filter(pk=category_id).exists():
        raise ValidationFailed('Category not found')
    return _create_node(Brand, name, category_id=category_id, logo=logo or None,
                        is_active=True if is_active is None else is_active)


def update_brand(brand_id, **changes):
    return _update_node(Brand, brand_id, changes, parent_field='category_id', parent_model=Category)


def delete_brand(brand_id):
    return _delete_node(Brand, brand_id)


def reorder_brands(category_id, ordered_ids):
    if category_id is None:
        raise ValidationFailed('categoryId is required')
    with transaction.atomic():
        changed = apply_display_order(Brand.objects.filter(category_id=category_id), ordered_ids)
    invalidate_resource_cache(BRANDS)
    logger.info(f"Reordered {len(changed)} brands in category {category_id}")
    return changed


# Product lines

def list_product_lines(brand_id=None, active_only=False):
    queryset = ProductLine.objects.select_related('brand')
    if brand_id is not None:
        queryset = queryset.filter(brand_id=brand_id)
    if active_only:
        queryset = queryset.filter(is_active=True)
    return queryset.order_by('display_order', 'id')


def get_product_line(product_line_id):
    return _get_node(ProductLine, product_line_id)


def create_product_line(name, brand_id, logo=None, is_active=True):
    if brand_id is None:
        raise ValidationFailed('Name and brandId are required')
    if not Brand.objects.filter(pk=brand_id).exists():
        raise ValidationFailed('Brand not found')
    return _create_node(ProductLine, name, brand_id=brand_id, logo=logo or None,
                        is_active=True if is_active is None else is_active)


def update_product_line(product_line_id, **changes):
    return _update_node(ProductLine, product_line_id, changes, parent_field='brand_id', parent_model=Brand)


def delete_product_line(product_line_id):
    return _delete_node(ProductLine, product_line_id)


def reorder_product_lines(brand_id, ordered_ids):
    if brand_id is None:
        raise ValidationFailed('brandId is required')
    with transaction.atomic():
        changed = apply_display_order(ProductLine.objects.filter(brand_id=brand_id), ordered_ids)
    invalidate_resource_cache(PRODUCT_LINES)
    logger.info(f"Reordered {len(changed)} product lines in brand {brand_id}")
    return changed


# Featured products

def set_featured_products(node, product_ids):
    """Replace the node's featured list (full overwrite, [] clears)"""
    cleaned = clean_featured_ids(product_ids)
    with transaction.atomic():
        node.featured_product_ids = cleaned
        node.save(update_fields=['featured_product_ids', 'updated_at'])
    logger.info(f"Set {len(cleaned)} featured products on {_label(type(node))} {node.id}")
    return node


def featured_products_for(node):
    """Enabled products of the node's featured list, in stored order"""
    ids = list(node.featured_product_ids or [])
    if not ids:
        return []
    products = Product.objects.select_related('brand', 'product_line').filter(
        id__in=ids, enabled=True
    ).in_bulk()
    return [products[product_id] for product_id in ids if product_id in products]


# Products

def list_products(params=None, enabled_only=False):
    """Products filtered through ProductFilter, ordered by (display_order, id)"""
    queryset = Product.objects.select_related('brand', 'product_line')
    if enabled_only:
        queryset = queryset.filter(enabled=True)
    filterset = ProductFilter(params or {}, queryset=queryset)
    if not filterset.is_valid():
        raise ValidationFailed('Invalid product filters', details=filterset.errors)
    return filterset.qs.order_by('display_order', 'id')


def get_product(product_id):
    product_id = parse_int(product_id)
    product = Product.objects.select_related('brand', 'product_line').filter(pk=product_id).first() \
        if product_id is not None else None
    if product is None:
        raise NotFoundError('Product not found')
    return product


def _check_product_links(fields):
    brand_id = fields.get('brand_id')
    if brand_id is not None and not Brand.objects.filter(pk=brand_id).exists():
        raise ValidationFailed('Brand not found')
    product_line_id = fields.get('product_line_id')
    if product_line_id is not None and not ProductLine.objects.filter(pk=product_line_id).exists():
        raise ValidationFailed('Product line not found')


def create_product(**fields):
    name = fields.get('name')
    if not name or not str(name).strip():
        raise ValidationFailed('Product name is required')
    if fields.get('price') is None:
        raise ValidationFailed('Price is required')
    _check_product_links(fields)
    fields['name'] = str(name).strip()
    with transaction.atomic():
        product = Product.objects.create(**fields)
    logger.info(f"Created product {product.id} ({product.name})")
    return product


def update_product(product_id, **changes):
    if 'name' in changes and (not changes['name'] or not str(changes['name']).strip()):
        raise ValidationFailed('Product name is required')
    if 'price' in changes and changes['price'] is None:
        raise ValidationFailed('Price is required')
    _check_product_links(changes)
    with transaction.atomic():
        product = get_product(product_id)
        for field, value in changes.items():
            setattr(product, field, value)
        product.save()
    logger.info(f"Updated product {product.id}: {sorted(changes)}")
    return product


def delete_product(product_id):
    with transaction.atomic():
        product = get_product(product_id)
        product.delete()
    logger.info(f"Deleted product {product_id}")
    return product


def _clean_product_ids(product_ids):
    if not isinstance(product_ids, (list, tuple)) or not product_ids:
        raise ValidationFailed('productIds must be a non-empty array')
    cleaned = []
    for raw in product_ids:
        product_id = parse_int(raw)
        if product_id is None:
            raise ValidationFailed(f'Invalid product id: {raw}')
        cleaned.append(product_id)
    return cleaned


def bulk_update_products(product_ids, updates):
    """Apply the same field updates to many products; returns the updated count"""
    ids = _clean_product_ids(product_ids)
    if not updates:
        raise ValidationFailed('No updates provided')
    unsupported = set(updates) - PRODUCT_BULK_FIELDS
    if unsupported:
        raise ValidationFailed(f"Unsupported bulk update fields: {', '.join(sorted(unsupported))}")
    if 'price' in updates and updates['price'] is None:
        raise ValidationFailed('Price is required')
    _check_product_links(updates)

    with transaction.atomic():
        updated = Product.objects.filter(id__in=ids).update(**updates)
    invalidate_resource_cache(PRODUCTS)
    logger.info(f"Bulk updated {updated} products: {sorted(updates)}")
    return updated


def bulk_delete_products(product_ids):
    ids = _clean_product_ids(product_ids)
    with transaction.atomic():
        with suspend_cache_signals():
            _, per_model = Product.objects.filter(id__in=ids).delete()
    deleted = per_model.get(Product._meta.label, 0)
    invalidate_resource_cache(PRODUCTS)
    logger.info(f"Bulk deleted {deleted} products")
    return deleted


def assign_brand(product_ids, brand_id):
    """Attach products to a brand (None detaches)"""
    return bulk_update_products(product_ids, {'brand_id': brand_id or None})


def assign_product_line(product_ids, product_line_id):
    """Attach products to a product line (None detaches)"""
    return bulk_update_products(product_ids, {'product_line_id': product_line_id or None})


# Category banners

def list_banners(category_id=None, active_only=False):
    queryset = CategoryBanner.objects.select_related('category')
    if category_id is not None:
        queryset = queryset.filter(category_id=category_id)
    if active_only:
        queryset = queryset.filter(is_active=True, category__is_active=True)
    return queryset.order_by('display_order', 'id')


def get_banner(banner_id):
    pk = parse_int(banner_id)
    banner = CategoryBanner.objects.select_related('category').filter(pk=pk).first() if pk is not None else None
    if banner is None:
        raise NotFoundError('Category banner not found')
    return banner


def delete_banner(banner_id):
    with transaction.atomic():
        banner = get_banner(banner_id)
        banner.delete()
    logger.info(f"Deleted category banner {banner_id}")
    return banner


def reorder_banners(ordered_ids):
    with transaction.atomic():
        changed = apply_display_order(CategoryBanner.objects.all(), ordered_ids)
    invalidate_resource_cache(CATEGORY_BANNERS)
    logger.info(f"Reordered {len(changed)} category banners")
    return changed
