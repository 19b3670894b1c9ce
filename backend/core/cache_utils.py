"""
Caching utilities for storefront listings.

Listing keys carry a per-resource version number. Invalidating a resource
bumps its version, so every cached listing of that resource (all scopes, all
filters) is orphaned at once and expires by TTL. This works on any cache
backend, including Redis and local memory.
"""
from django.core.cache import cache
from functools import wraps
import hashlib
import logging

logger = logging.getLogger(__name__)

# Cache TTLs (in seconds)
CATALOG_LIST_CACHE_TTL = 300  # 5 minutes
PRODUCTS_LIST_CACHE_TTL = 120  # 2 minutes
STORE_LOCATIONS_CACHE_TTL = 600  # 10 minutes
BANNERS_CACHE_TTL = 300  # 5 minutes
SETTINGS_CACHE_TTL = 600  # 10 minutes

# Resource names used as key prefixes
CATEGORIES = 'delivery_categories'
BRANDS = 'delivery_brands'
PRODUCT_LINES = 'delivery_product_lines'
PRODUCTS = 'delivery_products'
CATEGORY_BANNERS = 'category_banners'
STORE_LOCATIONS = 'store_locations'
SETTINGS = 'settings'

VERSION_KEY_TTL = None  # version counters never expire


def _version_key(resource):
    return f"{resource}:version"


def get_resource_version(resource):
    """Current version number for a resource (initialised to 1)"""
    version = cache.get(_version_key(resource))
    if version is None:
        cache.add(_version_key(resource), 1, VERSION_KEY_TTL)
        version = cache.get(_version_key(resource)) or 1
    return version


def make_cache_key(resource, *args, **kwargs):
    """Generate a versioned cache key from arguments"""
    key_data = f"{resource}:{args}:{sorted(kwargs.items())}"
    key_hash = hashlib.md5(key_data.encode()).hexdigest()
    return f"{resource}:v{get_resource_version(resource)}:{key_hash}"


def invalidate_resource_cache(*resources):
    """Invalidate every cached listing of the given resources"""
    for resource in resources:
        try:
            cache.incr(_version_key(resource))
        except ValueError:
            # Counter missing (never read or evicted): start a fresh generation
            cache.set(_version_key(resource), 2, VERSION_KEY_TTL)
        logger.info(f"Invalidated {resource} cache")


def cached_query(resource, cache_ttl=60):
    """
    Decorator to cache listing queries per resource version

    Usage:
        @cached_query(CATEGORIES, cache_ttl=300)
        def active_categories_payload():
            return data
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            cache_key = make_cache_key(resource, func.__name__, *args, **kwargs)

            cached_data = cache.get(cache_key)
            if cached_data is not None:
                logger.debug(f"Cache HIT for {resource}: {cache_key}")
                return cached_data

            logger.debug(f"Cache MISS for {resource}: {cache_key}")
            result = func(*args, **kwargs)
            cache.set(cache_key, result, cache_ttl)
            return result
        return wrapper
    return decorator
