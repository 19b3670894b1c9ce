"""
Cache invalidation signals
Automatically invalidate cached listings when data changes
"""
from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver
import logging
import threading
from contextlib import contextmanager

from .cache_utils import (
    invalidate_resource_cache,
    CATEGORIES, BRANDS, PRODUCT_LINES, PRODUCTS, CATEGORY_BANNERS, STORE_LOCATIONS, SETTINGS,
)

logger = logging.getLogger(__name__)

# Thread-local storage to track signal suspension
_thread_locals = threading.local()

# Model name -> cached resources affected by a change to that model.
# Deleting a parent cascades to its children, and product listings embed
# brand/product line names, so parents invalidate downstream resources too.
MODEL_RESOURCES = {
    'Category': (CATEGORIES, BRANDS, PRODUCT_LINES, PRODUCTS, CATEGORY_BANNERS),
    'Brand': (BRANDS, PRODUCT_LINES, PRODUCTS),
    'ProductLine': (PRODUCT_LINES, PRODUCTS),
    'Product': (PRODUCTS, CATEGORIES, BRANDS, PRODUCT_LINES),
    'CategoryBanner': (CATEGORY_BANNERS,),
    'StoreLocation': (STORE_LOCATIONS,),
    'Setting': (SETTINGS,),
}


@contextmanager
def suspend_cache_signals():
    """
    Context manager to temporarily suspend cache invalidation signals.
    Useful for bulk operations (reorder, bulk update) to prevent excessive
    cache churn. Invalidate manually after the block.
    """
    previous = is_suspended()
    try:
        _thread_locals.suspended = True
        yield
    finally:
        _thread_locals.suspended = previous


def is_suspended():
    return getattr(_thread_locals, 'suspended', False)


@receiver([post_save, post_delete])
def invalidate_model_cache(sender, instance, **kwargs):
    """Invalidate cached listings when a cached model changes"""
    if is_suspended():
        return

    resources = MODEL_RESOURCES.get(sender.__name__)
    if not resources:
        return

    # Only models from our own apps (contrib apps have unrelated 'Setting'-like names)
    if not sender.__module__.startswith('backend.'):
        return

    invalidate_resource_cache(*resources)
    logger.debug(f"Cache invalidated by {sender.__name__} change (id={getattr(instance, 'pk', None)})")
