"""
Cache invalidation signals
Automatically invalidate cached product lists when catalogue rows change
"""
from django.db import transaction
from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver
import logging
import threading
from contextlib import contextmanager

from .cache_utils import invalidate_products_cache

logger = logging.getLogger(__name__)

# Thread-local storage to track signal suspension
_thread_locals = threading.local()


@contextmanager
def suspend_cache_signals():
    """
    Context manager to temporarily suspend cache invalidation signals.
    Useful for bulk operations (TPOS sync) to prevent excessive cache clearing.
    Remember to manually invalidate cache after the block!
    """
    previous = is_suspended()
    try:
        _thread_locals.suspended = True
        yield
    finally:
        _thread_locals.suspended = previous


def is_suspended():
    return getattr(_thread_locals, 'suspended', False)


def invalidate_products_cache_manual():
    """Manually invalidate products cache"""
    try:
        invalidate_products_cache()
    except Exception as e:
        logger.warning(f"Error invalidating products cache: {e}")


@receiver([post_save, post_delete])
def invalidate_products_cache_on_change(sender, instance, **kwargs):
    """Invalidate products cache when products or attribute values change"""
    if is_suspended():
        return

    if sender.__name__ not in ('Product', 'ProductAttribute', 'ProductAttributeValue'):
        return

    from shopstock.catalog.models import Product, ProductAttribute, ProductAttributeValue

    if isinstance(instance, (Product, ProductAttribute, ProductAttributeValue)):
        # Invalidate after commit so the cache is not repopulated with stale rows
        transaction.on_commit(invalidate_products_cache_manual)
