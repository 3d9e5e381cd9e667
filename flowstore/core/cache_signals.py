"""
Cache invalidation signals
Automatically invalidate cache when data changes
"""
from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver
import logging
import threading
from contextlib import contextmanager

from .cache_utils import invalidate_after_commit, invalidate_inventory_cache, invalidate_inventory_filters_cache

logger = logging.getLogger(__name__)

# Thread-local storage to track signal suspension
_thread_locals = threading.local()


@contextmanager
def suspend_cache_signals():
    """
    Context manager to temporarily suspend cache invalidation signals.
    Useful for bulk operations to prevent excessive cache clearing.
    Remember to manually invalidate cache after the block!
    """
    try:
        _thread_locals.suspended = True
        yield
    finally:
        _thread_locals.suspended = False


def is_suspended():
    return getattr(_thread_locals, 'suspended', False)


@receiver(post_save, sender='inventory.StockLevel')
@receiver(post_delete, sender='inventory.StockLevel')
def invalidate_stock_on_change(sender, instance, **kwargs):
    if is_suspended():
        return
    logger.debug(f"Stock level changed for variant {instance.variant_id} in storage {instance.storage_id}")
    invalidate_after_commit(invalidate_inventory_cache)


@receiver(post_save, sender='catalog.ProductVariant')
@receiver(post_save, sender='catalog.Product')
def invalidate_stock_on_catalog_change(sender, instance, **kwargs):
    if is_suspended():
        return
    invalidate_after_commit(invalidate_inventory_cache)


@receiver(post_save, sender='locations.Branch')
@receiver(post_delete, sender='locations.Branch')
@receiver(post_save, sender='locations.Storage')
@receiver(post_delete, sender='locations.Storage')
def invalidate_filters_on_location_change(sender, instance, **kwargs):
    if is_suspended():
        return
    logger.debug(f"{sender.__name__} {instance.pk} changed, invalidating inventory filters")
    invalidate_after_commit(invalidate_inventory_filters_cache)
    invalidate_after_commit(invalidate_inventory_cache)
