"""
Caching utilities for expensive read models
Uses Redis for caching inventory and report query results
"""
from django.core.cache import cache
from django.db import transaction
from functools import wraps
import hashlib
import logging

logger = logging.getLogger(__name__)

# Cache TTLs (in seconds)
INVENTORY_STOCK_CACHE_TTL = 180  # 3 minutes
INVENTORY_FILTERS_CACHE_TTL = 600  # 10 minutes
REPORTS_CACHE_TTL = 600  # 10 minutes

INVENTORY_STOCK_PREFIX = "inventory_stock"
INVENTORY_FILTERS_PREFIX = "inventory_filters"
REPORTS_PREFIX = "reports"


def make_cache_key(prefix, *args, **kwargs):
    """Generate a unique cache key from arguments"""
    key_data = f"{prefix}:{args}:{sorted(kwargs.items())}"
    # Hash it to keep key length reasonable
    key_hash = hashlib.md5(key_data.encode()).hexdigest()
    return f"{prefix}:{key_hash}"


def cached_query(cache_ttl=60, key_prefix="query"):
    """
    Decorator to cache expensive queries

    Usage:
        @cached_query(cache_ttl=120, key_prefix="inventory_stock")
        def get_expensive_data(branch_id, search):
            # expensive query here
            return data
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            cache_key = make_cache_key(key_prefix, *args, **kwargs)

            cached_data = cache.get(cache_key)
            if cached_data is not None:
                logger.debug(f"Cache HIT for {key_prefix}: {cache_key}")
                return cached_data

            logger.debug(f"Cache MISS for {key_prefix}: {cache_key}")
            result = func(*args, **kwargs)

            cache.set(cache_key, result, cache_ttl)

            return result
        # Direct access for callers that must bypass the cache
        wrapper.uncached = func
        return wrapper
    return decorator


def invalidate_cache_pattern(pattern):
    """
    Invalidate all cache keys matching a pattern
    Uses Redis SCAN; other cache backends are cleared entirely
    """
    try:
        from django_redis import get_redis_connection
        redis_conn = get_redis_connection("default")
    except NotImplementedError:
        # Not a redis backend (local memory cache during tests)
        cache.clear()
        logger.debug(f"Cleared non-redis cache for pattern: {pattern}")
        return
    except Exception as e:
        logger.warning(f"Could not invalidate cache pattern {pattern}: {str(e)}")
        return

    try:
        keys = []
        cursor = 0
        while True:
            cursor, partial_keys = redis_conn.scan(cursor, match=f"*{pattern}*", count=100)
            keys.extend(partial_keys)
            if cursor == 0:
                break

        if keys:
            redis_conn.delete(*keys)
            logger.info(f"Invalidated {len(keys)} cache keys matching pattern: {pattern}")
    except Exception as e:
        logger.warning(f"Could not invalidate cache pattern {pattern}: {str(e)}")


def invalidate_inventory_cache():
    """Invalidate inventory stock rows and the report numbers derived from them"""
    invalidate_cache_pattern(INVENTORY_STOCK_PREFIX)
    invalidate_cache_pattern(REPORTS_PREFIX)


def invalidate_inventory_filters_cache():
    invalidate_cache_pattern(INVENTORY_FILTERS_PREFIX)


def invalidate_after_commit(invalidate):
    """
    Run a cache invalidation now and again once the open transaction commits.

    A read made before the commit can re-cache rows that predate it; the second
    pass drops them. Outside a transaction on_commit runs the callback at once.
    """
    invalidate()
    transaction.on_commit(invalidate)
