"""
Caching helpers for expensive per-tenant aggregates (balances, stats).

Keys carry a per-tenant version number; bumping the version after a write
invalidates every cached aggregate of that tenant at once. Backed by Redis
(django-redis) in production and local memory in development.
"""
from django.core.cache import cache
from functools import wraps
import hashlib
import logging

logger = logging.getLogger(__name__)

BALANCES_CACHE_TTL = 120  # 2 minutes
ORDER_STATS_CACHE_TTL = 60


def _version_key(tenant_id):
    return f"tenant:{tenant_id}:version"


def get_tenant_version(tenant_id):
    version = cache.get(_version_key(tenant_id))
    if version is None:
        version = 1
        cache.set(_version_key(tenant_id), version, None)
    return version


def invalidate_tenant_cache(tenant_id):
    """Drop every cached aggregate of the tenant"""
    key = _version_key(tenant_id)
    try:
        cache.incr(key)
    except ValueError:
        cache.set(key, 2, None)
    logger.debug(f"Invalidated cached aggregates for tenant {tenant_id}")


def make_cache_key(prefix, tenant_id, *args):
    """Generate a unique cache key from arguments"""
    key_data = f"{prefix}:{args}"
    key_hash = hashlib.md5(key_data.encode()).hexdigest()
    return f"{prefix}:{tenant_id}:v{get_tenant_version(tenant_id)}:{key_hash}"


def tenant_cached(cache_ttl=60, key_prefix="query"):
    """
    Decorator caching a function whose first argument is a tenant

    Usage:
        @tenant_cached(cache_ttl=120, key_prefix="balance_summary")
        def get_balance_summary(tenant):
            ...
    """
    def decorator(func):
        @wraps(func)
        def wrapper(tenant, *args):
            cache_key = make_cache_key(key_prefix, tenant.id, *args)
            cached_data = cache.get(cache_key)
            if cached_data is not None:
                logger.debug(f"Cache HIT for {key_prefix}: {cache_key}")
                return cached_data

            logger.debug(f"Cache MISS for {key_prefix}: {cache_key}")
            result = func(tenant, *args)
            cache.set(cache_key, result, cache_ttl)
            return result
        return wrapper
    return decorator
