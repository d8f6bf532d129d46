"""
Report cache for organization-level aggregations.

Every cached report lives under ``reports:org<id>:`` so that a change to any
money-bearing row of an organization can drop all of its reports at once.
Redis (django-redis) is used when configured; the local-memory backend is
flushed instead because it cannot be scanned.
"""
import hashlib
import logging
from functools import wraps

from django.core.cache import cache

logger = logging.getLogger(__name__)

DASHBOARD_KPI_CACHE_TTL = 300
REPORTS_CACHE_TTL = 600


def reports_prefix(organization_id):
    return f"reports:org{organization_id}:"


def make_cache_key(prefix, *args, **kwargs):
    """Stable key for ``prefix`` and the call arguments"""
    digest = hashlib.md5(repr((args, sorted(kwargs.items()))).encode()).hexdigest()
    return f"{prefix}{digest}"


def _organization_id(value):
    return getattr(value, 'pk', value)


def cached_query(cache_ttl=REPORTS_CACHE_TTL, key_prefix=None):
    """
    Cache a report function whose first argument is an organization.

    The organization is replaced by its id in the key, so model instances
    loaded by different requests share one entry. ``key_prefix`` defaults to
    the function name.

        @cached_query(cache_ttl=DASHBOARD_KPI_CACHE_TTL)
        def dashboard_kpis(organization, today):
            ...
    """
    def decorator(func):
        name = key_prefix or func.__name__

        @wraps(func)
        def wrapper(organization, *args, **kwargs):
            org_id = _organization_id(organization)
            cache_key = make_cache_key(f"{reports_prefix(org_id)}{name}:", *args, **kwargs)

            cached = cache.get(cache_key)
            if cached is not None:
                logger.debug(f"Report cache hit: {cache_key}")
                return cached

            logger.debug(f"Report cache miss: {cache_key}")
            result = func(organization, *args, **kwargs)
            cache.set(cache_key, result, cache_ttl)
            return result
        return wrapper
    return decorator


def _scan(connection, match):
    cursor = 0
    while True:
        cursor, keys = connection.scan(cursor, match=match, count=100)
        yield from keys
        if cursor == 0:
            return


def invalidate_cache_pattern(pattern):
    """Drop every key containing ``pattern`` (the whole cache without Redis)"""
    try:
        from django_redis import get_redis_connection
        connection = get_redis_connection("default")
    except NotImplementedError:
        cache.clear()
        logger.debug(f"Cleared local cache for pattern {pattern}")
        return

    try:
        keys = list(_scan(connection, f"*{pattern}*"))
        if keys:
            connection.delete(*keys)
        logger.info(f"Invalidated {len(keys)} cached entries for {pattern}")
    except Exception as e:
        logger.warning(f"Could not invalidate cache pattern {pattern}: {str(e)}")


def invalidate_reports_cache(organization_id):
    invalidate_cache_pattern(reports_prefix(organization_id))
