"""
Cached standings and hall of fame payloads

Payloads are cached per namespace. Every namespace keeps an index of the
keys it wrote, so invalidating "standings" drops exactly those entries and
leaves the rest of the cache (rate limits, other namespaces) alone.
"""

import functools

from flask import current_app

from league import cache


def _index_key(namespace):
    return f"league:{namespace}:keys"


def make_cache_key(namespace, func_name, *args, **kwargs):
    parts = [str(arg) for arg in args]
    parts += [f"{k}={v}" for k, v in sorted(kwargs.items())]
    return f"league:{namespace}:{func_name}:{':'.join(parts)}"


def _remember_key(namespace, key):
    keys = cache.get(_index_key(namespace)) or []
    if key not in keys:
        # The index never expires, stale entries are harmless to delete
        cache.set(_index_key(namespace), keys + [key], timeout=0)


def cached_query(namespace, timeout=None, timeout_config_key="CACHE_DEFAULT_TIMEOUT"):
    """
    Cache the return value of a payload builder

    None means the payload could not be built and is never cached.

    Args:
        namespace: Invalidation group, e.g. "standings"
        timeout: Seconds to keep the payload, read from timeout_config_key when None
        timeout_config_key: Config key holding the timeout
    """

    def decorator(f):
        @functools.wraps(f)
        def wrapped(*args, **kwargs):
            key = make_cache_key(namespace, f.__name__, *args, **kwargs)

            payload = cache.get(key)
            if payload is not None:
                current_app.logger.debug(f"Cache hit: {key}")
                return payload

            payload = f(*args, **kwargs)
            if payload is None:
                return None

            ttl = timeout
            if ttl is None:
                ttl = current_app.config.get(timeout_config_key, 300)
            cache.set(key, payload, timeout=ttl)
            _remember_key(namespace, key)
            current_app.logger.debug(f"Cache set: {key} ({ttl}s)")
            return payload

        return wrapped

    return decorator


def invalidate_model_cache(namespace):
    """Drop every cached payload of a namespace, returns how many keys were dropped"""
    keys = cache.get(_index_key(namespace)) or []
    if keys:
        cache.delete_many(*keys)
    cache.delete(_index_key(namespace))
    current_app.logger.info(f"Invalidated {len(keys)} cached {namespace} payloads")
    return len(keys)
