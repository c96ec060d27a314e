"""
Thread-safe in-memory TTL cache for sync and async callables.
"""
import inspect
import hashlib
import threading
import time
from functools import wraps
from typing import Any, Callable, Dict, Optional, Tuple

from alert_engine.core.config import get_settings

# cache_key -> (data, expires_at)
_cache: Dict[str, Tuple[Any, float]] = {}
_cache_lock = threading.Lock()

# Hard bound on entries; the oldest are evicted first
MAX_ENTRIES = 4096


def make_cache_key(func_name: str, args: tuple, kwargs: dict) -> str:
    """Create a reliable cache key using hashing."""
    key_parts = [func_name]
    for arg in args:
        key_parts.append(repr(arg))
    for k, v in sorted(kwargs.items()):
        key_parts.append(f"{k}={v!r}")
    key_str = ":".join(key_parts)
    return hashlib.md5(key_str.encode()).hexdigest()


def _lookup(cache_key: str, now: float) -> Tuple[bool, Any]:
    with _cache_lock:
        if cache_key in _cache:
            data, expires_at = _cache[cache_key]
            if now < expires_at:
                return True, data
    return False, None


def _store(cache_key: str, data: Any, now: float, ttl_seconds: float) -> None:
    with _cache_lock:
        expired = [key for key, (_, expires_at) in _cache.items() if expires_at <= now]
        for key in expired:
            del _cache[key]

        # Re-insert so dict order stays oldest-first
        _cache.pop(cache_key, None)
        _cache[cache_key] = (data, now + ttl_seconds)

        while len(_cache) > MAX_ENTRIES:
            del _cache[next(iter(_cache))]


def cached(
    ttl_seconds: Optional[float] = None,
    on_hit: Optional[Callable[[], None]] = None,
    on_miss: Optional[Callable[[], None]] = None,
):
    """
    Decorator for caching function results.

    Exceptions are never cached, so a failed upstream call is retried on the
    next invocation. Expired entries are swept whenever a new result is
    stored. ``on_hit`` / ``on_miss`` are optional hooks for metrics.
    """
    if ttl_seconds is None:
        ttl_seconds = get_settings().weather_cache_ttl

    def decorator(func):
        @wraps(func)
        async def async_wrapper(*args, **kwargs):
            cache_key = make_cache_key(func.__qualname__, args, kwargs)
            now = time.time()

            hit, data = _lookup(cache_key, now)
            if hit:
                if on_hit:
                    on_hit()
                return data
            if on_miss:
                on_miss()

            result = await func(*args, **kwargs)
            _store(cache_key, result, now, ttl_seconds)
            return result

        @wraps(func)
        def sync_wrapper(*args, **kwargs):
            cache_key = make_cache_key(func.__qualname__, args, kwargs)
            now = time.time()

            hit, data = _lookup(cache_key, now)
            if hit:
                if on_hit:
                    on_hit()
                return data
            if on_miss:
                on_miss()

            result = func(*args, **kwargs)
            _store(cache_key, result, now, ttl_seconds)
            return result

        if inspect.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator


def cache_size() -> int:
    """Number of entries currently held, expired or not."""
    with _cache_lock:
        return len(_cache)


def clear_cache():
    """Clear all cached data."""
    with _cache_lock:
        _cache.clear()
