"""
Reference-Data Cache Service

Provides an explicit cache object with:
  - TTL-based expiry (default 5 min)
  - cache-aside loading (get_or_load)
  - prefix invalidation hook for admin content mutations

One ReferenceCache is built per application (``app.extensions["reference_cache"]``)
and passed to services by reference; nothing is stored in module globals.

Uses Redis when REDIS_URL points at a redis server, otherwise a per-instance
in-memory dict. Values are JSON-serialised so both backends behave the same.

There is no locking and no single-flight de-duplication: concurrent misses
may both run the loader, and the last write wins.
"""

import json
import logging
import time

import redis

logger = logging.getLogger(__name__)

DEFAULT_TTL = 300   # 5 minutes


# ── In-memory backend ────────────────────────────────────────────────────


class MemoryBackend:
    """Dict cache for dev/testing. Mirrors the subset of the redis API we use."""

    def __init__(self, clock=time.time):
        self._store: dict = {}  # key → (value_json, expire_ts)
        self._clock = clock

    def get(self, key):
        entry = self._store.get(key)
        if entry is None:
            return None
        val, expires = entry
        if expires and self._clock() > expires:
            self._store.pop(key, None)
            return None
        return val

    def setex(self, key, ttl_seconds, value):
        self._store[key] = (value, self._clock() + ttl_seconds)

    def delete(self, *keys):
        for k in keys:
            self._store.pop(k, None)

    def keys(self, pattern):
        """Simple glob matching for 'prefix*' patterns."""
        if pattern.endswith("*"):
            prefix = pattern[:-1]
            return [k for k in self._store if k.startswith(prefix)]
        return [k for k in self._store if k == pattern]

    def ping(self):
        return True


def connect_backend(redis_url=None):
    """Return a Redis client for *redis_url*, or a MemoryBackend.

    Falls back to memory (with a warning) when Redis does not answer a ping.
    """
    if not redis_url or redis_url.startswith("memory://"):
        return MemoryBackend()
    try:
        client = redis.from_url(redis_url, decode_responses=True)
        client.ping()
        logger.info("Cache: using Redis at %s", redis_url.split("@")[-1])
        return client
    except redis.RedisError as exc:
        logger.warning("Redis unavailable (%s) — falling back to memory cache", exc)
        return MemoryBackend()


# ── Cache object ─────────────────────────────────────────────────────────


class ReferenceCache:
    """TTL cache for slow-changing reference data (rotations, procedures)."""

    def __init__(self, backend=None, default_ttl=DEFAULT_TTL, namespace=""):
        self.backend = backend if backend is not None else MemoryBackend()
        self.default_ttl = default_ttl
        self.namespace = namespace

    def _key(self, key):
        return f"{self.namespace}{key}"

    def get(self, key):
        """Return the cached value, or None on miss / undecodable entry."""
        raw = self.backend.get(self._key(key))
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            return None

    def set(self, key, value, ttl=None):
        self.backend.setex(self._key(key), ttl or self.default_ttl, json.dumps(value))

    def delete(self, *keys):
        if keys:
            self.backend.delete(*(self._key(k) for k in keys))

    def get_or_load(self, key, loader, ttl=None):
        """Cache-aside. On miss *loader* is called and a non-None result cached.

        An unreachable backend counts as a miss and the value is not stored;
        reads then go straight to *loader*. Loader exceptions propagate
        untouched and nothing is cached for them.
        """
        try:
            value = self.get(key)
        except redis.RedisError as exc:
            logger.warning("Cache read failed for %s, loading from source: %s", key, exc)
            return loader()
        if value is not None:
            return value
        value = loader()
        if value is not None:
            try:
                self.set(key, value, ttl)
            except redis.RedisError as exc:
                logger.warning("Cache write failed for %s: %s", key, exc)
        return value

    def invalidate(self, prefix):
        """Remove every entry whose key starts with *prefix*. Returns count."""
        keys = self.backend.keys(f"{self._key(prefix)}*")
        if keys:
            self.backend.delete(*keys)
        return len(keys)

    def clear(self):
        """Drop every entry in this cache's namespace."""
        return self.invalidate("")

    def health_check(self):
        """Return cache backend status."""
        try:
            self.backend.ping()
            backend_type = "memory" if isinstance(self.backend, MemoryBackend) else "redis"
            return {"status": "ok", "backend": backend_type}
        except redis.RedisError as exc:
            return {"status": "error", "detail": str(exc)}


def build_cache(app):
    """Create the application's ReferenceCache from config and register it."""
    cache = ReferenceCache(
        backend=connect_backend(app.config.get("REDIS_URL")),
        default_ttl=app.config.get("REFERENCE_CACHE_TTL", DEFAULT_TTL),
        namespace=app.config.get("CACHE_NAMESPACE", "intern_tracker:"),
    )
    app.extensions["reference_cache"] = cache
    return cache


def get_app_cache():
    """Return the ReferenceCache of the current Flask application."""
    from flask import current_app

    return current_app.extensions["reference_cache"]
