"""Path-keyed cache for computed page data.

Views store whatever they computed for a request under the request path and
a variant key (typically the query string). Mutations call
:func:`revalidate_path` so the next render of that path recomputes.

Two backends share one interface. :class:`ViewCache` keeps entries in the
process and suits a single worker. :class:`RedisViewCache` keeps them in
Redis so that an invalidation made by one worker is seen by all of them.
Every entry expires after ``VIEW_CACHE_TTL`` seconds in either backend.
"""

from __future__ import annotations

import hashlib
import json
import logging
import time
from collections import OrderedDict
from threading import RLock
from typing import Any, Callable, Dict, Hashable, Optional, Tuple

from flask import current_app
from redis import Redis, RedisError
from redis.connection import ConnectionPool

logger = logging.getLogger(__name__)

DEFAULT_TTL = 300
DEFAULT_MAX_VARIANTS = 64


def _normalize(path: str) -> str:
    return path.rstrip("/") or "/"


class ViewCache:
    """In-process cache holding at most ``max_variants`` entries per path.

    The least recently used variant is evicted first.
    """

    def __init__(
        self,
        ttl_seconds: Optional[float] = DEFAULT_TTL,
        max_variants: int = DEFAULT_MAX_VARIANTS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self.max_variants = max_variants
        self._clock = clock
        self._entries: Dict[str, "OrderedDict[Hashable, Tuple[Optional[float], Any]]"] = {}
        self._generations: Dict[str, int] = {}
        self._lock = RLock()

    def _lookup(self, key: str, variant: Hashable) -> Tuple[bool, Any]:
        variants = self._entries.get(key)
        if not variants or variant not in variants:
            return False, None
        expires_at, value = variants[variant]
        if expires_at is not None and self._clock() >= expires_at:
            del variants[variant]
            return False, None
        variants.move_to_end(variant)
        return True, value

    def _store(self, key: str, variant: Hashable, value: Any) -> None:
        expires_at = None
        if self.ttl_seconds is not None:
            expires_at = self._clock() + self.ttl_seconds
        variants = self._entries.setdefault(key, OrderedDict())
        variants[variant] = (expires_at, value)
        variants.move_to_end(variant)
        while len(variants) > self.max_variants:
            variants.popitem(last=False)

    def get(self, path: str, variant: Hashable = None) -> Optional[Any]:
        with self._lock:
            return self._lookup(_normalize(path), variant)[1]

    def set(self, path: str, value: Any, variant: Hashable = None) -> None:
        with self._lock:
            self._store(_normalize(path), variant, value)

    def get_or_compute(
        self, path: str, compute: Callable[[], Any], variant: Hashable = None
    ) -> Any:
        key = _normalize(path)
        with self._lock:
            found, value = self._lookup(key, variant)
            if found:
                return value
            generation = self._generations.get(key, 0)
        value = compute()
        with self._lock:
            # Skip storing if the path was invalidated while computing.
            if self._generations.get(key, 0) == generation:
                self._store(key, variant, value)
        return value

    def invalidate(self, path: str) -> None:
        """Drop every cached variant of ``path``."""
        with self._lock:
            key = _normalize(path)
            self._entries.pop(key, None)
            self._generations[key] = self._generations.get(key, 0) + 1

    def variant_count(self, path: str) -> int:
        with self._lock:
            return len(self._entries.get(_normalize(path), ()))

    def __contains__(self, path: str) -> bool:
        with self._lock:
            return bool(self._entries.get(_normalize(path)))


class RedisViewCache:
    """Cache shared by every worker through Redis.

    Each path has a generation counter. Entries are stored under the
    generation current when they were computed, so bumping the counter
    hides every older entry at once and Redis expires them later. Values
    must be JSON serializable.
    """

    def __init__(
        self,
        client: Redis,
        ttl_seconds: Optional[int] = DEFAULT_TTL,
        prefix: str = "view_cache",
    ) -> None:
        self.client = client
        self.ttl_seconds = ttl_seconds
        self.prefix = prefix

    def _generation_key(self, key: str) -> str:
        return f"{self.prefix}:{key}:generation"

    def _entry_key(self, key: str, generation: int, variant: Hashable) -> str:
        digest = hashlib.sha1(repr(variant).encode("utf-8")).hexdigest()
        return f"{self.prefix}:{key}:{generation}:{digest}"

    def _generation(self, key: str) -> int:
        return int(self.client.get(self._generation_key(key)) or 0)

    def get(self, path: str, variant: Hashable = None) -> Optional[Any]:
        key = _normalize(path)
        raw = self.client.get(self._entry_key(key, self._generation(key), variant))
        return None if raw is None else json.loads(raw)

    def set(self, path: str, value: Any, variant: Hashable = None) -> None:
        key = _normalize(path)
        self.client.set(
            self._entry_key(key, self._generation(key), variant),
            json.dumps(value),
            ex=self.ttl_seconds,
        )

    def get_or_compute(
        self, path: str, compute: Callable[[], Any], variant: Hashable = None
    ) -> Any:
        key = _normalize(path)
        try:
            entry_key = self._entry_key(key, self._generation(key), variant)
            raw = self.client.get(entry_key)
        except RedisError:
            logger.warning("View cache unavailable, computing %s directly", key)
            return compute()
        if raw is not None:
            return json.loads(raw)

        value = compute()
        try:
            self.client.set(entry_key, json.dumps(value), ex=self.ttl_seconds)
        except RedisError:
            logger.warning("Failed to store view cache entry for %s", key)
        return value

    def invalidate(self, path: str) -> None:
        """Hide every cached variant of ``path`` from all workers."""
        key = _normalize(path)
        try:
            self.client.incr(self._generation_key(key))
        except RedisError:
            # Entries still expire after ttl_seconds.
            logger.exception("Failed to invalidate view cache for %s", key)

    def __contains__(self, path: str) -> bool:
        key = _normalize(path)
        pattern = f"{self.prefix}:{key}:{self._generation(key)}:*"
        return next(iter(self.client.scan_iter(match=pattern)), None) is not None


def _build_view_cache(app):
    ttl = app.config.get("VIEW_CACHE_TTL", DEFAULT_TTL)
    url = app.config.get("VIEW_CACHE_REDIS_URL")
    if url:
        pool = ConnectionPool.from_url(
            url,
            max_connections=app.config.get("REDIS_MAX_CONNECTIONS", 20),
            decode_responses=True,
        )
        app.extensions["redis_pool"] = pool
        return RedisViewCache(Redis(connection_pool=pool), ttl_seconds=ttl)
    return ViewCache(
        ttl_seconds=ttl,
        max_variants=app.config.get("VIEW_CACHE_MAX_VARIANTS", DEFAULT_MAX_VARIANTS),
    )


def init_view_cache(app):
    cache = app.extensions.get("view_cache")
    if cache is None:
        cache = app.extensions["view_cache"] = _build_view_cache(app)
    return cache


def get_view_cache():
    return init_view_cache(current_app._get_current_object())


def revalidate_path(path: str) -> None:
    """Mark the cached data for ``path`` as stale."""
    get_view_cache().invalidate(path)
