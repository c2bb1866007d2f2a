"""Short-lived JSON cache for sender profiles, backed by Redis when configured."""

from __future__ import annotations

import json
import threading
import time
from typing import Any, Callable, Dict, Optional, Tuple

import redis
from loguru import logger

from app.config import settings

KEY_PREFIX = "chat-notify"


class CacheBackend:
    """Namespaced cache with per-entry expiry.

    Every value is mirrored into a process-local table. Redis, when given, is
    consulted first; the first Redis error detaches it for the rest of the
    process and the local table keeps serving.
    """

    def __init__(
        self,
        redis_url: Optional[str] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: Dict[str, Tuple[Optional[float], str]] = {}
        self._redis: Optional[redis.Redis] = (
            redis.Redis.from_url(redis_url, decode_responses=True) if redis_url else None
        )

    @property
    def uses_redis(self) -> bool:
        return self._redis is not None

    @staticmethod
    def _key(namespace: str, key: str) -> str:
        return f"{KEY_PREFIX}:{namespace}:{key}"

    def _detach_redis(self, exc: redis.RedisError) -> None:
        logger.warning("Redis cache unavailable, using local cache", error=str(exc))
        self._redis = None

    def get(self, namespace: str, key: str) -> Any | None:
        full_key = self._key(namespace, key)
        if self._redis is not None:
            try:
                raw = self._redis.get(full_key)
            except redis.RedisError as exc:
                self._detach_redis(exc)
            else:
                if raw is not None:
                    return json.loads(raw)

        with self._lock:
            expires_at, raw = self._entries.get(full_key, (None, None))
            if raw is None:
                return None
            if expires_at is not None and expires_at <= self._clock():
                del self._entries[full_key]
                return None
        return json.loads(raw)

    def set(self, namespace: str, key: str, value: Any, ttl_seconds: int) -> None:
        full_key = self._key(namespace, key)
        raw = json.dumps(value)
        if self._redis is not None:
            try:
                self._redis.set(full_key, raw, ex=ttl_seconds or None)
            except redis.RedisError as exc:
                self._detach_redis(exc)
        expires_at = self._clock() + ttl_seconds if ttl_seconds else None
        with self._lock:
            self._entries[full_key] = (expires_at, raw)

    def invalidate(self, namespace: str, key: str) -> None:
        full_key = self._key(namespace, key)
        if self._redis is not None:
            try:
                self._redis.delete(full_key)
            except redis.RedisError as exc:
                self._detach_redis(exc)
        with self._lock:
            self._entries.pop(full_key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


cache_backend = CacheBackend(str(settings.REDIS_URL) if settings.REDIS_URL else None)


__all__ = ["CacheBackend", "KEY_PREFIX", "cache_backend"]
