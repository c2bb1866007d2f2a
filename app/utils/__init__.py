"""Utility helpers package."""

from app.utils.cache import CacheBackend, cache_backend
from app.utils.encoding import url_base64_to_bytes

__all__ = ["CacheBackend", "cache_backend", "url_base64_to_bytes"]
