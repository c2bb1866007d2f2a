"""Encoding helpers for Web Push key material."""
from __future__ import annotations

import base64


def url_base64_to_bytes(value: str) -> bytes:
    """Decode a base64url string, restoring any stripped ``=`` padding."""

    padding = "=" * ((4 - len(value) % 4) % 4)
    return base64.urlsafe_b64decode(value + padding)


__all__ = ["url_base64_to_bytes"]
