"""Pydantic models for presence records."""
from __future__ import annotations

from typing import Any, Optional

from pydantic import field_validator

from app.schemas.push import CamelModel


class PresenceRecord(CamelModel):
    """Per-user online flag and last-seen epoch milliseconds."""

    online: bool = False
    last_seen: Optional[int] = None

    @field_validator("online", mode="before")
    @classmethod
    def coerce_online(cls, value: Any) -> bool:
        return bool(value)
