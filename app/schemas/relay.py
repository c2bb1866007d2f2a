"""Pydantic models for the polling relay."""
from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from app.schemas.push import CamelModel


class RelayNotificationContent(BaseModel):
    title: str
    body: str
    data: dict[str, Any] = Field(default_factory=dict)


class PendingNotification(BaseModel):
    """A queued relay notification as returned by the poll endpoint."""

    id: str
    title: str = ""
    body: str = ""
    data: dict[str, Any] = Field(default_factory=dict)

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, value: Any) -> str:
        return str(value)

    @field_validator("data", mode="before")
    @classmethod
    def default_data(cls, value: Any) -> dict[str, Any]:
        return value or {}


class RelayWebhookRequest(CamelModel):
    user_id: Optional[str] = None
    device_id: Optional[str] = None
    notification: Optional[dict[str, Any]] = None
