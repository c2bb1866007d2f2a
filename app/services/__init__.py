"""Service layer package."""

from app.services.notification_service import NotificationService
from app.services.relay_inbox import RelayInboxService
from app.services.web_push import WebPushService

__all__ = ["NotificationService", "RelayInboxService", "WebPushService"]
