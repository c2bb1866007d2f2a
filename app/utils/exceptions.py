"""Custom exception classes and error handling utilities."""
from typing import Any, Dict, Optional
from fastapi import HTTPException, status
from loguru import logger


class ChatNotifyException(Exception):
    """Base exception for the application."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class FeatureUnavailableError(ChatNotifyException):
    """The current device or browser cannot use the requested feature."""
    pass


class NotConfiguredError(ChatNotifyException):
    """Server-side keys or configuration are missing."""
    pass


class PermissionDeniedError(ChatNotifyException):
    """The user declined notification permission."""
    pass


class TransientNetworkError(ChatNotifyException):
    """A request failed because of connectivity or a non-success response."""
    pass


class StoreError(ChatNotifyException):
    """Realtime backend read/write failures."""
    pass


class PartialFailureError(ChatNotifyException):
    """A multi-step flow completed its first step but not the following one."""
    pass


class PushDeliveryError(ChatNotifyException):
    """A Web Push delivery failed for an unclassified reason."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.status_code = status_code
        super().__init__(message, details)


class StaleSubscriptionError(PushDeliveryError):
    """The push service rejected the subscription; the stored copy must be deleted."""
    pass


class SubscriptionExpired(StaleSubscriptionError):
    """Subscription has expired or is no longer valid (410)."""
    pass


class SubscriptionNotFound(StaleSubscriptionError):
    """Push subscription or its user no longer exists (404)."""
    pass


def error_response(status_code: int, message: str, **extra: Any) -> HTTPException:
    """Build an HTTPException whose body is ``{"error": message, ...}``."""

    return HTTPException(status_code=status_code, detail={"error": message, **extra})


def handle_missing_parameters(message: str = "Missing required parameters") -> HTTPException:
    """Handle absent request fields."""
    logger.warning("Rejected request", reason=message)
    return error_response(status.HTTP_400_BAD_REQUEST, message)


def handle_store_error(error: Exception, message: str) -> HTTPException:
    """Handle realtime backend errors and return appropriate HTTP response."""
    logger.error(f"Realtime store error: {error}")
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, message)


def handle_not_configured_error(error: NotConfiguredError) -> HTTPException:
    """Handle missing VAPID configuration."""
    logger.warning(f"Push not configured: {error.message}")
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, error.message)


def handle_push_delivery_error(error: PushDeliveryError) -> HTTPException:
    """Map a classified delivery failure onto the status the frontend expects."""
    if isinstance(error, SubscriptionExpired):
        status_code = status.HTTP_410_GONE
        message = "Subscription has expired or is no longer valid"
    elif isinstance(error, SubscriptionNotFound):
        status_code = status.HTTP_404_NOT_FOUND
        message = "Push subscription not found"
    else:
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
        message = "Failed to send push notification"
    logger.error(f"Push delivery error: {error.message}", status=error.status_code)
    return error_response(
        status_code,
        message,
        details=error.message,
        code=error.status_code or status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
