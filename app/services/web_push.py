"""Web Push delivery through ``pywebpush`` with failure classification."""
from __future__ import annotations

import json
from typing import Any, Callable, Optional

import requests
from loguru import logger
from pywebpush import WebPushException, webpush

from app.config import Settings, settings as default_settings
from app.schemas.push import DeviceSubscription, NotificationPayload, PushStatusResponse
from app.utils.exceptions import (
    NotConfiguredError,
    PushDeliveryError,
    SubscriptionExpired,
    SubscriptionNotFound,
)


def classify_push_failure(exc: WebPushException) -> PushDeliveryError:
    """Turn a push service rejection into the matching application error."""

    response = getattr(exc, "response", None)
    status_code: Optional[int] = response.status_code if response is not None else None
    message = str(exc)
    if status_code == 410:
        return SubscriptionExpired(message, status_code=status_code)
    if status_code == 404:
        return SubscriptionNotFound(message, status_code=status_code)
    return PushDeliveryError(message, status_code=status_code)


class WebPushService:
    """Send encrypted Web Push messages signed with the configured VAPID keys."""

    def __init__(
        self,
        config: Settings = default_settings,
        sender: Callable[..., Any] = webpush,
    ) -> None:
        self.config = config
        self._sender = sender

    def status(self) -> PushStatusResponse:
        return PushStatusResponse(
            push_notifications_configured=self.config.push_configured,
            public_key_available=bool(self.config.VAPID_PUBLIC_KEY),
            private_key_available=bool(self.config.VAPID_PRIVATE_KEY),
        )

    def ensure_configured(self) -> None:
        if not self.config.push_configured:
            raise NotConfiguredError(
                "Push notification service is not configured. VAPID keys are missing or invalid."
            )

    def send_notification(self, subscription: DeviceSubscription, payload: NotificationPayload) -> None:
        """Deliver ``payload`` to one subscription.

        Raises :class:`SubscriptionExpired` (410) or :class:`SubscriptionNotFound`
        (404) when the subscription should be deleted, and
        :class:`PushDeliveryError` for anything else, including transport and
        key errors raised before the push service answers.
        """

        self.ensure_configured()
        try:
            self._sender(
                subscription_info=subscription.to_subscription_info(),
                data=json.dumps(payload.to_json()),
                vapid_private_key=self.config.VAPID_PRIVATE_KEY,
                vapid_claims={"sub": self.config.VAPID_SUBJECT},
            )
        except WebPushException as exc:
            error = classify_push_failure(exc)
            logger.warning(
                "WebPush delivery failed",
                endpoint=subscription.endpoint,
                status=error.status_code,
                error=error.message,
            )
            raise error from exc
        except (requests.RequestException, ValueError) as exc:
            logger.error("WebPush request failed", endpoint=subscription.endpoint, error=str(exc))
            raise PushDeliveryError(
                f"Push service request failed: {exc}", details={"error": str(exc)}
            ) from exc
        logger.info("WebPush delivered", endpoint=subscription.endpoint, tag=payload.tag)


__all__ = ["WebPushService", "classify_push_failure"]
