"""Web Push configuration and delivery endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends

from app.api import deps
from app.schemas import PublicKeyResponse, PushNotificationRequest, PushStatusResponse, SuccessResponse
from app.services.notification_service import NotificationService
from app.services.web_push import WebPushService
from app.utils.exceptions import (
    NotConfiguredError,
    PushDeliveryError,
    handle_missing_parameters,
    handle_not_configured_error,
    handle_push_delivery_error,
)

router = APIRouter(tags=["push"])


@router.get("/push-status", response_model=PushStatusResponse)
def push_status(web_push: WebPushService = Depends(deps.get_web_push_service)) -> PushStatusResponse:
    """Report whether VAPID keys are present without exposing them."""

    return web_push.status()


@router.get("/vapid-public-key", response_model=PublicKeyResponse)
def vapid_public_key(web_push: WebPushService = Depends(deps.get_web_push_service)) -> PublicKeyResponse:
    return PublicKeyResponse(public_key=web_push.config.VAPID_PUBLIC_KEY)


@router.post("/push-notification", response_model=SuccessResponse)
async def push_notification(
    payload: PushNotificationRequest,
    service: NotificationService = Depends(deps.get_notification_service),
) -> SuccessResponse:
    """Send a new-message alert to the recipient's subscription.

    410 and 404 tell the caller to delete the recipient's stored subscription.
    """

    try:
        service.web_push.ensure_configured()
    except NotConfiguredError as exc:
        raise handle_not_configured_error(exc) from exc
    if payload.subscription is None:
        raise handle_missing_parameters("Missing subscription")
    try:
        await service.send_message_notification(payload)
    except PushDeliveryError as exc:
        raise handle_push_delivery_error(exc) from exc
    return SuccessResponse()
