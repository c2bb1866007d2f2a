"""Polling relay webhook endpoint."""
from __future__ import annotations

from fastapi import APIRouter, Depends

from app.api import deps
from app.schemas import RelayWebhookRequest, SuccessResponse
from app.services.relay_inbox import RelayInboxService
from app.utils.exceptions import StoreError, handle_missing_parameters, handle_store_error

router = APIRouter(tags=["relay"])


@router.post("/push-foo-webhook", response_model=SuccessResponse)
async def push_foo_webhook(
    payload: RelayWebhookRequest,
    inbox: RelayInboxService = Depends(deps.get_relay_inbox),
) -> SuccessResponse:
    """Queue a relay notification for the device's poller."""

    if not payload.user_id or not payload.device_id or not payload.notification:
        raise handle_missing_parameters()
    try:
        await inbox.store_notification(payload.user_id, payload.device_id, payload.notification)
    except StoreError as exc:
        raise handle_store_error(exc, "Failed to process notification") from exc
    return SuccessResponse()
