"""Push subscription persistence endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends

from app.api import deps
from app.schemas import DeleteSubscriptionRequest, SaveSubscriptionRequest, SuccessResponse
from app.services.notification_service import NotificationService
from app.utils.exceptions import StoreError, handle_missing_parameters, handle_store_error

router = APIRouter(tags=["subscriptions"])


@router.post("/save-subscription", response_model=SuccessResponse)
async def save_subscription(
    payload: SaveSubscriptionRequest,
    service: NotificationService = Depends(deps.get_notification_service),
) -> SuccessResponse:
    """Store the device subscription on the user record, replacing any prior one."""

    if not payload.user_id or payload.subscription is None:
        raise handle_missing_parameters()
    try:
        await service.save_subscription(payload.user_id, payload.subscription)
    except StoreError as exc:
        raise handle_store_error(exc, "Failed to save subscription") from exc
    return SuccessResponse()


@router.post("/delete-subscription", response_model=SuccessResponse)
async def delete_subscription(
    payload: DeleteSubscriptionRequest,
    service: NotificationService = Depends(deps.get_notification_service),
) -> SuccessResponse:
    if not payload.user_id:
        raise handle_missing_parameters("Missing user ID")
    try:
        await service.delete_subscription(payload.user_id)
    except StoreError as exc:
        raise handle_store_error(exc, "Failed to delete subscription") from exc
    return SuccessResponse()
