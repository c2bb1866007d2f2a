"""Async client for the application's own notification API."""
from __future__ import annotations

from typing import Any, Optional

import httpx
from loguru import logger

from app.config import Settings, settings as default_settings
from app.schemas.push import DeviceSubscription, PushNotificationRequest, PushStatusResponse
from app.utils.exceptions import (
    PushDeliveryError,
    SubscriptionExpired,
    SubscriptionNotFound,
    TransientNetworkError,
)


class ChatApiClient:
    """Call ``/api/*`` endpoints the way the web frontend does."""

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        client: Optional[httpx.AsyncClient] = None,
        config: Settings = default_settings,
    ) -> None:
        self.config = config
        self._client = client or httpx.AsyncClient(
            base_url=base_url, timeout=config.HTTP_TIMEOUT_SECONDS
        )

    def _url(self, name: str) -> str:
        return f"{self.config.API_PREFIX}/{name}"

    async def _request(self, method: str, name: str, json: Any = None) -> httpx.Response:
        try:
            return await self._client.request(method, self._url(name), json=json)
        except httpx.HTTPError as exc:
            logger.error("API request failed", endpoint=name, error=str(exc))
            raise TransientNetworkError(f"{name} request failed", {"error": str(exc)}) from exc

    @staticmethod
    def _error_body(response: httpx.Response) -> dict[str, Any]:
        try:
            body = response.json()
        except ValueError:
            return {"error": response.text}
        return body if isinstance(body, dict) else {"error": body}

    async def _post_expect_success(self, name: str, payload: dict[str, Any]) -> None:
        response = await self._request("POST", name, payload)
        if response.is_success:
            return
        body = self._error_body(response)
        raise TransientNetworkError(
            f"{name} returned {response.status_code}",
            {"status": response.status_code, **body},
        )

    async def save_subscription(self, user_id: str, subscription: DeviceSubscription) -> None:
        await self._post_expect_success(
            "save-subscription", {"userId": user_id, "subscription": subscription.to_json()}
        )

    async def delete_subscription(self, user_id: str) -> None:
        await self._post_expect_success("delete-subscription", {"userId": user_id})

    async def push_status(self) -> PushStatusResponse:
        response = await self._request("GET", "push-status")
        if not response.is_success:
            raise TransientNetworkError(f"push-status returned {response.status_code}")
        return PushStatusResponse.model_validate(response.json())

    async def vapid_public_key(self) -> Optional[str]:
        response = await self._request("GET", "vapid-public-key")
        if not response.is_success:
            raise TransientNetworkError(f"vapid-public-key returned {response.status_code}")
        return response.json().get("publicKey")

    async def push_notification(self, request: PushNotificationRequest) -> None:
        """Ask the server to deliver a message alert.

        Raises :class:`SubscriptionExpired` / :class:`SubscriptionNotFound` when the
        recipient's subscription should be deleted.
        """

        response = await self._request("POST", "push-notification", request.to_json())
        if response.is_success:
            return
        body = self._error_body(response)
        message = str(body.get("error", f"push-notification returned {response.status_code}"))
        if response.status_code == 410:
            raise SubscriptionExpired(message, status_code=410, details=body)
        if response.status_code == 404:
            raise SubscriptionNotFound(message, status_code=404, details=body)
        raise PushDeliveryError(message, status_code=response.status_code, details=body)

    async def aclose(self) -> None:
        await self._client.aclose()


__all__ = ["ChatApiClient"]
