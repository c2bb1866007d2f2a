"""API router mounted under the configured prefix."""
from fastapi import APIRouter

from app.api.endpoints import push, relay, subscriptions


api_router = APIRouter()
api_router.include_router(subscriptions.router)
api_router.include_router(push.router)
api_router.include_router(relay.router)
