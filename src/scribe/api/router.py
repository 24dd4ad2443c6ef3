"""Master API router mounted at /api/v1."""

from fastapi import APIRouter

from scribe.api.routes import deliveries, deployments, events, health, notifications, webhooks

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(health.router, tags=["Health"])
api_router.include_router(webhooks.router)
api_router.include_router(deliveries.router)
api_router.include_router(events.router)
api_router.include_router(notifications.router)
api_router.include_router(deployments.router)
