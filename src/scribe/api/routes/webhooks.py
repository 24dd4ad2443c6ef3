"""Webhook subscriber management routes."""

from fastapi import APIRouter, Query

from scribe.dependencies import AppServices
from scribe.errors.exceptions import NotFoundError
from scribe.events.registry import apply_update, new_subscriber
from scribe.models.subscriber import Subscriber, SubscriberCreate, SubscriberUpdate

router = APIRouter(tags=["Webhooks"])


async def _get_or_404(services: AppServices, webhook_id: str) -> Subscriber:
    subscriber = await services.subscribers.get(webhook_id)
    if subscriber is None:
        raise NotFoundError("Webhook", webhook_id)
    return subscriber


@router.post("/webhooks", status_code=201)
async def create_webhook(body: SubscriberCreate, services: AppServices) -> dict:
    subscriber = new_subscriber(
        destination_url=body.destination_url,
        shared_secret=body.shared_secret,
        subscribed_events=body.subscribed_events,
        scope_id=body.scope_id,
        active=body.active,
    )
    subscriber = await services.subscribers.add(subscriber)
    return subscriber.public_view()


@router.get("/webhooks")
async def list_webhooks(
    services: AppServices,
    scope_id: str | None = None,
    active_only: bool = False,
) -> list[dict]:
    subscribers = await services.subscribers.list_all(scope=scope_id, active_only=active_only)
    return [s.public_view() for s in subscribers]


@router.get("/webhooks/{webhook_id}")
async def get_webhook(webhook_id: str, services: AppServices) -> dict:
    subscriber = await _get_or_404(services, webhook_id)
    return subscriber.public_view()


@router.patch("/webhooks/{webhook_id}")
async def update_webhook(webhook_id: str, body: SubscriberUpdate, services: AppServices) -> dict:
    subscriber = await _get_or_404(services, webhook_id)
    subscriber = apply_update(subscriber, body.model_dump(exclude_unset=True))
    subscriber = await services.subscribers.update(subscriber)
    return subscriber.public_view()


@router.delete("/webhooks/{webhook_id}")
async def deactivate_webhook(webhook_id: str, services: AppServices) -> dict:
    """Deactivate rather than delete so the delivery history stays attributable."""
    subscriber = await _get_or_404(services, webhook_id)
    subscriber = await services.subscribers.update(subscriber.model_copy(update={"active": False}))
    return subscriber.public_view()


@router.get("/webhooks/{webhook_id}/deliveries")
async def list_webhook_deliveries(
    webhook_id: str,
    services: AppServices,
    limit: int = Query(50, ge=1, le=500),
) -> list[dict]:
    await _get_or_404(services, webhook_id)
    attempts = await services.deliveries.list_for_subscriber(webhook_id, limit)
    return [a.model_dump(mode="json") for a in attempts]
