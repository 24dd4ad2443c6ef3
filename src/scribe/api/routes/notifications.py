"""User notification inbox and channel configuration routes."""

from fastapi import APIRouter, Query
from pydantic import BaseModel, ConfigDict, Field

from scribe.dependencies import AppServices
from scribe.errors.exceptions import NotFoundError
from scribe.events.registry import validate_destination_url
from scribe.models.notification import NotificationPreferences, PushSubscription, SlackIntegration

router = APIRouter(tags=["Notifications"])


# --- Request models ---


class MarkReadRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    user_id: str


class PushSubscriptionRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    endpoint: str = Field(..., min_length=1)
    keys: dict[str, str] = Field(default_factory=dict)


class SlackIntegrationRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    webhook_url: str
    organization_id: str | None = None
    team_name: str | None = None
    active: bool = True


# --- Inbox ---


@router.get("/users/{user_id}/notifications")
async def list_notifications(
    user_id: str,
    services: AppServices,
    limit: int = Query(10, ge=1, le=100),
) -> list[dict]:
    notifications = await services.notifications.list_unread(user_id, limit)
    return [n.model_dump(mode="json") for n in notifications]


@router.post("/notifications/{notification_id}/read")
async def mark_notification_read(notification_id: str, body: MarkReadRequest, services: AppServices) -> dict:
    if not await services.notifications.mark_read(notification_id, body.user_id):
        raise NotFoundError("Notification", notification_id)
    return {"notification_id": notification_id, "read": True}


# --- Channel configuration ---


@router.put("/users/{user_id}/push-subscription")
async def set_push_subscription(user_id: str, body: PushSubscriptionRequest, services: AppServices) -> dict:
    subscription = PushSubscription(user_id=user_id, endpoint=body.endpoint, keys=body.keys)
    await services.channel_config.set_push_subscription(subscription)
    return {"user_id": user_id, "endpoint": subscription.endpoint}


@router.delete("/users/{user_id}/push-subscription", status_code=204)
async def remove_push_subscription(user_id: str, services: AppServices) -> None:
    await services.channel_config.remove_push_subscription(user_id)


@router.put("/users/{user_id}/slack-integration")
async def set_slack_integration(user_id: str, body: SlackIntegrationRequest, services: AppServices) -> dict:
    integration = SlackIntegration(
        user_id=user_id,
        webhook_url=validate_destination_url(body.webhook_url),
        organization_id=body.organization_id,
        team_name=body.team_name,
        active=body.active,
    )
    await services.channel_config.set_slack_integration(integration)
    return integration.model_dump(mode="json", exclude={"webhook_url"})


@router.get("/users/{user_id}/notification-preferences")
async def get_notification_preferences(user_id: str, services: AppServices) -> dict:
    preferences = await services.channel_config.get_preferences(user_id)
    return preferences.model_dump()


@router.put("/users/{user_id}/notification-preferences")
async def set_notification_preferences(
    user_id: str, body: NotificationPreferences, services: AppServices
) -> dict:
    await services.channel_config.set_preferences(user_id, body)
    return body.model_dump()
