"""Event dispatch route."""

from typing import Any

from fastapi import APIRouter
from pydantic import BaseModel, ConfigDict, Field

from scribe.dependencies import AppServices

router = APIRouter(tags=["Events"])


class EventDispatchRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    event_type: str
    data: dict[str, Any] = Field(default_factory=dict)
    scope_id: str | None = None
    user_id: str | None = None


@router.post("/events")
async def dispatch_event(body: EventDispatchRequest, services: AppServices) -> dict:
    """Dispatch an event and return once every delivery and channel has finished."""
    summary = await services.dispatcher.dispatch(
        body.event_type,
        body.data,
        body.scope_id,
        user_id=body.user_id,
    )
    return summary.model_dump(mode="json")
