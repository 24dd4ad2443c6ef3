"""Delivery attempt inspection and manual retry sweep."""

from fastapi import APIRouter

from scribe.config import settings
from scribe.dependencies import AppServices, RedisConn
from scribe.errors.exceptions import NotFoundError
from scribe.workers.retry_sweeper import redis_claim

router = APIRouter(tags=["Deliveries"])


@router.get("/deliveries/{attempt_id}")
async def get_delivery(attempt_id: str, services: AppServices) -> dict:
    attempt = await services.deliveries.get(attempt_id)
    if attempt is None:
        raise NotFoundError("Delivery attempt", attempt_id)
    return attempt.model_dump(mode="json")


@router.post("/deliveries/retry-sweep")
async def run_retry_sweep(services: AppServices, redis: RedisConn) -> dict:
    """Retry every due attempt now instead of waiting for the background sweeper."""
    result = await services.retry.run_due(
        limit=settings.retry_batch_size,
        claim=redis_claim(redis) if redis is not None else None,
    )
    return result.model_dump()
