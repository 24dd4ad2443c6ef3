"""Background retry sweeper: re-delivers due attempts on a fixed interval."""

import asyncio
import logging

from scribe.config import settings
from scribe.events.retry import AttemptClaim
from scribe.models.delivery import DeliveryAttempt

logger = logging.getLogger(__name__)

_LOCK_PREFIX = "scribe:retry:lock:"


def redis_claim(redis, ttl_seconds: int | None = None) -> AttemptClaim:
    """Per-attempt distributed lock via Redis SET NX.

    The lock expires on its own, so a crashed instance never strands an attempt.
    """
    ttl = ttl_seconds or max(int(settings.webhook_timeout_seconds) * 2, 60)

    async def claim(attempt: DeliveryAttempt) -> bool:
        # attempt_count is part of the key so the next scheduled retry can be claimed again
        key = f"{_LOCK_PREFIX}{attempt.id}:{attempt.attempt_count}"
        locked = await redis.set(key, "1", nx=True, ex=ttl)
        if not locked:
            logger.debug("Delivery %s already claimed by another instance", attempt.id)
        return bool(locked)

    return claim


async def sweep_once(app) -> int:
    """Run one sweep; returns how many attempts were due."""
    services = getattr(app.state, "services", None)
    if services is None:
        return 0
    redis = getattr(app.state, "redis", None)
    result = await services.retry.run_due(
        limit=settings.retry_batch_size,
        claim=redis_claim(redis) if redis is not None else None,
    )
    return result.due


async def run_retry_sweeper(app) -> None:
    """Background task that retries due deliveries every poll interval."""
    interval = settings.retry_poll_interval_seconds
    logger.info("Retry sweeper started (poll_interval=%ds)", interval)

    while True:
        try:
            await asyncio.sleep(interval)
            due = await sweep_once(app)
            if due:
                logger.info("Retry sweeper processed %d due deliveries", due)
        except asyncio.CancelledError:
            logger.info("Retry sweeper stopped")
            break
        except Exception as exc:
            logger.exception("Retry sweeper error: %s", exc)
