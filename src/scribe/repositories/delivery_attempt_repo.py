"""Delivery attempt and stored envelope repositories."""

from datetime import datetime

from sqlalchemy import select

from scribe.db.models.webhook import DeliveryAttemptRow, WebhookEventRow
from scribe.models.enums import DeliveryStatus
from scribe.repositories.base import BaseRepository


class WebhookEventRepository(BaseRepository[WebhookEventRow]):
    model_class = WebhookEventRow
    pk_field = "envelope_id"


class DeliveryAttemptRepository(BaseRepository[DeliveryAttemptRow]):
    model_class = DeliveryAttemptRow
    pk_field = "attempt_id"

    async def list_due(self, now: datetime, limit: int = 100) -> list[DeliveryAttemptRow]:
        stmt = (
            select(DeliveryAttemptRow)
            .where(
                DeliveryAttemptRow.status == DeliveryStatus.RETRYING.value,
                DeliveryAttemptRow.next_retry_at <= now,
            )
            .order_by(DeliveryAttemptRow.next_retry_at)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_by_subscriber(self, subscriber_id: str, limit: int = 50) -> list[DeliveryAttemptRow]:
        stmt = (
            select(DeliveryAttemptRow)
            .where(DeliveryAttemptRow.subscriber_id == subscriber_id)
            .order_by(DeliveryAttemptRow.created_at.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_by_envelope(self, envelope_id: str) -> list[DeliveryAttemptRow]:
        return await self.list_by_field("envelope_id", envelope_id)
