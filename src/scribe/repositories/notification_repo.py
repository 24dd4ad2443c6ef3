"""Notification inbox repository."""

from datetime import datetime

from sqlalchemy import select, update

from scribe.db.models.notification import NotificationRow
from scribe.repositories.base import BaseRepository


class NotificationRepository(BaseRepository[NotificationRow]):
    model_class = NotificationRow
    pk_field = "notification_id"

    async def list_unread(self, user_id: str, limit: int = 10) -> list[NotificationRow]:
        stmt = (
            select(NotificationRow)
            .where(
                NotificationRow.user_id == user_id,
                NotificationRow.read_at.is_(None),
            )
            .order_by(NotificationRow.delivered_at.desc(), NotificationRow.created_at.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def mark_read(self, notification_id: str, user_id: str, read_at: datetime) -> bool:
        stmt = (
            update(NotificationRow)
            .where(
                NotificationRow.notification_id == notification_id,
                NotificationRow.user_id == user_id,
            )
            .values(read_at=read_at)
        )
        result = await self.session.execute(stmt)
        return result.rowcount > 0
