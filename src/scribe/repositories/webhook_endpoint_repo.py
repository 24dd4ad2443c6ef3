"""Webhook endpoint (subscriber) repository."""

from sqlalchemy import or_, select, update

from scribe.db.models.webhook import WebhookEndpointRow
from scribe.repositories.base import BaseRepository


class WebhookEndpointRepository(BaseRepository[WebhookEndpointRow]):
    model_class = WebhookEndpointRow
    pk_field = "endpoint_id"

    async def list_active_for_scope(self, scope: str | None) -> list[WebhookEndpointRow]:
        """Active endpoints that may receive events for *scope*.

        Global endpoints (no scope) always qualify. Event filtering happens on
        the decoded rows since the subscribed-events column is JSON.
        """
        stmt = select(WebhookEndpointRow).where(WebhookEndpointRow.active == True)  # noqa: E712
        if scope is not None:
            stmt = stmt.where(
                or_(WebhookEndpointRow.scope_id.is_(None), WebhookEndpointRow.scope_id == scope)
            )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_all(self, scope: str | None = None, active_only: bool = False) -> list[WebhookEndpointRow]:
        stmt = select(WebhookEndpointRow).order_by(WebhookEndpointRow.created_at)
        if scope is not None:
            stmt = stmt.where(WebhookEndpointRow.scope_id == scope)
        if active_only:
            stmt = stmt.where(WebhookEndpointRow.active == True)  # noqa: E712
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def record_failure(
        self, endpoint_id: str, failure_threshold: int | None = None
    ) -> WebhookEndpointRow | None:
        """Increment the consecutive-failure counter in one statement.

        The row lock taken by the UPDATE serializes concurrent abandonments, so
        no increment is lost. Deactivates the endpoint once the counter reaches
        *failure_threshold*.
        """
        stmt = (
            update(WebhookEndpointRow)
            .where(WebhookEndpointRow.endpoint_id == endpoint_id)
            .values(consecutive_failures=WebhookEndpointRow.consecutive_failures + 1)
            .returning(WebhookEndpointRow.consecutive_failures)
            .execution_options(synchronize_session=False)
        )
        failures = (await self.session.execute(stmt)).scalar_one_or_none()
        if failures is None:
            return None
        if failure_threshold and failures >= failure_threshold:
            await self.session.execute(
                update(WebhookEndpointRow)
                .where(WebhookEndpointRow.endpoint_id == endpoint_id)
                .values(active=False)
                .execution_options(synchronize_session=False)
            )
        return await self.session.get(WebhookEndpointRow, endpoint_id, populate_existing=True)

    async def reset_failures(self, endpoint_id: str) -> WebhookEndpointRow | None:
        await self.session.execute(
            update(WebhookEndpointRow)
            .where(
                WebhookEndpointRow.endpoint_id == endpoint_id,
                WebhookEndpointRow.consecutive_failures != 0,
            )
            .values(consecutive_failures=0)
            .execution_options(synchronize_session=False)
        )
        return await self.session.get(WebhookEndpointRow, endpoint_id, populate_existing=True)
