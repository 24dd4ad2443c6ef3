"""Webhook subscriber, dispatched envelope and delivery attempt tables."""

from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from scribe.db.base import Base, TimestampMixin


class WebhookEndpointRow(Base, TimestampMixin):
    __tablename__ = "webhook_endpoints"

    endpoint_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    destination_url: Mapped[str] = mapped_column(String(2000), nullable=False)
    shared_secret: Mapped[str] = mapped_column(String(500), nullable=False)
    subscribed_events: Mapped[list] = mapped_column(JSON, nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)
    scope_id: Mapped[str | None] = mapped_column(String(128), nullable=True, index=True)
    consecutive_failures: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class WebhookEventRow(Base, TimestampMixin):
    """Exact wire body of a dispatched envelope, kept for retries."""

    __tablename__ = "webhook_events"

    envelope_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    event_type: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    scope_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    occurred_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class DeliveryAttemptRow(Base, TimestampMixin):
    __tablename__ = "delivery_attempts"

    attempt_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    subscriber_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("webhook_endpoints.endpoint_id"), nullable=False, index=True
    )
    envelope_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("webhook_events.envelope_id"), nullable=False, index=True
    )
    event_type: Mapped[str] = mapped_column(String(100), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    attempt_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_attempt_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    next_retry_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True, index=True)
    response_status: Mapped[int | None] = mapped_column(Integer, nullable=True)
    response_body: Mapped[str | None] = mapped_column(Text, nullable=True)
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)
