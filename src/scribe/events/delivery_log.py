"""Delivery attempt log: the only durable state the dispatcher owns."""

from abc import ABC, abstractmethod
from datetime import datetime

from scribe.models.delivery import DeliveryAttempt
from scribe.models.enums import DeliveryStatus
from scribe.models.envelope import EventEnvelope


class DeliveryStore(ABC):
    """Persists attempts and the exact wire body of every dispatched envelope.

    Retries resend the stored body so the receiver sees the same envelope id and
    signature as on the first attempt.
    """

    @abstractmethod
    async def save_envelope(self, envelope: EventEnvelope, body: bytes, scope: str | None = None) -> None:
        ...

    @abstractmethod
    async def get_envelope_body(self, envelope_id: str) -> bytes | None:
        ...

    @abstractmethod
    async def create(self, attempt: DeliveryAttempt) -> DeliveryAttempt:
        ...

    @abstractmethod
    async def save(self, attempt: DeliveryAttempt) -> DeliveryAttempt:
        ...

    @abstractmethod
    async def get(self, attempt_id: str) -> DeliveryAttempt | None:
        ...

    @abstractmethod
    async def list_due(self, now: datetime, limit: int = 100) -> list[DeliveryAttempt]:
        """Attempts with ``status = retrying`` and ``next_retry_at <= now``."""
        ...

    @abstractmethod
    async def list_for_subscriber(self, subscriber_id: str, limit: int = 50) -> list[DeliveryAttempt]:
        ...

    @abstractmethod
    async def list_for_envelope(self, envelope_id: str) -> list[DeliveryAttempt]:
        ...


class InMemoryDeliveryStore(DeliveryStore):
    def __init__(self) -> None:
        self._attempts: dict[str, DeliveryAttempt] = {}
        self._bodies: dict[str, bytes] = {}

    async def save_envelope(self, envelope: EventEnvelope, body: bytes, scope: str | None = None) -> None:
        self._bodies[envelope.id] = body

    async def get_envelope_body(self, envelope_id: str) -> bytes | None:
        return self._bodies.get(envelope_id)

    async def create(self, attempt: DeliveryAttempt) -> DeliveryAttempt:
        self._attempts[attempt.id] = attempt.model_copy()
        return attempt

    async def save(self, attempt: DeliveryAttempt) -> DeliveryAttempt:
        self._attempts[attempt.id] = attempt.model_copy()
        return attempt

    async def get(self, attempt_id: str) -> DeliveryAttempt | None:
        attempt = self._attempts.get(attempt_id)
        return attempt.model_copy() if attempt else None

    async def list_due(self, now: datetime, limit: int = 100) -> list[DeliveryAttempt]:
        due = [
            a
            for a in self._attempts.values()
            if a.status == DeliveryStatus.RETRYING
            and a.next_retry_at is not None
            and a.next_retry_at <= now
        ]
        due.sort(key=lambda a: a.next_retry_at)
        return [a.model_copy() for a in due[:limit]]

    async def list_for_subscriber(self, subscriber_id: str, limit: int = 50) -> list[DeliveryAttempt]:
        return [a.model_copy() for a in self._attempts.values() if a.subscriber_id == subscriber_id][:limit]

    async def list_for_envelope(self, envelope_id: str) -> list[DeliveryAttempt]:
        return [a.model_copy() for a in self._attempts.values() if a.envelope_id == envelope_id]

    def all(self) -> list[DeliveryAttempt]:
        return [a.model_copy() for a in self._attempts.values()]
