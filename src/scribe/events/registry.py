"""Subscriber registry: registration-time validation and event/scope resolution."""

from abc import ABC, abstractmethod
from collections.abc import Iterable
from datetime import datetime, timezone
from urllib.parse import urlparse

from scribe.errors.exceptions import ConfigurationError, UnknownEventTypeError
from scribe.models.enums import EventType
from scribe.models.payloads import coerce_event_type
from scribe.models.subscriber import Subscriber
from scribe.services.id_generator import generate_id


def validate_destination_url(url: str) -> str:
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ConfigurationError(
            f"Destination URL must be an absolute http(s) URL: {url!r}",
            details={"destination_url": url},
        )
    return url


def validate_secret(secret: str | None) -> str:
    if not secret or not secret.strip():
        raise ConfigurationError("A non-empty signing secret is required")
    return secret


def validate_events(events: Iterable[str]) -> frozenset[EventType]:
    resolved = set()
    for event in events:
        try:
            resolved.add(coerce_event_type(event))
        except UnknownEventTypeError as exc:
            raise ConfigurationError(exc.message, details=exc.details) from None
    if not resolved:
        raise ConfigurationError("At least one subscribed event is required")
    return frozenset(resolved)


def new_subscriber(
    destination_url: str,
    shared_secret: str,
    subscribed_events: Iterable[str],
    scope_id: str | None = None,
    active: bool = True,
) -> Subscriber:
    """Validate configuration and build a subscriber with a fresh ``whk_`` id.

    Misconfiguration raises ``ConfigurationError`` here so it can never surface
    later as a delivery failure.
    """
    return Subscriber(
        id=generate_id("whk_"),
        destination_url=validate_destination_url(destination_url),
        shared_secret=validate_secret(shared_secret),
        subscribed_events=validate_events(subscribed_events),
        scope_id=scope_id,
        active=active,
        created_at=datetime.now(timezone.utc),
    )


def subscriber_matches(subscriber: Subscriber, event_type: EventType, scope: str | None) -> bool:
    """Apply the resolution rules in order: active, subscribed, scope.

    A subscriber without a scope is global and matches every scope.
    """
    if not subscriber.active:
        return False
    if event_type not in subscriber.subscribed_events:
        return False
    if scope is not None and subscriber.scope_id is not None:
        return subscriber.scope_id == scope
    return True


class SubscriberStore(ABC):
    """Persistence boundary for webhook subscribers."""

    @abstractmethod
    async def add(self, subscriber: Subscriber) -> Subscriber:
        ...

    @abstractmethod
    async def get(self, subscriber_id: str) -> Subscriber | None:
        ...

    @abstractmethod
    async def find(self, event_type: EventType, scope: str | None = None) -> list[Subscriber]:
        """Return every subscriber that should receive *event_type* for *scope*.

        The order of the returned list is unspecified; fan-out treats it as a set.
        """
        ...

    @abstractmethod
    async def record_outcome(
        self,
        subscriber_id: str,
        success: bool,
        failure_threshold: int | None = None,
    ) -> Subscriber | None:
        """Track consecutive abandoned deliveries.

        A success resets the counter. When a failure brings the counter to
        *failure_threshold* the subscriber is deactivated.
        """
        ...

    @abstractmethod
    async def update(self, subscriber: Subscriber) -> Subscriber:
        ...

    @abstractmethod
    async def list_all(self, scope: str | None = None, active_only: bool = False) -> list[Subscriber]:
        ...


def apply_update(subscriber: Subscriber, changes: dict) -> Subscriber:
    """Validate a partial update the same way registration does and return the new subscriber."""
    update: dict = {}
    if changes.get("destination_url") is not None:
        update["destination_url"] = validate_destination_url(changes["destination_url"])
    if changes.get("shared_secret") is not None:
        update["shared_secret"] = validate_secret(changes["shared_secret"])
    if changes.get("subscribed_events") is not None:
        update["subscribed_events"] = validate_events(changes["subscribed_events"])
    if "scope_id" in changes:
        update["scope_id"] = changes["scope_id"]
    if changes.get("active") is not None:
        update["active"] = changes["active"]
        if changes["active"]:
            update["consecutive_failures"] = 0
    return subscriber.model_copy(update=update)


class InMemorySubscriberStore(SubscriberStore):
    """Dict-backed store for tests and single-process embedding."""

    def __init__(self, subscribers: Iterable[Subscriber] = ()) -> None:
        self._subscribers: dict[str, Subscriber] = {s.id: s for s in subscribers}

    async def add(self, subscriber: Subscriber) -> Subscriber:
        self._subscribers[subscriber.id] = subscriber
        return subscriber

    async def get(self, subscriber_id: str) -> Subscriber | None:
        return self._subscribers.get(subscriber_id)

    async def find(self, event_type: EventType, scope: str | None = None) -> list[Subscriber]:
        return [s for s in self._subscribers.values() if subscriber_matches(s, event_type, scope)]

    async def record_outcome(
        self,
        subscriber_id: str,
        success: bool,
        failure_threshold: int | None = None,
    ) -> Subscriber | None:
        subscriber = self._subscribers.get(subscriber_id)
        if subscriber is None:
            return None
        if success:
            if subscriber.consecutive_failures:
                subscriber = subscriber.model_copy(update={"consecutive_failures": 0})
        else:
            failures = subscriber.consecutive_failures + 1
            update: dict = {"consecutive_failures": failures}
            if failure_threshold and failures >= failure_threshold:
                update["active"] = False
            subscriber = subscriber.model_copy(update=update)
        self._subscribers[subscriber_id] = subscriber
        return subscriber

    async def update(self, subscriber: Subscriber) -> Subscriber:
        self._subscribers[subscriber.id] = subscriber
        return subscriber

    async def list_all(self, scope: str | None = None, active_only: bool = False) -> list[Subscriber]:
        return [
            s
            for s in self._subscribers.values()
            if (scope is None or s.scope_id == scope) and (s.active or not active_only)
        ]

    def all(self) -> list[Subscriber]:
        return list(self._subscribers.values())
