"""Domain events primitives for the modular monolith."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from typing import Any, Dict, Type
from uuid import UUID, uuid4

_EVENT_TYPES: Dict[str, Type[DomainEvent]] = {}


@dataclass(frozen=True)
class DomainEvent:
    """Base domain event (immutable).

    Concrete subclasses register themselves by class name so events stored
    in the outbox can be rebuilt with ``event_from_payload``.
    """

    aggregate_id: UUID
    event_id: UUID = field(default_factory=uuid4)
    occurred_on: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    event_name: str = field(init=False)

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        _EVENT_TYPES[cls.__name__] = cls

    def __post_init__(self) -> None:
        object.__setattr__(self, "event_name", self.__class__.__name__)


def event_from_payload(event_name: str, payload: Dict[str, Any]) -> DomainEvent:
    """Rebuild a registered event from its JSON payload.

    Raises ``LookupError`` for unknown event names.
    """
    event_class = _EVENT_TYPES.get(event_name)
    if event_class is None:
        raise LookupError(f"Unknown domain event type: {event_name}")

    kwargs = {
        f.name: payload[f.name]
        for f in fields(event_class)
        if f.init and f.name in payload
    }
    kwargs["aggregate_id"] = UUID(str(kwargs["aggregate_id"]))
    if "event_id" in kwargs:
        kwargs["event_id"] = UUID(str(kwargs["event_id"]))
    if "occurred_on" in kwargs:
        kwargs["occurred_on"] = datetime.fromisoformat(kwargs["occurred_on"])
    return event_class(**kwargs)


class DomainEventMixin:
    """Mixin for aggregate roots that collect domain events in memory."""

    _domain_events: list[DomainEvent]

    def add_domain_event(self, event: DomainEvent) -> None:
        if not hasattr(self, "_domain_events"):
            self._domain_events = []
        self._domain_events.append(event)

    def clear_domain_events(self) -> None:
        if hasattr(self, "_domain_events"):
            self._domain_events.clear()

    @property
    def domain_events(self) -> list[DomainEvent]:
        if not hasattr(self, "_domain_events"):
            self._domain_events = []
        return list(self._domain_events)
