"""
Domain building blocks shared by every bounded context.

Entities are identified by ``id`` alone. Aggregates additionally buffer
the domain events raised by their methods until a unit of work pulls
them at commit time. Value objects are frozen dataclasses.
"""

from abc import ABC
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List
from uuid import UUID, uuid4


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(eq=False, kw_only=True)
class Entity(ABC):
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def __eq__(self, other):
        return isinstance(other, self.__class__) and self.id == other.id

    def __hash__(self):
        return hash(self.id)


@dataclass(frozen=True)
class ValueObject(ABC):
    """Immutable, compared by value"""


@dataclass(eq=False, kw_only=True)
class Aggregate(Entity):
    """
    Consistency boundary

    Mutating methods record events with ``add_event``; nothing is
    published until the surrounding transaction commits.
    """
    _events: List['DomainEvent'] = field(default_factory=list, repr=False, init=False)

    def add_event(self, event: 'DomainEvent'):
        if event.aggregate_id is None:
            event.aggregate_id = self.id
        self._events.append(event)

    @property
    def events(self) -> List['DomainEvent']:
        return list(self._events)

    def clear_events(self):
        self._events.clear()

    def pull_events(self) -> List['DomainEvent']:
        """Hand over the pending events and forget them"""
        events, self._events = self._events, []
        return events


@dataclass(kw_only=True)
class DomainEvent:
    event_id: UUID = field(default_factory=uuid4)
    occurred_at: datetime = field(default_factory=utcnow)
    aggregate_id: UUID | None = None
