"""
Unit of Work Pattern

Manages database transactions and ensures that domain events
are published only after successful transaction commit.

A unit of work also serializes writers per aggregate key: ``lock_item``
takes a lock that is held until the transaction ends, so a
check-then-write sequence runs as one atomic step.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, List, Optional
import logging

from django.db import transaction
from django.db.utils import NotSupportedError

from shared.domain.base import DomainEvent

logger = logging.getLogger(__name__)


class AbstractUnitOfWork(ABC):
    """Abstract Unit of Work pattern"""

    def __init__(self, message_bus=None):
        self._message_bus = message_bus
        self._events: List[DomainEvent] = []

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            self.commit()
        else:
            self.rollback()

    @abstractmethod
    def commit(self):
        """Commit the transaction"""
        pass

    @abstractmethod
    def rollback(self):
        """Rollback the transaction"""
        pass

    @abstractmethod
    def lock_item(self, key):
        """Hold an exclusive lock on ``key`` until the transaction ends"""
        pass

    def run_in_transaction(self, fn: Callable[['AbstractUnitOfWork'], Any], lock_key=None) -> Any:
        """
        Run ``fn(uow)`` atomically

        When ``lock_key`` is given, concurrent transactions on the same key
        are serialized for the whole duration of ``fn``.
        """
        with self:
            if lock_key is not None:
                self.lock_item(lock_key)
            return fn(self)

    def collect_events(self, aggregate):
        """Move the aggregate's pending events into this unit of work"""
        events = aggregate.pull_events()
        if events:
            self._events.extend(events)
            logger.debug(f"Collected {len(events)} events from {type(aggregate).__name__} {aggregate.id}")

    def _take_events(self) -> List[DomainEvent]:
        events, self._events = self._events, []
        return events

    def _publish_events(self, events: List[DomainEvent]):
        """Hand committed events to the bus; the data is already durable"""
        if self._message_bus is None or not events:
            return

        logger.info(f"Publishing {len(events)} domain events after commit")
        try:
            self._message_bus.publish_events(events)
        except Exception as e:
            logger.error(f"Publishing {len(events)} events failed: {e}", exc_info=True)


def _lock_queryset_if_possible(queryset):
    """Apply select_for_update when inside transaction.atomic()."""

    if not transaction.get_connection().in_atomic_block:
        return queryset

    try:
        return queryset.select_for_update()
    except NotSupportedError:
        return queryset


class DjangoUnitOfWork(AbstractUnitOfWork):
    """
    Django implementation of Unit of Work

    Manages Django database transactions and ensures domain events
    are published after successful commit.

    Usage:
        with DjangoUnitOfWork(message_bus, lock_model=Item) as uow:
            # Serialize writers for this item (SELECT ... FOR UPDATE)
            uow.lock_item(item_id)

            # Load aggregate and execute domain logic
            rental = rental_repo.get_by_id(rental_id)
            rental.transition_to(RentalStatus.CONFIRMED, now)

            # Collect events
            uow.collect_events(rental)

            # Save changes
            rental_repo.update(rental)

            # Transaction commits here
        # Events are published after commit
    """

    def __init__(self, message_bus=None, lock_model: Optional[type] = None):
        super().__init__(message_bus)
        self._lock_model = lock_model
        self._transaction = None

    def __enter__(self):
        """Start database transaction"""
        self._transaction = transaction.atomic()
        self._transaction.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Complete or rollback transaction"""
        try:
            if exc_type is None:
                self.commit()
            else:
                self.rollback()
        finally:
            if self._transaction:
                self._transaction.__exit__(exc_type, exc_val, exc_tb)

    def lock_item(self, key):
        """Lock the row of ``lock_model`` with primary key ``key``"""
        if self._lock_model is None:
            return
        queryset = self._lock_model.objects.filter(pk=key)
        list(_lock_queryset_if_possible(queryset).values_list('pk', flat=True))

    def commit(self):
        """
        Commit changes and publish events

        Events are published using Django's transaction.on_commit()
        to ensure they're only sent after database commit succeeds.
        """
        events = self._take_events()
        logger.debug(f"Committing transaction with {len(events)} events")

        if events:
            transaction.on_commit(lambda: self._publish_events(events))

    def rollback(self):
        """Rollback changes and discard events"""
        discarded = self._take_events()
        logger.warning(f"Rolling back transaction, discarding {len(discarded)} events")
