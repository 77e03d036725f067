"""
In-memory adapters

Repository and unit-of-work implementations without a database, used by
the domain and service tests and usable wherever Django is not set up.

Repositories hand out deep copies, so callers never mutate stored state
behind the unit of work's back. Writes are journaled per thread and
undone on rollback; ``ItemLocks`` provides the per-item mutual exclusion
that ``select_for_update`` gives the Django implementation.
"""

from copy import deepcopy
from datetime import date
from typing import Dict, Iterable, List, Tuple
from uuid import UUID
import logging
import threading

from shared.application.uow import AbstractUnitOfWork
from apps.rentals.application.ports import (
    BlockedDayRepository,
    ItemRepository,
    RentalRepository,
    SettingsRepository,
)
from apps.rentals.domain.entities import BlockedDay, Item, PlatformSettings, Rental, RentalStatus

logger = logging.getLogger(__name__)


class ItemLocks:
    """One lock per item id, created on first use"""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[object, threading.Lock] = {}

    def for_key(self, key) -> threading.Lock:
        with self._guard:
            return self._locks.setdefault(key, threading.Lock())


class InMemoryItemRepository(ItemRepository):

    def __init__(self, items=()):
        self._items: Dict[UUID, Item] = {item.id: item for item in items}

    def save(self, item: Item):
        self._items[item.id] = deepcopy(item)

    def get_by_id(self, item_id: UUID) -> Item | None:
        item = self._items.get(item_id)
        return deepcopy(item) if item else None


class InMemoryRentalRepository(RentalRepository):

    def __init__(self, rentals=()):
        self._rentals: Dict[UUID, Rental] = {}
        self._mutex = threading.RLock()
        self._local = threading.local()
        for rental in rentals:
            self._rentals[rental.id] = self._snapshot(rental)

    @staticmethod
    def _snapshot(rental: Rental) -> Rental:
        copy = deepcopy(rental)
        copy.clear_events()
        return copy

    # ===== Journal =====

    def begin(self):
        self._local.journal = {}

    def commit(self):
        self._local.journal = None

    def rollback(self):
        journal = getattr(self._local, 'journal', None) or {}
        with self._mutex:
            for rental_id, previous in journal.items():
                if previous is None:
                    self._rentals.pop(rental_id, None)
                else:
                    self._rentals[rental_id] = previous
        if journal:
            logger.debug(f"Rolled back {len(journal)} rental writes")
        self._local.journal = None

    def _write(self, rental: Rental):
        with self._mutex:
            journal = getattr(self._local, 'journal', None)
            if journal is not None and rental.id not in journal:
                journal[rental.id] = self._rentals.get(rental.id)
            self._rentals[rental.id] = self._snapshot(rental)

    # ===== Queries =====

    def _visible(self) -> List[Rental]:
        with self._mutex:
            return [r for r in self._rentals.values() if r.removed_at is None]

    def query_by_item(self, item_id: UUID) -> List[Rental]:
        return [deepcopy(r) for r in self._visible() if r.item_id == item_id]

    def query_by_participant(self, user_id) -> List[Rental]:
        return [deepcopy(r) for r in self._visible() if r.is_participant(user_id)]

    def query_pending(self) -> List[Rental]:
        return [deepcopy(r) for r in self._visible() if r.status == RentalStatus.PENDING]

    def get_by_id(self, rental_id: UUID) -> Rental | None:
        with self._mutex:
            rental = self._rentals.get(rental_id)
        if rental is None or rental.removed_at is not None:
            return None
        return deepcopy(rental)

    # ===== Writes =====

    def add(self, rental: Rental):
        with self._mutex:
            if rental.id in self._rentals:
                raise ValueError(f"Rental {rental.id} already exists")
            self._write(rental)

    def update(self, rental: Rental):
        with self._mutex:
            if rental.id not in self._rentals:
                raise LookupError(f"Rental {rental.id} does not exist")
            self._write(rental)

    def remove(self, rental: Rental):
        self.update(rental)


class InMemorySettingsRepository(SettingsRepository):

    def __init__(self, settings: PlatformSettings | None = None):
        self.settings = settings

    def get_platform_settings(self) -> PlatformSettings | None:
        return self.settings


class InMemoryBlockedDayRepository(BlockedDayRepository):

    def __init__(self, blocked=()):
        self._days: Dict[Tuple[UUID, date], BlockedDay] = {(b.item_id, b.day): b for b in blocked}
        self._mutex = threading.Lock()

    def query_by_item(self, item_id: UUID) -> List[BlockedDay]:
        with self._mutex:
            return sorted((b for b in self._days.values() if b.item_id == item_id), key=lambda b: b.day)

    def block(self, item_id: UUID, days: Iterable[date], reason: str = '') -> List[BlockedDay]:
        with self._mutex:
            return [
                self._days.setdefault((item_id, day), BlockedDay(item_id, day, reason))
                for day in days
            ]

    def unblock(self, item_id: UUID, days: Iterable[date]) -> int:
        with self._mutex:
            released = [self._days.pop((item_id, day), None) for day in days]
        return sum(1 for b in released if b is not None)


class InMemoryUnitOfWork(AbstractUnitOfWork):
    """
    Unit of work over in-memory repositories

    ``lock_item`` blocks until no other unit of work holds the same item;
    locks are released when the unit of work ends, before events are
    published.
    """

    def __init__(self, rentals: InMemoryRentalRepository, locks: ItemLocks, message_bus=None):
        super().__init__(message_bus)
        self._repo = rentals
        self._locks = locks
        self._held: List[threading.Lock] = []

    def __enter__(self):
        self._repo.begin()
        return self

    def lock_item(self, key):
        lock = self._locks.for_key(key)
        lock.acquire()
        self._held.append(lock)

    def _release(self):
        while self._held:
            self._held.pop().release()

    def commit(self):
        self._repo.commit()
        self._release()
        self._publish_events(self._take_events())

    def rollback(self):
        self._repo.rollback()
        self._release()
        discarded = self._take_events()
        logger.warning(f"Rolling back transaction, discarding {len(discarded)} events")
