"""
Availability Checker

Prevents double bookings: a requested range conflicts with an existing
rental of the same item when ``start1 < end2 AND end1 > start2`` and the
existing rental still blocks dates (pending, confirmed or active). A
range also conflicts when it touches a calendar day the owner blocked.

The check is only authoritative when it runs inside the unit of work that
holds the item lock; outside of it the answer is advisory.
"""

from datetime import datetime
from typing import List, Union
from uuid import UUID

from shared.domain.value_objects import DateRange
from apps.rentals.domain.entities import BlockedDay, Rental

Conflict = Union[Rental, BlockedDay]


class AvailabilityChecker:
    """
    Scans the rentals and blocked days of one item for a conflict

    Usage:
        checker = AvailabilityChecker(rental_repo, blocked_day_repo)
        if checker.has_conflict(item_id, start, end):
            ...
    """

    def __init__(self, rentals, blocked_days=None):
        self._rentals = rentals
        self._blocked_days = blocked_days

    def find_conflict(
        self,
        item_id: UUID,
        start: datetime,
        end: datetime,
        exclude_rental_id: UUID | None = None,
    ) -> Conflict | None:
        """Return the first blocking rental or blocked day overlapping [start, end), if any"""
        requested = DateRange(start, end)
        for rental in self._rentals.query_by_item(item_id):
            if exclude_rental_id is not None and rental.id == exclude_rental_id:
                continue
            if not rental.blocks_dates():
                continue
            if rental.dates.overlaps_with(requested):
                return rental

        if self._blocked_days is not None:
            touched = set(requested.calendar_days())
            for blocked in self._blocked_days.query_by_item(item_id):
                if blocked.day in touched:
                    return blocked
        return None

    def has_conflict(
        self,
        item_id: UUID,
        start: datetime,
        end: datetime,
        exclude_rental_id: UUID | None = None,
    ) -> bool:
        return self.find_conflict(item_id, start, end, exclude_rental_id) is not None

    def booked_ranges(self, item_id: UUID, since: datetime | None = None) -> List[DateRange]:
        """Blocking ranges of an item ordered by start (availability calendar)"""
        ranges = [
            rental.dates
            for rental in self._rentals.query_by_item(item_id)
            if rental.blocks_dates() and (since is None or rental.end > since)
        ]
        return sorted(ranges, key=lambda dates: dates.start)

    def blocked_days(self, item_id: UUID) -> List[BlockedDay]:
        if self._blocked_days is None:
            return []
        return self._blocked_days.query_by_item(item_id)
