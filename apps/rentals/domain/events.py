"""
Rental Domain Events

Events that represent things that have happened in the rental domain.
These are published after successful transaction commits.
"""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from shared.domain.base import DomainEvent
from shared.domain.value_objects import DateRange, Money


@dataclass(kw_only=True)
class RentalCreated(DomainEvent):
    """
    Event: A new rental request was created (status PENDING)

    Triggers:
    - Notify the item owner about the request
    """
    rental_id: UUID
    item_id: UUID
    owner_id: int
    renter_id: int
    dates: DateRange
    total_price: Money


@dataclass(kw_only=True)
class RentalStatusChanged(DomainEvent):
    """
    Event: A lifecycle transition happened (confirm, handover, return)

    Triggers:
    - Notify the other participant
    """
    rental_id: UUID
    item_id: UUID
    owner_id: int
    renter_id: int
    old_status: str
    new_status: str
    changed_by: int | None = None


@dataclass(kw_only=True)
class RentalCancelled(DomainEvent):
    """
    Event: Rental was cancelled

    Triggers:
    - Notify owner and renter
    - Free up item dates (implicit, cancelled rentals never block)
    """
    rental_id: UUID
    item_id: UUID
    owner_id: int
    renter_id: int
    cancelled_by: int | None
    reason: str
    refund_amount: Money | None
    old_status: str


@dataclass(kw_only=True)
class RentalRescheduled(DomainEvent):
    """Event: Dates or delivery options changed and the price was recomputed"""
    rental_id: UUID
    item_id: UUID
    dates: DateRange
    total_price: Money


@dataclass(kw_only=True)
class RentalExtended(DomainEvent):
    """
    Event: The renter extended the rental

    Triggers:
    - Notify the item owner
    """
    rental_id: UUID
    item_id: UUID
    owner_id: int
    renter_id: int
    new_end: datetime
    additional_amount: Money


@dataclass(kw_only=True)
class RentalRemoved(DomainEvent):
    """Event: Rental was soft-deleted"""
    rental_id: UUID
    item_id: UUID
