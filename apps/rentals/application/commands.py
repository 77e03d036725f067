"""
Rental Commands

Plain data carried through the message bus to RentalCommandService.
Each command type has exactly one handler (see ``apps.rentals.bootstrap``).
"""

from dataclasses import dataclass
from datetime import date, datetime
from uuid import UUID


@dataclass
class CreateRental:
    item_id: UUID
    renter_id: int
    start: datetime
    end: datetime
    delivery_requested: bool = False
    delivery_address: str | None = None
    payment_method: str | None = None


@dataclass
class UpdateRental:
    rental_id: UUID
    start: datetime
    end: datetime
    status: str | None = None
    payment_status: str | None = None
    delivery_requested: bool | None = None
    delivery_address: str | None = None
    actor_id: int | None = None


@dataclass
class DeleteRental:
    rental_id: UUID
    actor_id: int | None = None


@dataclass
class ChangeRentalStatus:
    rental_id: UUID
    target_status: str
    actor_id: int


@dataclass
class CancelRental:
    rental_id: UUID
    actor_id: int
    reason: str = ''


@dataclass
class ExtendRental:
    rental_id: UUID
    actor_id: int
    new_end: datetime


@dataclass
class BlockDates:
    item_id: UUID
    actor_id: int
    start_day: date
    end_day: date
    reason: str = ''


@dataclass
class UnblockDates:
    item_id: UUID
    actor_id: int
    start_day: date
    end_day: date
