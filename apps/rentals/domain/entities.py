"""
Rental Domain Entities

Core business entities for the rental domain:
- Item: A rentable resource listed by its owner (read-only here)
- Rental: Main aggregate representing a reservation of an item
- RentalStatus: FSM states for the rental lifecycle
- PaymentStatus: Payment state tracking
- PlatformSettings: Platform-wide pricing configuration
- BlockedDay: A calendar day the owner took the item off the market
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from shared.domain.base import Aggregate, Entity
from shared.domain.value_objects import DateRange, Money


class RentalStatus(Enum):
    """
    Rental Status Finite State Machine

    State transitions (see domain.lifecycle for who may trigger them):
    - PENDING -> CONFIRMED (owner accepted the request)
    - PENDING -> CANCELLED
    - CONFIRMED -> ACTIVE (item handed over)
    - CONFIRMED -> CANCELLED
    - ACTIVE -> COMPLETED (item returned)
    """
    PENDING = 'pending'
    CONFIRMED = 'confirmed'
    ACTIVE = 'active'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'


class PaymentStatus(Enum):
    """Payment status tracking"""
    PENDING = 'pending'     # Waiting for payment
    PAID = 'paid'           # Payment captured
    REFUNDED = 'refunded'   # Payment refunded (after cancellation)


BLOCKING_STATUSES = frozenset({
    RentalStatus.PENDING,
    RentalStatus.CONFIRMED,
    RentalStatus.ACTIVE,
})
TERMINAL_STATUSES = frozenset({RentalStatus.COMPLETED, RentalStatus.CANCELLED})


@dataclass(frozen=True)
class PlatformSettings:
    platform_fee_percentage: Decimal = Decimal('10')


@dataclass(frozen=True)
class BlockedDay:
    """A whole calendar day on which the owner does not rent the item out"""
    item_id: UUID
    day: date
    reason: str = ''


@dataclass(eq=False, kw_only=True)
class Item(Entity):
    """
    A rentable resource

    At least one of price_per_day / price_per_hour is set; the day price
    wins when both are present.
    """
    owner_id: int
    title: str = ''
    price_per_day: Money | None = None
    price_per_hour: Money | None = None
    deposit: Money | None = None
    delivery_available: bool = False
    delivery_fee: Money | None = None
    delivery_radius: int | None = None
    available: bool = True


@dataclass(eq=False, kw_only=True)
class Rental(Aggregate):
    """
    Rental Aggregate Root

    Represents a renter's reservation of an item for a date range.

    Key invariants:
    - dates.start < dates.end
    - Pending, confirmed and active rentals of one item never overlap
      (enforced by the availability check inside the item lock)
    - A paid rental is never hard-deleted
    """

    # References
    item_id: UUID
    owner_id: int
    renter_id: int

    dates: DateRange

    # Pricing
    total_price: Money
    platform_fee: Money
    deposit_paid: Money
    delivery_fee: Money

    # Delivery
    delivery_requested: bool = False
    delivery_address: str | None = None

    # Status tracking
    status: RentalStatus = RentalStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.PENDING
    payment_method: str | None = None
    payment_reference: str | None = None
    expires_at: datetime | None = None

    # Cancellation details
    cancellation_reason: str = ''
    refund_amount: Money | None = None

    # Timestamps
    confirmed_at: datetime | None = None
    handed_over_at: datetime | None = None
    returned_at: datetime | None = None
    cancelled_at: datetime | None = None
    removed_at: datetime | None = None

    @property
    def start(self) -> datetime:
        return self.dates.start

    @property
    def end(self) -> datetime:
        return self.dates.end

    def is_participant(self, user_id) -> bool:
        return user_id in (self.owner_id, self.renter_id)

    def blocks_dates(self) -> bool:
        """Only pending, confirmed and active rentals block item dates."""
        return self.removed_at is None and self.status in BLOCKING_STATUSES

    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def is_expired(self, now: datetime) -> bool:
        """A pending request expires at its hold deadline or once its start is reached."""
        if self.status != RentalStatus.PENDING:
            return False
        if self.expires_at and now > self.expires_at:
            return True
        return now >= self.start

    def transition_to(self, target: RentalStatus, now: datetime, changed_by=None):
        """
        Apply an authorised status transition

        Guards live in BookingLifecycle; this only records the move.
        Events: RentalStatusChanged
        """
        from apps.rentals.domain.events import RentalStatusChanged

        old_status = self.status
        self.status = target
        self.updated_at = now

        if target == RentalStatus.CONFIRMED:
            self.confirmed_at = now
            self.expires_at = None
        elif target == RentalStatus.ACTIVE:
            self.handed_over_at = now
        elif target == RentalStatus.COMPLETED:
            self.returned_at = now

        self.add_event(RentalStatusChanged(
            aggregate_id=self.id,
            rental_id=self.id,
            item_id=self.item_id,
            owner_id=self.owner_id,
            renter_id=self.renter_id,
            old_status=old_status.value,
            new_status=target.value,
            changed_by=changed_by,
        ))

    def cancel(self, reason: str, refund_amount: Money | None, now: datetime, cancelled_by=None):
        """
        Cancel the rental

        ``refund_amount`` is what was actually paid back; a non-zero refund
        flips the payment status to REFUNDED.
        Events: RentalCancelled
        """
        from apps.rentals.domain.events import RentalCancelled

        old_status = self.status
        self.status = RentalStatus.CANCELLED
        self.cancellation_reason = reason or ''
        self.refund_amount = refund_amount
        self.cancelled_at = now
        self.updated_at = now
        self.expires_at = None

        if refund_amount and not refund_amount.is_zero():
            self.payment_status = PaymentStatus.REFUNDED

        self.add_event(RentalCancelled(
            aggregate_id=self.id,
            rental_id=self.id,
            item_id=self.item_id,
            owner_id=self.owner_id,
            renter_id=self.renter_id,
            cancelled_by=cancelled_by,
            reason=self.cancellation_reason,
            refund_amount=refund_amount,
            old_status=old_status.value,
        ))

    def reprice(self, dates: DateRange, price, now: datetime):
        """Move the rental to new dates with a recomputed price."""
        from apps.rentals.domain.events import RentalRescheduled

        self.dates = dates
        self.total_price = price.total_price
        self.platform_fee = price.platform_fee
        self.delivery_fee = price.delivery_fee
        self.deposit_paid = price.deposit_required
        self.updated_at = now

        self.add_event(RentalRescheduled(
            aggregate_id=self.id,
            rental_id=self.id,
            item_id=self.item_id,
            dates=dates,
            total_price=self.total_price,
        ))

    def extend(self, new_end: datetime, price, now: datetime) -> Money:
        """
        Push the end date out and return the extra amount owed

        Events: RentalExtended
        """
        from apps.rentals.domain.events import RentalExtended

        if price.total_price.amount > self.total_price.amount:
            additional = price.total_price - self.total_price
        else:
            additional = Money.zero(self.total_price.currency)
        self.dates = self.dates.extended_to(new_end)
        self.total_price = price.total_price
        self.platform_fee = price.platform_fee
        self.delivery_fee = price.delivery_fee
        self.updated_at = now

        self.add_event(RentalExtended(
            aggregate_id=self.id,
            rental_id=self.id,
            item_id=self.item_id,
            owner_id=self.owner_id,
            renter_id=self.renter_id,
            new_end=new_end,
            additional_amount=additional,
        ))
        return additional

    def mark_removed(self, now: datetime):
        """Soft delete; the row is kept for accounting."""
        from apps.rentals.domain.events import RentalRemoved

        self.removed_at = now
        self.updated_at = now
        self.add_event(RentalRemoved(
            aggregate_id=self.id,
            rental_id=self.id,
            item_id=self.item_id,
        ))

    def __str__(self):
        return f"Rental {self.id} ({self.status.value})"

    def __repr__(self):
        return (
            f"Rental(id={self.id}, item_id={self.item_id}, "
            f"status={self.status.value}, dates={self.dates!r})"
        )
