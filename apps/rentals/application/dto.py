"""Response objects returned by the rental use cases."""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from apps.rentals.domain.entities import BlockedDay, Rental


@dataclass(frozen=True)
class RentalDto:
    id: UUID
    item_id: UUID
    owner_id: int
    renter_id: int
    start: datetime
    end: datetime
    status: str
    payment_status: str
    total_price: Decimal
    platform_fee: Decimal
    deposit_paid: Decimal
    delivery_fee: Decimal
    currency: str
    delivery_requested: bool
    delivery_address: str | None
    payment_method: str | None
    payment_reference: str | None
    expires_at: datetime | None
    cancellation_reason: str
    refund_amount: Decimal | None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_entity(cls, rental: Rental) -> 'RentalDto':
        return cls(
            id=rental.id,
            item_id=rental.item_id,
            owner_id=rental.owner_id,
            renter_id=rental.renter_id,
            start=rental.start,
            end=rental.end,
            status=rental.status.value,
            payment_status=rental.payment_status.value,
            total_price=rental.total_price.amount,
            platform_fee=rental.platform_fee.amount,
            deposit_paid=rental.deposit_paid.amount,
            delivery_fee=rental.delivery_fee.amount,
            currency=rental.total_price.currency,
            delivery_requested=rental.delivery_requested,
            delivery_address=rental.delivery_address,
            payment_method=rental.payment_method,
            payment_reference=rental.payment_reference,
            expires_at=rental.expires_at,
            cancellation_reason=rental.cancellation_reason,
            refund_amount=rental.refund_amount.amount if rental.refund_amount else None,
            created_at=rental.created_at,
            updated_at=rental.updated_at,
        )


@dataclass(frozen=True)
class CreateRentalResponse:
    rental_id: UUID
    rental_days: int
    base_price: Decimal
    delivery_fee: Decimal
    platform_fee: Decimal
    total_price: Decimal
    deposit_required: Decimal
    currency: str
    status: str
    payment_status: str
    payment_reference: str | None


@dataclass(frozen=True)
class CancellationResult:
    rental_id: UUID
    status: str
    payment_status: str
    refund_amount: Decimal
    deposit_refund: Decimal
    refund_method: str | None


@dataclass(frozen=True)
class ExtensionResult:
    rental_id: UUID
    new_end: datetime
    additional_amount: Decimal
    total_price: Decimal
    payment_reference: str | None


@dataclass(frozen=True)
class PriceQuote:
    item_id: UUID
    rental_days: int
    base_price: Decimal
    delivery_fee: Decimal
    platform_fee: Decimal
    total_price: Decimal
    deposit_required: Decimal
    currency: str


@dataclass(frozen=True)
class BookedRange:
    start: datetime
    end: datetime


@dataclass(frozen=True)
class BlockedDayDto:
    item_id: UUID
    day: date
    reason: str

    @classmethod
    def from_entity(cls, blocked: BlockedDay) -> 'BlockedDayDto':
        return cls(item_id=blocked.item_id, day=blocked.day, reason=blocked.reason)
