"""
Rental Queries

Read-side use cases. Nothing here takes the item lock: availability and
price previews are advisory, the authoritative checks happen again when
a command runs.
"""

from datetime import datetime
from decimal import Decimal
from typing import Callable, List
from uuid import UUID
import logging

from shared.domain.base import utcnow
from shared.domain.result import Err, Ok, Result
from apps.rentals.application.command_handlers import guarded
from apps.rentals.application.dto import BlockedDayDto, BookedRange, PriceQuote, RentalDto
from apps.rentals.domain.availability import AvailabilityChecker
from apps.rentals.domain.errors import ErrorKind
from apps.rentals.domain.pricing import PricingCalculator

logger = logging.getLogger(__name__)


class RentalQueryService:

    def __init__(
        self,
        items,
        rentals,
        settings_repo,
        *,
        blocked_days=None,
        clock: Callable[[], datetime] | None = None,
        default_fee_percentage=Decimal('10'),
    ):
        self.items = items
        self.rentals = rentals
        self.settings_repo = settings_repo
        self.clock = clock or utcnow
        self.default_fee_percentage = Decimal(str(default_fee_percentage))
        self.availability = AvailabilityChecker(rentals, blocked_days)

    @guarded
    def get_rental(self, rental_id: UUID, actor_id: int) -> Result[RentalDto]:
        rental = self.rentals.get_by_id(rental_id)
        if rental is None:
            return Err(ErrorKind.NOT_FOUND, "Rental not found")
        if not rental.is_participant(actor_id):
            return Err(ErrorKind.UNAUTHORIZED, "You are not a participant of this rental")
        return Ok(RentalDto.from_entity(rental))

    @guarded
    def list_rentals(self, actor_id: int) -> Result[List[RentalDto]]:
        """Rentals where the actor is owner or renter, newest start first"""
        rentals = sorted(
            self.rentals.query_by_participant(actor_id),
            key=lambda rental: rental.start,
            reverse=True,
        )
        return Ok([RentalDto.from_entity(rental) for rental in rentals])

    @guarded
    def booked_ranges(self, item_id: UUID) -> Result[List[BookedRange]]:
        if self.items.get_by_id(item_id) is None:
            return Err(ErrorKind.NOT_FOUND, "Item not found")
        ranges = self.availability.booked_ranges(item_id, since=self.clock())
        return Ok([BookedRange(start=dates.start, end=dates.end) for dates in ranges])

    @guarded
    def blocked_days(self, item_id: UUID) -> Result[List[BlockedDayDto]]:
        """Days the owner blocked, from today on"""
        if self.items.get_by_id(item_id) is None:
            return Err(ErrorKind.NOT_FOUND, "Item not found")
        today = self.clock().date()
        return Ok([
            BlockedDayDto.from_entity(blocked)
            for blocked in self.availability.blocked_days(item_id)
            if blocked.day >= today
        ])

    @guarded
    def quote(
        self,
        item_id: UUID,
        start: datetime,
        end: datetime,
        delivery_requested: bool = False,
        delivery_address: str | None = None,
    ) -> Result[PriceQuote]:
        item = self.items.get_by_id(item_id)
        if item is None:
            return Err(ErrorKind.NOT_FOUND, "Item not found")

        settings = self.settings_repo.get_platform_settings()
        percentage = settings.platform_fee_percentage if settings else self.default_fee_percentage

        priced = PricingCalculator(percentage).compute_price(
            item, start, end, delivery_requested, delivery_address,
        )
        if not priced.is_ok:
            return priced

        price = priced.value
        return Ok(PriceQuote(
            item_id=item.id,
            rental_days=price.rental_days,
            base_price=price.base_price.amount,
            delivery_fee=price.delivery_fee.amount,
            platform_fee=price.platform_fee.amount,
            total_price=price.total_price.amount,
            deposit_required=price.deposit_required.amount,
            currency=price.total_price.currency,
        ))
