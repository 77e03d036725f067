"""
Pricing Calculator

Deterministic price computation for a rental request:

    base         = price_per_day * whole days   (or price_per_hour * hours)
    delivery     = item.delivery_fee when delivery is requested, else 0
    platform_fee = (base + delivery) * platform_fee_percentage / 100
    total        = base + delivery + platform_fee
    deposit      = item.deposit (tracked separately, not part of total)

Every amount is a two-decimal Money; the calculator is a pure function of
its inputs.
"""

from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal

from shared.domain.result import Err, Ok, Result
from shared.domain.value_objects import DateRange, Money
from apps.rentals.domain.entities import Item
from apps.rentals.domain.errors import ErrorKind


@dataclass(frozen=True)
class Price:
    rental_days: int
    base_price: Money
    delivery_fee: Money
    platform_fee: Money
    total_price: Money
    deposit_required: Money

    def with_platform_fee(self, platform_fee: Money) -> 'Price':
        """Same price with a fixed platform fee (total re-derived)"""
        return replace(
            self,
            platform_fee=platform_fee,
            total_price=self.base_price + self.delivery_fee + platform_fee,
        )


class PricingCalculator:

    def __init__(self, platform_fee_percentage=Decimal('10')):
        self.platform_fee_percentage = Decimal(str(platform_fee_percentage))

    def compute_price(
        self,
        item: Item,
        start: datetime,
        end: datetime,
        delivery_requested: bool = False,
        delivery_address: str | None = None,
    ) -> Result[Price]:
        rental_days = (end - start).days
        if rental_days <= 0:
            return Err(
                ErrorKind.VALIDATION_ERROR,
                "Invalid date range: a rental must last at least one whole day",
            )
        dates = DateRange(start, end)

        if item.price_per_day is not None:
            base_price = item.price_per_day * rental_days
        elif item.price_per_hour is not None:
            base_price = item.price_per_hour * dates.hours
        else:
            return Err(ErrorKind.VALIDATION_ERROR, "Item has no price configured")

        if delivery_requested and not item.delivery_available:
            return Err(ErrorKind.DELIVERY_UNAVAILABLE, "Delivery is not available for this item")
        if delivery_requested and not (delivery_address or '').strip():
            return Err(
                ErrorKind.DELIVERY_ADDRESS_REQUIRED,
                "Delivery address is required when requesting delivery",
            )

        zero = Money.zero(base_price.currency)
        delivery_fee = (item.delivery_fee or zero) if delivery_requested else zero
        platform_fee = (base_price + delivery_fee).percent(self.platform_fee_percentage)

        return Ok(Price(
            rental_days=rental_days,
            base_price=base_price,
            delivery_fee=delivery_fee,
            platform_fee=platform_fee,
            total_price=base_price + delivery_fee + platform_fee,
            deposit_required=item.deposit or zero,
        ))
