"""
Common Value Objects

Value objects used across multiple domains:
- Money: Represents monetary amounts with currency, fixed to two decimal places
- DateRange: Represents a half-open range of moments (start inclusive, end exclusive)
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import List

from shared.domain.base import ValueObject

CENT = Decimal('0.01')
SECONDS_PER_HOUR = Decimal(3600)
SUPPORTED_CURRENCIES = ('EUR', 'USD', 'CHF', 'GBP')


def to_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


@dataclass(frozen=True)
class Money(ValueObject):
    """
    Money value object

    Represents a monetary amount with currency.
    Every amount is quantized to cents (ROUND_HALF_UP) on construction, so
    arithmetic never accumulates floating point drift.
    """
    amount: Decimal
    currency: str = 'EUR'

    def __post_init__(self):
        object.__setattr__(
            self, 'amount', to_decimal(self.amount).quantize(CENT, rounding=ROUND_HALF_UP)
        )
        if self.amount < 0:
            raise ValueError("Amount cannot be negative")
        if not self.currency:
            raise ValueError("Currency is required")
        if self.currency not in SUPPORTED_CURRENCIES:
            raise ValueError(f"Unsupported currency: {self.currency}")

    @classmethod
    def zero(cls, currency: str = 'EUR') -> 'Money':
        return cls(Decimal('0'), currency)

    def __add__(self, other: 'Money') -> 'Money':
        """Add two money objects"""
        if not isinstance(other, Money):
            raise TypeError("Can only add Money to Money")
        if self.currency != other.currency:
            raise ValueError(f"Cannot add different currencies: {self.currency} and {other.currency}")
        return Money(self.amount + other.amount, self.currency)

    def __sub__(self, other: 'Money') -> 'Money':
        """Subtract two money objects"""
        if not isinstance(other, Money):
            raise TypeError("Can only subtract Money from Money")
        if self.currency != other.currency:
            raise ValueError(f"Cannot subtract different currencies: {self.currency} and {other.currency}")
        return Money(self.amount - other.amount, self.currency)

    def __mul__(self, factor) -> 'Money':
        """Multiply money by a factor"""
        if isinstance(factor, bool) or not isinstance(factor, (int, float, Decimal)):
            raise TypeError("Can only multiply Money by number")
        return Money(self.amount * to_decimal(factor), self.currency)

    def percent(self, percentage) -> 'Money':
        """Share of this amount, e.g. ``Money(250).percent(10) == Money(25)``"""
        return Money(self.amount * to_decimal(percentage) / Decimal(100), self.currency)

    def is_zero(self) -> bool:
        return self.amount == 0

    def __str__(self):
        return f"{self.amount:,.2f} {self.currency}"

    def __repr__(self):
        return f"Money({self.amount}, '{self.currency}')"


@dataclass(frozen=True)
class DateRange(ValueObject):
    """
    Date range value object

    Represents a range from start (inclusive) to end (exclusive).
    Used for rental periods and availability checks.
    """
    start: datetime
    end: datetime

    def __post_init__(self):
        if self.start >= self.end:
            raise ValueError(f"Start ({self.start}) must be before end ({self.end})")

    def overlaps_with(self, other: 'DateRange') -> bool:
        """
        Check if this range overlaps with another

        Note: end is exclusive, so adjacent ranges don't overlap.

        Examples:
            - DateRange(Jun 10, Jun 15) overlaps with DateRange(Jun 12, Jun 20) -> True
            - DateRange(Jun 10, Jun 15) overlaps with DateRange(Jun 15, Jun 20) -> False
        """
        if not isinstance(other, DateRange):
            raise TypeError("Can only check overlap with another DateRange")

        # Overlap formula: start1 < end2 AND end1 > start2
        return self.start < other.end and self.end > other.start

    def contains(self, moment: datetime) -> bool:
        """start is inclusive, end is exclusive"""
        return self.start <= moment < self.end

    @property
    def days(self) -> int:
        """Whole days in the range, rounded down"""
        return (self.end - self.start).days

    @property
    def hours(self) -> Decimal:
        return to_decimal((self.end - self.start).total_seconds()) / SECONDS_PER_HOUR

    def extended_to(self, end: datetime) -> 'DateRange':
        return DateRange(self.start, end)

    def calendar_days(self) -> List[date]:
        """
        Calendar days the range touches, in the timezone of ``start``

        An end falling exactly on midnight does not touch that day.
        """
        end = self.end
        if self.start.tzinfo is not None and end.tzinfo is not None:
            end = end.astimezone(self.start.tzinfo)
        first = self.start.date()
        last = end.date()
        if end.time() == time.min:
            last -= timedelta(days=1)
        return [first + timedelta(days=n) for n in range((last - first).days + 1)]

    def __str__(self):
        return f"{self.start.strftime('%d.%m.%Y %H:%M')} - {self.end.strftime('%d.%m.%Y %H:%M')}"

    def __repr__(self):
        return f"DateRange({self.start.isoformat()}, {self.end.isoformat()})"
