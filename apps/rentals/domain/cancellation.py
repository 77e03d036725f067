"""
Cancellation Policy

Refund rules applied when a rental is cancelled:
- pending: everything captured is refunded
- confirmed: full refund when cancelled more than ``full_refund_notice``
  before the start, otherwise ``late_refund_ratio`` of the rental price
- the deposit is always refunded in full (the item was never handed over)

Both thresholds are configuration (``RENTALS`` in Django settings).
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal

from shared.domain.result import Err, Ok, Result
from shared.domain.value_objects import Money
from apps.rentals.domain.entities import PaymentStatus, Rental, RentalStatus
from apps.rentals.domain.errors import ErrorKind


@dataclass(frozen=True)
class RefundOutcome:
    refund_amount: Money
    deposit_refund: Money
    refund_method: str | None
    refund_ratio: Decimal

    @property
    def total_refund(self) -> Money:
        return self.refund_amount + self.deposit_refund

    def issues_refund(self) -> bool:
        return not self.total_refund.is_zero()


class CancellationPolicy:

    def __init__(
        self,
        full_refund_notice: timedelta = timedelta(hours=48),
        late_refund_ratio: Decimal = Decimal('0.5'),
    ):
        self.full_refund_notice = full_refund_notice
        self.late_refund_ratio = Decimal(str(late_refund_ratio))

    @classmethod
    def from_config(cls, config: dict) -> 'CancellationPolicy':
        return cls(
            full_refund_notice=timedelta(hours=int(config.get('FULL_REFUND_NOTICE_HOURS', 48))),
            late_refund_ratio=Decimal(str(config.get('LATE_CANCELLATION_REFUND_RATIO', '0.5'))),
        )

    def refund_ratio(self, rental: Rental, now: datetime) -> Decimal:
        if rental.status == RentalStatus.CONFIRMED and rental.start - now <= self.full_refund_notice:
            return self.late_refund_ratio
        return Decimal('1')

    def evaluate_cancellation(self, rental: Rental, now: datetime) -> Result[RefundOutcome]:
        if rental.status not in (RentalStatus.PENDING, RentalStatus.CONFIRMED):
            return Err(
                ErrorKind.INVALID_STATE_TRANSITION,
                f"A {rental.status.value} rental cannot be cancelled",
            )

        zero = Money.zero(rental.total_price.currency)
        captured = rental.payment_status == PaymentStatus.PAID
        ratio = self.refund_ratio(rental, now)

        return Ok(RefundOutcome(
            refund_amount=rental.total_price * ratio if captured else zero,
            deposit_refund=rental.deposit_paid if captured else zero,
            refund_method=rental.payment_method,
            refund_ratio=ratio,
        ))
