from datetime import timedelta
from decimal import Decimal

import pytest

from shared.domain.value_objects import Money
from apps.rentals.domain.cancellation import CancellationPolicy
from apps.rentals.domain.entities import PaymentStatus, RentalStatus
from apps.rentals.domain.errors import ErrorKind
from conftest import NOW


@pytest.fixture
def policy():
    return CancellationPolicy(full_refund_notice=timedelta(hours=48), late_refund_ratio=Decimal('0.5'))


def test_pending_rental_is_fully_refunded(policy, make_rental):
    rental = make_rental(status=RentalStatus.PENDING, payment_status=PaymentStatus.PAID)

    outcome = policy.evaluate_cancellation(rental, NOW).value

    assert outcome.refund_amount == Money('275')
    assert outcome.deposit_refund == Money('100')
    assert outcome.refund_method == 'card'
    assert outcome.refund_ratio == Decimal('1')


def test_confirmed_rental_early_is_fully_refunded(policy, make_rental):
    rental = make_rental(
        NOW + timedelta(hours=72), NOW + timedelta(days=5),
        status=RentalStatus.CONFIRMED, payment_status=PaymentStatus.PAID,
    )

    outcome = policy.evaluate_cancellation(rental, NOW).value

    assert outcome.refund_amount == Money('275')


def test_confirmed_rental_late_gets_half(policy, make_rental):
    rental = make_rental(
        NOW + timedelta(hours=24), NOW + timedelta(days=5),
        status=RentalStatus.CONFIRMED, payment_status=PaymentStatus.PAID,
    )

    outcome = policy.evaluate_cancellation(rental, NOW).value

    assert outcome.refund_amount == Money('137.50')
    assert outcome.deposit_refund == Money('100')
    assert outcome.total_refund == Money('237.50')


def test_exactly_at_the_notice_boundary_is_late(policy, make_rental):
    rental = make_rental(
        NOW + timedelta(hours=48), NOW + timedelta(days=5),
        status=RentalStatus.CONFIRMED, payment_status=PaymentStatus.PAID,
    )

    assert policy.refund_ratio(rental, NOW) == Decimal('0.5')


def test_nothing_captured_nothing_refunded(policy, make_rental):
    rental = make_rental(status=RentalStatus.CONFIRMED, payment_status=PaymentStatus.PENDING)

    outcome = policy.evaluate_cancellation(rental, NOW).value

    assert outcome.refund_amount.is_zero()
    assert outcome.deposit_refund.is_zero()
    assert not outcome.issues_refund()


@pytest.mark.parametrize("status", [RentalStatus.ACTIVE, RentalStatus.COMPLETED, RentalStatus.CANCELLED])
def test_other_statuses_cannot_be_cancelled(policy, make_rental, status):
    rental = make_rental(status=status)

    result = policy.evaluate_cancellation(rental, NOW)

    assert result.kind == ErrorKind.INVALID_STATE_TRANSITION


def test_thresholds_come_from_config(make_rental):
    policy = CancellationPolicy.from_config({
        'FULL_REFUND_NOTICE_HOURS': 12,
        'LATE_CANCELLATION_REFUND_RATIO': '0.25',
    })
    rental = make_rental(
        NOW + timedelta(hours=6), NOW + timedelta(days=2),
        status=RentalStatus.CONFIRMED, payment_status=PaymentStatus.PAID,
    )

    assert policy.full_refund_notice == timedelta(hours=12)
    assert policy.evaluate_cancellation(rental, NOW).value.refund_amount == Money('68.75')
