"""Use-case tests for RentalCommandService over the in-memory adapters."""

import threading
from datetime import timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from shared.domain.value_objects import Money
from apps.rentals.application.commands import ChangeRentalStatus, CreateRental
from apps.rentals.domain.entities import Item, PaymentStatus, RentalStatus
from apps.rentals.domain.errors import ErrorKind
from apps.rentals.domain.lifecycle import TRANSITIONS
from conftest import NOW, OWNER_ID, RENTER_ID, STRANGER_ID, day


# ===== create_rental =====

def test_create_rental_prices_and_stores_pending_request(service, rentals, item, payments):
    result = service.create_rental(item.id, RENTER_ID, day(10), day(15), payment_method='card')

    assert result.is_ok, result
    response = result.value
    assert response.base_price == Decimal('250.00')
    assert response.platform_fee == Decimal('25.00')
    assert response.total_price == Decimal('275.00')
    assert response.deposit_required == Decimal('100.00')
    assert response.status == 'pending'
    assert response.payment_status == 'pending'
    assert response.payment_reference == 'card_1'

    stored = rentals.get_by_id(response.rental_id)
    assert stored.status == RentalStatus.PENDING
    assert stored.owner_id == OWNER_ID
    assert stored.payment_reference == 'card_1'
    assert stored.expires_at == NOW + timedelta(hours=48)
    # total plus deposit
    assert payments.intents == [('card_1', Money('375'))]


def test_create_rental_notifies_owner(service, item, notifications):
    service.create_rental(item.id, RENTER_ID, day(10), day(15))

    assert notifications.recipients() == [OWNER_ID]
    assert notifications.sent[0][1] == "New rental request"


def test_delivery_requested_but_not_offered(service, item):
    result = service.create_rental(item.id, RENTER_ID, day(10), day(15), True, "Dorfstraße 1")

    assert result.kind == ErrorKind.DELIVERY_UNAVAILABLE


def test_overlapping_request_conflicts_and_adjacent_succeeds(service, make_rental, item):
    make_rental(day(10), day(15), status=RentalStatus.CONFIRMED)

    overlapping = service.create_rental(item.id, RENTER_ID, day(12), day(20))
    adjacent = service.create_rental(item.id, RENTER_ID, day(15), day(20))

    assert overlapping.kind == ErrorKind.BOOKING_CONFLICT
    assert adjacent.is_ok


def test_cancelled_rental_frees_the_dates(service, make_rental, item):
    make_rental(day(10), day(15), status=RentalStatus.CANCELLED)

    assert service.create_rental(item.id, RENTER_ID, day(10), day(15)).is_ok


def test_unknown_item(service):
    result = service.create_rental(uuid4(), RENTER_ID, day(10), day(15))

    assert result.kind == ErrorKind.NOT_FOUND


def test_unavailable_item(service, items):
    item = Item(owner_id=OWNER_ID, price_per_day=Money('10'), available=False)
    items.save(item)

    result = service.create_rental(item.id, RENTER_ID, day(10), day(15))

    assert result.kind == ErrorKind.ITEM_UNAVAILABLE


@pytest.mark.parametrize("start, end", [
    (day(10), day(15)),
    (day(15), day(10)),
    (day(1) - timedelta(days=3), day(2)),
])
def test_owner_can_never_rent_own_item(service, item, start, end):
    result = service.create_rental(item.id, OWNER_ID, start, end)

    assert result.kind == ErrorKind.SELF_RENTAL_FORBIDDEN


@pytest.mark.parametrize("end", [day(10), day(9)])
def test_end_not_after_start_is_rejected(service, item, end):
    result = service.create_rental(item.id, RENTER_ID, day(10), end)

    assert result.kind == ErrorKind.VALIDATION_ERROR


def test_start_in_the_past_is_rejected(service, item):
    result = service.create_rental(item.id, RENTER_ID, NOW - timedelta(days=1), day(5))

    assert result.kind == ErrorKind.VALIDATION_ERROR
    assert "past" in result.message


def test_start_earlier_today_is_accepted(service, item):
    result = service.create_rental(item.id, RENTER_ID, day(1, hour=8), day(3))

    assert result.is_ok
    assert result.value.rental_days == 1


def test_payment_failure_leaves_reference_empty(service, rentals, item, payments):
    payments.fail_intents = True

    result = service.create_rental(item.id, RENTER_ID, day(10), day(15), payment_method='card')

    assert result.is_ok
    assert result.value.payment_reference is None
    assert rentals.get_by_id(result.value.rental_id).payment_reference is None


def test_no_payment_method_no_intent(service, item, payments):
    service.create_rental(item.id, RENTER_ID, day(10), day(15))

    assert payments.intents == []


def test_default_fee_when_settings_missing(service, settings_repo, item):
    settings_repo.settings = None

    result = service.create_rental(item.id, RENTER_ID, day(10), day(15))

    assert result.value.platform_fee == Decimal('25.00')


def test_unexpected_failure_becomes_internal_error(service, items, item, monkeypatch):
    def explode(item_id):
        raise RuntimeError("database is gone")

    monkeypatch.setattr(items, 'get_by_id', explode)

    result = service.create_rental(item.id, RENTER_ID, day(10), day(15))

    assert result.kind == ErrorKind.INTERNAL_ERROR
    assert "database" not in result.message


def test_concurrent_overlapping_requests_book_once(service, rentals, item):
    workers = 8
    barrier = threading.Barrier(workers)
    results = []

    def request(offset):
        barrier.wait()
        results.append(service.create_rental(item.id, RENTER_ID, day(10 + offset % 2), day(15)))

    threads = [threading.Thread(target=request, args=(n,)) for n in range(workers)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sum(1 for r in results if r.is_ok) == 1
    assert all(r.kind == ErrorKind.BOOKING_CONFLICT for r in results if not r.is_ok)
    assert len(rentals.query_by_item(item.id)) == 1


def test_commands_dispatch_through_the_bus(container, item):
    result = container.bus.handle_command(CreateRental(
        item_id=item.id, renter_id=RENTER_ID, start=day(10), end=day(15),
    ))

    assert result.is_ok


# ===== update_rental =====

def test_update_reprices_new_range(service, make_rental, rentals):
    rental = make_rental(day(10), day(15))

    result = service.update_rental(rental.id, day(10), day(13))

    assert result.value.total_price == Decimal('165.00')
    assert result.value.platform_fee == Decimal('15.00')
    assert rentals.get_by_id(rental.id).end == day(13)


def test_update_excludes_itself_but_not_others(service, make_rental):
    rental = make_rental(day(10), day(15))
    make_rental(day(16), day(18), renter_id=STRANGER_ID)

    assert service.update_rental(rental.id, day(11), day(16)).is_ok
    assert service.update_rental(rental.id, day(11), day(17)).kind == ErrorKind.BOOKING_CONFLICT


def test_update_applies_default_fee_without_settings(service, make_rental, settings_repo):
    rental = make_rental(day(10), day(15), platform_fee=Money('20'))
    settings_repo.settings = None

    result = service.update_rental(rental.id, day(10), day(12))

    # 10% default on 2 days at 50
    assert result.value.platform_fee == Decimal('10.00')
    assert result.value.total_price == Decimal('110.00')


def test_update_keeps_stored_fee_when_settings_lookup_fails(service, make_rental, settings_repo, monkeypatch):
    rental = make_rental(day(10), day(15), platform_fee=Money('20'))

    def broken():
        raise ConnectionError("settings store unreachable")

    monkeypatch.setattr(settings_repo, 'get_platform_settings', broken)

    result = service.update_rental(rental.id, day(10), day(12))

    assert result.value.platform_fee == Decimal('20.00')
    assert result.value.total_price == Decimal('120.00')



@pytest.mark.parametrize("end", [day(10), day(8)])
def test_update_rejects_end_not_after_start(service, make_rental, end):
    rental = make_rental()

    assert service.update_rental(rental.id, day(10), end).kind == ErrorKind.VALIDATION_ERROR


def test_update_rejects_terminal_rental(service, make_rental):
    rental = make_rental(status=RentalStatus.COMPLETED)

    assert service.update_rental(rental.id, day(10), day(12)).kind == ErrorKind.INVALID_STATE


def test_update_status_must_follow_lifecycle(service, make_rental):
    rental = make_rental()

    result = service.update_rental(rental.id, day(10), day(15), status='completed')

    assert result.kind == ErrorKind.INVALID_STATE_TRANSITION


def test_update_can_record_payment(service, make_rental, rentals):
    rental = make_rental()

    result = service.update_rental(rental.id, day(10), day(15), payment_status='paid')

    assert result.value.payment_status == 'paid'
    assert rentals.get_by_id(rental.id).payment_status == PaymentStatus.PAID


def test_update_cannot_confirm_expired_request(service, make_rental, rentals):
    rental = make_rental(expires_at=NOW - timedelta(minutes=1))

    result = service.update_rental(rental.id, day(10), day(15), status='confirmed')

    assert result.kind == ErrorKind.INVALID_STATE_TRANSITION
    assert rentals.get_by_id(rental.id).status == RentalStatus.PENDING


@pytest.mark.parametrize("status, target", [
    (RentalStatus.PENDING, 'confirmed'),
    (RentalStatus.CONFIRMED, 'active'),
])
def test_renter_cannot_move_owner_transitions_through_update(service, make_rental, rentals, status, target):
    rental = make_rental(status=status)

    result = service.update_rental(rental.id, day(10), day(15), status=target, actor_id=RENTER_ID)

    assert result.kind == ErrorKind.UNAUTHORIZED
    assert rentals.get_by_id(rental.id).status == status


def test_owner_confirms_through_update(service, make_rental):
    rental = make_rental()

    result = service.update_rental(rental.id, day(10), day(15), status='confirmed', actor_id=OWNER_ID)

    assert result.value.status == 'confirmed'


def test_stranger_cannot_update(service, make_rental):
    rental = make_rental()

    assert service.update_rental(rental.id, day(10), day(12), actor_id=STRANGER_ID).kind == ErrorKind.UNAUTHORIZED


def test_paid_rental_cannot_be_reset_to_unpaid(service, make_rental, rentals):
    rental = make_rental(payment_status=PaymentStatus.PAID)

    result = service.update_rental(rental.id, day(10), day(15), payment_status='pending')

    assert result.kind == ErrorKind.INVALID_STATE_TRANSITION
    assert rentals.get_by_id(rental.id).payment_status == PaymentStatus.PAID
    assert service.delete_rental(rental.id).kind == ErrorKind.REFUND_REQUIRED


def test_refund_is_not_recorded_through_update(service, make_rental):
    rental = make_rental(payment_status=PaymentStatus.PAID)

    result = service.update_rental(rental.id, day(10), day(15), payment_status='refunded')

    assert result.kind == ErrorKind.INVALID_STATE_TRANSITION


def test_only_owner_records_payment(service, make_rental, rentals):
    rental = make_rental()

    result = service.update_rental(rental.id, day(10), day(15), payment_status='paid', actor_id=RENTER_ID)

    assert result.kind == ErrorKind.UNAUTHORIZED
    assert rentals.get_by_id(rental.id).payment_status == PaymentStatus.PENDING



def test_update_unknown_rental(service):
    assert service.update_rental(uuid4(), day(10), day(12)).kind == ErrorKind.NOT_FOUND


# ===== delete_rental =====

def test_delete_soft_deletes_and_frees_dates(service, make_rental, rentals, item):
    rental = make_rental()

    result = service.delete_rental(rental.id, RENTER_ID)

    assert result.is_ok
    assert rentals.get_by_id(rental.id) is None
    assert service.create_rental(item.id, RENTER_ID, day(10), day(15)).is_ok


def test_paid_rental_requires_refund(service, make_rental):
    rental = make_rental(payment_status=PaymentStatus.PAID)

    assert service.delete_rental(rental.id).kind == ErrorKind.REFUND_REQUIRED


@pytest.mark.parametrize("status", [RentalStatus.ACTIVE, RentalStatus.COMPLETED])
def test_started_rental_cannot_be_deleted(service, make_rental, status):
    rental = make_rental(status=status)

    assert service.delete_rental(rental.id).kind == ErrorKind.INVALID_STATE


def test_stranger_cannot_delete(service, make_rental):
    rental = make_rental()

    assert service.delete_rental(rental.id, STRANGER_ID).kind == ErrorKind.UNAUTHORIZED


# ===== change_status =====

def test_owner_confirms_and_renter_is_told(service, make_rental, notifications):
    rental = make_rental()

    result = service.change_status(rental.id, 'confirmed', OWNER_ID)

    assert result.value.status == 'confirmed'
    assert notifications.sent == [(RENTER_ID, "Rental confirmed", notifications.sent[0][2])]


def test_renter_cannot_hand_over(service, make_rental):
    rental = make_rental(status=RentalStatus.CONFIRMED)

    result = service.change_status(rental.id, 'active', RENTER_ID)

    assert result.kind == ErrorKind.UNAUTHORIZED


def test_renter_returns_and_owner_is_told(service, make_rental, notifications):
    rental = make_rental(status=RentalStatus.ACTIVE)

    result = service.change_status(rental.id, 'completed', RENTER_ID)

    assert result.value.status == 'completed'
    assert notifications.recipients() == [OWNER_ID]


def test_unknown_status(service, make_rental):
    rental = make_rental()

    assert service.change_status(rental.id, 'lost', OWNER_ID).kind == ErrorKind.VALIDATION_ERROR


def test_cancelled_target_goes_through_refund(service, make_rental, payments):
    rental = make_rental(payment_status=PaymentStatus.PAID, payment_reference='card_9')

    result = service.change_status(rental.id, 'cancelled', RENTER_ID)

    assert result.value.status == 'cancelled'
    assert result.value.payment_status == 'refunded'
    assert payments.refunds == [('card_9', Money('375'))]


def test_status_command_through_the_bus(container, make_rental):
    rental = make_rental()

    result = container.bus.handle_command(ChangeRentalStatus(rental.id, 'confirmed', OWNER_ID))

    assert result.value.status == 'confirmed'


# ===== cancel_rental =====

def test_pending_cancelled_by_renter_is_fully_refunded(service, make_rental, rentals, payments):
    rental = make_rental(payment_status=PaymentStatus.PAID, payment_reference='card_1')

    result = service.cancel_rental(rental.id, RENTER_ID, "Plans changed")

    outcome = result.value
    assert outcome.status == 'cancelled'
    assert outcome.payment_status == 'refunded'
    assert outcome.refund_amount == Decimal('275.00')
    assert outcome.deposit_refund == Decimal('100.00')
    assert outcome.refund_method == 'card'

    stored = rentals.get_by_id(rental.id)
    assert stored.status == RentalStatus.CANCELLED
    assert stored.cancellation_reason == "Plans changed"
    assert stored.refund_amount == Money('375')


def test_late_cancellation_by_owner_refunds_half(service, make_rental, payments):
    rental = make_rental(
        NOW + timedelta(hours=24), NOW + timedelta(days=5),
        status=RentalStatus.CONFIRMED,
        payment_status=PaymentStatus.PAID,
        payment_reference='card_1',
    )

    outcome = service.cancel_rental(rental.id, OWNER_ID).value

    assert outcome.refund_amount == Decimal('137.50')
    assert outcome.deposit_refund == Decimal('100.00')
    assert payments.refunds == [('card_1', Money('237.50'))]


def test_unpaid_cancellation_keeps_payment_pending(service, make_rental, payments):
    rental = make_rental()

    outcome = service.cancel_rental(rental.id, OWNER_ID).value

    assert outcome.payment_status == 'pending'
    assert outcome.refund_amount == Decimal('0.00')
    assert payments.refunds == []


def test_cancellation_notifies_both(service, make_rental, notifications):
    rental = make_rental()

    service.cancel_rental(rental.id, RENTER_ID)

    assert sorted(notifications.recipients()) == [OWNER_ID, RENTER_ID]


def test_stranger_cannot_cancel(service, make_rental):
    rental = make_rental()

    assert service.cancel_rental(rental.id, STRANGER_ID).kind == ErrorKind.UNAUTHORIZED


def test_active_rental_cannot_be_cancelled(service, make_rental):
    rental = make_rental(status=RentalStatus.ACTIVE)

    assert service.cancel_rental(rental.id, OWNER_ID).kind == ErrorKind.INVALID_STATE_TRANSITION


@pytest.mark.parametrize("source", list(RentalStatus))
@pytest.mark.parametrize("target", list(RentalStatus))
def test_stranger_status_change_checks_table_before_actor(service, make_rental, rentals, source, target):
    rental = make_rental(status=source)

    result = service.change_status(rental.id, target.value, STRANGER_ID)

    expected = ErrorKind.UNAUTHORIZED if (source, target) in TRANSITIONS else ErrorKind.INVALID_STATE_TRANSITION
    assert result.kind == expected
    assert rentals.get_by_id(rental.id).status == source



def test_refused_refund_leaves_rental_untouched(service, make_rental, rentals, payments, notifications):
    rental = make_rental(payment_status=PaymentStatus.PAID, payment_reference='card_1')
    payments.refuse_refunds = True

    result = service.cancel_rental(rental.id, RENTER_ID)

    assert result.kind == ErrorKind.INTERNAL_ERROR
    stored = rentals.get_by_id(rental.id)
    assert stored.status == RentalStatus.PENDING
    assert stored.payment_status == PaymentStatus.PAID
    assert notifications.sent == []


# ===== extend_rental =====

def test_renter_extends_confirmed_rental(service, make_rental, rentals, payments):
    rental = make_rental(day(10), day(15), status=RentalStatus.CONFIRMED)

    result = service.extend_rental(rental.id, RENTER_ID, day(17))

    extension = result.value
    assert extension.new_end == day(17)
    assert extension.total_price == Decimal('385.00')
    assert extension.additional_amount == Decimal('110.00')
    assert extension.payment_reference == 'card_1'
    assert rentals.get_by_id(rental.id).end == day(17)


def test_extension_notifies_owner(service, make_rental, notifications):
    rental = make_rental(status=RentalStatus.ACTIVE)

    service.extend_rental(rental.id, RENTER_ID, day(16))

    assert notifications.recipients() == [OWNER_ID]


def test_owner_cannot_extend(service, make_rental):
    rental = make_rental(status=RentalStatus.CONFIRMED)

    assert service.extend_rental(rental.id, OWNER_ID, day(17)).kind == ErrorKind.UNAUTHORIZED


def test_pending_rental_cannot_be_extended(service, make_rental):
    rental = make_rental()

    assert service.extend_rental(rental.id, RENTER_ID, day(17)).kind == ErrorKind.INVALID_STATE


def test_extension_must_move_end_forward(service, make_rental):
    rental = make_rental(status=RentalStatus.CONFIRMED)

    assert service.extend_rental(rental.id, RENTER_ID, day(15)).kind == ErrorKind.VALIDATION_ERROR


def test_extension_into_next_booking_conflicts(service, make_rental):
    rental = make_rental(day(10), day(15), status=RentalStatus.CONFIRMED)
    make_rental(day(16), day(18), renter_id=STRANGER_ID)

    assert service.extend_rental(rental.id, RENTER_ID, day(17)).kind == ErrorKind.BOOKING_CONFLICT
