"""
Rental Command Handlers

The write-side use cases of the rental domain. RentalCommandService
orchestrates the domain components inside a unit of work:

- create_rental: request an item for a date range
- update_rental: move a rental to new dates / delivery options
- delete_rental: soft delete an unpaid, not yet started rental
- change_status: confirm, hand over or return a rental
- cancel_rental: cancel with refund evaluation
- extend_rental: push the end date of a running rental
- expire_pending_rentals: cancel requests the owner never confirmed
- block_dates / unblock_dates: the owner takes days off the market or releases them

Every public operation returns ``Ok(value)`` or ``Err(kind, message)``.
Checks that depend on other rentals of the same item run while the unit
of work holds that item's lock, so check and write are one atomic step.
"""

from datetime import date, datetime, timedelta
from decimal import Decimal
from functools import wraps
from typing import Callable, List
from uuid import UUID
import logging

from shared.domain.base import utcnow
from shared.domain.result import Err, Ok, Result
from shared.domain.value_objects import DateRange, Money
from apps.rentals.application.dto import (
    BlockedDayDto,
    CancellationResult,
    CreateRentalResponse,
    ExtensionResult,
    RentalDto,
)
from apps.rentals.application.ports import PaymentGatewayError
from apps.rentals.domain.availability import AvailabilityChecker
from apps.rentals.domain.cancellation import CancellationPolicy
from apps.rentals.domain.entities import BlockedDay, PaymentStatus, Rental, RentalStatus
from apps.rentals.domain.errors import ErrorKind
from apps.rentals.domain.events import RentalCreated
from apps.rentals.domain.lifecycle import BookingLifecycle
from apps.rentals.domain.pricing import PricingCalculator

logger = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = "An unexpected error occurred, please try again later"
EXPIRED_REASON = "The owner did not confirm the request in time"
MAX_BLOCKED_SPAN_DAYS = 366


def guarded(method):
    """Turn unexpected exceptions into an INTERNAL_ERROR result"""

    @wraps(method)
    def wrapper(self, *args, **kwargs):
        try:
            return method(self, *args, **kwargs)
        except Exception:
            logger.exception(f"Unexpected error in {method.__name__}")
            return Err(ErrorKind.INTERNAL_ERROR, INTERNAL_ERROR_MESSAGE)

    return wrapper


def starts_in_past(start: datetime, now: datetime) -> bool:
    """Compare by calendar day in the caller's timezone"""
    if start.tzinfo is not None and now.tzinfo is not None:
        start = start.astimezone(now.tzinfo)
    return start.date() < now.date()


def parse_status(value: str, enum_type, label: str):
    try:
        return Ok(enum_type(value))
    except ValueError:
        return Err(ErrorKind.VALIDATION_ERROR, f"Unknown {label} '{value}'")


class RentalCommandService:
    """
    Orchestrator for rental mutations

    Usage:
        service = RentalCommandService(
            items, rentals, settings_repo, uow_factory, payments,
            policy=CancellationPolicy(),
        )
        result = service.create_rental(item_id, renter_id, start, end)
        if result.is_ok:
            print(result.value.total_price)
    """

    def __init__(
        self,
        items,
        rentals,
        settings_repo,
        uow_factory: Callable,
        payments,
        *,
        policy: CancellationPolicy | None = None,
        lifecycle: BookingLifecycle | None = None,
        clock: Callable[[], datetime] | None = None,
        default_fee_percentage=Decimal('10'),
        pending_hold: timedelta = timedelta(hours=48),
        blocked_days=None,
    ):
        self.items = items
        self.rentals = rentals
        self.settings_repo = settings_repo
        self.uow_factory = uow_factory
        self.payments = payments
        self.policy = policy or CancellationPolicy()
        self.lifecycle = lifecycle or BookingLifecycle()
        self.clock = clock or utcnow
        self.default_fee_percentage = Decimal(str(default_fee_percentage))
        self.pending_hold = pending_hold
        self.blocked_days = blocked_days
        self.availability = AvailabilityChecker(rentals, blocked_days)

    # ===== Helpers =====

    def _transaction(self, fn, lock_key):
        return self.uow_factory().run_in_transaction(fn, lock_key=lock_key)

    def _fee_percentage(self) -> Decimal:
        """The configured platform fee, or the default when none is stored"""
        settings = self.settings_repo.get_platform_settings()
        if settings is None:
            return self.default_fee_percentage
        return settings.platform_fee_percentage

    def _calculator(self, fee_percentage: Decimal | None = None) -> PricingCalculator:
        if fee_percentage is None:
            fee_percentage = self._fee_percentage()
        return PricingCalculator(fee_percentage)

    def _validate_dates(self, start: datetime, end: datetime, now: datetime) -> Err | None:
        if start >= end:
            return Err(ErrorKind.VALIDATION_ERROR, "End date must be after start date")
        if starts_in_past(start, now):
            return Err(ErrorKind.VALIDATION_ERROR, "Start date cannot be in the past")
        return None

    def _conflict_error(self, conflict: Rental | BlockedDay) -> Err:
        if isinstance(conflict, BlockedDay):
            return Err(
                ErrorKind.BOOKING_CONFLICT,
                f"The owner blocked the item on {conflict.day:%d.%m.%Y}",
            )
        return Err(
            ErrorKind.BOOKING_CONFLICT,
            f"Item is already booked for {conflict.dates}",
        )

    def _request_payment(self, amount: Money, method: str | None) -> str | None:
        """
        Ask the gateway for a payment intent

        Failures are logged and leave the reference empty; the payment is
        reconciled asynchronously.
        """
        if not method or amount.is_zero():
            return None
        try:
            return self.payments.create_payment_intent(amount, method)
        except PaymentGatewayError as e:
            logger.warning(f"Payment intent of {amount} via {method} failed: {e}")
            return None

    # ===== Create =====

    @guarded
    def create_rental(
        self,
        item_id: UUID,
        renter_id: int,
        start: datetime,
        end: datetime,
        delivery_requested: bool = False,
        delivery_address: str | None = None,
        payment_method: str | None = None,
    ) -> Result[CreateRentalResponse]:
        logger.info(f"Creating rental of item {item_id} for renter {renter_id}, {start} - {end}")
        now = self.clock()

        item = self.items.get_by_id(item_id)
        if item is None:
            return Err(ErrorKind.NOT_FOUND, "Item not found")
        if not item.available:
            return Err(ErrorKind.ITEM_UNAVAILABLE, "Item is not available for rent")
        if renter_id == item.owner_id:
            return Err(ErrorKind.SELF_RENTAL_FORBIDDEN, "You cannot rent your own item")

        invalid = self._validate_dates(start, end, now)
        if invalid:
            return invalid

        calculator = self._calculator()

        def book(uow):
            conflict = self.availability.find_conflict(item.id, start, end)
            if conflict:
                return self._conflict_error(conflict)

            priced = calculator.compute_price(item, start, end, delivery_requested, delivery_address)
            if not priced.is_ok:
                return priced
            price = priced.value

            rental = Rental(
                item_id=item.id,
                owner_id=item.owner_id,
                renter_id=renter_id,
                dates=DateRange(start, end),
                total_price=price.total_price,
                platform_fee=price.platform_fee,
                deposit_paid=price.deposit_required,
                delivery_fee=price.delivery_fee,
                delivery_requested=delivery_requested,
                delivery_address=delivery_address if delivery_requested else None,
                payment_method=payment_method,
                expires_at=now + self.pending_hold,
                created_at=now,
                updated_at=now,
            )
            rental.add_event(RentalCreated(
                aggregate_id=rental.id,
                rental_id=rental.id,
                item_id=item.id,
                owner_id=item.owner_id,
                renter_id=renter_id,
                dates=rental.dates,
                total_price=rental.total_price,
            ))

            uow.collect_events(rental)
            self.rentals.add(rental)
            return Ok((rental, price))

        booked = self._transaction(book, lock_key=item.id)
        if not booked.is_ok:
            logger.info(f"Rental of item {item_id} rejected: {booked.message}")
            return booked
        rental, price = booked.value

        # Outside the item lock: the gateway may be slow
        reference = self._request_payment(price.total_price + price.deposit_required, payment_method)
        if reference:
            self._transaction(
                lambda uow: self._store_payment_reference(rental.id, reference),
                lock_key=item.id,
            )

        logger.info(f"Rental {rental.id} created, total {price.total_price}")
        return Ok(CreateRentalResponse(
            rental_id=rental.id,
            rental_days=price.rental_days,
            base_price=price.base_price.amount,
            delivery_fee=price.delivery_fee.amount,
            platform_fee=price.platform_fee.amount,
            total_price=price.total_price.amount,
            deposit_required=price.deposit_required.amount,
            currency=price.total_price.currency,
            status=rental.status.value,
            payment_status=rental.payment_status.value,
            payment_reference=reference,
        ))

    def _store_payment_reference(self, rental_id: UUID, reference: str):
        rental = self.rentals.get_by_id(rental_id)
        if rental is None:
            logger.warning(f"Rental {rental_id} vanished before storing payment reference")
            return
        rental.payment_reference = reference
        self.rentals.update(rental)

    # ===== Update =====

    @guarded
    def update_rental(
        self,
        rental_id: UUID,
        start: datetime,
        end: datetime,
        status: str | None = None,
        payment_status: str | None = None,
        delivery_requested: bool | None = None,
        delivery_address: str | None = None,
        actor_id: int | None = None,
    ) -> Result[RentalDto]:
        """
        Reschedule a rental and optionally move its status

        Status changes obey the same transition table as ``change_status``;
        with ``actor_id`` given the actor's role is checked as well. The only
        payment move allowed here is recording a payment (pending to paid).
        """
        logger.info(f"Updating rental {rental_id} to {start} - {end}")
        now = self.clock()

        current = self.rentals.get_by_id(rental_id)
        if current is None:
            return Err(ErrorKind.NOT_FOUND, "Rental not found")
        if actor_id is not None and not current.is_participant(actor_id):
            return Err(ErrorKind.UNAUTHORIZED, "Only the owner or renter may change this rental")

        invalid = self._validate_dates(start, end, now)
        if invalid:
            return invalid

        target = None
        if status is not None:
            parsed = parse_status(status, RentalStatus, 'rental status')
            if not parsed.is_ok:
                return parsed
            target = parsed.value

        new_payment_status = None
        if payment_status is not None:
            parsed = parse_status(payment_status, PaymentStatus, 'payment status')
            if not parsed.is_ok:
                return parsed
            new_payment_status = parsed.value

        item = self.items.get_by_id(current.item_id)
        if item is None:
            return Err(ErrorKind.NOT_FOUND, "Item not found")

        try:
            fee_percentage = self._fee_percentage()
        except Exception:
            logger.warning(f"Platform settings unavailable, rental {rental_id} keeps its fee", exc_info=True)
            fee_percentage = None
        calculator = PricingCalculator(fee_percentage if fee_percentage is not None else self.default_fee_percentage)

        def reschedule(uow):
            rental = self.rentals.get_by_id(rental_id)
            if rental is None:
                return Err(ErrorKind.NOT_FOUND, "Rental not found")
            if rental.is_terminal():
                return Err(
                    ErrorKind.INVALID_STATE,
                    f"A {rental.status.value} rental cannot be changed",
                )

            if target is not None and target != rental.status:
                if target == RentalStatus.CANCELLED:
                    return Err(
                        ErrorKind.INVALID_STATE_TRANSITION,
                        "Rentals are cancelled through the cancel operation",
                    )
                if actor_id is None:
                    allowed = self.lifecycle.check_move(rental, target, now)
                else:
                    allowed = self.lifecycle.authorize(rental, target, actor_id, now)
                if not allowed.is_ok:
                    return allowed

            if new_payment_status is not None and new_payment_status != rental.payment_status:
                refused = self._check_payment_move(rental, new_payment_status, actor_id)
                if refused:
                    return refused

            conflict = self.availability.find_conflict(rental.item_id, start, end, exclude_rental_id=rental.id)
            if conflict:
                return self._conflict_error(conflict)

            wants_delivery = rental.delivery_requested if delivery_requested is None else delivery_requested
            address = delivery_address if delivery_address is not None else rental.delivery_address

            priced = calculator.compute_price(item, start, end, wants_delivery, address)
            if not priced.is_ok:
                return priced
            price = priced.value
            if fee_percentage is None:
                price = price.with_platform_fee(rental.platform_fee)

            rental.delivery_requested = wants_delivery
            rental.delivery_address = address if wants_delivery else None
            rental.reprice(DateRange(start, end), price, now)
            if target is not None and target != rental.status:
                rental.transition_to(target, now, changed_by=actor_id)
            if new_payment_status is not None:
                rental.payment_status = new_payment_status

            uow.collect_events(rental)
            self.rentals.update(rental)
            return Ok(RentalDto.from_entity(rental))

        return self._transaction(reschedule, lock_key=current.item_id)

    @staticmethod
    def _check_payment_move(rental: Rental, target: PaymentStatus, actor_id: int | None) -> Err | None:
        if target == PaymentStatus.REFUNDED or rental.payment_status != PaymentStatus.PENDING:
            return Err(
                ErrorKind.INVALID_STATE_TRANSITION,
                f"Cannot move a payment from {rental.payment_status.value} to {target.value}; "
                "refunds are recorded by the cancel operation",
            )
        if actor_id is not None and actor_id != rental.owner_id:
            return Err(ErrorKind.UNAUTHORIZED, "Only the owner may record a payment")
        return None

    # ===== Delete =====

    @guarded
    def delete_rental(self, rental_id: UUID, actor_id: int | None = None) -> Result[UUID]:
        logger.info(f"Deleting rental {rental_id}")
        now = self.clock()

        current = self.rentals.get_by_id(rental_id)
        if current is None:
            return Err(ErrorKind.NOT_FOUND, "Rental not found")
        if actor_id is not None and not current.is_participant(actor_id):
            return Err(ErrorKind.UNAUTHORIZED, "Only the owner or renter may delete this rental")

        def remove(uow):
            rental = self.rentals.get_by_id(rental_id)
            if rental is None:
                return Err(ErrorKind.NOT_FOUND, "Rental not found")
            if rental.status in (RentalStatus.ACTIVE, RentalStatus.COMPLETED):
                return Err(
                    ErrorKind.INVALID_STATE,
                    f"A {rental.status.value} rental cannot be deleted",
                )
            if rental.payment_status == PaymentStatus.PAID:
                return Err(
                    ErrorKind.REFUND_REQUIRED,
                    "The rental has been paid; cancel it to refund the renter first",
                )

            rental.mark_removed(now)
            uow.collect_events(rental)
            self.rentals.remove(rental)
            return Ok(rental.id)

        return self._transaction(remove, lock_key=current.item_id)

    # ===== Status =====

    @guarded
    def change_status(self, rental_id: UUID, target_status: str, actor_id: int) -> Result[RentalDto]:
        logger.info(f"User {actor_id} moves rental {rental_id} to {target_status}")

        parsed = parse_status(target_status, RentalStatus, 'rental status')
        if not parsed.is_ok:
            return parsed
        target = parsed.value

        if target == RentalStatus.CANCELLED:
            cancelled = self._cancel(rental_id, actor_id, reason='')
            if not cancelled.is_ok:
                return cancelled
            rental, _ = cancelled.value
            return Ok(RentalDto.from_entity(rental))

        now = self.clock()
        current = self.rentals.get_by_id(rental_id)
        if current is None:
            return Err(ErrorKind.NOT_FOUND, "Rental not found")

        def move(uow):
            rental = self.rentals.get_by_id(rental_id)
            if rental is None:
                return Err(ErrorKind.NOT_FOUND, "Rental not found")

            authorized = self.lifecycle.authorize(rental, target, actor_id, now)
            if not authorized.is_ok:
                return authorized

            rental.transition_to(target, now, changed_by=actor_id)
            uow.collect_events(rental)
            self.rentals.update(rental)
            return Ok(RentalDto.from_entity(rental))

        return self._transaction(move, lock_key=current.item_id)

    # ===== Cancel =====

    @guarded
    def cancel_rental(self, rental_id: UUID, actor_id: int, reason: str = '') -> Result[CancellationResult]:
        cancelled = self._cancel(rental_id, actor_id, reason)
        if not cancelled.is_ok:
            return cancelled

        rental, outcome = cancelled.value
        return Ok(CancellationResult(
            rental_id=rental.id,
            status=rental.status.value,
            payment_status=rental.payment_status.value,
            refund_amount=outcome.refund_amount.amount,
            deposit_refund=outcome.deposit_refund.amount,
            refund_method=outcome.refund_method,
        ))

    def _cancel(self, rental_id: UUID, actor_id: int, reason: str):
        logger.info(f"User {actor_id} cancels rental {rental_id}")
        now = self.clock()

        current = self.rentals.get_by_id(rental_id)
        if current is None:
            return Err(ErrorKind.NOT_FOUND, "Rental not found")

        def cancel(uow):
            rental = self.rentals.get_by_id(rental_id)
            if rental is None:
                return Err(ErrorKind.NOT_FOUND, "Rental not found")

            authorized = self.lifecycle.authorize(rental, RentalStatus.CANCELLED, actor_id, now)
            if not authorized.is_ok:
                return authorized

            evaluated = self.policy.evaluate_cancellation(rental, now)
            if not evaluated.is_ok:
                return evaluated
            outcome = evaluated.value

            refund = None
            if outcome.issues_refund():
                refund = outcome.total_refund
                if rental.payment_reference and not self._refund(rental, refund):
                    return Err(
                        ErrorKind.INTERNAL_ERROR,
                        "The refund could not be processed, please try again later",
                    )

            rental.cancel(reason, refund, now, cancelled_by=actor_id)
            uow.collect_events(rental)
            self.rentals.update(rental)
            return Ok((rental, outcome))

        result = self._transaction(cancel, lock_key=current.item_id)
        if result.is_ok:
            logger.info(f"Rental {rental_id} cancelled, refund {result.value[1].total_refund}")
        return result

    def _refund(self, rental: Rental, amount: Money) -> bool:
        try:
            refunded = self.payments.refund(rental.payment_reference, amount)
        except PaymentGatewayError as e:
            logger.error(f"Refund of {amount} for rental {rental.id} failed: {e}")
            return False
        if not refunded:
            logger.error(f"Refund of {amount} for rental {rental.id} was refused")
        return refunded

    # ===== Extend =====

    @guarded
    def extend_rental(self, rental_id: UUID, actor_id: int, new_end: datetime) -> Result[ExtensionResult]:
        logger.info(f"User {actor_id} extends rental {rental_id} until {new_end}")
        now = self.clock()

        current = self.rentals.get_by_id(rental_id)
        if current is None:
            return Err(ErrorKind.NOT_FOUND, "Rental not found")
        if actor_id != current.renter_id:
            return Err(ErrorKind.UNAUTHORIZED, "Only the renter may extend this rental")

        item = self.items.get_by_id(current.item_id)
        if item is None:
            return Err(ErrorKind.NOT_FOUND, "Item not found")

        calculator = self._calculator()

        def extend(uow):
            rental = self.rentals.get_by_id(rental_id)
            if rental is None:
                return Err(ErrorKind.NOT_FOUND, "Rental not found")
            if rental.status not in (RentalStatus.CONFIRMED, RentalStatus.ACTIVE):
                return Err(
                    ErrorKind.INVALID_STATE,
                    f"A {rental.status.value} rental cannot be extended",
                )
            if new_end <= rental.end:
                return Err(ErrorKind.VALIDATION_ERROR, "The new end must be after the current end")

            conflict = self.availability.find_conflict(
                rental.item_id, rental.start, new_end, exclude_rental_id=rental.id,
            )
            if conflict:
                return self._conflict_error(conflict)

            priced = calculator.compute_price(
                item, rental.start, new_end, rental.delivery_requested, rental.delivery_address,
            )
            if not priced.is_ok:
                return priced

            additional = rental.extend(new_end, priced.value, now)
            uow.collect_events(rental)
            self.rentals.update(rental)
            return Ok((rental, additional))

        extended = self._transaction(extend, lock_key=current.item_id)
        if not extended.is_ok:
            return extended
        rental, additional = extended.value

        reference = self._request_payment(additional, rental.payment_method)
        return Ok(ExtensionResult(
            rental_id=rental.id,
            new_end=rental.end,
            additional_amount=additional.amount,
            total_price=rental.total_price.amount,
            payment_reference=reference,
        ))

    # ===== Expiry =====

    @guarded
    def expire_pending_rentals(self) -> Result[int]:
        """
        Cancel pending requests whose hold ran out or whose start passed

        Captured payments are refunded in full. A rental whose refund fails
        stays pending and is retried on the next run.

        Returns:
            Ok(number of rentals expired)
        """
        now = self.clock()
        expired = 0

        for candidate in self.rentals.query_pending():
            if not candidate.is_expired(now):
                continue
            done = self._transaction(
                lambda uow, rental_id=candidate.id: self._expire(uow, rental_id, now),
                lock_key=candidate.item_id,
            )
            if done:
                expired += 1

        if expired:
            logger.info(f"Expired {expired} pending rentals")
        return Ok(expired)

    def _expire(self, uow, rental_id: UUID, now: datetime) -> bool:
        rental = self.rentals.get_by_id(rental_id)
        if rental is None or not rental.is_expired(now):
            return False

        evaluated = self.policy.evaluate_cancellation(rental, now)
        if not evaluated.is_ok:
            return False

        refund = evaluated.value.total_refund if evaluated.value.issues_refund() else None
        if refund and rental.payment_reference and not self._refund(rental, refund):
            return False

        rental.cancel(EXPIRED_REASON, refund, now)
        uow.collect_events(rental)
        self.rentals.update(rental)
        return True

    # ===== Blocked days =====

    def _owned_item(self, item_id: UUID, actor_id: int):
        item = self.items.get_by_id(item_id)
        if item is None:
            return Err(ErrorKind.NOT_FOUND, "Item not found")
        if item.owner_id != actor_id:
            return Err(ErrorKind.UNAUTHORIZED, "Only the owner may block or release days of this item")
        if self.blocked_days is None:
            return Err(ErrorKind.INTERNAL_ERROR, "Blocking days is not available")
        return Ok(item)

    @staticmethod
    def _day_span(start_day: date, end_day: date):
        """Days from ``start_day`` through ``end_day``, both inclusive"""
        if end_day < start_day:
            return Err(ErrorKind.VALIDATION_ERROR, "The last day must not be before the first day")
        span = (end_day - start_day).days + 1
        if span > MAX_BLOCKED_SPAN_DAYS:
            return Err(ErrorKind.VALIDATION_ERROR, f"At most {MAX_BLOCKED_SPAN_DAYS} days can be changed at once")
        return Ok([start_day + timedelta(days=n) for n in range(span)])

    @guarded
    def block_dates(
        self,
        item_id: UUID,
        actor_id: int,
        start_day: date,
        end_day: date,
        reason: str = '',
    ) -> Result[List[BlockedDayDto]]:
        """
        Take the days ``start_day`` through ``end_day`` off the market

        Days already blocked keep their reason. Days a pending, confirmed
        or active rental occupies cannot be blocked; cancel the rental first.

        Returns:
            Ok(list of BlockedDayDto for the requested days)
        """
        logger.info(f"User {actor_id} blocks item {item_id} from {start_day} to {end_day}")
        owned = self._owned_item(item_id, actor_id)
        if not owned.is_ok:
            return owned
        spanned = self._day_span(start_day, end_day)
        if not spanned.is_ok:
            return spanned
        days = spanned.value
        if start_day < self.clock().date():
            return Err(ErrorKind.VALIDATION_ERROR, "Days in the past cannot be blocked")

        def block(uow):
            wanted = set(days)
            for rental in self.rentals.query_by_item(item_id):
                if rental.blocks_dates() and wanted.intersection(rental.dates.calendar_days()):
                    return self._conflict_error(rental)
            blocked = self.blocked_days.block(item_id, days, reason)
            return Ok([BlockedDayDto.from_entity(b) for b in blocked])

        return self._transaction(block, lock_key=item_id)

    @guarded
    def unblock_dates(self, item_id: UUID, actor_id: int, start_day: date, end_day: date) -> Result[int]:
        """Release blocked days; returns how many were blocked before"""
        logger.info(f"User {actor_id} releases item {item_id} from {start_day} to {end_day}")
        owned = self._owned_item(item_id, actor_id)
        if not owned.is_ok:
            return owned
        spanned = self._day_span(start_day, end_day)
        if not spanned.is_ok:
            return spanned

        return self._transaction(
            lambda uow: Ok(self.blocked_days.unblock(item_id, spanned.value)),
            lock_key=item_id,
        )
