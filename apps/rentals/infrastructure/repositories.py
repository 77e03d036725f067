"""
Django ORM Repositories

Translate between the Django models and the domain entities. Soft-deleted
rentals are filtered out by ``Rental.objects``.
"""

from datetime import date
from typing import Iterable, List
from uuid import UUID
import logging

from django.db.models import Q

from shared.domain.value_objects import DateRange, Money
from apps.items.models import Item as ItemModel
from apps.rentals.application.ports import (
    BlockedDayRepository,
    ItemRepository,
    RentalRepository,
    SettingsRepository,
)
from apps.rentals.domain.entities import (
    BlockedDay,
    Item,
    PaymentStatus,
    PlatformSettings,
    Rental,
    RentalStatus,
)
from apps.rentals.models import BlockedDay as BlockedDayModel
from apps.rentals.models import PlatformSettings as PlatformSettingsModel
from apps.rentals.models import Rental as RentalModel

logger = logging.getLogger(__name__)


def _money(amount, currency: str) -> Money | None:
    if amount is None:
        return None
    return Money(amount, currency)


def item_to_domain(model: ItemModel) -> Item:
    return Item(
        id=model.id,
        owner_id=model.owner_id,
        title=model.title,
        price_per_day=_money(model.price_per_day, model.currency),
        price_per_hour=_money(model.price_per_hour, model.currency),
        deposit=_money(model.deposit, model.currency),
        delivery_available=model.delivery_available,
        delivery_fee=_money(model.delivery_fee, model.currency),
        delivery_radius=model.delivery_radius,
        available=model.available,
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


def rental_to_domain(model: RentalModel) -> Rental:
    currency = model.currency
    return Rental(
        id=model.id,
        item_id=model.item_id,
        owner_id=model.owner_id,
        renter_id=model.renter_id,
        dates=DateRange(model.start_date, model.end_date),
        total_price=Money(model.total_price, currency),
        platform_fee=Money(model.platform_fee, currency),
        deposit_paid=Money(model.deposit_paid, currency),
        delivery_fee=Money(model.delivery_fee, currency),
        delivery_requested=model.delivery_requested,
        delivery_address=model.delivery_address,
        status=RentalStatus(model.status),
        payment_status=PaymentStatus(model.payment_status),
        payment_method=model.payment_method,
        payment_reference=model.payment_reference,
        expires_at=model.expires_at,
        cancellation_reason=model.cancellation_reason,
        refund_amount=_money(model.refund_amount, currency),
        confirmed_at=model.confirmed_at,
        handed_over_at=model.handed_over_at,
        returned_at=model.returned_at,
        cancelled_at=model.cancelled_at,
        removed_at=model.removed_at,
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


def rental_fields(rental: Rental) -> dict:
    return {
        'item_id': rental.item_id,
        'owner_id': rental.owner_id,
        'renter_id': rental.renter_id,
        'start_date': rental.start,
        'end_date': rental.end,
        'status': rental.status.value,
        'payment_status': rental.payment_status.value,
        'total_price': rental.total_price.amount,
        'platform_fee': rental.platform_fee.amount,
        'deposit_paid': rental.deposit_paid.amount,
        'delivery_fee': rental.delivery_fee.amount,
        'currency': rental.total_price.currency,
        'delivery_requested': rental.delivery_requested,
        'delivery_address': rental.delivery_address,
        'payment_method': rental.payment_method,
        'payment_reference': rental.payment_reference,
        'expires_at': rental.expires_at,
        'cancellation_reason': rental.cancellation_reason,
        'refund_amount': rental.refund_amount.amount if rental.refund_amount else None,
        'confirmed_at': rental.confirmed_at,
        'handed_over_at': rental.handed_over_at,
        'returned_at': rental.returned_at,
        'cancelled_at': rental.cancelled_at,
        'removed_at': rental.removed_at,
        'created_at': rental.created_at,
        'updated_at': rental.updated_at,
    }


class DjangoItemRepository(ItemRepository):

    def get_by_id(self, item_id: UUID) -> Item | None:
        model = ItemModel.objects.filter(pk=item_id).first()
        return item_to_domain(model) if model else None


class DjangoRentalRepository(RentalRepository):

    def query_by_item(self, item_id: UUID) -> List[Rental]:
        return [rental_to_domain(m) for m in RentalModel.objects.filter(item_id=item_id)]

    def query_by_participant(self, user_id) -> List[Rental]:
        queryset = RentalModel.objects.filter(Q(owner_id=user_id) | Q(renter_id=user_id))
        return [rental_to_domain(m) for m in queryset]

    def query_pending(self) -> List[Rental]:
        queryset = RentalModel.objects.filter(status=RentalModel.Status.PENDING).order_by("expires_at")
        return [rental_to_domain(m) for m in queryset]

    def get_by_id(self, rental_id: UUID) -> Rental | None:
        model = RentalModel.objects.filter(pk=rental_id).first()
        return rental_to_domain(model) if model else None

    def add(self, rental: Rental):
        RentalModel.objects.create(id=rental.id, **rental_fields(rental))
        logger.debug(f"Inserted rental {rental.id}")

    def update(self, rental: Rental):
        updated = RentalModel.all_objects.filter(pk=rental.id).update(**rental_fields(rental))
        if not updated:
            raise LookupError(f"Rental {rental.id} does not exist")

    def remove(self, rental: Rental):
        # Soft delete: the row stays for accounting
        self.update(rental)
        logger.info(f"Rental {rental.id} removed")


class DjangoSettingsRepository(SettingsRepository):

    def get_platform_settings(self) -> PlatformSettings | None:
        model = PlatformSettingsModel.objects.order_by('pk').first()
        if model is None:
            return None
        return PlatformSettings(platform_fee_percentage=model.platform_fee_percentage)


class DjangoBlockedDayRepository(BlockedDayRepository):

    @staticmethod
    def _to_domain(model: BlockedDayModel) -> BlockedDay:
        return BlockedDay(item_id=model.item_id, day=model.day, reason=model.reason)

    def query_by_item(self, item_id: UUID) -> List[BlockedDay]:
        return [self._to_domain(m) for m in BlockedDayModel.objects.filter(item_id=item_id)]

    def block(self, item_id: UUID, days: Iterable[date], reason: str = '') -> List[BlockedDay]:
        blocked = []
        for day in days:
            model, _ = BlockedDayModel.objects.get_or_create(item_id=item_id, day=day, defaults={'reason': reason})
            blocked.append(self._to_domain(model))
        return blocked

    def unblock(self, item_id: UUID, days: Iterable[date]) -> int:
        deleted, _ = BlockedDayModel.objects.filter(item_id=item_id, day__in=list(days)).delete()
        return deleted
