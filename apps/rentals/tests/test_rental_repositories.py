from datetime import date, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest
from django.contrib.auth import get_user_model
from django.utils import timezone

from shared.application.message_bus import MessageBus
from shared.application.uow import DjangoUnitOfWork
from shared.domain.value_objects import DateRange, Money
from apps.items.models import Item as ItemModel
from apps.rentals.domain.entities import BlockedDay, PaymentStatus, PlatformSettings, Rental, RentalStatus
from apps.rentals.domain.events import RentalStatusChanged
from apps.rentals.infrastructure.repositories import (
    DjangoBlockedDayRepository,
    DjangoItemRepository,
    DjangoRentalRepository,
    DjangoSettingsRepository,
)
from apps.rentals.models import PlatformSettings as PlatformSettingsModel
from apps.rentals.models import Rental as RentalModel


@pytest.fixture
def owner(db):
    return get_user_model().objects.create_user(username="owner", email="owner@example.com", password="pass")


@pytest.fixture
def renter(db):
    return get_user_model().objects.create_user(username="renter", email="renter@example.com", password="pass")


@pytest.fixture
def item_model(owner):
    return ItemModel.objects.create(
        owner=owner,
        title="Pressure washer",
        price_per_day=Decimal("25.00"),
        deposit=Decimal("80.00"),
    )


@pytest.fixture
def rental(item_model, owner, renter):
    start = timezone.now() + timedelta(days=3)
    return Rental(
        item_id=item_model.id,
        owner_id=owner.id,
        renter_id=renter.id,
        dates=DateRange(start, start + timedelta(days=2)),
        total_price=Money("55"),
        platform_fee=Money("5"),
        deposit_paid=Money("80"),
        delivery_fee=Money("0"),
        payment_method="card",
    )


@pytest.mark.django_db
def test_item_is_mapped_to_domain(item_model):
    item = DjangoItemRepository().get_by_id(item_model.id)

    assert item.owner_id == item_model.owner_id
    assert item.price_per_day == Money("25")
    assert item.price_per_hour is None
    assert item.deposit == Money("80")
    assert item.available


@pytest.mark.django_db
def test_missing_item_is_none():
    assert DjangoItemRepository().get_by_id(uuid4()) is None


@pytest.mark.django_db
def test_rental_round_trip(rental):
    repo = DjangoRentalRepository()

    repo.add(rental)
    loaded = repo.get_by_id(rental.id)

    assert loaded == rental
    assert loaded.dates == rental.dates
    assert loaded.total_price == Money("55")
    assert loaded.status == RentalStatus.PENDING
    assert loaded.payment_status == PaymentStatus.PENDING
    assert loaded.payment_method == "card"


@pytest.mark.django_db
def test_update_and_queries(rental, owner, renter, item_model):
    repo = DjangoRentalRepository()
    repo.add(rental)

    rental.transition_to(RentalStatus.CONFIRMED, timezone.now())
    repo.update(rental)

    assert repo.get_by_id(rental.id).status == RentalStatus.CONFIRMED
    assert [r.id for r in repo.query_by_item(item_model.id)] == [rental.id]
    assert [r.id for r in repo.query_by_participant(owner.id)] == [rental.id]
    assert [r.id for r in repo.query_by_participant(renter.id)] == [rental.id]


@pytest.mark.django_db
def test_removed_rentals_are_hidden_but_kept(rental, item_model):
    repo = DjangoRentalRepository()
    repo.add(rental)

    rental.mark_removed(timezone.now())
    repo.remove(rental)

    assert repo.get_by_id(rental.id) is None
    assert repo.query_by_item(item_model.id) == []
    assert RentalModel.all_objects.filter(pk=rental.id).exists()


@pytest.mark.django_db
def test_platform_settings():
    repo = DjangoSettingsRepository()
    assert repo.get_platform_settings() is None

    PlatformSettingsModel.objects.create(platform_fee_percentage=Decimal("12.50"))

    assert repo.get_platform_settings() == PlatformSettings(platform_fee_percentage=Decimal("12.50"))


@pytest.mark.django_db
def test_blocked_days_round_trip(item_model):
    repo = DjangoBlockedDayRepository()
    first, second = date(2030, 6, 10), date(2030, 6, 11)

    repo.block(item_model.id, [first, second], reason="Repair")
    # blocking again keeps the original reason
    repo.block(item_model.id, [second], reason="Other")

    assert repo.query_by_item(item_model.id) == [
        BlockedDay(item_model.id, first, "Repair"),
        BlockedDay(item_model.id, second, "Repair"),
    ]
    assert repo.unblock(item_model.id, [second, date(2030, 6, 12)]) == 1
    assert [b.day for b in repo.query_by_item(item_model.id)] == [first]


@pytest.mark.django_db
def test_new_items_use_configured_currency(owner, settings):
    settings.RENTALS = {**settings.RENTALS, "CURRENCY": "CHF"}

    model = ItemModel.objects.create(owner=owner, title="Tent", price_per_day=Decimal("10.00"))

    assert model.currency == "CHF"
    assert DjangoItemRepository().get_by_id(model.id).price_per_day == Money("10", "CHF")


@pytest.mark.django_db
def test_unit_of_work_publishes_after_commit(rental, item_model, django_capture_on_commit_callbacks):
    bus = MessageBus()
    seen = []
    bus.register_event_handler(RentalStatusChanged, lambda e: seen.append(e.new_status))
    repo = DjangoRentalRepository()
    repo.add(rental)

    def confirm(uow):
        loaded = repo.get_by_id(rental.id)
        loaded.transition_to(RentalStatus.CONFIRMED, timezone.now())
        uow.collect_events(loaded)
        repo.update(loaded)

    with django_capture_on_commit_callbacks(execute=True):
        DjangoUnitOfWork(bus, lock_model=ItemModel).run_in_transaction(confirm, lock_key=item_model.id)

    assert seen == ["confirmed"]


@pytest.mark.django_db
def test_unit_of_work_rolls_back(rental, item_model, django_capture_on_commit_callbacks):
    repo = DjangoRentalRepository()

    def add_then_fail(uow):
        repo.add(rental)
        raise RuntimeError("abort")

    with django_capture_on_commit_callbacks(execute=True) as callbacks:
        with pytest.raises(RuntimeError):
            DjangoUnitOfWork(lock_model=ItemModel).run_in_transaction(add_then_fail, lock_key=item_model.id)

    assert repo.get_by_id(rental.id) is None
    assert callbacks == []


@pytest.mark.django_db
def test_query_pending_skips_other_statuses(rental, item_model, owner, renter):
    repo = DjangoRentalRepository()
    repo.add(rental)
    confirmed = Rental(
        item_id=item_model.id,
        owner_id=owner.id,
        renter_id=renter.id,
        dates=DateRange(rental.end, rental.end + timedelta(days=1)),
        total_price=Money("27.50"),
        platform_fee=Money("2.50"),
        deposit_paid=Money("80"),
        delivery_fee=Money("0"),
        status=RentalStatus.CONFIRMED,
    )
    repo.add(confirmed)

    assert [r.id for r in repo.query_pending()] == [rental.id]


@pytest.mark.django_db(transaction=True)
def test_expiry_task_cancels_stale_requests(rental):
    from apps.rentals.tasks import expire_pending_rentals

    rental.expires_at = timezone.now() - timedelta(minutes=5)
    DjangoRentalRepository().add(rental)

    assert expire_pending_rentals() == {"expired": 1}

    model = RentalModel.objects.get(pk=rental.id)
    assert model.status == RentalModel.Status.CANCELLED
    assert model.cancelled_at is not None
