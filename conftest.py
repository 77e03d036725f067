"""Shared fixtures: the rental engine wired to in-memory adapters."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from shared.domain.value_objects import DateRange, Money
from apps.rentals.application.ports import NotificationService, PaymentGateway, PaymentGatewayError
from apps.rentals.bootstrap import bootstrap
from apps.rentals.domain.cancellation import CancellationPolicy
from apps.rentals.domain.entities import Item, PlatformSettings, Rental
from apps.rentals.infrastructure.memory import (
    InMemoryBlockedDayRepository,
    InMemoryItemRepository,
    InMemoryRentalRepository,
    InMemorySettingsRepository,
    InMemoryUnitOfWork,
    ItemLocks,
)

OWNER_ID = 1
RENTER_ID = 2
STRANGER_ID = 3

NOW = datetime(2030, 6, 1, 9, 0, tzinfo=timezone.utc)


def day(n: int, hour: int = 0) -> datetime:
    """June ``n`` 2030 in UTC"""
    return datetime(2030, 6, n, hour, tzinfo=timezone.utc)


class FixedClock:

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class FakePaymentGateway(PaymentGateway):

    def __init__(self):
        self.intents = []
        self.refunds = []
        self.fail_intents = False
        self.refuse_refunds = False

    def create_payment_intent(self, amount: Money, method: str) -> str:
        if self.fail_intents:
            raise PaymentGatewayError("provider down")
        reference = f"{method}_{len(self.intents) + 1}"
        self.intents.append((reference, amount))
        return reference

    def refund(self, reference: str, amount: Money) -> bool:
        self.refunds.append((reference, amount))
        return not self.refuse_refunds


class RecordingNotifications(NotificationService):

    def __init__(self):
        self.sent = []

    def notify(self, user_id, subject: str, message: str):
        self.sent.append((user_id, subject, message))

    def recipients(self):
        return [user_id for user_id, _, _ in self.sent]


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def item():
    return Item(
        owner_id=OWNER_ID,
        title="Cargo bike",
        price_per_day=Money('50'),
        deposit=Money('100'),
        delivery_available=False,
    )


@pytest.fixture
def items(item):
    return InMemoryItemRepository([item])


@pytest.fixture
def rentals():
    return InMemoryRentalRepository()


@pytest.fixture
def settings_repo():
    return InMemorySettingsRepository(PlatformSettings(platform_fee_percentage=Decimal('10')))


@pytest.fixture
def blocked_days():
    return InMemoryBlockedDayRepository()


@pytest.fixture
def payments():
    return FakePaymentGateway()


@pytest.fixture
def notifications():
    return RecordingNotifications()


@pytest.fixture
def container(items, rentals, settings_repo, payments, notifications, clock, blocked_days):
    locks = ItemLocks()
    return bootstrap(
        items=items,
        rentals=rentals,
        settings_repo=settings_repo,
        uow_factory=lambda bus: InMemoryUnitOfWork(rentals, locks, bus),
        payments=payments,
        notifications=notifications,
        policy=CancellationPolicy(),
        clock=clock,
        blocked_days=blocked_days,
    )


@pytest.fixture
def service(container):
    return container.commands


@pytest.fixture
def make_rental(rentals, item):
    """Store a rental directly, bypassing the service checks"""

    def factory(start=None, end=None, **overrides) -> Rental:
        start = start or day(10)
        end = end or day(15)
        fields = dict(
            item_id=item.id,
            owner_id=item.owner_id,
            renter_id=RENTER_ID,
            dates=DateRange(start, end),
            total_price=Money('275'),
            platform_fee=Money('25'),
            deposit_paid=Money('100'),
            delivery_fee=Money('0'),
            payment_method='card',
            created_at=NOW,
            updated_at=NOW,
        )
        fields.update(overrides)
        rental = Rental(**fields)
        rentals.add(rental)
        return rental

    return factory
