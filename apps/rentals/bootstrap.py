"""
Composition root for the rental engine

``bootstrap`` wires the services to their collaborators and builds the
message bus registry explicitly: one handler per command, a list of
handlers per event. ``get_container`` does this once per process with
the Django adapters.
"""

from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal
from functools import lru_cache
import logging

from shared.application.message_bus import MessageBus
from apps.rentals.application import commands
from apps.rentals.application.command_handlers import RentalCommandService
from apps.rentals.application.event_handlers import RentalNotificationHandlers
from apps.rentals.application.queries import RentalQueryService
from apps.rentals.domain.cancellation import CancellationPolicy

logger = logging.getLogger(__name__)


@dataclass
class Container:
    bus: MessageBus
    commands: RentalCommandService
    queries: RentalQueryService


def register_commands(bus: MessageBus, service: RentalCommandService):
    bus.register_command_handler(
        commands.CreateRental,
        lambda c: service.create_rental(
            c.item_id, c.renter_id, c.start, c.end,
            c.delivery_requested, c.delivery_address, c.payment_method,
        ),
    )
    bus.register_command_handler(
        commands.UpdateRental,
        lambda c: service.update_rental(
            c.rental_id, c.start, c.end, c.status, c.payment_status,
            c.delivery_requested, c.delivery_address, c.actor_id,
        ),
    )
    bus.register_command_handler(
        commands.DeleteRental,
        lambda c: service.delete_rental(c.rental_id, c.actor_id),
    )
    bus.register_command_handler(
        commands.ChangeRentalStatus,
        lambda c: service.change_status(c.rental_id, c.target_status, c.actor_id),
    )
    bus.register_command_handler(
        commands.CancelRental,
        lambda c: service.cancel_rental(c.rental_id, c.actor_id, c.reason),
    )
    bus.register_command_handler(
        commands.ExtendRental,
        lambda c: service.extend_rental(c.rental_id, c.actor_id, c.new_end),
    )
    bus.register_command_handler(
        commands.BlockDates,
        lambda c: service.block_dates(c.item_id, c.actor_id, c.start_day, c.end_day, c.reason),
    )
    bus.register_command_handler(
        commands.UnblockDates,
        lambda c: service.unblock_dates(c.item_id, c.actor_id, c.start_day, c.end_day),
    )


def bootstrap(
    *,
    items,
    rentals,
    settings_repo,
    uow_factory,
    payments,
    notifications,
    bus: MessageBus | None = None,
    policy: CancellationPolicy | None = None,
    clock=None,
    default_fee_percentage=Decimal('10'),
    pending_hold: timedelta = timedelta(hours=48),
    blocked_days=None,
) -> Container:
    """
    Build the services

    ``uow_factory`` receives the bus and returns a fresh unit of work, so
    events collected in a transaction reach the registered handlers.
    """
    bus = bus or MessageBus()

    service = RentalCommandService(
        items,
        rentals,
        settings_repo,
        lambda: uow_factory(bus),
        payments,
        policy=policy,
        clock=clock,
        default_fee_percentage=default_fee_percentage,
        pending_hold=pending_hold,
        blocked_days=blocked_days,
    )
    queries = RentalQueryService(
        items,
        rentals,
        settings_repo,
        blocked_days=blocked_days,
        clock=clock,
        default_fee_percentage=default_fee_percentage,
    )

    register_commands(bus, service)
    for event_type, handlers in RentalNotificationHandlers(notifications).registry().items():
        for handler in handlers:
            bus.register_event_handler(event_type, handler)

    return Container(bus=bus, commands=service, queries=queries)


@lru_cache(maxsize=1)
def get_container() -> Container:
    """The Django-wired container used by views and tasks"""
    from django.conf import settings
    from django.utils import timezone

    from shared.application.uow import DjangoUnitOfWork
    from apps.items.models import Item
    from apps.notifications.services import CeleryNotificationService
    from apps.payments.gateway import PaymentGatewayClient
    from apps.rentals.infrastructure.repositories import (
        DjangoBlockedDayRepository,
        DjangoItemRepository,
        DjangoRentalRepository,
        DjangoSettingsRepository,
    )

    config = settings.RENTALS
    logger.info("Bootstrapping rental services")

    return bootstrap(
        items=DjangoItemRepository(),
        rentals=DjangoRentalRepository(),
        settings_repo=DjangoSettingsRepository(),
        uow_factory=lambda bus: DjangoUnitOfWork(bus, lock_model=Item),
        payments=PaymentGatewayClient.from_settings(),
        notifications=CeleryNotificationService(),
        policy=CancellationPolicy.from_config(config),
        clock=timezone.now,
        default_fee_percentage=Decimal(str(config.get('DEFAULT_PLATFORM_FEE_PERCENTAGE', '10'))),
        pending_hold=timedelta(hours=int(config.get('PENDING_HOLD_HOURS', 48))),
        blocked_days=DjangoBlockedDayRepository(),
    )
