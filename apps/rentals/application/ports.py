"""
Ports

The narrow interfaces through which the rental use cases reach
persistence and external services. Implementations live in
``apps.rentals.infrastructure`` (Django ORM, in-memory),
``apps.payments`` and ``apps.notifications``.
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Iterable, List
from uuid import UUID

from shared.domain.value_objects import Money
from apps.rentals.domain.entities import BlockedDay, Item, PlatformSettings, Rental


class ItemRepository(ABC):

    @abstractmethod
    def get_by_id(self, item_id: UUID) -> Item | None:
        pass


class RentalRepository(ABC):
    """Soft-deleted rentals are invisible to every read method."""

    @abstractmethod
    def query_by_item(self, item_id: UUID) -> List[Rental]:
        pass

    @abstractmethod
    def query_by_participant(self, user_id) -> List[Rental]:
        pass

    @abstractmethod
    def query_pending(self) -> List[Rental]:
        """Rentals still waiting for the owner's confirmation"""
        pass

    @abstractmethod
    def get_by_id(self, rental_id: UUID) -> Rental | None:
        pass

    @abstractmethod
    def add(self, rental: Rental):
        pass

    @abstractmethod
    def update(self, rental: Rental):
        pass

    @abstractmethod
    def remove(self, rental: Rental):
        """Soft delete; ``rental.removed_at`` is already set."""
        pass


class BlockedDayRepository(ABC):
    """Days an owner took an item off the market"""

    @abstractmethod
    def query_by_item(self, item_id: UUID) -> List[BlockedDay]:
        pass

    @abstractmethod
    def block(self, item_id: UUID, days: Iterable[date], reason: str = '') -> List[BlockedDay]:
        """Block each day; days blocked already keep their reason"""
        pass

    @abstractmethod
    def unblock(self, item_id: UUID, days: Iterable[date]) -> int:
        """Return how many blocked days were released"""
        pass


class SettingsRepository(ABC):

    @abstractmethod
    def get_platform_settings(self) -> PlatformSettings | None:
        pass


class PaymentGatewayError(Exception):
    """Raised when the payment provider cannot be reached or refuses a request."""


class PaymentGateway(ABC):

    @abstractmethod
    def create_payment_intent(self, amount: Money, method: str) -> str:
        """Return the provider's reference for a new payment intent"""
        pass

    @abstractmethod
    def refund(self, reference: str, amount: Money) -> bool:
        pass


class NotificationService(ABC):
    """Fire-and-forget delivery; callers never wait for the outcome."""

    @abstractmethod
    def notify(self, user_id, subject: str, message: str):
        pass
