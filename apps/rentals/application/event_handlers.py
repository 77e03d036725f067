"""
Rental Event Handlers

Turn committed domain events into user notifications. Handlers run after
the transaction commits; delivery itself is asynchronous and a failing
handler never affects the rental.
"""

from typing import Callable, Dict, List
import logging

from apps.rentals.domain.events import (
    RentalCancelled,
    RentalCreated,
    RentalExtended,
    RentalStatusChanged,
)

logger = logging.getLogger(__name__)

STATUS_MESSAGES = {
    'confirmed': ("Rental confirmed", "Your rental request was accepted by the owner."),
    'active': ("Item handed over", "The rental has started. Enjoy!"),
    'completed': ("Rental completed", "The item was returned and the rental is complete."),
}


class RentalNotificationHandlers:
    """Event handlers bound to a NotificationService"""

    def __init__(self, notifications):
        self.notifications = notifications

    def on_rental_created(self, event: RentalCreated):
        self.notifications.notify(
            event.owner_id,
            "New rental request",
            f"A renter requested your item for {event.dates} (total {event.total_price}).",
        )

    def on_status_changed(self, event: RentalStatusChanged):
        subject, message = STATUS_MESSAGES.get(
            event.new_status,
            ("Rental updated", f"The rental is now {event.new_status}."),
        )
        # Unknown actor (admin update): tell the renter
        recipient = event.owner_id if event.changed_by == event.renter_id else event.renter_id
        self.notifications.notify(recipient, subject, message)

    def on_rental_cancelled(self, event: RentalCancelled):
        message = "The rental was cancelled."
        if event.reason:
            message = f"The rental was cancelled: {event.reason}"
        if event.refund_amount and not event.refund_amount.is_zero():
            message += f" A refund of {event.refund_amount} has been issued."

        for user_id in (event.owner_id, event.renter_id):
            self.notifications.notify(user_id, "Rental cancelled", message)

    def on_rental_extended(self, event: RentalExtended):
        self.notifications.notify(
            event.owner_id,
            "Rental extended",
            f"The renter extended the rental until {event.new_end:%Y-%m-%d %H:%M}.",
        )

    def registry(self) -> Dict[type, List[Callable]]:
        return {
            RentalCreated: [self.on_rental_created],
            RentalStatusChanged: [self.on_status_changed],
            RentalCancelled: [self.on_rental_cancelled],
            RentalExtended: [self.on_rental_extended],
        }
