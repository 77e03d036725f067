"""
Booking Lifecycle

The guarded state machine of a rental. Every allowed move is listed in
TRANSITIONS together with the participants who may trigger it:

    pending   -> confirmed   owner             (request not expired)
    pending   -> cancelled   owner or renter
    confirmed -> active      owner             (handover)
    confirmed -> cancelled   owner or renter
    active    -> completed   renter or owner   (return)

Anything else is an invalid transition, whoever asks for it. The lifecycle
only answers whether a move is allowed; side effects (refunds,
notifications) belong to the caller.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, FrozenSet, Tuple

from shared.domain.result import Err, Ok, Result
from apps.rentals.domain.entities import Rental, RentalStatus
from apps.rentals.domain.errors import ErrorKind


class Role(Enum):
    OWNER = 'owner'
    RENTER = 'renter'


@dataclass(frozen=True)
class Transition:
    source: RentalStatus
    target: RentalStatus
    actors: FrozenSet[Role]
    precondition: str = ''


OWNER_ONLY = frozenset({Role.OWNER})
PARTICIPANTS = frozenset({Role.OWNER, Role.RENTER})

TRANSITIONS: Dict[Tuple[RentalStatus, RentalStatus], Transition] = {
    (t.source, t.target): t
    for t in (
        Transition(RentalStatus.PENDING, RentalStatus.CONFIRMED, OWNER_ONLY, 'booking not expired'),
        Transition(RentalStatus.PENDING, RentalStatus.CANCELLED, PARTICIPANTS),
        Transition(RentalStatus.CONFIRMED, RentalStatus.ACTIVE, OWNER_ONLY, 'handover acknowledged'),
        Transition(RentalStatus.CONFIRMED, RentalStatus.CANCELLED, PARTICIPANTS),
        Transition(RentalStatus.ACTIVE, RentalStatus.COMPLETED, PARTICIPANTS, 'return acknowledged'),
    )
}


def role_of(rental: Rental, actor_id) -> Role | None:
    if actor_id == rental.owner_id:
        return Role.OWNER
    if actor_id == rental.renter_id:
        return Role.RENTER
    return None


class BookingLifecycle:

    def __init__(self, transitions: Dict[Tuple[RentalStatus, RentalStatus], Transition] = TRANSITIONS):
        self._transitions = transitions

    def is_allowed(self, source: RentalStatus, target: RentalStatus) -> bool:
        return (source, target) in self._transitions

    def transition_for(self, rental: Rental, target: RentalStatus) -> Result[Transition]:
        transition = self._transitions.get((rental.status, target))
        if transition is None:
            return Err(
                ErrorKind.INVALID_STATE_TRANSITION,
                f"Cannot move a rental from {rental.status.value} to {target.value}",
            )
        return Ok(transition)

    def check_precondition(self, rental: Rental, target: RentalStatus, now: datetime) -> Result[None]:
        if target == RentalStatus.CONFIRMED and rental.is_expired(now):
            return Err(ErrorKind.INVALID_STATE_TRANSITION, "The rental request has expired")
        return Ok(None)

    def check_move(self, rental: Rental, target: RentalStatus, now: datetime) -> Result[Transition]:
        """The move exists and its precondition holds; nobody's role is checked"""
        found = self.transition_for(rental, target)
        if not found.is_ok:
            return found
        ready = self.check_precondition(rental, target, now)
        return found if ready.is_ok else ready

    def authorize(
        self,
        rental: Rental,
        target: RentalStatus,
        actor_id,
        now: datetime,
    ) -> Result[Transition]:
        """
        Check that ``actor_id`` may move ``rental`` to ``target`` right now

        Order of checks: the move must exist, the actor must hold a role
        allowed for it, then the move's precondition must hold.
        """
        found = self.transition_for(rental, target)
        if not found.is_ok:
            return found
        transition = found.value

        role = role_of(rental, actor_id)
        if role not in transition.actors:
            allowed = ' or '.join(sorted(r.value for r in transition.actors))
            return Err(
                ErrorKind.UNAUTHORIZED,
                f"Only the {allowed} may move a rental from {rental.status.value} to {target.value}",
            )

        ready = self.check_precondition(rental, target, now)
        return found if ready.is_ok else ready

