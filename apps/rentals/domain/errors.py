"""Error taxonomy of the rental booking engine."""

from enum import Enum


class ErrorKind(Enum):
    NOT_FOUND = 'not_found'
    VALIDATION_ERROR = 'validation_error'
    ITEM_UNAVAILABLE = 'item_unavailable'
    SELF_RENTAL_FORBIDDEN = 'self_rental_forbidden'
    BOOKING_CONFLICT = 'booking_conflict'
    DELIVERY_UNAVAILABLE = 'delivery_unavailable'
    DELIVERY_ADDRESS_REQUIRED = 'delivery_address_required'
    INVALID_STATE_TRANSITION = 'invalid_state_transition'
    INVALID_STATE = 'invalid_state'
    UNAUTHORIZED = 'unauthorized'
    REFUND_REQUIRED = 'refund_required'
    INTERNAL_ERROR = 'internal_error'
