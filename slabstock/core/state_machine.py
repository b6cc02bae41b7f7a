"""
Status transition tables for batches and reservations.

Only the transitions listed here are legal; anything else raises
InvalidStatusTransitionError. Pure logic, no I/O.
"""

from collections.abc import Mapping

from slabstock.core.entities.batch import Batch, BatchStatus
from slabstock.core.entities.reservation import ReservationStatus
from slabstock.core.exceptions import (
    BatchNotAvailableError,
    InvalidStatusTransitionError,
)

BATCH_TRANSITIONS: Mapping[BatchStatus, frozenset[BatchStatus]] = {
    # reserve, or take off the market
    BatchStatus.AVAILABLE: frozenset({BatchStatus.RESERVED, BatchStatus.INACTIVE}),
    # cancel/expire, or confirm sale
    BatchStatus.RESERVED: frozenset({BatchStatus.AVAILABLE, BatchStatus.SOLD}),
    BatchStatus.SOLD: frozenset(),
    BatchStatus.INACTIVE: frozenset({BatchStatus.AVAILABLE}),
}

RESERVATION_TRANSITIONS: Mapping[ReservationStatus, frozenset[ReservationStatus]] = {
    ReservationStatus.ACTIVE: frozenset(
        {
            ReservationStatus.CONFIRMED_SALE,
            ReservationStatus.EXPIRED,
            ReservationStatus.CANCELLED,
        }
    ),
    ReservationStatus.CONFIRMED_SALE: frozenset(),
    ReservationStatus.EXPIRED: frozenset(),
    ReservationStatus.CANCELLED: frozenset(),
}


def can_transition_batch(current: BatchStatus, target: BatchStatus) -> bool:
    return target in BATCH_TRANSITIONS[current]


def can_transition_reservation(
    current: ReservationStatus, target: ReservationStatus
) -> bool:
    return target in RESERVATION_TRANSITIONS[current]


def validate_batch_transition(current: BatchStatus, target: BatchStatus) -> None:
    if not can_transition_batch(current, target):
        raise InvalidStatusTransitionError("batch", current.value, target.value)


def validate_reservation_transition(
    current: ReservationStatus, target: ReservationStatus
) -> None:
    if not can_transition_reservation(current, target):
        raise InvalidStatusTransitionError("reservation", current.value, target.value)


def ensure_reservable(batch: Batch) -> None:
    """Raise BatchNotAvailableError unless the batch can be reserved now."""
    if not batch.is_available():
        raise BatchNotAvailableError(batch.id, batch.status.value)
    validate_batch_transition(batch.status, BatchStatus.RESERVED)
