"""Capacity ledger — occupancy of an event and whether more guests fit.

The answers are only meaningful inside the transaction that acts on them:
callers lock the event row first (see ``lock_event``) and then read the
ledger, so no other writer can change occupancy in between.
"""
import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from family_dinner.errors import NotFound
from family_dinner.models.event import Event
from family_dinner.models.reservation import Reservation, ReservationStatus

logger = logging.getLogger(__name__)


def lock_event(db: Session, event_id: str) -> Event:
    """Load an event with a row-level write lock held until commit/rollback."""
    event = (
        db.query(Event)
        .filter(Event.event_id == event_id)
        .with_for_update()
        .populate_existing()
        .one_or_none()
    )
    if event is None:
        raise NotFound("Event")
    return event


def confirmed_guest_count(db: Session, event_id: str) -> int:
    """Sum of guest_count over CONFIRMED reservations."""
    total = (
        db.query(func.coalesce(func.sum(Reservation.guest_count), 0))
        .filter(
            Reservation.event_id == event_id,
            Reservation.status == ReservationStatus.confirmed,
        )
        .scalar()
    )
    return int(total or 0)


def remaining_capacity(db: Session, event: Event) -> int:
    return max(0, event.max_capacity - confirmed_guest_count(db, event.event_id))


def has_available_spots(db: Session, event: Event, requested: int) -> bool:
    """``confirmed + requested <= max_capacity``."""
    occupancy = confirmed_guest_count(db, event.event_id)
    available = occupancy + requested <= event.max_capacity
    logger.debug(
        "Capacity check event=%s occupancy=%d requested=%d max=%d -> %s",
        event.event_id, occupancy, requested, event.max_capacity, available,
    )
    return available
