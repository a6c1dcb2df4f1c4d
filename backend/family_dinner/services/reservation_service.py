"""Reservation coordinator — booking, cancellation and waitlist promotion.

Responsibilities:
- One live (non-cancelled) reservation per identity per event
- Capacity check and insert in one transaction, under the event row lock
- Waitlist admission when the event is full and allows it
- FIFO promotion of waitlisted guests when a confirmed booking is cancelled
- OPEN <-> FULL status derived from occupancy
- Notifications after commit, best effort
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from family_dinner.database import ensure_utc, utcnow
from family_dinner.errors import (
    DuplicateReservation,
    EventFull,
    EventNotBookable,
    Forbidden,
    NotFound,
    ReservationAlreadyCancelled,
    ReservationClosed,
    TooLateToCancel,
    ValidationFailed,
)
from family_dinner.identity import Identity
from family_dinner.models.event import Event, EventStatus
from family_dinner.models.reservation import Reservation, ReservationStatus
from family_dinner.services import capacity_ledger
from family_dinner.services.notifications import Notifier, notify_safely

logger = logging.getLogger(__name__)

MIN_GUESTS = 1
MAX_GUESTS = 10
CANCELLATION_CUTOFF_HOURS = 24

_BOOKABLE = (EventStatus.open, EventStatus.full)


@dataclass
class ReservationMeta:
    dietary_restrictions: Optional[str] = None
    special_requests: Optional[str] = None


@dataclass
class ReservationResult:
    reservation: Reservation
    message: str

    @property
    def waitlisted(self) -> bool:
        return self.reservation.status == ReservationStatus.waitlist


@dataclass
class CancellationResult:
    reservation: Reservation
    promoted: list[Reservation] = field(default_factory=list)

    @property
    def promoted_count(self) -> int:
        return len(self.promoted)

    @property
    def message(self) -> str:
        return f"Reservation cancelled. {self.promoted_count} people promoted from waitlist."


def _find_active_reservation(db: Session, event_id: str, identity: Identity) -> Optional[Reservation]:
    query = db.query(Reservation).filter(
        Reservation.event_id == event_id,
        Reservation.status != ReservationStatus.cancelled,
    )
    if identity.user_id is not None:
        query = query.filter(Reservation.user_id == identity.user_id)
    else:
        query = query.filter(
            Reservation.user_id.is_(None),
            func.lower(Reservation.guest_email) == identity.guest_email,
        )
    return query.first()


def refresh_event_status(db: Session, event: Event) -> int:
    """Flip OPEN <-> FULL to match occupancy. Returns current occupancy.

    Only OPEN and FULL are touched; polling, completed and cancelled events
    keep their status.
    """
    db.flush()
    occupancy = capacity_ledger.confirmed_guest_count(db, event.event_id)
    if occupancy >= event.max_capacity and event.status == EventStatus.open:
        event.status = EventStatus.full
        logger.info("Event %s is now FULL (%d/%d)", event.event_id, occupancy, event.max_capacity)
    elif occupancy < event.max_capacity and event.status == EventStatus.full:
        event.status = EventStatus.open
        logger.info("Event %s reopened (%d/%d)", event.event_id, occupancy, event.max_capacity)
    return occupancy


def create_reservation(
    db: Session,
    event_id: str,
    identity: Identity,
    guest_count: int,
    meta: Optional[ReservationMeta] = None,
    notifier: Optional[Notifier] = None,
    now: Optional[datetime] = None,
    max_guests: int = MAX_GUESTS,
) -> ReservationResult:
    """Book ``guest_count`` seats for ``identity``, confirmed or waitlisted."""
    now = now or utcnow()
    meta = meta or ReservationMeta()

    if guest_count < MIN_GUESTS or guest_count > max_guests:
        raise ValidationFailed(f"Guest count must be between {MIN_GUESTS} and {max_guests}")

    try:
        event = capacity_ledger.lock_event(db, event_id)

        if event.status not in _BOOKABLE:
            raise EventNotBookable(event.status.value)
        if event.reservation_deadline is not None and now > event.reservation_deadline:
            raise ReservationClosed()

        if _find_active_reservation(db, event_id, identity) is not None:
            logger.warning("Duplicate reservation attempt for event %s by %s", event_id, identity)
            raise DuplicateReservation()

        if capacity_ledger.has_available_spots(db, event, guest_count):
            status = ReservationStatus.confirmed
            message = "Reservation confirmed!"
        elif event.allow_waitlist:
            status = ReservationStatus.waitlist
            message = "Added to waitlist. You'll be notified if spots become available."
        else:
            raise EventFull()

        reservation = Reservation(
            event_id=event_id,
            user_id=identity.user_id,
            guest_name=identity.guest_name,
            guest_email=identity.guest_email,
            guest_count=guest_count,
            status=status,
            dietary_restrictions=meta.dietary_restrictions,
            special_requests=meta.special_requests,
            created_at=now,
            updated_at=now,
        )
        db.add(reservation)
        refresh_event_status(db, event)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(
        "Reservation %s for event %s: %s x%d",
        reservation.reservation_id, event_id, reservation.status.value, guest_count,
    )

    if notifier is not None:
        if reservation.status == ReservationStatus.confirmed:
            notify_safely(
                notifier.reservation_confirmed,
                reservation.attendee_email, reservation.attendee_name,
                event.title, event.date, guest_count,
            )
        else:
            notify_safely(
                notifier.reservation_waitlisted,
                reservation.attendee_email, reservation.attendee_name,
                event.title, guest_count,
            )

    return ReservationResult(reservation=reservation, message=message)


def is_within_cutoff(event_date: Optional[datetime], now: datetime,
                     cutoff_hours: int = CANCELLATION_CUTOFF_HOURS) -> bool:
    """True when the event starts less than ``cutoff_hours`` from ``now`` (or already started)."""
    if event_date is None:
        return False
    return ensure_utc(event_date) - now < timedelta(hours=cutoff_hours)


def _promote_waitlist(db: Session, event: Event, free_capacity: int, now: datetime) -> list[Reservation]:
    """Promote WAITLIST entries oldest-first; stop at the first one that does not fit."""
    waitlist = (
        db.query(Reservation)
        .filter(
            Reservation.event_id == event.event_id,
            Reservation.status == ReservationStatus.waitlist,
        )
        .order_by(Reservation.created_at.asc(), Reservation.reservation_id.asc())
        .all()
    )

    promoted = []
    remaining = free_capacity
    for entry in waitlist:
        if entry.guest_count > remaining:
            break
        entry.status = ReservationStatus.confirmed
        entry.updated_at = now
        remaining -= entry.guest_count
        promoted.append(entry)
        logger.info("Promoted reservation %s from waitlist for event %s", entry.reservation_id, event.event_id)
    return promoted


def cancel_reservation(
    db: Session,
    reservation_id: str,
    identity: Identity,
    notifier: Optional[Notifier] = None,
    now: Optional[datetime] = None,
    cutoff_hours: int = CANCELLATION_CUTOFF_HOURS,
) -> CancellationResult:
    """Cancel a reservation and hand its seats to the waitlist, FIFO."""
    now = now or utcnow()

    try:
        reservation = db.query(Reservation).filter(Reservation.reservation_id == reservation_id).first()
        if reservation is None:
            raise NotFound("Reservation")
        if not identity.owns(reservation):
            raise Forbidden("You can only cancel your own reservations")

        event = capacity_ledger.lock_event(db, reservation.event_id)
        db.refresh(reservation)

        if reservation.status == ReservationStatus.cancelled:
            raise ReservationAlreadyCancelled()
        if is_within_cutoff(event.date, now, cutoff_hours):
            raise TooLateToCancel(cutoff_hours)

        was_confirmed = reservation.status == ReservationStatus.confirmed
        reservation.status = ReservationStatus.cancelled
        reservation.updated_at = now
        db.flush()

        promoted = []
        if was_confirmed:
            free_capacity = min(reservation.guest_count, capacity_ledger.remaining_capacity(db, event))
            promoted = _promote_waitlist(db, event, free_capacity, now)

        refresh_event_status(db, event)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(
        "Cancelled reservation %s for event %s; promoted %d from waitlist",
        reservation_id, event.event_id, len(promoted),
    )

    if notifier is not None:
        for entry in promoted:
            notify_safely(
                notifier.waitlist_promoted,
                entry.attendee_email, entry.attendee_name,
                event.title, event.date, entry.guest_count,
            )

    return CancellationResult(reservation=reservation, promoted=promoted)


def time_until_event(event_date: Optional[datetime], now: datetime) -> Optional[str]:
    """Human string like 'Today', 'Tomorrow', '3 days', '2 weeks'."""
    if event_date is None:
        return None
    diff = ensure_utc(event_date) - now
    days = -(-diff.total_seconds() // 86400)  # ceiling
    days = int(days)
    if days <= 0:
        return "Today"
    if days == 1:
        return "Tomorrow"
    if days < 7:
        return f"{days} days"
    return f"{-(-days // 7)} weeks"


def list_user_reservations(
    db: Session,
    user_id: str,
    now: Optional[datetime] = None,
    cutoff_hours: int = CANCELLATION_CUTOFF_HOURS,
) -> list[dict]:
    """A user's reservations, newest first, with ``can_cancel`` derived."""
    now = now or utcnow()
    reservations = (
        db.query(Reservation)
        .options(joinedload(Reservation.event))
        .filter(Reservation.user_id == user_id)
        .order_by(Reservation.created_at.desc())
        .all()
    )
    return [
        {
            "reservation": r,
            "can_cancel": (
                r.status != ReservationStatus.cancelled
                and r.event.date is not None
                and not is_within_cutoff(r.event.date, now, cutoff_hours)
            ),
            "time_until_event": time_until_event(r.event.date, now),
        }
        for r in reservations
    ]


def list_event_attendees(db: Session, event_id: str) -> list[Reservation]:
    """CONFIRMED and WAITLIST reservations, confirmed first, then by booking order."""
    if db.query(Event.event_id).filter(Event.event_id == event_id).first() is None:
        raise NotFound("Event")
    reservations = (
        db.query(Reservation)
        .filter(
            Reservation.event_id == event_id,
            Reservation.status.in_([ReservationStatus.confirmed, ReservationStatus.waitlist]),
        )
        .order_by(Reservation.created_at.asc())
        .all()
    )
    return sorted(reservations, key=lambda r: r.status != ReservationStatus.confirmed)
