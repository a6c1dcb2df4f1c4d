"""Core event service — hosting, browsing and removing dinner events.

Responsibilities:
- Authorization hook: only the host may change or delete an event
- Event creation, dated or with an availability poll (one transaction)
- Public listing with search / cuisine / price / city / date filters
- Event detail with computed occupancy and host pay link
- Host status changes (cancel, complete) and deletion with guest notices
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session, selectinload

from family_dinner.database import ensure_utc, utcnow
from family_dinner.errors import Forbidden, NotFound, ValidationFailed
from family_dinner.models.event import Event, EventCuisine, EventDietaryAccommodation, EventStatus, PollStatus
from family_dinner.models.reservation import Reservation, ReservationStatus
from family_dinner.models.user import User
from family_dinner.services import capacity_ledger, poll_service
from family_dinner.services.notifications import Notifier, notify_safely
from family_dinner.utils.payments import generate_venmo_url

logger = logging.getLogger(__name__)

MAX_EVENT_CAPACITY = 50

# Statuses a host may set directly; OPEN/FULL/POLL_ACTIVE are derived
_HOST_SETTABLE = (EventStatus.cancelled, EventStatus.completed)


@dataclass
class EventFilters:
    search: Optional[str] = None
    cuisine_types: list[str] = field(default_factory=list)
    max_price: Optional[float] = None
    city: Optional[str] = None
    status: EventStatus = EventStatus.open
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None


@dataclass
class EventDraft:
    """Everything a host supplies when creating an event."""

    host_id: str
    title: str
    max_capacity: int
    description: Optional[str] = None
    date: Optional[datetime] = None
    reservation_deadline: Optional[datetime] = None
    duration_minutes: int = 120
    estimated_cost_per_person: float = 0.0
    timezone: str = "UTC"
    allow_waitlist: bool = True
    cuisine_types: list[str] = field(default_factory=list)
    dietary_accommodations: list[str] = field(default_factory=list)
    neighborhood: Optional[str] = None
    city: Optional[str] = None
    address: Optional[str] = None
    show_full_address: bool = False
    # Poll mode
    use_availability_poll: bool = False
    proposed_dates: list[poll_service.SlotInput] = field(default_factory=list)
    poll_deadline: Optional[datetime] = None


def _check_authorization(event: Event, actor_user_id: str) -> None:
    """Only the host may modify this event."""
    if event.host_id != actor_user_id:
        raise Forbidden("Only the host may modify this event")


def _unique(values: list[str]) -> list[str]:
    seen = []
    for value in values:
        cleaned = value.strip()
        if cleaned and cleaned not in seen:
            seen.append(cleaned)
    return seen


def _validate_draft(draft: EventDraft, now: datetime, max_capacity: int) -> None:
    if not draft.title or not draft.title.strip():
        raise ValidationFailed("Title is required")
    if draft.max_capacity < 1 or draft.max_capacity > max_capacity:
        raise ValidationFailed(f"Event capacity must be between 1 and {max_capacity}")
    if draft.estimated_cost_per_person < 0:
        raise ValidationFailed("Estimated cost per person cannot be negative")
    if draft.use_availability_poll:
        if draft.poll_deadline is None:
            raise ValidationFailed("Poll deadline is required")
        return
    if draft.date is None:
        raise ValidationFailed("Event date is required")
    if ensure_utc(draft.date) <= now:
        raise ValidationFailed("Event date must be in the future")
    if draft.reservation_deadline is not None and ensure_utc(draft.reservation_deadline) > ensure_utc(draft.date):
        raise ValidationFailed("Reservation deadline must be before event date")


def create_event(
    db: Session,
    draft: EventDraft,
    now: Optional[datetime] = None,
    max_capacity: int = MAX_EVENT_CAPACITY,
) -> Event:
    """Create a dated event, or a polling event with its proposed dates."""
    now = now or utcnow()
    _validate_draft(draft, now, max_capacity)

    try:
        if db.query(User).filter(User.user_id == draft.host_id).first() is None:
            raise NotFound("Host user")

        event = Event(
            host_id=draft.host_id,
            title=draft.title.strip(),
            description=draft.description,
            duration_minutes=draft.duration_minutes,
            max_capacity=draft.max_capacity,
            estimated_cost_per_person=draft.estimated_cost_per_person,
            timezone=draft.timezone,
            allow_waitlist=draft.allow_waitlist,
            neighborhood=draft.neighborhood,
            city=draft.city,
            address=draft.address,
            show_full_address=draft.show_full_address,
            status=EventStatus.open,
            created_at=now,
            updated_at=now,
        )
        event.cuisines = [EventCuisine(cuisine=c) for c in _unique(draft.cuisine_types)]
        event.dietary_accommodations = [
            EventDietaryAccommodation(accommodation=d) for d in _unique(draft.dietary_accommodations)
        ]
        db.add(event)
        db.flush()

        if draft.use_availability_poll:
            poll_service.enable_poll(db, event, draft.proposed_dates, draft.poll_deadline, now)
        else:
            event.date = ensure_utc(draft.date)
            event.reservation_deadline = ensure_utc(draft.reservation_deadline or draft.date)

        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("Created event '%s' (%s) by host %s%s", event.title, event.event_id, draft.host_id,
                " with availability poll" if draft.use_availability_poll else "")
    return event


def list_public_events(db: Session, filters: Optional[EventFilters] = None) -> list[Event]:
    """Events matching ``filters``; only OPEN events unless a status is given."""
    filters = filters or EventFilters()
    query = (
        db.query(Event)
        .join(User, Event.host_id == User.user_id)
        .options(selectinload(Event.cuisines), selectinload(Event.dietary_accommodations))
        .filter(Event.status == filters.status)
    )
    if filters.search:
        term = filters.search.strip().lower()
        term = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        pattern = f"%{term}%"
        query = query.filter(or_(
            Event.title.ilike(pattern, escape="\\"),
            Event.description.ilike(pattern, escape="\\"),
            User.display_name.ilike(pattern, escape="\\"),
        ))
    if filters.cuisine_types:
        query = query.filter(Event.cuisines.any(EventCuisine.cuisine.in_(filters.cuisine_types)))
    if filters.max_price is not None:
        query = query.filter(Event.estimated_cost_per_person <= filters.max_price)
    if filters.city:
        query = query.filter(Event.city.ilike(filters.city.strip()))
    if filters.date_from is not None:
        query = query.filter(Event.date >= ensure_utc(filters.date_from))
    if filters.date_to is not None:
        query = query.filter(Event.date <= ensure_utc(filters.date_to))
    events = query.all()
    # Polling events have no date yet; keep them after dated ones
    return sorted(events, key=lambda e: (e.date is None, e.date or e.created_at))


def get_event(db: Session, event_id: str) -> Event:
    event = db.query(Event).filter(Event.event_id == event_id).first()
    if event is None:
        raise NotFound("Event")
    return event


def get_event_details(db: Session, event_id: str) -> dict:
    """Event plus occupancy figures and, when the host has Venmo, a pay link."""
    event = get_event(db, event_id)
    occupancy = capacity_ledger.confirmed_guest_count(db, event_id)
    waitlisted = (
        db.query(Reservation)
        .filter(Reservation.event_id == event_id, Reservation.status == ReservationStatus.waitlist)
        .count()
    )

    payment_url = None
    if event.host.venmo_username and event.estimated_cost_per_person > 0:
        payment_url = generate_venmo_url(
            event.host.venmo_username,
            event.estimated_cost_per_person,
            f"Family Dinner: {event.title}",
        )

    return {
        "event": event,
        "current_reservations": occupancy,
        "spots_remaining": max(0, event.max_capacity - occupancy),
        "waitlist_count": waitlisted,
        "payment_url": payment_url,
    }


def update_event_status(db: Session, event_id: str, actor_user_id: str, new_status: EventStatus) -> Event:
    """Host marks an event CANCELLED or COMPLETED."""
    if new_status not in _HOST_SETTABLE:
        raise ValidationFailed(f"Status {new_status.value} is managed automatically")

    try:
        event = capacity_ledger.lock_event(db, event_id)
        _check_authorization(event, actor_user_id)
        if event.status in _HOST_SETTABLE:
            raise ValidationFailed(f"Event is already {event.status.value.lower()}")

        event.status = new_status
        if new_status == EventStatus.cancelled and event.poll_status == PollStatus.active:
            event.poll_status = PollStatus.closed
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("Event %s marked %s by host %s", event_id, new_status.value, actor_user_id)
    return event


def delete_event(db: Session, event_id: str, actor_user_id: str, notifier: Optional[Notifier] = None) -> int:
    """Delete an event and everything under it. Returns the number of guests notified."""
    try:
        event = capacity_ledger.lock_event(db, event_id)
        _check_authorization(event, actor_user_id)

        guests = [
            (r.attendee_email, r.attendee_name)
            for r in event.reservations
            if r.status == ReservationStatus.confirmed
        ]
        title = event.title
        db.delete(event)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("Deleted event %s (%d confirmed reservations)", event_id, len(guests))

    notified = 0
    if notifier is not None:
        for email, name in guests:
            if email and notify_safely(notifier.event_removed, email, name, title):
                notified += 1
    return notified
