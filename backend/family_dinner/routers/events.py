"""Event API routes — delegates to event_service for invariant enforcement."""
import logging
from typing import Optional
from datetime import datetime
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from family_dinner.config import Settings
from family_dinner.database import get_db
from family_dinner.dependencies import get_current_user_id, get_notifier, get_settings
from family_dinner.errors import ValidationFailed
from family_dinner.models.event import EventStatus
from family_dinner.schemas.common import ok
from family_dinner.schemas.event import (
    AttendeeOut,
    EventCreate,
    EventDetailOut,
    EventOut,
    EventStatusUpdate,
)
from family_dinner.services import event_service, reservation_service
from family_dinner.services.notifications import Notifier
from family_dinner.services.poll_service import SlotInput

logger = logging.getLogger(__name__)
router = APIRouter()


def _parse_status(value: str) -> EventStatus:
    try:
        return EventStatus(value.strip().upper())
    except ValueError:
        raise ValidationFailed(f"Unknown event status '{value}'")


@router.get("/")
def list_events(
    search: Optional[str] = Query(None),
    cuisine_types: Optional[list[str]] = Query(None),
    max_price: Optional[float] = Query(None),
    city: Optional[str] = Query(None),
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
    event_status: str = Query("OPEN", alias="status"),
    db: Session = Depends(get_db),
):
    """Browse events; OPEN only unless another status is requested."""
    filters = event_service.EventFilters(
        search=search,
        cuisine_types=cuisine_types or [],
        max_price=max_price,
        city=city,
        status=_parse_status(event_status),
        date_from=date_from,
        date_to=date_to,
    )
    events = event_service.list_public_events(db, filters)
    return ok([EventOut.from_event(e).model_dump(mode="json") for e in events])


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_event(
    payload: EventCreate,
    user_id: str = Depends(get_current_user_id),
    settings: Settings = Depends(get_settings),
    db: Session = Depends(get_db),
):
    """Host a new dinner, either on a fixed date or with an availability poll."""
    location = payload.location
    draft = event_service.EventDraft(
        host_id=user_id,
        title=payload.title,
        max_capacity=payload.max_capacity,
        description=payload.description,
        date=payload.date,
        reservation_deadline=payload.reservation_deadline,
        duration_minutes=payload.duration_minutes,
        estimated_cost_per_person=payload.estimated_cost_per_person,
        timezone=payload.timezone or settings.DEFAULT_TIMEZONE,
        allow_waitlist=payload.allow_waitlist,
        cuisine_types=payload.cuisine_types,
        dietary_accommodations=payload.dietary_accommodations,
        neighborhood=location.neighborhood if location else None,
        city=location.city if location else None,
        address=location.address if location else None,
        show_full_address=location.show_full_address if location else False,
        use_availability_poll=payload.use_availability_poll,
        proposed_dates=[SlotInput(date=pd.date, time=pd.time) for pd in payload.proposed_dates],
        poll_deadline=payload.poll_deadline,
    )
    event = event_service.create_event(db, draft, max_capacity=settings.MAX_EVENT_CAPACITY)
    return ok(EventOut.from_event(event).model_dump(mode="json"), message="Event created")


@router.get("/{event_id}")
def get_event(event_id: str, db: Session = Depends(get_db)):
    """Fetch a single event with occupancy and the host's payment link."""
    details = event_service.get_event_details(db, event_id)
    body = EventDetailOut(
        **EventOut.from_event(details["event"]).model_dump(),
        current_reservations=details["current_reservations"],
        spots_remaining=details["spots_remaining"],
        waitlist_count=details["waitlist_count"],
        payment_url=details["payment_url"],
    )
    return ok(body.model_dump(mode="json"))


@router.post("/{event_id}/status")
def update_event_status(
    event_id: str,
    payload: EventStatusUpdate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Host marks the event cancelled or completed."""
    event = event_service.update_event_status(db, event_id, user_id, _parse_status(payload.status))
    return ok(EventOut.from_event(event).model_dump(mode="json"), message=f"Event {event.status.value.lower()}")


@router.delete("/{event_id}")
def delete_event(
    event_id: str,
    user_id: str = Depends(get_current_user_id),
    notifier: Notifier = Depends(get_notifier),
    db: Session = Depends(get_db),
):
    """Delete an event (host only); confirmed guests are told it is off."""
    notified = event_service.delete_event(db, event_id, user_id, notifier=notifier)
    return ok({"event_id": event_id, "notified_guests": notified}, message="Event deleted")


@router.get("/{event_id}/attendees")
def list_attendees(event_id: str, db: Session = Depends(get_db)):
    """Confirmed guests first, then the waitlist in booking order."""
    reservations = reservation_service.list_event_attendees(db, event_id)
    return ok([
        AttendeeOut(
            reservation_id=r.reservation_id,
            name=r.attendee_name,
            email=r.attendee_email,
            guest_count=r.guest_count,
            status=r.status.value,
            dietary_restrictions=r.dietary_restrictions,
        ).model_dump(mode="json")
        for r in reservations
    ])
