"""Pydantic schemas for Events."""
from __future__ import annotations
from datetime import date as calendar_date, datetime
from typing import Optional
from pydantic import BaseModel


class ProposedDateIn(BaseModel):
    date: calendar_date
    time: str  # HH:MM in the event's timezone


class LocationIn(BaseModel):
    neighborhood: Optional[str] = None
    city: Optional[str] = None
    address: Optional[str] = None
    show_full_address: bool = False


class EventCreate(BaseModel):
    title: str
    description: Optional[str] = None
    date: Optional[datetime] = None
    reservation_deadline: Optional[datetime] = None
    duration_minutes: int = 120
    max_capacity: int
    estimated_cost_per_person: float = 0.0
    timezone: Optional[str] = None
    allow_waitlist: bool = True
    cuisine_types: list[str] = []
    dietary_accommodations: list[str] = []
    location: Optional[LocationIn] = None
    use_availability_poll: bool = False
    proposed_dates: list[ProposedDateIn] = []
    poll_deadline: Optional[datetime] = None


class EventStatusUpdate(BaseModel):
    status: str  # CANCELLED or COMPLETED


class LocationOut(BaseModel):
    neighborhood: Optional[str] = None
    city: Optional[str] = None
    address: Optional[str] = None  # only when the host chose to show it


class EventOut(BaseModel):
    event_id: str
    host_id: str
    host_name: Optional[str] = None
    title: str
    description: Optional[str] = None
    date: Optional[datetime] = None
    duration_minutes: int
    max_capacity: int
    estimated_cost_per_person: float
    timezone: str
    status: str
    allow_waitlist: bool
    reservation_deadline: Optional[datetime] = None
    cuisine_types: list[str] = []
    dietary_accommodations: list[str] = []
    location: Optional[LocationOut] = None
    use_availability_poll: bool
    poll_status: Optional[str] = None
    poll_deadline: Optional[datetime] = None
    finalized_date: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_event(cls, event) -> EventOut:
        location = None
        if event.city or event.neighborhood or event.address:
            location = LocationOut(
                neighborhood=event.neighborhood,
                city=event.city,
                address=event.address if event.show_full_address else None,
            )
        return cls(
            event_id=event.event_id,
            host_id=event.host_id,
            host_name=event.host.display_name if event.host is not None else None,
            title=event.title,
            description=event.description,
            date=event.date,
            duration_minutes=event.duration_minutes,
            max_capacity=event.max_capacity,
            estimated_cost_per_person=event.estimated_cost_per_person,
            timezone=event.timezone,
            status=event.status.value,
            allow_waitlist=event.allow_waitlist,
            reservation_deadline=event.reservation_deadline,
            cuisine_types=event.cuisine_types,
            dietary_accommodations=event.dietary_accommodation_names,
            location=location,
            use_availability_poll=event.use_availability_poll,
            poll_status=event.poll_status.value if event.poll_status else None,
            poll_deadline=event.poll_deadline,
            finalized_date=event.finalized_date,
            created_at=event.created_at,
            updated_at=event.updated_at,
        )


class EventDetailOut(EventOut):
    current_reservations: int
    spots_remaining: int
    waitlist_count: int
    payment_url: Optional[str] = None


class AttendeeOut(BaseModel):
    reservation_id: str
    name: str
    email: str
    guest_count: int
    status: str
    dietary_restrictions: Optional[str] = None
