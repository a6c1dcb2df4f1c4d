"""Pydantic schemas for Reservations."""
from __future__ import annotations
from datetime import datetime
from typing import Optional
from pydantic import BaseModel

from family_dinner.schemas.common import EmailAddress


class ReservationCreate(BaseModel):
    event_id: str
    guest_count: int = 1
    dietary_restrictions: Optional[str] = None
    special_requests: Optional[str] = None
    # Only used when the caller is not signed in
    guest_name: Optional[str] = None
    guest_email: Optional[EmailAddress] = None


class ReservationOut(BaseModel):
    reservation_id: str
    event_id: str
    user_id: Optional[str] = None
    guest_name: Optional[str] = None
    guest_email: Optional[str] = None
    guest_count: int
    status: str
    dietary_restrictions: Optional[str] = None
    special_requests: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_reservation(cls, reservation) -> ReservationOut:
        return cls(
            reservation_id=reservation.reservation_id,
            event_id=reservation.event_id,
            user_id=reservation.user_id,
            guest_name=reservation.guest_name,
            guest_email=reservation.guest_email,
            guest_count=reservation.guest_count,
            status=reservation.status.value,
            dietary_restrictions=reservation.dietary_restrictions,
            special_requests=reservation.special_requests,
            created_at=reservation.created_at,
            updated_at=reservation.updated_at,
        )


class ReservationEventOut(BaseModel):
    event_id: str
    title: str
    date: Optional[datetime] = None
    status: str
    host_name: Optional[str] = None
    city: Optional[str] = None
    time_until_event: Optional[str] = None


class MyReservationOut(ReservationOut):
    can_cancel: bool
    event: ReservationEventOut


class CancellationOut(BaseModel):
    reservation: ReservationOut
    promoted_from_waitlist: int
