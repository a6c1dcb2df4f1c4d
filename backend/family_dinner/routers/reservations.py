"""Reservation API routes — booking, listing and cancelling seats."""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from family_dinner.config import Settings
from family_dinner.database import get_db
from family_dinner.dependencies import (
    get_current_user_id,
    get_notifier,
    get_optional_user_id,
    get_settings,
)
from family_dinner.errors import Unauthenticated, ValidationFailed
from family_dinner.identity import Identity
from family_dinner.schemas.common import ok
from family_dinner.schemas.reservation import (
    CancellationOut,
    MyReservationOut,
    ReservationCreate,
    ReservationEventOut,
    ReservationOut,
)
from family_dinner.services import reservation_service
from family_dinner.services.notifications import Notifier

logger = logging.getLogger(__name__)
router = APIRouter()


def _identity_for(user_id: Optional[str], guest_name: Optional[str], guest_email: Optional[str]) -> Identity:
    if user_id is not None:
        return Identity.user(user_id)
    if not guest_email or not guest_name or not guest_name.strip():
        raise ValidationFailed("Name and email are required to reserve without an account")
    return Identity.guest(guest_email, guest_name.strip())


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_reservation(
    payload: ReservationCreate,
    user_id: Optional[str] = Depends(get_optional_user_id),
    settings: Settings = Depends(get_settings),
    notifier: Notifier = Depends(get_notifier),
    db: Session = Depends(get_db),
):
    """Book seats; lands on the waitlist when the dinner is full and allows one."""
    identity = _identity_for(user_id, payload.guest_name, payload.guest_email)
    result = reservation_service.create_reservation(
        db,
        event_id=payload.event_id,
        identity=identity,
        guest_count=payload.guest_count,
        meta=reservation_service.ReservationMeta(
            dietary_restrictions=payload.dietary_restrictions,
            special_requests=payload.special_requests,
        ),
        notifier=notifier,
        max_guests=settings.MAX_GUESTS_PER_RESERVATION,
    )
    return ok(
        ReservationOut.from_reservation(result.reservation).model_dump(mode="json"),
        message=result.message,
    )


@router.get("/")
def list_my_reservations(
    user_id: str = Depends(get_current_user_id),
    settings: Settings = Depends(get_settings),
    db: Session = Depends(get_db),
):
    """The caller's reservations, newest first, with whether each can still be cancelled."""
    rows = reservation_service.list_user_reservations(
        db, user_id, cutoff_hours=settings.CANCELLATION_CUTOFF_HOURS
    )
    data = []
    for row in rows:
        reservation = row["reservation"]
        event = reservation.event
        body = MyReservationOut(
            **ReservationOut.from_reservation(reservation).model_dump(),
            can_cancel=row["can_cancel"],
            event=ReservationEventOut(
                event_id=event.event_id,
                title=event.title,
                date=event.date,
                status=event.status.value,
                host_name=event.host.display_name if event.host is not None else None,
                city=event.city,
                time_until_event=row["time_until_event"],
            ),
        )
        data.append(body.model_dump(mode="json"))
    return ok(data)


@router.post("/{reservation_id}/cancel")
def cancel_reservation(
    reservation_id: str,
    guest_email: Optional[str] = None,
    user_id: Optional[str] = Depends(get_optional_user_id),
    settings: Settings = Depends(get_settings),
    notifier: Notifier = Depends(get_notifier),
    db: Session = Depends(get_db),
):
    """Cancel a reservation; freed seats go to the waitlist in booking order.

    Guests without an account identify themselves with ``?guest_email=``.
    """
    if user_id is not None:
        identity = Identity.user(user_id)
    elif guest_email:
        identity = Identity.guest(guest_email)
    else:
        raise Unauthenticated("Sign in or provide the email used for the reservation")

    result = reservation_service.cancel_reservation(
        db,
        reservation_id=reservation_id,
        identity=identity,
        notifier=notifier,
        cutoff_hours=settings.CANCELLATION_CUTOFF_HOURS,
    )
    body = CancellationOut(
        reservation=ReservationOut.from_reservation(result.reservation),
        promoted_from_waitlist=result.promoted_count,
    )
    return ok(body.model_dump(mode="json"), message=result.message)
