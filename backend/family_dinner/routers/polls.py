"""Availability poll API routes, nested under an event."""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from family_dinner.database import get_db
from family_dinner.dependencies import get_current_user_id, get_notifier, get_optional_user_id
from family_dinner.errors import Forbidden, ValidationFailed
from family_dinner.identity import Identity
from family_dinner.schemas.common import ok
from family_dinner.schemas.poll import (
    FinalizeOut,
    PollCreate,
    PollFinalize,
    PollOut,
    PollRespond,
    ProposedDateOut,
    ResponseOut,
    TallyOut,
)
from family_dinner.services import poll_finalizer, poll_service
from family_dinner.services.notifications import Notifier

logger = logging.getLogger(__name__)
router = APIRouter()


def _proposed_date_out(proposed_date, stats) -> ProposedDateOut:
    return ProposedDateOut(
        proposed_date_id=proposed_date.proposed_date_id,
        date=proposed_date.date.isoformat(),
        time=proposed_date.time,
        starts_at=proposed_date.starts_at,
        tally=TallyOut(**stats.as_dict()),
        responses=[
            ResponseOut(
                response_id=r.response_id,
                proposed_date_id=r.proposed_date_id,
                user_id=r.user_id,
                guest_email=r.guest_email,
                name=r.respondent_name,
                available=r.available,
                tentative=r.tentative,
                responded_at=r.created_at,
            )
            for r in proposed_date.responses
        ],
    )


@router.post("/{event_id}/poll", status_code=status.HTTP_201_CREATED)
def create_poll(
    event_id: str,
    payload: PollCreate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Turn an existing event into a polling event (host only)."""
    records = poll_service.create_poll(
        db,
        event_id=event_id,
        slots=[poll_service.SlotInput(date=pd.date, time=pd.time) for pd in payload.proposed_dates],
        deadline=payload.poll_deadline,
        host_id=user_id,
    )
    data = {
        "event_id": event_id,
        "proposed_date_ids": [r.proposed_date_id for r in records],
    }
    return ok(data, message="Availability poll created")


@router.get("/{event_id}/poll")
def get_poll(event_id: str, db: Session = Depends(get_db)):
    """Poll status, each proposed date with its responses and tally, and the best date."""
    poll = poll_service.get_poll(db, event_id)
    event = poll["event"]
    body = PollOut(
        event_id=event.event_id,
        event_title=event.title,
        description=event.description,
        host_name=event.host.display_name if event.host is not None else None,
        poll_status=poll["poll_status"].value if poll["poll_status"] else None,
        poll_deadline=poll["poll_deadline"],
        accepting_responses=poll["accepting_responses"],
        respondent_count=poll["respondent_count"],
        recommended_proposed_date_id=poll["recommended_proposed_date_id"],
        proposed_dates=[
            _proposed_date_out(item["proposed_date"], item["tally"])
            for item in poll["proposed_dates"]
        ],
        grouped_dates=[group.as_dict() for group in poll["grouped_dates"]],
    )
    return ok(body.model_dump(mode="json"))


@router.post("/{event_id}/poll/respond")
def respond_to_poll(
    event_id: str,
    payload: PollRespond,
    user_id: Optional[str] = Depends(get_optional_user_id),
    notifier: Notifier = Depends(get_notifier),
    db: Session = Depends(get_db),
):
    """Record (or replace) the caller's availability for every proposed date."""
    if user_id is not None:
        respondent = Identity.user(user_id)
    elif payload.guest_info is not None:
        respondent = Identity.guest(payload.guest_info.email, payload.guest_info.name)
    else:
        raise ValidationFailed("Email is required to respond without an account")

    records = poll_service.submit_response(
        db,
        event_id=event_id,
        responses=[
            poll_service.ResponseInput(
                proposed_date_id=r.proposed_date_id,
                available=r.available,
                tentative=r.tentative,
            )
            for r in payload.responses
        ],
        respondent=respondent,
        notifier=notifier,
    )
    return ok({"responses_recorded": len(records)}, message="Availability recorded")


@router.post("/{event_id}/poll/finalize")
def finalize_poll(
    event_id: str,
    payload: PollFinalize,
    user_id: str = Depends(get_current_user_id),
    notifier: Notifier = Depends(get_notifier),
    db: Session = Depends(get_db),
):
    """Fix the event date to one proposed slot and open reservations."""
    if payload.host_id is not None and payload.host_id != user_id:
        logger.warning("Finalize for event %s with mismatched host id", event_id)
        raise Forbidden("Only the host can finalize the poll")

    result = poll_finalizer.finalize(
        db,
        event_id=event_id,
        selected_proposed_date_id=payload.selected_proposed_date_id,
        host_id=user_id,
        notifier=notifier,
    )
    selected = result.proposed_date
    body = FinalizeOut(
        event_id=event_id,
        finalized_date=selected.starts_at,
        selected_date_time=f"{selected.date.isoformat()} {selected.time}",
        response_stats=TallyOut(**result.tally.as_dict()),
    )
    return ok(body.model_dump(mode="json"), message="Poll finalized. Reservations are now open.")
