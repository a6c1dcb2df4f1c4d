"""Availability poll — proposed dates and per-identity responses for a poll-enabled event.

Responsibilities:
- Poll creation (host only, once per event, at least two slots, future deadline)
- Slot conversion from the host's wall clock to UTC (backend-side timezone math)
- Response submission: replace-by-identity in one transaction
- Read model with tallies, day grouping and the recommended date
"""
import logging
from dataclasses import dataclass
from datetime import date as date_type, datetime
from typing import Optional

import pytz
from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from family_dinner.database import ensure_utc, utcnow
from family_dinner.errors import (
    DeadlinePassed,
    Forbidden,
    InvalidProposedDate,
    NotFound,
    PollAlreadyEnabled,
    PollNotActive,
    ValidationFailed,
)
from family_dinner.identity import Identity
from family_dinner.models.event import Event, EventStatus, PollStatus
from family_dinner.models.poll import AvailabilityResponse, ProposedDate
from family_dinner.services import capacity_ledger
from family_dinner.services.notifications import Notifier, notify_safely
from family_dinner.services.poll_finalizer import recommend_best_date, tally
from family_dinner.utils.date_grouping import group_dates_by_day, parse_time

logger = logging.getLogger(__name__)

MIN_PROPOSED_DATES = 2


@dataclass(frozen=True)
class SlotInput:
    """A proposed slot as the host entered it: calendar date + HH:MM."""

    date: date_type
    time: str


@dataclass(frozen=True)
class ResponseInput:
    proposed_date_id: str
    available: bool
    tentative: bool = False


def slot_to_utc(slot_date: date_type, slot_time: str, tz_name: str) -> datetime:
    """Interpret ``slot_date`` + ``slot_time`` in ``tz_name`` and return the UTC instant."""
    try:
        tz = pytz.timezone(tz_name)
    except pytz.UnknownTimeZoneError:
        raise ValidationFailed(f"Unknown timezone: {tz_name}")
    parsed = parse_time(slot_time)
    if parsed is None:
        raise ValidationFailed(f"Invalid time '{slot_time}', expected HH:MM")
    local = tz.localize(datetime.combine(slot_date, parsed))
    return local.astimezone(pytz.utc)


def _add_proposed_dates(db: Session, event: Event, slots: list[SlotInput], now: datetime) -> list[ProposedDate]:
    if len(slots) < MIN_PROPOSED_DATES:
        raise ValidationFailed(f"At least {MIN_PROPOSED_DATES} date options are required for polling")

    seen = set()
    records = []
    for slot in slots:
        key = (slot.date, parse_time(slot.time))
        if key in seen:
            raise ValidationFailed(f"Duplicate date option {slot.date.isoformat()} {slot.time}")
        seen.add(key)

        starts_at = slot_to_utc(slot.date, slot.time, event.timezone)
        if starts_at <= now:
            raise ValidationFailed("All date options must be in the future")
        record = ProposedDate(
            event_id=event.event_id,
            date=slot.date,
            time=key[1].strftime("%H:%M"),
            starts_at=starts_at,
        )
        event.proposed_dates.append(record)
        records.append(record)
    return records


def enable_poll(
    db: Session,
    event: Event,
    slots: list[SlotInput],
    deadline: datetime,
    now: datetime,
) -> list[ProposedDate]:
    """Turn ``event`` into a polling event inside the caller's transaction."""
    if event.use_availability_poll:
        raise PollAlreadyEnabled()
    deadline = ensure_utc(deadline)
    if deadline <= now:
        raise ValidationFailed("Poll deadline must be in the future")

    records = _add_proposed_dates(db, event, slots, now)
    # The date is unknown until the poll is finalized
    event.date = None
    event.reservation_deadline = None
    event.use_availability_poll = True
    event.poll_status = PollStatus.active
    event.poll_deadline = deadline
    event.status = EventStatus.poll_active
    return records


def create_poll(
    db: Session,
    event_id: str,
    slots: list[SlotInput],
    deadline: datetime,
    host_id: str,
    now: Optional[datetime] = None,
) -> list[ProposedDate]:
    """Enable availability polling on an existing event."""
    now = now or utcnow()
    try:
        event = capacity_ledger.lock_event(db, event_id)
        if event.host_id != host_id:
            raise Forbidden("Only the host can create a poll for this event")
        if event.status in (EventStatus.cancelled, EventStatus.completed):
            raise ValidationFailed(f"Cannot poll a {event.status.value.lower()} event")
        records = enable_poll(db, event, slots, deadline, now)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("Poll created for event %s with %d date options, deadline %s",
                event_id, len(records), deadline.isoformat())
    return records


def submit_response(
    db: Session,
    event_id: str,
    responses: list[ResponseInput],
    respondent: Identity,
    notifier: Optional[Notifier] = None,
    now: Optional[datetime] = None,
) -> list[AvailabilityResponse]:
    """Replace ``respondent``'s answers for this poll with ``responses``."""
    now = now or utcnow()
    if not responses:
        raise ValidationFailed("At least one response is required")

    try:
        event = capacity_ledger.lock_event(db, event_id)

        if not event.use_availability_poll or event.poll_status != PollStatus.active:
            raise PollNotActive()
        if event.poll_deadline is not None and now > event.poll_deadline:
            logger.warning("Late poll response for event %s rejected", event_id)
            raise DeadlinePassed()

        valid_ids = {pd.proposed_date_id for pd in event.proposed_dates}
        invalid = [r.proposed_date_id for r in responses if r.proposed_date_id not in valid_ids]
        if invalid:
            raise InvalidProposedDate(invalid)

        previous = db.query(AvailabilityResponse).filter(AvailabilityResponse.event_id == event_id)
        if respondent.user_id is not None:
            previous = previous.filter(AvailabilityResponse.user_id == respondent.user_id)
        else:
            previous = previous.filter(
                AvailabilityResponse.user_id.is_(None),
                func.lower(AvailabilityResponse.guest_email) == respondent.guest_email,
            )
        replaced = previous.delete(synchronize_session="fetch")

        # Last answer per slot wins if a slot is repeated within one submission
        by_slot = {r.proposed_date_id: r for r in responses}
        records = []
        for item in by_slot.values():
            record = AvailabilityResponse(
                event_id=event_id,
                proposed_date_id=item.proposed_date_id,
                user_id=respondent.user_id,
                guest_email=respondent.guest_email,
                guest_name=respondent.guest_name,
                available=item.available,
                tentative=item.available and item.tentative,
                created_at=now,
            )
            db.add(record)
            records.append(record)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("Poll response for event %s: %d answers (replaced %d)", event_id, len(records), replaced)

    if notifier is not None and event.host is not None:
        notify_safely(
            notifier.poll_response_received,
            event.host.email,
            respondent.guest_name or respondent.guest_email or respondent.user_id,
            event.title,
        )
    return records


def get_poll(db: Session, event_id: str, now: Optional[datetime] = None) -> dict:
    """Poll read model: status, slots with responses and tallies, day groups, best date."""
    now = now or utcnow()
    event = (
        db.query(Event)
        .options(joinedload(Event.proposed_dates).joinedload(ProposedDate.responses))
        .filter(Event.event_id == event_id)
        .first()
    )
    if event is None:
        raise NotFound("Event")
    if not event.use_availability_poll:
        raise ValidationFailed("Event does not use availability polling")

    proposed = sorted(event.proposed_dates, key=lambda pd: pd.starts_at)
    tallies = {pd.proposed_date_id: tally(pd) for pd in proposed}
    best = recommend_best_date(proposed)
    respondents = {
        r.user_id or r.guest_email
        for pd in proposed
        for r in pd.responses
    }

    accepting = (
        event.poll_status == PollStatus.active
        and (event.poll_deadline is None or now <= event.poll_deadline)
    )

    return {
        "event": event,
        "poll_status": event.poll_status,
        "poll_deadline": event.poll_deadline,
        "accepting_responses": accepting,
        "respondent_count": len(respondents),
        "proposed_dates": [
            {"proposed_date": pd, "tally": tallies[pd.proposed_date_id]}
            for pd in proposed
        ],
        "grouped_dates": group_dates_by_day(proposed, id_field="proposed_date_id"),
        "recommended_proposed_date_id": best.proposed_date_id if best is not None else None,
    }
