"""Poll finalizer — tallies, the recommended date, and the one-way finalize transition."""
import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from family_dinner.errors import Forbidden, NotFound, PollNotActive
from family_dinner.models.event import EventStatus, PollStatus
from family_dinner.models.poll import ProposedDate
from family_dinner.services import capacity_ledger, reservation_service
from family_dinner.services.notifications import Notifier, notify_safely

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DateTally:
    available: int = 0  # available and not tentative
    tentative: int = 0  # available but tentative
    unavailable: int = 0

    @property
    def total(self) -> int:
        return self.available + self.tentative + self.unavailable

    def as_dict(self) -> dict:
        return {
            "available": self.available,
            "tentative": self.tentative,
            "unavailable": self.unavailable,
            "total": self.total,
        }


@dataclass
class FinalizeResult:
    proposed_date: ProposedDate
    tally: DateTally


def tally(proposed_date: ProposedDate) -> DateTally:
    available = tentative = unavailable = 0
    for response in proposed_date.responses:
        if not response.available:
            unavailable += 1
        elif response.tentative:
            tentative += 1
        else:
            available += 1
    return DateTally(available=available, tentative=tentative, unavailable=unavailable)


def recommend_best_date(proposed_dates: Iterable[ProposedDate]) -> Optional[ProposedDate]:
    """Most firm "available" answers; then most responses overall; then the earliest slot."""
    candidates = list(proposed_dates)
    if not candidates:
        return None

    def rank(pd: ProposedDate):
        t = tally(pd)
        return (-t.available, -t.total, pd.starts_at)

    return min(candidates, key=rank)


def finalize(
    db: Session,
    event_id: str,
    selected_proposed_date_id: str,
    host_id: str,
    notifier: Optional[Notifier] = None,
) -> FinalizeResult:
    """Fix the event's date to the selected slot and open it for reservations."""
    try:
        event = capacity_ledger.lock_event(db, event_id)

        if event.host_id != host_id:
            raise Forbidden("Only the host can finalize the poll")
        if not event.use_availability_poll:
            raise PollNotActive("Event does not use availability polling")
        if event.poll_status == PollStatus.finalized:
            raise PollNotActive("Poll has already been finalized")
        if event.poll_status != PollStatus.active:
            raise PollNotActive()

        selected = next(
            (pd for pd in event.proposed_dates if pd.proposed_date_id == selected_proposed_date_id),
            None,
        )
        if selected is None:
            raise NotFound("Selected proposed date")

        stats = tally(selected)

        event.date = selected.starts_at
        event.finalized_date = selected.starts_at
        event.reservation_deadline = selected.starts_at
        event.poll_status = PollStatus.finalized
        event.status = EventStatus.open
        # Reservations kept from before polling may already fill the table
        reservation_service.refresh_event_status(db, event)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(
        "Poll for event %s finalized on %s (%d available, %d tentative)",
        event_id, selected.starts_at.isoformat(), stats.available, stats.tentative,
    )

    if notifier is not None:
        notified = set()
        for response in selected.event.responses:
            to = response.user.email if response.user is not None else response.guest_email
            if to and to not in notified:
                notified.add(to)
                notify_safely(notifier.poll_finalized, to, selected.event.title, selected.starts_at)

    return FinalizeResult(proposed_date=selected, tally=stats)
