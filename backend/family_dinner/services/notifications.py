"""Outbound notifications (reservation confirmations, waitlist promotions, poll results).

Email delivery and templates live outside this service; the ``Notifier``
here is the narrow seam. ``LoggingNotifier`` records what would be sent and
is what the app wires in by default. Every call is made after the database
transaction commits, through ``notify_safely``, so a delivery failure is
logged and never undoes the reservation or poll change.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


@dataclass
class Notice:
    """A single outbound message."""

    kind: str
    to: str
    subject: str
    context: dict[str, Any] = field(default_factory=dict)


class Notifier:
    """Base notifier. Subclasses implement ``send``."""

    def send(self, notice: Notice) -> None:
        raise NotImplementedError

    def reservation_confirmed(self, to: str, name: str, event_title: str,
                              event_date: Optional[datetime], guest_count: int) -> None:
        self.send(Notice(
            kind="reservation_confirmed",
            to=to,
            subject=f"Reservation Confirmed: {event_title}",
            context={"name": name, "event_date": event_date, "guest_count": guest_count},
        ))

    def reservation_waitlisted(self, to: str, name: str, event_title: str, guest_count: int) -> None:
        self.send(Notice(
            kind="reservation_waitlisted",
            to=to,
            subject=f"You're on the waitlist: {event_title}",
            context={"name": name, "guest_count": guest_count},
        ))

    def waitlist_promoted(self, to: str, name: str, event_title: str,
                          event_date: Optional[datetime], guest_count: int) -> None:
        self.send(Notice(
            kind="waitlist_promoted",
            to=to,
            subject=f"A spot opened up: {event_title}",
            context={"name": name, "event_date": event_date, "guest_count": guest_count},
        ))

    def poll_response_received(self, to: str, respondent: str, event_title: str) -> None:
        self.send(Notice(
            kind="poll_response_received",
            to=to,
            subject=f"New availability response for {event_title}",
            context={"respondent": respondent},
        ))

    def poll_finalized(self, to: str, event_title: str, event_date: datetime) -> None:
        self.send(Notice(
            kind="poll_finalized",
            to=to,
            subject=f"Date chosen: {event_title}",
            context={"event_date": event_date},
        ))

    def event_removed(self, to: str, name: str, event_title: str) -> None:
        self.send(Notice(
            kind="event_removed",
            to=to,
            subject=f"Event cancelled: {event_title}",
            context={"name": name},
        ))


class LoggingNotifier(Notifier):
    """Writes notices to the log instead of delivering them."""

    def __init__(self, from_email: str, enabled: bool = True) -> None:
        self.from_email = from_email
        self.enabled = enabled

    def send(self, notice: Notice) -> None:
        if not self.enabled:
            logger.debug("Notifications disabled, dropping %s to %s", notice.kind, notice.to)
            return
        logger.info("Notice %s from %s to %s: %s", notice.kind, self.from_email, notice.to, notice.subject)


def notify_safely(action: Callable[..., None], *args: Any, **kwargs: Any) -> bool:
    """Run a notifier call; log and swallow any failure. Returns True on success."""
    try:
        action(*args, **kwargs)
        return True
    except Exception:
        logger.exception("Notification %s failed; core change already committed",
                         getattr(action, "__name__", repr(action)))
        return False
