"""Domain errors for reservations and availability polls.

Services raise these; the API layer maps ``ErrorCode`` to an HTTP status
through a single table in ``family_dinner.main``.
"""
from enum import Enum


class ErrorCode(Enum):
    """Closed set of failure kinds surfaced to API callers."""

    VALIDATION = "VALIDATION"
    UNAUTHENTICATED = "UNAUTHENTICATED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    DUPLICATE_RESERVATION = "DUPLICATE_RESERVATION"
    EVENT_FULL = "EVENT_FULL"
    EVENT_NOT_BOOKABLE = "EVENT_NOT_BOOKABLE"
    RESERVATION_CLOSED = "RESERVATION_CLOSED"
    ALREADY_CANCELLED = "ALREADY_CANCELLED"
    TOO_LATE_TO_CANCEL = "TOO_LATE_TO_CANCEL"
    POLL_ALREADY_ENABLED = "POLL_ALREADY_ENABLED"
    POLL_NOT_ACTIVE = "POLL_NOT_ACTIVE"
    DEADLINE_PASSED = "DEADLINE_PASSED"
    INVALID_PROPOSED_DATE = "INVALID_PROPOSED_DATE"
    EMAIL_IN_USE = "EMAIL_IN_USE"


class DomainError(Exception):
    """Base domain error with code and user-safe message."""

    code = ErrorCode.VALIDATION

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class ValidationFailed(DomainError):
    code = ErrorCode.VALIDATION


class Unauthenticated(DomainError):
    code = ErrorCode.UNAUTHENTICATED

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(message)


class Forbidden(DomainError):
    code = ErrorCode.FORBIDDEN


class NotFound(DomainError):
    code = ErrorCode.NOT_FOUND

    def __init__(self, entity: str) -> None:
        super().__init__(f"{entity} not found")
        self.entity = entity


class DuplicateReservation(DomainError):
    code = ErrorCode.DUPLICATE_RESERVATION

    def __init__(self) -> None:
        super().__init__("You already have a reservation for this event")


class EventFull(DomainError):
    code = ErrorCode.EVENT_FULL

    def __init__(self) -> None:
        super().__init__("Event is full and does not allow waitlist")


class EventNotBookable(DomainError):
    code = ErrorCode.EVENT_NOT_BOOKABLE

    def __init__(self, status: str) -> None:
        super().__init__(f"Event is not accepting reservations (status {status})")
        self.status = status


class ReservationClosed(DomainError):
    code = ErrorCode.RESERVATION_CLOSED

    def __init__(self) -> None:
        super().__init__("The reservation deadline for this event has passed")


class ReservationAlreadyCancelled(DomainError):
    code = ErrorCode.ALREADY_CANCELLED

    def __init__(self) -> None:
        super().__init__("Reservation is already cancelled")


class TooLateToCancel(DomainError):
    code = ErrorCode.TOO_LATE_TO_CANCEL

    def __init__(self, cutoff_hours: int) -> None:
        super().__init__(f"Cannot cancel within {cutoff_hours} hours of the event")
        self.cutoff_hours = cutoff_hours


class PollAlreadyEnabled(DomainError):
    code = ErrorCode.POLL_ALREADY_ENABLED

    def __init__(self) -> None:
        super().__init__("Event already has availability polling enabled")


class PollNotActive(DomainError):
    code = ErrorCode.POLL_NOT_ACTIVE

    def __init__(self, message: str = "Poll is not active") -> None:
        super().__init__(message)


class DeadlinePassed(DomainError):
    code = ErrorCode.DEADLINE_PASSED

    def __init__(self) -> None:
        super().__init__("Poll deadline has passed")


class InvalidProposedDate(DomainError):
    code = ErrorCode.INVALID_PROPOSED_DATE

    def __init__(self, proposed_date_ids: list[str]) -> None:
        super().__init__("Invalid proposed date ID(s)")
        self.proposed_date_ids = proposed_date_ids


class EmailInUse(DomainError):
    code = ErrorCode.EMAIL_IN_USE

    def __init__(self) -> None:
        super().__init__("A user with this email already exists")
