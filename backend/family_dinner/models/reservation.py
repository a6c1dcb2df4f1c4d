"""Reservation ORM model — one seat booking (confirmed or waitlisted) for an event."""
import uuid
import enum
from sqlalchemy import Column, String, Integer, Text, ForeignKey, Index, CheckConstraint, Enum as SAEnum, text
from sqlalchemy.orm import relationship
from family_dinner.database import Base, UTCDateTime, utcnow


class ReservationStatus(str, enum.Enum):
    confirmed = "CONFIRMED"
    waitlist = "WAITLIST"
    cancelled = "CANCELLED"


_ACTIVE = text("status != 'CANCELLED'")


class Reservation(Base):
    __tablename__ = "reservations"

    reservation_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    event_id = Column(String(36), ForeignKey("events.event_id", ondelete="CASCADE"), nullable=False, index=True)
    # Identity: an authenticated user, or a guest name + email
    user_id = Column(String(36), ForeignKey("users.user_id"), nullable=True, index=True)
    guest_name = Column(String(100), nullable=True)
    guest_email = Column(String(255), nullable=True)
    guest_count = Column(Integer, nullable=False, default=1)
    status = Column(
        SAEnum(ReservationStatus, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=ReservationStatus.confirmed,
    )
    dietary_restrictions = Column(Text, nullable=True)
    special_requests = Column(Text, nullable=True)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    event = relationship("Event", back_populates="reservations")
    user = relationship("User")

    __table_args__ = (
        CheckConstraint("guest_count >= 1 AND guest_count <= 10", name="ck_reservation_guest_count"),
        CheckConstraint(
            "user_id IS NOT NULL OR guest_email IS NOT NULL",
            name="ck_reservation_identity",
        ),
        # Backstop for the one-live-reservation-per-identity rule
        Index(
            "uq_reservation_active_user",
            "event_id",
            "user_id",
            unique=True,
            sqlite_where=_ACTIVE,
            postgresql_where=_ACTIVE,
        ),
        Index(
            "uq_reservation_active_guest",
            "event_id",
            "guest_email",
            unique=True,
            sqlite_where=_ACTIVE,
            postgresql_where=_ACTIVE,
        ),
        Index("ix_reservation_event_status_created", "event_id", "status", "created_at"),
    )

    @property
    def attendee_name(self) -> str:
        if self.user is not None:
            return self.user.display_name
        return self.guest_name or "Guest"

    @property
    def attendee_email(self) -> str:
        if self.user is not None:
            return self.user.email
        return self.guest_email or ""
