"""Availability poll ORM models — proposed date options and per-identity responses."""
import uuid
from sqlalchemy import Column, String, Date, Boolean, ForeignKey, Index, CheckConstraint, UniqueConstraint
from sqlalchemy.orm import relationship
from family_dinner.database import Base, UTCDateTime, utcnow


class ProposedDate(Base):
    """A candidate slot. Written once at poll creation and never edited."""

    __tablename__ = "proposed_dates"

    proposed_date_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    event_id = Column(String(36), ForeignKey("events.event_id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(Date, nullable=False)
    time = Column(String(5), nullable=False)  # HH:MM, host wall clock
    starts_at = Column(UTCDateTime, nullable=False)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)

    event = relationship("Event", back_populates="proposed_dates")
    responses = relationship("AvailabilityResponse", back_populates="proposed_date", cascade="all, delete-orphan")

    __table_args__ = (
        UniqueConstraint("event_id", "date", "time", name="uq_proposed_date_slot"),
    )


class AvailabilityResponse(Base):
    __tablename__ = "availability_responses"

    response_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    event_id = Column(String(36), ForeignKey("events.event_id", ondelete="CASCADE"), nullable=False)
    proposed_date_id = Column(
        String(36), ForeignKey("proposed_dates.proposed_date_id", ondelete="CASCADE"), nullable=False
    )
    user_id = Column(String(36), ForeignKey("users.user_id"), nullable=True)
    guest_email = Column(String(255), nullable=True)  # stored lower-cased
    guest_name = Column(String(100), nullable=True)
    available = Column(Boolean, nullable=False, default=False)
    tentative = Column(Boolean, nullable=False, default=False)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)

    event = relationship("Event", back_populates="responses")
    proposed_date = relationship("ProposedDate", back_populates="responses")
    user = relationship("User")

    __table_args__ = (
        CheckConstraint("user_id IS NOT NULL OR guest_email IS NOT NULL", name="ck_response_identity"),
        Index("ix_response_event_user", "event_id", "user_id"),
        Index("ix_response_event_email", "event_id", "guest_email"),
    )

    @property
    def respondent_name(self) -> str:
        if self.guest_name:
            return self.guest_name
        if self.user is not None:
            return self.user.display_name
        return self.guest_email or "Guest"
