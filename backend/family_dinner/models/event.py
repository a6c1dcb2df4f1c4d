"""Event ORM model plus its cuisine / dietary tag tables."""
import uuid
import enum
from sqlalchemy import Column, String, Text, Integer, Float, Boolean, ForeignKey, Enum as SAEnum
from sqlalchemy.orm import relationship
from family_dinner.database import Base, UTCDateTime, utcnow


class EventStatus(str, enum.Enum):
    open = "OPEN"
    full = "FULL"
    poll_active = "POLL_ACTIVE"
    completed = "COMPLETED"
    cancelled = "CANCELLED"


class PollStatus(str, enum.Enum):
    active = "ACTIVE"
    finalized = "FINALIZED"
    closed = "CLOSED"


class Event(Base):
    __tablename__ = "events"

    event_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    host_id = Column(String(36), ForeignKey("users.user_id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    date = Column(UTCDateTime, nullable=True)  # unset while polling
    duration_minutes = Column(Integer, nullable=False, default=120)
    max_capacity = Column(Integer, nullable=False)
    estimated_cost_per_person = Column(Float, nullable=False, default=0.0)
    timezone = Column(String(50), nullable=False, default="UTC")  # IANA tz
    status = Column(
        SAEnum(EventStatus, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=EventStatus.open,
    )
    allow_waitlist = Column(Boolean, nullable=False, default=True)
    reservation_deadline = Column(UTCDateTime, nullable=True)

    use_availability_poll = Column(Boolean, nullable=False, default=False)
    poll_status = Column(SAEnum(PollStatus, values_callable=lambda e: [m.value for m in e]), nullable=True)
    poll_deadline = Column(UTCDateTime, nullable=True)
    finalized_date = Column(UTCDateTime, nullable=True)

    neighborhood = Column(String(100), nullable=True)
    city = Column(String(100), nullable=True)
    address = Column(String(255), nullable=True)
    show_full_address = Column(Boolean, nullable=False, default=False)

    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    host = relationship("User")
    cuisines = relationship("EventCuisine", back_populates="event", cascade="all, delete-orphan")
    dietary_accommodations = relationship(
        "EventDietaryAccommodation", back_populates="event", cascade="all, delete-orphan"
    )
    reservations = relationship("Reservation", back_populates="event", cascade="all, delete-orphan")
    proposed_dates = relationship(
        "ProposedDate",
        back_populates="event",
        cascade="all, delete-orphan",
        order_by="ProposedDate.starts_at",
    )
    responses = relationship("AvailabilityResponse", back_populates="event", cascade="all, delete-orphan")

    @property
    def cuisine_types(self) -> list[str]:
        return [c.cuisine for c in self.cuisines]

    @property
    def dietary_accommodation_names(self) -> list[str]:
        return [d.accommodation for d in self.dietary_accommodations]


class EventCuisine(Base):
    __tablename__ = "event_cuisines"

    event_id = Column(String(36), ForeignKey("events.event_id", ondelete="CASCADE"), primary_key=True)
    cuisine = Column(String(50), primary_key=True)

    event = relationship("Event", back_populates="cuisines")


class EventDietaryAccommodation(Base):
    __tablename__ = "event_dietary_accommodations"

    event_id = Column(String(36), ForeignKey("events.event_id", ondelete="CASCADE"), primary_key=True)
    accommodation = Column(String(50), primary_key=True)

    event = relationship("Event", back_populates="dietary_accommodations")
