"""User ORM model — hosts and attendees known to the auth provider."""
import uuid
from sqlalchemy import Column, String
from family_dinner.database import Base, UTCDateTime, utcnow


class User(Base):
    __tablename__ = "users"

    user_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    display_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False, unique=True)
    venmo_username = Column(String(100), nullable=True)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
