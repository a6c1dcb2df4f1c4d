"""Who is acting: an authenticated user, or a guest identified by email."""
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Identity:
    user_id: Optional[str] = None
    guest_email: Optional[str] = None
    guest_name: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.user_id and not self.guest_email:
            raise ValueError("Identity needs a user_id or a guest_email")
        if self.guest_email:
            # Email identities compare case-insensitively
            object.__setattr__(self, "guest_email", self.guest_email.strip().lower())

    @classmethod
    def user(cls, user_id: str) -> "Identity":
        return cls(user_id=user_id)

    @classmethod
    def guest(cls, email: str, name: Optional[str] = None) -> "Identity":
        return cls(guest_email=email, guest_name=name)

    @property
    def is_guest(self) -> bool:
        return self.user_id is None

    def owns(self, record) -> bool:
        """True if ``record`` (reservation or poll response) belongs to this identity."""
        if self.user_id is not None:
            return record.user_id == self.user_id
        return record.user_id is None and (record.guest_email or "").lower() == self.guest_email
