"""User API routes."""
import logging
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from family_dinner.database import get_db
from family_dinner.errors import EmailInUse, NotFound
from family_dinner.models.user import User
from family_dinner.schemas.common import ok
from family_dinner.schemas.user import UserCreate, UserUpdate, UserOut

logger = logging.getLogger(__name__)
router = APIRouter()


def _email_taken(db: Session, email: str, exclude_user_id: str = None) -> bool:
    query = db.query(User.user_id).filter(User.email == email)
    if exclude_user_id is not None:
        query = query.filter(User.user_id != exclude_user_id)
    return query.first() is not None


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_user(payload: UserCreate, db: Session = Depends(get_db)):
    """Create a host or attendee profile."""
    if _email_taken(db, payload.email):
        raise EmailInUse()
    user = User(**payload.model_dump())
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Created user %s (%s)", user.user_id, user.display_name)
    return ok(UserOut.model_validate(user).model_dump(mode="json"))


@router.get("/{user_id}")
def get_user(user_id: str, db: Session = Depends(get_db)):
    """Fetch a single user by ID."""
    user = db.query(User).filter(User.user_id == user_id).first()
    if not user:
        raise NotFound("User")
    return ok(UserOut.model_validate(user).model_dump(mode="json"))


@router.patch("/{user_id}")
def update_user(user_id: str, payload: UserUpdate, db: Session = Depends(get_db)):
    """Update profile fields (partial update)."""
    user = db.query(User).filter(User.user_id == user_id).first()
    if not user:
        raise NotFound("User")
    updates = payload.model_dump(exclude_unset=True)
    if updates.get("email") and _email_taken(db, updates["email"], exclude_user_id=user_id):
        raise EmailInUse()
    for field, value in updates.items():
        if value is None and field != "venmo_username":
            continue  # required columns
        setattr(user, field, value)
    db.commit()
    db.refresh(user)
    logger.info("Updated user %s", user_id)
    return ok(UserOut.model_validate(user).model_dump(mode="json"))
