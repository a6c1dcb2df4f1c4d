"""Pydantic schemas for Users."""
from __future__ import annotations
from datetime import datetime
from typing import Optional
from pydantic import BaseModel

from family_dinner.schemas.common import EmailAddress


class UserCreate(BaseModel):
    display_name: str
    email: EmailAddress
    venmo_username: Optional[str] = None


class UserUpdate(BaseModel):
    display_name: Optional[str] = None
    email: Optional[EmailAddress] = None
    venmo_username: Optional[str] = None


class UserOut(BaseModel):
    user_id: str
    display_name: str
    email: str
    venmo_username: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}
