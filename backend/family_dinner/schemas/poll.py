"""Pydantic schemas for availability polls."""
from __future__ import annotations
from datetime import datetime
from typing import Optional
from pydantic import BaseModel

from family_dinner.schemas.common import EmailAddress
from family_dinner.schemas.event import ProposedDateIn


class PollCreate(BaseModel):
    proposed_dates: list[ProposedDateIn]
    poll_deadline: datetime


class PollResponseIn(BaseModel):
    proposed_date_id: str
    available: bool
    tentative: bool = False


class GuestInfo(BaseModel):
    email: EmailAddress
    name: Optional[str] = None


class PollRespond(BaseModel):
    responses: list[PollResponseIn]
    guest_info: Optional[GuestInfo] = None


class PollFinalize(BaseModel):
    selected_proposed_date_id: str
    host_id: Optional[str] = None


class ResponseOut(BaseModel):
    response_id: str
    proposed_date_id: str
    user_id: Optional[str] = None
    guest_email: Optional[str] = None
    name: str
    available: bool
    tentative: bool
    responded_at: datetime


class TallyOut(BaseModel):
    available: int
    tentative: int
    unavailable: int
    total: int


class ProposedDateOut(BaseModel):
    proposed_date_id: str
    date: str
    time: str
    starts_at: datetime
    tally: TallyOut
    responses: list[ResponseOut] = []


class PollOut(BaseModel):
    event_id: str
    event_title: str
    description: Optional[str] = None
    host_name: Optional[str] = None
    poll_status: Optional[str] = None
    poll_deadline: Optional[datetime] = None
    accepting_responses: bool
    respondent_count: int
    recommended_proposed_date_id: Optional[str] = None
    proposed_dates: list[ProposedDateOut]
    grouped_dates: list[dict]


class FinalizeOut(BaseModel):
    event_id: str
    finalized_date: datetime
    selected_date_time: str
    response_stats: TallyOut
