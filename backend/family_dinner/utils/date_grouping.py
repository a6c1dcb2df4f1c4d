"""Group flat date/time records into per-day buckets for display.

Pure and deterministic: groups are ordered by calendar date, each group's
slots by time of day, and ties keep input order. Both the poll response
page and the poll results page rely on the ordering being identical.
"""
from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Any, Generic, Iterable, Optional, TypeVar, Union

T = TypeVar("T")


@dataclass
class TimeSlot(Generic[T]):
    id: str
    time: str  # HH:MM
    time_display: str  # "6:00 PM"
    original: T = field(repr=False)

    def as_dict(self) -> dict:
        return {"id": self.id, "time": self.time, "time_display": self.time_display}


@dataclass
class DateGroup(Generic[T]):
    date: str  # YYYY-MM-DD
    day_display: str  # "Monday, June 28"
    times: list[TimeSlot[T]] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "date": self.date,
            "day_display": self.day_display,
            "times": [slot.as_dict() for slot in self.times],
        }


def _field(record: Any, name: str, default: Any = None) -> Any:
    if isinstance(record, dict):
        return record.get(name, default)
    return getattr(record, name, default)


def parse_date(value: Union[str, date, None]) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


def parse_time(value: Union[str, time, None]) -> Optional[time]:
    """Parse "HH:MM" (or "HH:MM:SS"); None if it is not a valid time of day."""
    if value is None:
        return None
    if isinstance(value, time):
        return value
    parts = str(value).strip().split(":")
    if len(parts) not in (2, 3):
        return None
    try:
        numbers = [int(p) for p in parts]
    except ValueError:
        return None
    try:
        return time(*numbers)
    except ValueError:
        return None


def format_day_display(value: Union[str, date]) -> str:
    """Format a date as e.g. "Sunday, June 28"; falls back to the raw value."""
    parsed = parse_date(value)
    if parsed is None:
        return str(value)
    return f"{parsed:%A}, {parsed:%B} {parsed.day}"


def format_time_display(value: Union[str, time]) -> str:
    """Format HH:MM on a 12-hour clock, e.g. "6:00 PM"; falls back to the raw value."""
    parsed = parse_time(value)
    if parsed is None:
        return str(value)
    hour12 = parsed.hour % 12 or 12
    suffix = "PM" if parsed.hour >= 12 else "AM"
    return f"{hour12}:{parsed.minute:02d} {suffix}"


def _date_key(value: Any) -> str:
    parsed = parse_date(value)
    return parsed.isoformat() if parsed is not None else str(value)


def _time_key(value: Any) -> str:
    parsed = parse_time(value)
    return parsed.strftime("%H:%M") if parsed is not None else str(value)


def group_dates_by_day(records: Iterable[T], id_field: str = "id") -> list[DateGroup[T]]:
    """Bucket ``records`` (dicts or objects with ``date`` and ``time``) by calendar day."""
    groups: dict[str, DateGroup[T]] = {}

    for record in records:
        day = _date_key(_field(record, "date"))
        slot_time = _time_key(_field(record, "time"))

        group = groups.get(day)
        if group is None:
            group = DateGroup(date=day, day_display=format_day_display(day))
            groups[day] = group

        record_id = _field(record, id_field) or f"{day}-{slot_time}"
        group.times.append(TimeSlot(
            id=str(record_id),
            time=slot_time,
            time_display=format_time_display(slot_time),
            original=record,
        ))

    ordered = sorted(groups.values(), key=lambda g: g.date)
    for group in ordered:
        # sorted() is stable, so equal times keep input order
        group.times = sorted(group.times, key=lambda s: s.time)
    return ordered
