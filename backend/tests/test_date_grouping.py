"""Tests for the per-day grouping used by poll pages."""
from datetime import date

from family_dinner.utils.date_grouping import (
    format_day_display,
    format_time_display,
    group_dates_by_day,
    parse_time,
)


class TestGroupDatesByDay:
    def test_groups_sorted_by_day_then_time(self):
        records = [
            {"id": "c", "date": "2030-06-29", "time": "18:00"},
            {"id": "a", "date": "2030-06-28", "time": "19:30"},
            {"id": "b", "date": "2030-06-28", "time": "12:00"},
        ]
        groups = group_dates_by_day(records)
        assert [g.date for g in groups] == ["2030-06-28", "2030-06-29"]
        assert [s.id for s in groups[0].times] == ["b", "a"]
        assert groups[0].day_display == "Friday, June 28"
        assert groups[0].times[0].original is records[2]

    def test_equal_times_keep_input_order(self):
        records = [
            {"id": "first", "date": "2030-06-28", "time": "18:00"},
            {"id": "second", "date": "2030-06-28", "time": "18:00:00"},
        ]
        groups = group_dates_by_day(records)
        assert [s.id for s in groups[0].times] == ["first", "second"]

    def test_accepts_objects_and_date_values(self):
        class Slot:
            def __init__(self, proposed_date_id, day, time):
                self.proposed_date_id = proposed_date_id
                self.date = day
                self.time = time

        groups = group_dates_by_day(
            [Slot("x", date(2030, 7, 4), "09:05")], id_field="proposed_date_id"
        )
        assert groups[0].as_dict() == {
            "date": "2030-07-04",
            "day_display": "Thursday, July 4",
            "times": [{"id": "x", "time": "09:05", "time_display": "9:05 AM"}],
        }

    def test_empty(self):
        assert group_dates_by_day([]) == []


class TestFormatting:
    def test_time_display(self):
        assert format_time_display("00:15") == "12:15 AM"
        assert format_time_display("12:00") == "12:00 PM"
        assert format_time_display("23:45") == "11:45 PM"
        assert format_time_display("not a time") == "not a time"

    def test_day_display_fallback(self):
        assert format_day_display("someday") == "someday"

    def test_parse_time(self):
        assert parse_time("7:30").hour == 7
        assert parse_time("24:00") is None
        assert parse_time("ab:cd") is None
