"""Tests for availability polls and finalization.

Covers:
- Poll creation: host only, at least two future slots, once per event
- Wall-clock slot -> UTC conversion in the event's timezone
- Responses: replace-by-identity, deadline, unknown proposed dates
- Tallies and the recommended date
- Finalize: one-way, host only, opens reservations on the chosen date
"""
from datetime import date, datetime, timedelta, timezone
import pytest

from family_dinner.database import utcnow
from family_dinner.errors import (
    DeadlinePassed,
    EventNotBookable,
    Forbidden,
    InvalidProposedDate,
    NotFound,
    PollAlreadyEnabled,
    PollNotActive,
    ValidationFailed,
)
from family_dinner.identity import Identity
from family_dinner.models.event import EventStatus, PollStatus
from family_dinner.models.poll import AvailabilityResponse
from family_dinner.models.reservation import ReservationStatus
from family_dinner.services import event_service, poll_finalizer, poll_service, reservation_service
from family_dinner.services.poll_service import ResponseInput, SlotInput
from tests.conftest import auth, create_test_event, create_test_user, future, guest, make_event, make_user, reserve


def _slots(now: datetime, *offsets_and_times):
    base = now.date()
    return [SlotInput(date=base + timedelta(days=d), time=t) for d, t in offsets_and_times]


def _poll_event(db, now, host=None, slots=None):
    host = host or make_user(db, "Host")
    event = make_event(db, host, now, max_capacity=6)
    slots = slots or _slots(now, (10, "18:00"), (11, "19:00"), (12, "18:30"))
    poll_service.create_poll(db, event.event_id, slots, now + timedelta(days=5), host.user_id, now=now)
    return host, event


class TestSlotConversion:
    def test_wall_clock_to_utc(self):
        # 18:00 in New York during daylight time is 22:00 UTC
        starts_at = poll_service.slot_to_utc(date(2030, 7, 1), "18:00", "America/New_York")
        assert starts_at == datetime(2030, 7, 1, 22, 0, tzinfo=timezone.utc)
        # ... and 23:00 UTC in winter
        starts_at = poll_service.slot_to_utc(date(2030, 1, 15), "18:00", "America/New_York")
        assert starts_at == datetime(2030, 1, 15, 23, 0, tzinfo=timezone.utc)

    def test_unknown_timezone(self):
        with pytest.raises(ValidationFailed):
            poll_service.slot_to_utc(date(2030, 7, 1), "18:00", "Mars/Olympus_Mons")

    def test_bad_time(self):
        with pytest.raises(ValidationFailed):
            poll_service.slot_to_utc(date(2030, 7, 1), "25:00", "UTC")


class TestPollCreation:
    def test_create_poll_switches_event_to_polling(self, db):
        now = utcnow()
        _, event = _poll_event(db, now)
        assert event.use_availability_poll is True
        assert event.poll_status == PollStatus.active
        assert event.status == EventStatus.poll_active
        assert [pd.time for pd in event.proposed_dates] == ["18:00", "19:00", "18:30"]

    def test_needs_two_slots(self, db):
        now = utcnow()
        host = make_user(db, "Host")
        event = make_event(db, host, now)
        with pytest.raises(ValidationFailed):
            poll_service.create_poll(db, event.event_id, _slots(now, (3, "18:00")),
                                     now + timedelta(days=2), host.user_id, now=now)

    def test_rejects_duplicate_and_past_slots(self, db):
        now = utcnow()
        host = make_user(db, "Host")
        event = make_event(db, host, now)
        with pytest.raises(ValidationFailed):
            poll_service.create_poll(db, event.event_id, _slots(now, (3, "18:00"), (3, "18:00")),
                                     now + timedelta(days=2), host.user_id, now=now)
        with pytest.raises(ValidationFailed):
            poll_service.create_poll(db, event.event_id, _slots(now, (-3, "18:00"), (3, "18:00")),
                                     now + timedelta(days=2), host.user_id, now=now)

    def test_deadline_must_be_in_future(self, db):
        now = utcnow()
        host = make_user(db, "Host")
        event = make_event(db, host, now)
        with pytest.raises(ValidationFailed):
            poll_service.create_poll(db, event.event_id, _slots(now, (3, "18:00"), (4, "18:00")),
                                     now - timedelta(hours=1), host.user_id, now=now)

    def test_only_once(self, db):
        now = utcnow()
        host, event = _poll_event(db, now)
        with pytest.raises(PollAlreadyEnabled):
            poll_service.create_poll(db, event.event_id, _slots(now, (20, "18:00"), (21, "18:00")),
                                     now + timedelta(days=5), host.user_id, now=now)

    def test_host_only(self, db):
        now = utcnow()
        host = make_user(db, "Host")
        stranger = make_user(db, "Stranger")
        event = make_event(db, host, now)
        with pytest.raises(Forbidden):
            poll_service.create_poll(db, event.event_id, _slots(now, (3, "18:00"), (4, "18:00")),
                                     now + timedelta(days=2), stranger.user_id, now=now)

    def test_polling_event_is_not_bookable(self, db):
        now = utcnow()
        _, event = _poll_event(db, now)
        with pytest.raises(EventNotBookable):
            reservation_service.create_reservation(db, event.event_id, guest("Early"), 1, now=now)

    def test_polling_a_dated_event_drops_its_date(self, db):
        now = utcnow()
        host = make_user(db, "Host")
        event = make_event(db, host, now, starts_in=timedelta(hours=30))
        booked = reservation_service.create_reservation(db, event.event_id, guest("A"), 1, now=now)

        poll_service.create_poll(db, event.event_id, _slots(now, (10, "18:00"), (11, "18:00")),
                                 now + timedelta(days=5), host.user_id, now=now)
        assert event.status == EventStatus.poll_active
        assert event.date is None
        assert event.reservation_deadline is None

        # Inside 24 h of the abandoned date, but there is no date while polling
        result = reservation_service.cancel_reservation(db, booked.reservation.reservation_id, guest("A"),
                                                        now=now + timedelta(hours=8))
        assert result.reservation.status == ReservationStatus.cancelled


class TestPollResponses:
    def test_resubmission_replaces_previous_answers(self, db):
        now = utcnow()
        _, event = _poll_event(db, now)
        d1, d2, d3 = [pd.proposed_date_id for pd in event.proposed_dates]

        poll_service.submit_response(db, event.event_id, [
            ResponseInput(d1, available=True),
            ResponseInput(d2, available=False),
        ], guest("Alex"), now=now)
        poll_service.submit_response(db, event.event_id, [
            ResponseInput(d2, available=True, tentative=True),
            ResponseInput(d3, available=True),
        ], Identity.guest("ALEX@example.com", "Alex"), now=now)

        rows = db.query(AvailabilityResponse).filter(AvailabilityResponse.event_id == event.event_id).all()
        assert sorted((r.proposed_date_id, r.available, r.tentative) for r in rows) == sorted([
            (d2, True, True),
            (d3, True, False),
        ])

    def test_tentative_forced_false_when_unavailable(self, db):
        now = utcnow()
        _, event = _poll_event(db, now)
        d1 = event.proposed_dates[0].proposed_date_id
        records = poll_service.submit_response(db, event.event_id, [
            ResponseInput(d1, available=False, tentative=True),
        ], guest("Sam"), now=now)
        assert records[0].tentative is False

    def test_deadline_passed(self, db):
        now = utcnow()
        _, event = _poll_event(db, now)
        d1 = event.proposed_dates[0].proposed_date_id
        with pytest.raises(DeadlinePassed):
            poll_service.submit_response(db, event.event_id, [ResponseInput(d1, available=True)],
                                         guest("Late"), now=now + timedelta(days=6))

    def test_invalid_proposed_date(self, db):
        now = utcnow()
        _, event = _poll_event(db, now)
        _, other = _poll_event(db, now, host=make_user(db, "Other Host"))
        foreign = other.proposed_dates[0].proposed_date_id
        with pytest.raises(InvalidProposedDate):
            poll_service.submit_response(db, event.event_id, [ResponseInput(foreign, available=True)],
                                         guest("Sam"), now=now)

    def test_needs_at_least_one_response(self, db):
        now = utcnow()
        _, event = _poll_event(db, now)
        with pytest.raises(ValidationFailed):
            poll_service.submit_response(db, event.event_id, [], guest("Sam"), now=now)


class TestTallyAndRecommendation:
    def test_recommends_most_available_then_earliest(self, db):
        now = utcnow()
        _, event = _poll_event(db, now)
        d1, d2, d3 = [pd.proposed_date_id for pd in event.proposed_dates]
        for name, answers in (
            ("A", [(d1, True, False), (d2, True, False), (d3, True, True)]),
            ("B", [(d1, False, False), (d2, True, False), (d3, True, False)]),
            ("C", [(d1, True, True), (d2, False, False), (d3, True, False)]),
        ):
            poll_service.submit_response(
                db, event.event_id,
                [ResponseInput(pid, available=a, tentative=t) for pid, a, t in answers],
                guest(name), now=now,
            )

        poll = poll_service.get_poll(db, event.event_id, now=now)
        tallies = {item["proposed_date"].proposed_date_id: item["tally"] for item in poll["proposed_dates"]}
        assert tallies[d1].as_dict() == {"available": 1, "tentative": 1, "unavailable": 1, "total": 3}
        assert tallies[d2].as_dict() == {"available": 2, "tentative": 0, "unavailable": 1, "total": 3}
        assert tallies[d3].as_dict() == {"available": 2, "tentative": 1, "unavailable": 0, "total": 3}
        # d2 and d3 tie on firm answers and on totals; d2 starts first
        assert poll["recommended_proposed_date_id"] == d2
        assert poll["respondent_count"] == 3
        assert poll["accepting_responses"] is True
        assert [g.date for g in poll["grouped_dates"]] == sorted(g.date for g in poll["grouped_dates"])

    def test_no_responses_recommends_earliest(self, db):
        now = utcnow()
        _, event = _poll_event(db, now, slots=_slots(now, (12, "18:00"), (10, "20:00")))
        poll = poll_service.get_poll(db, event.event_id, now=now)
        earliest = min(event.proposed_dates, key=lambda pd: pd.starts_at)
        assert poll["recommended_proposed_date_id"] == earliest.proposed_date_id


class TestFinalize:
    def test_finalize_opens_reservations(self, db):
        now = utcnow()
        host, event = _poll_event(db, now)
        chosen = event.proposed_dates[1]
        poll_service.submit_response(db, event.event_id, [ResponseInput(chosen.proposed_date_id, True)],
                                     guest("Ria"), now=now)

        result = poll_finalizer.finalize(db, event.event_id, chosen.proposed_date_id, host.user_id)
        assert result.tally.available == 1
        assert event.status == EventStatus.open
        assert event.poll_status == PollStatus.finalized
        assert event.date == chosen.starts_at
        assert event.finalized_date == chosen.starts_at

        booking = reservation_service.create_reservation(db, event.event_id, guest("Ria"), 2, now=now)
        assert booking.reservation.status.value == "CONFIRMED"

    def test_finalize_is_one_way(self, db):
        now = utcnow()
        host, event = _poll_event(db, now)
        first, second = event.proposed_dates[0], event.proposed_dates[1]
        poll_finalizer.finalize(db, event.event_id, first.proposed_date_id, host.user_id)
        with pytest.raises(PollNotActive):
            poll_finalizer.finalize(db, event.event_id, second.proposed_date_id, host.user_id)
        with pytest.raises(PollNotActive):
            poll_service.submit_response(db, event.event_id, [ResponseInput(first.proposed_date_id, True)],
                                         guest("Late"), now=now)

    def test_finalize_keeps_a_full_table_full(self, db):
        now = utcnow()
        host = make_user(db, "Host")
        event = make_event(db, host, now, max_capacity=2)
        reservation_service.create_reservation(db, event.event_id, guest("A"), 2, now=now)
        assert event.status == EventStatus.full

        poll_service.create_poll(db, event.event_id, _slots(now, (10, "18:00"), (11, "18:00")),
                                 now + timedelta(days=5), host.user_id, now=now)
        chosen = event.proposed_dates[0]
        poll_finalizer.finalize(db, event.event_id, chosen.proposed_date_id, host.user_id)

        assert event.poll_status == PollStatus.finalized
        assert event.date == chosen.starts_at
        assert event.status == EventStatus.full
        assert [e.event_id for e in event_service.list_public_events(db)] == []

    def test_non_host_cannot_finalize(self, db):
        now = utcnow()
        _, event = _poll_event(db, now)
        stranger = make_user(db, "Stranger")
        with pytest.raises(Forbidden):
            poll_finalizer.finalize(db, event.event_id, event.proposed_dates[0].proposed_date_id, stranger.user_id)
        assert event.poll_status == PollStatus.active

    def test_unknown_slot(self, db):
        now = utcnow()
        host, event = _poll_event(db, now)
        with pytest.raises(NotFound):
            poll_finalizer.finalize(db, event.event_id, "not-a-slot", host.user_id)

    def test_cancelling_event_closes_poll(self, db):
        now = utcnow()
        host, event = _poll_event(db, now)
        event_service.update_event_status(db, event.event_id, host.user_id, EventStatus.cancelled)
        assert event.poll_status == PollStatus.closed
        with pytest.raises(PollNotActive):
            poll_finalizer.finalize(db, event.event_id, event.proposed_dates[0].proposed_date_id, host.user_id)


class TestPollAPI:
    """Poll endpoints end to end, including guest respondents."""

    def _create(self, client, host_id):
        event = create_test_event(client, host_id, max_capacity=6)
        day = date.today() + timedelta(days=10)
        resp = client.post(f"/api/events/{event['event_id']}/poll", json={
            "proposed_dates": [
                {"date": day.isoformat(), "time": "18:00"},
                {"date": day.isoformat(), "time": "12:30"},
                {"date": (day + timedelta(days=1)).isoformat(), "time": "19:00"},
            ],
            "poll_deadline": future(days=5).isoformat(),
        }, headers=auth(host_id))
        assert resp.status_code == 201, resp.text
        return event, resp.json()["data"]["proposed_date_ids"]

    def test_full_poll_round_trip(self, client, notifier):
        host = create_test_user(client, name="Host")
        member = create_test_user(client, name="Member")
        event, ids = self._create(client, host["user_id"])

        resp = client.post(f"/api/events/{event['event_id']}/poll/respond", json={
            "responses": [{"proposed_date_id": ids[0], "available": True}],
        }, headers=auth(member["user_id"]))
        assert resp.status_code == 200, resp.text

        resp = client.post(f"/api/events/{event['event_id']}/poll/respond", json={
            "responses": [
                {"proposed_date_id": ids[0], "available": True, "tentative": True},
                {"proposed_date_id": ids[2], "available": False},
            ],
            "guest_info": {"email": "Cousin@Example.com", "name": "Cousin"},
        })
        assert resp.status_code == 200, resp.text
        assert notifier.kinds().count("poll_response_received") == 2

        poll = client.get(f"/api/events/{event['event_id']}/poll").json()["data"]
        assert poll["poll_status"] == "ACTIVE"
        assert poll["respondent_count"] == 2
        assert poll["recommended_proposed_date_id"] == ids[0]
        first = next(pd for pd in poll["proposed_dates"] if pd["proposed_date_id"] == ids[0])
        assert first["tally"] == {"available": 1, "tentative": 1, "unavailable": 0, "total": 2}
        assert {r["name"] for r in first["responses"]} == {"Member", "Cousin"}
        # Same day grouped, times in order
        assert [t["time"] for t in poll["grouped_dates"][0]["times"]] == ["12:30", "18:00"]
        assert poll["grouped_dates"][0]["times"][0]["time_display"] == "12:30 PM"

        resp = client.post(f"/api/events/{event['event_id']}/poll/finalize", json={
            "selected_proposed_date_id": ids[0],
        }, headers=auth(host["user_id"]))
        assert resp.status_code == 200, resp.text
        assert resp.json()["data"]["response_stats"]["total"] == 2
        assert notifier.kinds().count("poll_finalized") == 2

        again = client.post(f"/api/events/{event['event_id']}/poll/finalize", json={
            "selected_proposed_date_id": ids[1],
        }, headers=auth(host["user_id"]))
        assert again.status_code == 409
        assert again.json()["error_code"] == "POLL_NOT_ACTIVE"

        assert reserve(client, event["event_id"], member["user_id"]).status_code == 201

    def test_finalize_with_wrong_host_id_is_403(self, client):
        host = create_test_user(client, name="Host")
        event, ids = self._create(client, host["user_id"])
        resp = client.post(f"/api/events/{event['event_id']}/poll/finalize", json={
            "selected_proposed_date_id": ids[0],
            "host_id": "someone-else",
        }, headers=auth(host["user_id"]))
        assert resp.status_code == 403

    def test_unknown_proposed_date_is_400(self, client):
        host = create_test_user(client, name="Host")
        event, _ = self._create(client, host["user_id"])
        resp = client.post(f"/api/events/{event['event_id']}/poll/respond", json={
            "responses": [{"proposed_date_id": "bogus", "available": True}],
            "guest_info": {"email": "g@example.com"},
        })
        assert resp.status_code == 400
        assert resp.json()["error_code"] == "INVALID_PROPOSED_DATE"

    def test_second_poll_is_409(self, client):
        host = create_test_user(client, name="Host")
        event, _ = self._create(client, host["user_id"])
        day = date.today() + timedelta(days=20)
        resp = client.post(f"/api/events/{event['event_id']}/poll", json={
            "proposed_dates": [
                {"date": day.isoformat(), "time": "18:00"},
                {"date": day.isoformat(), "time": "19:00"},
            ],
            "poll_deadline": future(days=5).isoformat(),
        }, headers=auth(host["user_id"]))
        assert resp.status_code == 409
        assert resp.json()["error_code"] == "POLL_ALREADY_ENABLED"

    def test_anonymous_response_needs_email(self, client):
        host = create_test_user(client, name="Host")
        event, ids = self._create(client, host["user_id"])
        resp = client.post(f"/api/events/{event['event_id']}/poll/respond", json={
            "responses": [{"proposed_date_id": ids[0], "available": True}],
        })
        assert resp.status_code == 400

    def test_poll_on_dated_event_without_poll(self, client):
        host = create_test_user(client, name="Host")
        event = create_test_event(client, host["user_id"])
        resp = client.get(f"/api/events/{event['event_id']}/poll")
        assert resp.status_code == 400
