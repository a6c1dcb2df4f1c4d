"""Pytest fixtures — a fresh file-backed SQLite database per test."""
from datetime import datetime, timezone, timedelta
import pytest
from fastapi.testclient import TestClient

from family_dinner.config import Settings
from family_dinner.database import Base
from family_dinner.identity import Identity
from family_dinner.main import create_app
from family_dinner.models.user import User
from family_dinner.services import event_service
from family_dinner.services.notifications import Notice, Notifier


class RecordingNotifier(Notifier):
    """Keeps every notice in memory instead of sending it."""

    def __init__(self):
        self.sent: list[Notice] = []

    def send(self, notice: Notice) -> None:
        self.sent.append(notice)

    def kinds(self) -> list[str]:
        return [n.kind for n in self.sent]


class FailingNotifier(Notifier):
    def send(self, notice: Notice) -> None:
        raise RuntimeError("mail server unreachable")


@pytest.fixture(scope="function")
def settings(tmp_path):
    return Settings(
        DATABASE_URL=f"sqlite:///{tmp_path / 'test.db'}",
        CORS_ORIGINS="http://testserver",
        LOG_LEVEL="WARNING",
    )


@pytest.fixture(scope="function")
def notifier():
    return RecordingNotifier()


@pytest.fixture(scope="function")
def app(settings, notifier):
    """App wired to the per-test database, with notices recorded in memory."""
    application = create_app(settings)
    application.state.notifier = notifier
    Base.metadata.create_all(bind=application.state.engine)
    yield application
    application.state.engine.dispose()


@pytest.fixture(scope="function")
def session_factory(app):
    return app.state.session_factory


@pytest.fixture(scope="function")
def db(session_factory):
    """A session for service-level tests. Do not mix with API calls in one test."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(app):
    with TestClient(app) as c:
        yield c


def auth(user_id: str) -> dict:
    """Headers the auth proxy would forward for ``user_id``."""
    return {"X-User-Id": user_id}


def future(days: float = 7, hours: float = 0) -> datetime:
    return datetime.now(timezone.utc) + timedelta(days=days, hours=hours)


# ---------------------------------------------------------------------------
# API helpers
# ---------------------------------------------------------------------------
def create_test_user(client: TestClient, name: str = "Test User", email: str = None,
                     venmo_username: str = None) -> dict:
    """Helper — POST /api/users and return the created user."""
    email = email or f"{name.lower().replace(' ', '.')}@example.com"
    resp = client.post("/api/users/", json={
        "display_name": name,
        "email": email,
        "venmo_username": venmo_username,
    })
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


def create_test_event(client: TestClient, host_id: str, title: str = "Sunday Supper",
                      max_capacity: int = 8, days_ahead: float = 7, **extra) -> dict:
    """Helper — POST /api/events for a dated dinner and return the created event."""
    payload = {
        "title": title,
        "description": "Family-style dinner",
        "date": future(days=days_ahead).isoformat(),
        "max_capacity": max_capacity,
        "estimated_cost_per_person": 25.0,
        "cuisine_types": ["Italian"],
        "location": {"city": "Brooklyn", "neighborhood": "Park Slope"},
    }
    payload.update(extra)
    resp = client.post("/api/events/", json=payload, headers=auth(host_id))
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


def reserve(client: TestClient, event_id: str, user_id: str = None, guest_count: int = 1, **extra):
    """POST /api/reservations as ``user_id`` (or anonymously with guest fields in ``extra``)."""
    payload = {"event_id": event_id, "guest_count": guest_count}
    payload.update(extra)
    headers = auth(user_id) if user_id else {}
    return client.post("/api/reservations/", json=payload, headers=headers)


# ---------------------------------------------------------------------------
# Service helpers
# ---------------------------------------------------------------------------
def make_user(db, name: str = "Host") -> User:
    user = User(display_name=name, email=f"{name.lower().replace(' ', '.')}@example.com")
    db.add(user)
    db.commit()
    return user


def make_event(db, host: User, now: datetime, max_capacity: int = 4, starts_in: timedelta = timedelta(days=7),
               allow_waitlist: bool = True, **extra):
    draft = event_service.EventDraft(
        host_id=host.user_id,
        title=extra.pop("title", "Dumpling Night"),
        max_capacity=max_capacity,
        date=now + starts_in,
        allow_waitlist=allow_waitlist,
        **extra,
    )
    return event_service.create_event(db, draft, now=now)


def guest(name: str) -> Identity:
    return Identity.guest(f"{name.lower()}@example.com", name)
