"""Fixtures compartidos de los tests de incidenthook."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from incidenthook.config import Settings
from incidenthook.database import init_db, make_engine, make_session_factory
from incidenthook.deps import build_services
from incidenthook.errors import PersistenceError
from incidenthook.main import create_app

API_KEY = "test-api-key"


# ── Fakes ───────────────────────────────────────────────────────────────


class RecordingNotifier:
    """Guarda (title, body) en vez de entregar nada."""

    def __init__(self):
        self.calls: list[tuple[str, str]] = []

    def notify(self, title: str, body: str) -> None:
        self.calls.append((title, body))

    @property
    def titles(self) -> list[str]:
        return [t for t, _ in self.calls]


class FailingRecorder:
    def __init__(self):
        self.attempts = 0

    def save(self, data):
        self.attempts += 1
        raise PersistenceError("table store unavailable")

    def get(self, incident_id):
        raise PersistenceError("table store unavailable")


class SpyArchiver:
    def __init__(self, locator: str | None = "http://testserver/evidence/evidence/x.txt"):
        self.locator = locator
        self.calls: list[tuple[str, str]] = []

    def store(self, incident_id, raw_message):
        self.calls.append((incident_id, raw_message))
        return self.locator


# ── Helpers ─────────────────────────────────────────────────────────────


def make_settings(tmp_path, **overrides) -> Settings:
    values = dict(
        DATABASE_URL="sqlite://",
        API_KEY=API_KEY,
        REQUIRE_API_KEY=True,
        EVIDENCE_DIR=str(tmp_path / "evidence_store"),
        EVIDENCE_SIGNING_SECRET="test-secret",
        BASE_URL="http://testserver",
        ALERT_WEBHOOK="",
        ALERT_EMAILS="",
        LOG_LEVEL="WARNING",
    )
    values.update(overrides)
    return Settings(_env_file=None, **values)


def make_client(tmp_path, notifier=None, **overrides):
    settings = make_settings(tmp_path, **overrides)
    notifier = notifier or RecordingNotifier()
    services = build_services(settings, notifier=notifier)
    app = create_app(services=services)
    return TestClient(app), services


def auth_headers(**extra) -> dict:
    headers = {"x-api-key": API_KEY}
    headers.update(extra)
    return headers


# ── Fixtures ────────────────────────────────────────────────────────────


@pytest.fixture
def session_factory():
    engine = make_engine("sqlite://")
    init_db(engine)
    yield make_session_factory(engine)
    engine.dispose()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def settings(tmp_path):
    return make_settings(tmp_path)


@pytest.fixture
def services(settings, notifier):
    return build_services(settings, notifier=notifier)


@pytest.fixture
def client(services):
    app = create_app(services=services)
    with TestClient(app) as c:
        yield c
