"""Tests de incidenthook.services.incidents: IncidentRecorder."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from incidenthook.database import make_engine, make_session_factory
from incidenthook.errors import PersistenceError
from incidenthook.services.incidents import IncidentRecorder


def make_incident_data(**overrides) -> dict:
    data = {
        "incident_id": "inc-0001",
        "created_at": datetime(2026, 10, 16, 12, 0, tzinfo=timezone.utc),
        "log_source": "203.0.113.10",
        "findings": ["FAILED_LOGIN", "ADMIN_ACCESS"],
        "message_excerpt": "login failed for user=admin",
        "evidence_path": None,
        "extra": {"meta": {"host": "web-1"}},
    }
    data.update(overrides)
    return data


class TestIncidentRecorder:
    def test_save_and_get(self, session_factory):
        recorder = IncidentRecorder(session_factory)
        saved = recorder.save(make_incident_data())
        assert saved.incident_id == "inc-0001"

        got = recorder.get("inc-0001")
        assert got is not None
        d = got.to_dict()
        assert d["findings"] == ["FAILED_LOGIN", "ADMIN_ACCESS"]
        assert d["log_source"] == "203.0.113.10"
        assert d["extra"] == {"meta": {"host": "web-1"}}
        assert d["created_at"] == "2026-10-16T12:00:00+00:00"

    def test_get_missing(self, session_factory):
        assert IncidentRecorder(session_factory).get("inc-missing") is None

    def test_duplicate_id_is_persistence_error(self, session_factory):
        recorder = IncidentRecorder(session_factory)
        recorder.save(make_incident_data())
        with pytest.raises(PersistenceError):
            recorder.save(make_incident_data())

    def test_recorder_usable_after_failure(self, session_factory):
        recorder = IncidentRecorder(session_factory)
        recorder.save(make_incident_data())
        with pytest.raises(PersistenceError):
            recorder.save(make_incident_data())
        recorder.save(make_incident_data(incident_id="inc-0002"))
        assert recorder.get("inc-0002") is not None

    def test_missing_table_is_persistence_error(self):
        engine = make_engine("sqlite://")
        recorder = IncidentRecorder(make_session_factory(engine))
        with pytest.raises(PersistenceError):
            recorder.save(make_incident_data())
        with pytest.raises(PersistenceError):
            recorder.get("inc-0001")
        engine.dispose()
