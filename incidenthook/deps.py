# incidenthook/deps.py
import hmac
from dataclasses import dataclass
from typing import Optional

from fastapi import Request
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from incidenthook.config import Settings
from incidenthook.database import make_engine, make_session_factory
from incidenthook.errors import AuthError
from incidenthook.services.counters import AttemptCounter
from incidenthook.services.detection import DetectionPipeline
from incidenthook.services.evidence import EvidenceArchiver
from incidenthook.services.incidents import IncidentRecorder
from incidenthook.services.notifier import Notifier
from incidenthook.storage import make_blob_store


@dataclass
class Services:
    """Handles de proceso (DB, blob store, notifier), creados una sola vez."""
    settings: Settings
    engine: Engine
    SessionLocal: sessionmaker
    blob_store: object
    archiver: EvidenceArchiver
    recorder: IncidentRecorder
    counter: AttemptCounter
    notifier: Notifier
    pipeline: DetectionPipeline


def build_services(settings: Settings, engine: Optional[Engine] = None,
                   blob_store=None, notifier=None) -> Services:
    engine = engine or make_engine(settings.DATABASE_URL)
    SessionLocal = make_session_factory(engine)
    blob_store = blob_store or make_blob_store(settings)
    notifier = notifier or Notifier.from_settings(settings)

    archiver = EvidenceArchiver(
        blob_store,
        bucket=settings.EVIDENCE_BUCKET,
        url_mode=settings.EVIDENCE_URL_MODE,
        ttl_seconds=settings.EVIDENCE_URL_TTL_SECONDS,
        enabled=settings.EVIDENCE_ENABLED,
    )
    recorder = IncidentRecorder(SessionLocal)
    counter = AttemptCounter(SessionLocal, settings.WINDOW_SECONDS, settings.COUNTER_STRATEGY)
    pipeline = DetectionPipeline(
        archiver, recorder, counter, notifier,
        threshold=settings.BRUTE_FORCE_THRESHOLD,
        excerpt_max_length=settings.EXCERPT_MAX_LENGTH,
        fail_on_persistence_error=settings.FAIL_ON_PERSISTENCE_ERROR,
    )
    return Services(settings, engine, SessionLocal, blob_store, archiver, recorder, counter, notifier, pipeline)


def get_services(request: Request) -> Services:
    return request.app.state.services


def require_api_key(request: Request) -> None:
    """401 si falta o no coincide x-api-key (cuando REQUIRE_API_KEY)."""
    settings = get_services(request).settings
    if not settings.REQUIRE_API_KEY:
        return
    expected = settings.API_KEY or ""
    got = request.headers.get("x-api-key") or ""
    # sin API_KEY configurada se rechaza todo
    if not expected or not hmac.compare_digest(got.encode(), expected.encode()):
        raise AuthError("unauthorized")
