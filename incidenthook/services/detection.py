# incidenthook/services/detection.py
import uuid
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, List, Optional

from incidenthook.errors import PersistenceError
from incidenthook.models import Incident
from incidenthook.services.rules import (
    BRUTE_FORCE,
    FAILED_LOGIN,
    Finding,
    extract_source_address,
    first_critical,
)

log = logging.getLogger(__name__)


def new_incident_id(prefix: str = "inc") -> str:
    return f"{prefix}-{uuid.uuid4()}"


def _utc(ts: datetime) -> datetime:
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def excerpt_of(message: str, max_length: int = 800) -> str:
    return str(message)[:max_length]


@dataclass
class DetectionResult:
    incident: dict
    brute_force: bool
    persisted: bool
    attempts: Optional[int] = None


class DetectionPipeline:
    """archiver -> recorder -> counter -> notifier, en ese orden."""

    def __init__(self, archiver, recorder, counter, notifier,
                 threshold: int = 3, excerpt_max_length: int = 800,
                 fail_on_persistence_error: bool = False, clock=None):
        self.archiver = archiver
        self.recorder = recorder
        self.counter = counter
        self.notifier = notifier
        self.threshold = threshold
        self.excerpt_max_length = excerpt_max_length
        self.fail_on_persistence_error = fail_on_persistence_error
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def _save(self, data: dict):
        try:
            self.recorder.save(data)
            return True
        except PersistenceError:
            if self.fail_on_persistence_error:
                raise
            log.warning("[detect] incident %s not persisted (continuing)", data["incident_id"])
            return False

    def run(
        self,
        message: str,
        findings: List[Finding],
        meta: Any = None,
        timestamp: Optional[datetime] = None,
        request_source: Optional[str] = None,
    ) -> DetectionResult:
        message = str(message)
        incident_id = new_incident_id("inc")
        excerpt = excerpt_of(message, self.excerpt_max_length)

        evidence_path = self.archiver.store(incident_id, message) if self.archiver else None

        log_source = extract_source_address(message) or request_source or "unknown"

        data = {
            "incident_id": incident_id,
            "created_at": _utc(timestamp) if timestamp else self.clock(),
            "log_source": log_source,
            "findings": [f.rule for f in findings],
            "message_excerpt": excerpt,
            "evidence_path": evidence_path,
            "extra": {"findings": [f.to_dict() for f in findings], "meta": meta},
        }
        persisted = self._save(data)
        log.info("[detect] incident %s from %s: %s", incident_id, log_source, ",".join(data["findings"]))

        brute_force = False
        attempts = None
        if any(f.rule == FAILED_LOGIN for f in findings):
            attempts = self._count_attempt(log_source)
            # sólo al cruzar el umbral: un incidente brute-force por ventana
            if attempts is not None and attempts == self.threshold:
                brute_force = True
                self._record_brute_force(log_source, attempts)

        critical = first_critical(findings)
        if critical:
            self._notify(
                "Critical finding detected",
                f"{critical.desc}\nIP: {log_source}\nExcerpt: {excerpt}",
            )

        return DetectionResult(
            incident=Incident(**data).to_dict(),
            brute_force=brute_force,
            persisted=persisted,
            attempts=attempts,
        )

    def _count_attempt(self, source: str) -> Optional[int]:
        if self.counter is None:
            return None
        try:
            return self.counter.increment(source, self.clock())
        except PersistenceError as e:
            log.warning("[detect] attempt counter unavailable for %s: %s", source, e)
            return None

    def _record_brute_force(self, source: str, attempts: int) -> None:
        data = {
            "incident_id": new_incident_id("bf"),
            "created_at": self.clock(),
            "log_source": source,
            "findings": [BRUTE_FORCE],
            "message_excerpt": f"Multiple failed login attempts detected from IP {source} (count={attempts})",
            "evidence_path": None,
            "extra": {"attempts": attempts},
        }
        self._save(data)
        log.warning("[detect] brute-force from %s (count=%d)", source, attempts)
        minutes = max(1, getattr(self.counter, "window_seconds", 300) // 60)
        self._notify("Brute-force detected", f"IP {source} had {attempts} failed logins in {minutes}m")

    def _notify(self, title: str, body: str) -> None:
        if self.notifier is None:
            return
        try:
            self.notifier.notify(title, body)
        except Exception as e:
            log.warning("[detect] notifier raised: %s", e)
