# incidenthook/models.py
from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    Integer,
    String,
    DateTime,
    Text,
    JSON,
)

from incidenthook.database import Base


def _utcnow():
    return datetime.now(timezone.utc)


# ---------------------------
# Incidente (inmutable)
# ---------------------------
class Incident(Base):
    __tablename__ = "incidents"

    incident_id = Column(String(64), primary_key=True)            # "inc-<uuid>" | "bf-<uuid>"
    created_at = Column(DateTime(timezone=True), default=_utcnow, index=True)
    log_source = Column(String(255), index=True, nullable=False)  # IP u origen
    findings = Column(JSON, nullable=False)                       # ["FAILED_LOGIN", ...]
    message_excerpt = Column(Text, nullable=False, default="")
    evidence_path = Column(String(1024), nullable=True)
    extra = Column(JSON, nullable=True)

    def to_dict(self) -> dict:
        created = self.created_at
        if created is not None and created.tzinfo is None:
            # SQLite devuelve datetimes naive; se guardan siempre en UTC
            created = created.replace(tzinfo=timezone.utc)
        return {
            "incident_id": self.incident_id,
            "created_at": created.isoformat() if created else None,
            "log_source": self.log_source,
            "findings": list(self.findings or []),
            "message_excerpt": self.message_excerpt,
            "evidence_path": self.evidence_path,
            "extra": self.extra,
        }


# ----------------------------------------
# Contador de intentos por (ip, ventana)
# ----------------------------------------
class AttemptCounter(Base):
    __tablename__ = "counters"

    counter_id = Column(String(128), primary_key=True)   # "<ip>-<window_start>"
    ip = Column(String(255), index=True, nullable=False)
    window_start = Column(Integer, index=True, nullable=False)  # epoch (s) del inicio del bucket
    count = Column(Integer, nullable=False, default=1)
    last_seen = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
