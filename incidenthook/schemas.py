from typing import Any, List, Optional

from pydantic import BaseModel


class IncidentOut(BaseModel):
    incident_id: str
    created_at: Optional[str] = None
    log_source: str
    findings: List[str]
    message_excerpt: str
    evidence_path: Optional[str] = None
    extra: Optional[Any] = None


class DetectResponse(BaseModel):
    ok: bool = True
    incident: IncidentOut
    bruteForce: bool = False


class NoFindingsResponse(BaseModel):
    ok: bool = True
    findings: List[str] = []


class IncidentResponse(BaseModel):
    ok: bool = True
    incident: IncidentOut


class ErrorResponse(BaseModel):
    ok: bool = False
    error: str
    details: Optional[str] = None
