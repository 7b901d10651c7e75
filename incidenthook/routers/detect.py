# incidenthook/routers/detect.py
import json
import logging
from datetime import datetime, timezone
from typing import Any, Tuple

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from incidenthook.deps import Services, get_services, require_api_key
from incidenthook.errors import InternalError, MethodError
from incidenthook.schemas import DetectResponse, ErrorResponse, IncidentOut, NoFindingsResponse
from incidenthook.services import rules
from incidenthook.utils.ip import get_request_source

log = logging.getLogger(__name__)

router = APIRouter(tags=["detect"])


# =========================
# Helpers de payload
# =========================
def parse_timestamp(value: Any) -> datetime:
    """ISO-8601 (acepta 'Z') normalizado a UTC; ausente o inválido -> ahora."""
    now = datetime.now(timezone.utc)
    if not isinstance(value, str) or not value.strip():
        return now
    raw = value.strip()
    if raw.endswith(("Z", "z")):
        raw = raw[:-1] + "+00:00"
    try:
        ts = datetime.fromisoformat(raw)
    except ValueError:
        return now
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    # SQLite descarta el offset al guardar: se normaliza a UTC acá
    return ts.astimezone(timezone.utc)


def _dump(obj: Any) -> str:
    return json.dumps(obj, ensure_ascii=False, separators=(",", ":"))


def parse_payload(raw: bytes) -> Tuple[str, Any, datetime]:
    """
    Devuelve (message, meta, timestamp).
    Objeto JSON -> 'message' o el body entero serializado; string JSON o
    texto plano -> el texto tal cual.
    """
    text = raw.decode("utf-8", errors="replace") if raw else ""
    if not text.strip():
        return "", None, parse_timestamp(None)
    try:
        payload = json.loads(text)
    except ValueError:
        return text, None, parse_timestamp(None)

    if isinstance(payload, dict):
        msg = payload.get("message")
        if isinstance(msg, str) and msg:
            message = msg
        elif msg not in (None, "", [], {}):
            message = _dump(msg)
        else:
            message = _dump(payload)
        return message, payload.get("meta"), parse_timestamp(payload.get("timestamp"))
    if isinstance(payload, str):
        return payload, None, parse_timestamp(None)
    return _dump(payload), None, parse_timestamp(None)


# =========================
# Endpoint
# =========================
@router.api_route("", methods=["GET", "PUT", "PATCH", "DELETE"], include_in_schema=False)
def detect_wrong_method():
    # antes del guard de API key: sin efectos laterales
    raise MethodError("method not allowed")


@router.post(
    "",
    status_code=201,
    dependencies=[Depends(require_api_key)],
    responses={200: {"model": NoFindingsResponse}, 201: {"model": DetectResponse},
               401: {"model": ErrorResponse}, 405: {"model": ErrorResponse},
               500: {"model": ErrorResponse}},
)
async def detect(request: Request, services: Services = Depends(get_services)):
    try:
        raw = await request.body()
        message, meta, timestamp = parse_payload(raw)

        findings = rules.evaluate(message)
        if not findings:
            return JSONResponse(NoFindingsResponse().model_dump(), status_code=200)

        result = await run_in_threadpool(
            services.pipeline.run,
            message,
            findings,
            meta,
            timestamp,
            get_request_source(request),
        )
        body = DetectResponse(incident=IncidentOut(**result.incident), bruteForce=result.brute_force)
        return JSONResponse(body.model_dump(), status_code=201)
    except Exception as e:
        log.exception("[detect] handler exception")
        raise InternalError(str(e)) from e
