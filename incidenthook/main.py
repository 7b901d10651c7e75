# incidenthook/main.py
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from fastapi.routing import APIRoute
from starlette.exceptions import HTTPException as StarletteHTTPException

from incidenthook import __version__
from incidenthook.config import Settings, get_settings
from incidenthook.database import init_db
from incidenthook.deps import Services, build_services
from incidenthook.errors import IncidentHookError
from incidenthook.logger import setup_logging
from incidenthook.routers import detect, evidence, incidents

log = logging.getLogger(__name__)


def _error_body(error: str, details: Optional[str] = None) -> dict:
    body = {"ok": False, "error": error}
    if details is not None:
        body["details"] = details
    return body


def create_app(settings: Optional[Settings] = None, services: Optional[Services] = None) -> FastAPI:
    settings = settings or (services.settings if services else get_settings())
    level = setup_logging(settings.LOG_LEVEL)
    log.info("[startup] logging %s -> stderr (root, %d handler)",
             logging.getLevelName(level), len(logging.getLogger().handlers))
    services = services or build_services(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        init_db(services.engine)
        paths = sorted(r.path for r in app.routes if isinstance(r, APIRoute))
        log.info("[startup] routes: %s", ", ".join(paths))
        yield
        services.engine.dispose()

    app = FastAPI(title="incidenthook", version=__version__, lifespan=lifespan)
    app.state.services = services

    app.include_router(detect.router, prefix=settings.DETECT_PATH)
    app.include_router(incidents.router)
    app.include_router(evidence.router)

    # === Handlers: siempre {ok: false, error} ===
    @app.exception_handler(IncidentHookError)
    async def hook_exc_handler(request: Request, exc: IncidentHookError):
        if exc.status_code >= 500:
            log.error("[app] %s on %s: %s", type(exc).__name__, request.url.path, exc)
            return JSONResponse(_error_body("internal_error", str(exc)), status_code=500)
        return JSONResponse(_error_body(exc.code), status_code=exc.status_code)

    @app.exception_handler(StarletteHTTPException)
    async def http_exc_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 405:
            return JSONResponse(_error_body("method not allowed"), status_code=405)
        if exc.status_code == 401:
            return JSONResponse(_error_body("unauthorized"), status_code=401)
        return JSONResponse(_error_body(str(exc.detail).lower()), status_code=exc.status_code)

    @app.exception_handler(Exception)
    async def unhandled_exc_handler(request: Request, exc: Exception):
        log.exception("[app] unhandled error on %s", request.url.path)
        return JSONResponse(_error_body("internal_error", str(exc)), status_code=500)

    # === Health & HEAD ===
    @app.get("/health")
    def health():
        return {"ok": True}

    @app.head("/")
    def head_root():
        return Response(status_code=200)

    return app


app = create_app()
