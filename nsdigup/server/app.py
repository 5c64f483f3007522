from __future__ import annotations

import logging
import secrets
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from starlette.middleware.base import BaseHTTPMiddleware

from .. import __version__
from ..errors import NsdigupError, ScanFailed
from ..models.config import Settings, load_settings
from ..pipeline.runner import Scanner
from ..reporting.ansi import build_ansi, build_home
from ..reporting.json_report import build_json
from ..utils.cache import CacheBase, build_cache
from ..utils.normalize import validate_domain

logger = logging.getLogger(__name__)

router = APIRouter()


class RequestLogger(logging.LoggerAdapter):
    """Adds the request id to every record while keeping call-site extras."""

    def process(self, msg, kwargs):
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request, call_next):
        request_id = request.headers.get("x-request-id") or secrets.token_hex(4)
        request.state.request_id = request_id
        request.state.log = RequestLogger(request.app.state.logger, {"request_id": request_id})
        started = time.monotonic()
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        request.state.log.info(
            "http request",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status": response.status_code,
                "duration_ms": int((time.monotonic() - started) * 1000),
                "remote_addr": request.client.host if request.client else "",
                "user_agent": request.headers.get("user-agent", ""),
            },
        )
        return response


def wants_json(request: Request, fmt: Optional[str] = None) -> bool:
    if fmt:
        return fmt.lower() == "json"
    return "application/json" in request.headers.get("accept", "")


def _error(request: Request, fmt: Optional[str], message: str, status_code: int) -> Response:
    if wants_json(request, fmt):
        return JSONResponse({"error": message}, status_code=status_code)
    return PlainTextResponse(message + "\n", status_code=status_code)


@router.get("/health")
async def health_check():
    return {"status": "ok"}


@router.get("/")
async def home(request: Request, format: Optional[str] = None):
    settings: Settings = request.app.state.settings
    if wants_json(request, format):
        return JSONResponse(
            {
                "name": settings.app.name,
                "version": __version__,
                "usage": f"{settings.app.address}/{{domain}}",
            }
        )
    return PlainTextResponse(build_home(settings.app.address, settings.app.name))


@router.get("/{domain}")
async def scan_domain(domain: str, request: Request, format: Optional[str] = None):
    log = getattr(request.state, "log", logger)
    try:
        target = validate_domain(domain)
    except ValueError as exc:
        message = str(exc)
        log.debug("rejected domain", extra={"domain": domain, "error": message})
        return _error(request, format, message[:1].upper() + message[1:], 400)

    cache: CacheBase = request.app.state.cache
    report = cache.get(target)
    if report is None:
        scanner: Scanner = request.app.state.scanner
        try:
            report = await scanner.scan(target)
        except ScanFailed as exc:
            log.warning("scan failed", extra={"domain": target, "error": str(exc.cause)})
            return _error(request, format, f"Scan failed: {exc.cause}", 500)
        except NsdigupError as exc:
            log.error("scan error", extra={"domain": target, "error": str(exc)})
            return _error(request, format, f"Scan failed: {exc}", 500)
        cache.set(target, report)
    else:
        log.debug("serving cached report", extra={"domain": target})

    if wants_json(request, format):
        return Response(build_json(report), media_type="application/json")
    return PlainTextResponse(build_ansi(report))


def create_app(
    settings: Optional[Settings] = None,
    scanner: Optional[Scanner] = None,
    cache: Optional[CacheBase] = None,
    log: Optional[logging.Logger] = None,
) -> FastAPI:
    settings = settings or load_settings()
    log = log or logger

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        app.state.cache.close()

    app = FastAPI(title=settings.app.name, version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.logger = log
    app.state.scanner = scanner or Scanner(settings.scan)
    app.state.cache = cache or build_cache(settings.cache.mode.value, settings.cache.ttl_seconds)
    app.add_middleware(RequestContextMiddleware)
    app.include_router(router)
    log.info(
        "server configured",
        extra={"app_name": settings.app.name, "cache_mode": settings.cache.mode.value, "cache_ttl": settings.cache.ttl_seconds},
    )
    return app
