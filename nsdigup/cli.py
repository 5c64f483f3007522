from __future__ import annotations

import asyncio
import json
import logging
import sys
from datetime import datetime, timezone
from typing import Optional

import typer
import uvicorn

from .errors import ConfigError, ScanFailed
from .models.config import LogConfig, LogFormat, load_settings
from .pipeline.runner import Scanner
from .reporting.ansi import build_ansi
from .reporting.json_report import build_json
from .server.app import create_app
from .utils.normalize import validate_domain

app = typer.Typer(add_completion=False)

# Attributes every LogRecord carries; anything else came in through ``extra``.
_RECORD_FIELDS = set(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}


def _extras(record: logging.LogRecord) -> dict:
    return {k: v for k, v in vars(record).items() if k not in _RECORD_FIELDS}


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
            "time": datetime.now(timezone.utc).isoformat(),
        }
        payload.update(_extras(record))
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class TextFormatter(logging.Formatter):
    def __init__(self) -> None:
        super().__init__("%(asctime)s %(levelname)s %(name)s: %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        extras = _extras(record)
        if extras:
            line += " " + " ".join(f"{k}={v}" for k, v in extras.items())
        return line


def setup_logging(config: Optional[LogConfig] = None, stream=None) -> None:
    config = config or LogConfig()
    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(JsonFormatter() if config.format == LogFormat.json else TextFormatter())
    logging.basicConfig(level=config.level.value.upper(), handlers=[handler], force=True)


def _load(**overrides):
    try:
        return load_settings(**overrides)
    except ConfigError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(2)


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host"),
    port: Optional[int] = typer.Option(None, "--port"),
    cache_mode: Optional[str] = typer.Option(None, "--cache-mode", help="memory or none"),
    cache_ttl: Optional[str] = typer.Option(None, "--cache-ttl", help="e.g. 300, 30s, 5m, 1h; 0 never expires"),
    log_level: Optional[str] = typer.Option(None, "--log-level"),
    log_format: Optional[str] = typer.Option(None, "--log-format", help="text or json"),
    scan_timeout: Optional[str] = typer.Option(None, "--scan-timeout"),
) -> None:
    """Serve domain reports over HTTP."""
    settings = _load(
        host=host,
        port=port,
        cache_mode=cache_mode,
        cache_ttl=cache_ttl,
        log_level=log_level,
        log_format=log_format,
        scan_timeout=scan_timeout,
    )
    setup_logging(settings.log)
    logging.getLogger(__name__).info(
        "starting server",
        extra={"host": settings.app.host, "port": settings.app.port, "address": settings.app.address},
    )
    uvicorn.run(
        create_app(settings),
        host=settings.app.host,
        port=settings.app.port,
        log_level=settings.log.level.value,
        access_log=False,
    )


@app.command()
def scan(
    domain: str = typer.Argument(...),
    as_json: bool = typer.Option(False, "--json", help="Print the report as JSON instead of ANSI text."),
    scan_timeout: Optional[str] = typer.Option(None, "--scan-timeout"),
    log_level: Optional[str] = typer.Option(None, "--log-level"),
) -> None:
    """Scan one domain and print the report."""
    settings = _load(scan_timeout=scan_timeout, log_level=log_level)
    # keep stdout clean for the report itself
    setup_logging(settings.log, stream=sys.stderr)
    try:
        target = validate_domain(domain)
    except ValueError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(2)
    try:
        report = asyncio.run(Scanner(settings.scan).scan(target))
    except ScanFailed as exc:
        typer.echo(f"Scan failed: {exc.cause}", err=True)
        raise typer.Exit(1)
    typer.echo(build_json(report) if as_json else build_ansi(report))
