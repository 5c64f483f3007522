from __future__ import annotations

import os
import re
from enum import Enum
from typing import Any, Mapping, Optional

from pydantic import BaseModel, Field, field_validator

from ..errors import ConfigError

ENV_PREFIX = "NSDIGUP_"

DURATION_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(ms|s|m|h)?\s*$", re.IGNORECASE)
DURATION_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


class CacheMode(str, Enum):
    memory = "memory"
    none = "none"


class LogLevel(str, Enum):
    debug = "debug"
    info = "info"
    warning = "warning"
    error = "error"


class LogFormat(str, Enum):
    text = "text"
    json = "json"


def parse_duration(raw: str | float | int) -> float:
    """Parse `300`, `30s`, `5m`, `1h` or `250ms` into seconds."""
    if isinstance(raw, (int, float)):
        return float(raw)
    match = DURATION_RE.match(raw)
    if not match:
        raise ValueError(f"invalid duration '{raw}'")
    value, unit = match.groups()
    return float(value) * DURATION_UNITS[(unit or "s").lower()]


class AppConfig(BaseModel):
    name: str = "nsdigup"
    host: str = "0.0.0.0"
    port: int = 8080
    advertised_address: str = ""

    @field_validator("name")
    @classmethod
    def _name_not_empty(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("app name cannot be empty")
        return value

    @field_validator("port")
    @classmethod
    def _port_in_range(cls, value: int) -> int:
        if not 0 < value < 65536:
            raise ValueError(f"port {value} out of range")
        return value

    @property
    def address(self) -> str:
        if self.advertised_address:
            return self.advertised_address.rstrip("/")
        return f"http://localhost:{self.port}"


class CacheConfig(BaseModel):
    mode: CacheMode = CacheMode.memory
    ttl_seconds: float = 300.0

    @field_validator("ttl_seconds")
    @classmethod
    def _ttl_not_negative(cls, value: float) -> float:
        if value < 0:
            raise ValueError("cache TTL cannot be negative")
        return value


class LogConfig(BaseModel):
    level: LogLevel = LogLevel.info
    format: LogFormat = LogFormat.text


class ScanConfig(BaseModel):
    timeout_seconds: float = 10.0
    dial_timeout_seconds: float = 5.0
    whois_timeout_seconds: float = 5.0
    resolver: str = "8.8.8.8"

    @field_validator("timeout_seconds", "dial_timeout_seconds", "whois_timeout_seconds")
    @classmethod
    def _positive(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("timeouts must be positive")
        return value

    def probe_timeout(self, value: float) -> float:
        return min(value, self.timeout_seconds)


class Settings(BaseModel):
    app: AppConfig = Field(default_factory=AppConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    log: LogConfig = Field(default_factory=LogConfig)
    scan: ScanConfig = Field(default_factory=ScanConfig)


ENV_FIELDS: dict[str, tuple[str, str]] = {
    "APP_NAME": ("app", "name"),
    "HOST": ("app", "host"),
    "PORT": ("app", "port"),
    "ADVERTISED_ADDRESS": ("app", "advertised_address"),
    "CACHE_MODE": ("cache", "mode"),
    "CACHE_TTL": ("cache", "ttl_seconds"),
    "LOG_LEVEL": ("log", "level"),
    "LOG_FORMAT": ("log", "format"),
    "SCAN_TIMEOUT": ("scan", "timeout_seconds"),
}

DURATION_FIELDS = {"ttl_seconds", "timeout_seconds"}


def _coerce(field: str, raw: Any) -> Any:
    if field in DURATION_FIELDS and isinstance(raw, str):
        return parse_duration(raw)
    if isinstance(raw, str):
        return raw.strip().lower() if field in {"mode", "level", "format"} else raw.strip()
    return raw


def load_settings(env: Optional[Mapping[str, str]] = None, **overrides: Any) -> Settings:
    """Build settings from defaults, then environment, then explicit overrides.

    Override keys use the env suffix in lower case (``port``, ``cache_ttl``);
    ``None`` values are ignored so unset CLI flags fall through to the env.
    """
    env = os.environ if env is None else env
    sections: dict[str, dict[str, Any]] = {"app": {}, "cache": {}, "log": {}, "scan": {}}
    try:
        for suffix, (section, field) in ENV_FIELDS.items():
            raw = env.get(f"{ENV_PREFIX}{suffix}")
            if raw not in (None, ""):
                sections[section][field] = _coerce(field, raw)
        for key, raw in overrides.items():
            if raw is None:
                continue
            if key.upper() not in ENV_FIELDS:
                raise ConfigError(f"unknown setting '{key}'")
            section, field = ENV_FIELDS[key.upper()]
            sections[section][field] = _coerce(field, raw)
        return Settings(**sections)
    except ValueError as exc:
        raise ConfigError(f"invalid configuration: {exc}") from exc
