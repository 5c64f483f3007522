from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Optional

import whois

from ..errors import ProbeError
from ..models.report import days_until, utcnow
from ..models.results import WhoisResult
from ..utils.normalize import normalize_domain

logger = logging.getLogger(__name__)

DATE_FORMATS = [
    "%Y-%m-%dT%H:%M:%SZ",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d",
    "%d-%b-%Y",
    "%Y.%m.%d",
    "%Y-%m-%dT%H:%M:%S%z",
]


def _first(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        return value[0] if value else None
    return value


def parse_whois_date(value: Any) -> Optional[datetime]:
    value = _first(value)
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        parsed = None
        for fmt in DATE_FORMATS:
            try:
                parsed = datetime.strptime(text, fmt)
                break
            except ValueError:
                continue
        if parsed is None:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def summarize_whois(entry: Any, now: Optional[datetime] = None) -> WhoisResult:
    """Pull registrar, owner and expiry out of a parsed WHOIS record."""
    now = now or utcnow()
    registrar = _first(entry.get("registrar")) or ""
    owner = _first(entry.get("org")) or _first(entry.get("name")) or ""
    expires_at = parse_whois_date(entry.get("expiration_date"))
    return WhoisResult(
        registrar=str(registrar).strip(),
        owner=str(owner).strip(),
        expires_at=expires_at,
        expires_days=days_until(expires_at, now),
    )


def _lookup(domain: str):
    return whois.whois(domain)


async def check_whois(domain: str, timeout: float) -> WhoisResult:
    name = normalize_domain(domain)
    try:
        # python-whois blocks on a socket; the worker thread outlives a timeout
        entry = await asyncio.wait_for(asyncio.to_thread(_lookup, name), timeout)
    except asyncio.TimeoutError as exc:
        raise ProbeError(f"WHOIS query timeout after {timeout:g}s") from exc
    except Exception as exc:
        logger.debug("whois lookup failed", extra={"domain": name, "error": str(exc)})
        raise ProbeError(f"WHOIS fetch failed: {exc}") from exc
    if entry is None:
        raise ProbeError("WHOIS fetch failed: empty response")
    return summarize_whois(entry)
