from __future__ import annotations

import logging
from typing import Mapping, Optional

import httpx

from ..errors import ProbeError
from ..utils.http import HttpClient

logger = logging.getLogger(__name__)

MAX_REDIRECTS = 3


def header_issues(headers: Mapping[str, str]) -> list[str]:
    """One human-readable issue per missing or weak security header."""
    lower_headers = {k.lower(): v for k, v in headers.items()}
    issues = []

    if not lower_headers.get("strict-transport-security"):
        issues.append("Missing HSTS header")

    csp = lower_headers.get("content-security-policy", "")
    if not csp:
        issues.append("Missing CSP header")
    elif "unsafe-inline" in csp or "unsafe-eval" in csp:
        issues.append("Weak CSP policy (contains unsafe-inline or unsafe-eval)")

    if not lower_headers.get("x-frame-options") and "frame-ancestors" not in csp:
        issues.append("Missing X-Frame-Options header")

    if not lower_headers.get("x-content-type-options"):
        issues.append("Missing X-Content-Type-Options header")

    if not lower_headers.get("referrer-policy"):
        issues.append("Missing Referrer-Policy header")

    if not (lower_headers.get("permissions-policy") or lower_headers.get("feature-policy")):
        issues.append("Missing Permissions-Policy header")

    return issues


async def check_security_headers(
    domain: str,
    timeout: float,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> list[str]:
    async with HttpClient(
        timeout_seconds=timeout,
        follow_redirects=True,
        max_redirects=MAX_REDIRECTS,
        transport=transport,
    ) as http:
        try:
            resp = await http.head(f"https://{domain}")
        except ProbeError as exc:
            logger.debug("https header probe failed, retrying over http", extra={"domain": domain, "error": str(exc)})
            try:
                resp = await http.head(f"http://{domain}")
            except ProbeError as retry_exc:
                raise ProbeError(f"HTTP request failed: {retry_exc}") from retry_exc
    return header_issues(resp.headers)
