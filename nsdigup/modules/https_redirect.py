from __future__ import annotations

import logging
from typing import Optional

import httpx

from ..errors import ProbeError
from ..models.results import RedirectResult
from ..utils.http import HttpClient
from ..utils.normalize import normalize_domain

logger = logging.getLogger(__name__)

MAX_REDIRECTS = 10


async def check_https_redirect(
    domain: str,
    timeout: float,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> RedirectResult:
    """Walk the redirect chain from ``http://domain`` by hand until it reaches https.

    Never raises; failures are described in ``error``.
    """
    current = f"http://{normalize_domain(domain)}"
    visited: set[str] = set()
    status_code = 0

    async with HttpClient(timeout_seconds=timeout, transport=transport) as http:
        for _ in range(MAX_REDIRECTS):
            if current in visited:
                return RedirectResult(status_code=status_code, redirect_loop=True, error="redirect loop detected")
            visited.add(current)

            try:
                resp = await http.request("GET", current, read_body=False)
            except ProbeError as exc:
                return RedirectResult(status_code=status_code, error=f"request failed: {exc}")
            status_code = resp.status_code

            # only plain-http URLs are fetched; https targets return below
            if not 300 <= status_code < 400:
                return RedirectResult(status_code=status_code, error="no HTTPS redirect found")

            location = resp.headers.get("location")
            if not location:
                return RedirectResult(status_code=status_code, error="redirect without Location header")
            try:
                target_url = httpx.URL(current).join(location)
            except httpx.InvalidURL as exc:
                return RedirectResult(status_code=status_code, error=f"invalid redirect URL: {exc}")
            target = str(target_url)
            logger.debug("redirect hop", extra={"from": current, "to": target, "status": status_code})

            if target_url.scheme == "https":
                return RedirectResult(enabled=True, status_code=status_code, final_url=target)
            current = target

    return RedirectResult(status_code=status_code, error=f"exceeded maximum redirects ({MAX_REDIRECTS})")
