from __future__ import annotations

import logging
import time
from typing import Optional

import httpx

from .. import __version__
from ..errors import ProbeError

logger = logging.getLogger(__name__)

USER_AGENT = f"nsdigup/{__version__} (Security Scanner)"


class HttpClient:
    def __init__(
        self,
        timeout_seconds: float = 8.0,
        follow_redirects: bool = False,
        max_redirects: int = 0,
        max_bytes_per_response: int = 262_144,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.timeout = httpx.Timeout(timeout_seconds)
        self.follow_redirects = follow_redirects
        self.max_redirects = max_redirects
        self.max_bytes_per_response = max_bytes_per_response
        self._client = httpx.AsyncClient(
            timeout=self.timeout,
            follow_redirects=follow_redirects,
            max_redirects=max_redirects,
            headers={"User-Agent": USER_AGENT},
            transport=transport,
        )

    async def __aenter__(self) -> "HttpClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    async def get(self, url: str, headers: Optional[dict] = None) -> httpx.Response:
        return await self.request("GET", url, headers=headers)

    async def head(self, url: str, headers: Optional[dict] = None) -> httpx.Response:
        return await self.request("HEAD", url, headers=headers)

    async def post(self, url: str, content: bytes, headers: Optional[dict] = None) -> httpx.Response:
        return await self.request("POST", url, content=content, headers=headers)

    async def request(
        self,
        method: str,
        url: str,
        headers: Optional[dict] = None,
        content: Optional[bytes] = None,
        read_body: bool = True,
    ) -> httpx.Response:
        """Send one request and buffer at most ``max_bytes_per_response`` of the body.

        With ``read_body=False`` only the status line and headers are kept.
        Transport and protocol failures are raised as ``ProbeError``.
        """
        method = method.upper()
        start = time.monotonic()
        try:
            async with self._client.stream(method, url, headers=headers, content=content) as resp:
                body = bytearray()
                if read_body:
                    async for chunk in resp.aiter_bytes():
                        body.extend(chunk)
                        if len(body) > self.max_bytes_per_response:
                            raise ProbeError(f"response from {url} exceeded {self.max_bytes_per_response} bytes")
                response = httpx.Response(
                    status_code=resp.status_code,
                    headers=resp.headers,
                    content=bytes(body),
                    request=resp.request,
                    history=resp.history,
                )
        except httpx.HTTPError as exc:
            logger.debug("http error", extra={"url": url, "method": method, "error": str(exc)})
            raise ProbeError(f"{method} {url} failed: {exc}") from exc
        logger.debug(
            "http request",
            extra={
                "url": url,
                "method": method,
                "status": response.status_code,
                "duration_ms": int((time.monotonic() - start) * 1000),
            },
        )
        return response
