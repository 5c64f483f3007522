from __future__ import annotations

import asyncio
import logging
import ssl
from dataclasses import dataclass, field
from typing import Optional

logger = logging.getLogger(__name__)

HTTPS_PORT = 443

# Exceptions a handshake can end with when the peer is unreachable or refuses us.
HANDSHAKE_ERRORS = (OSError, ssl.SSLError, asyncio.TimeoutError, EOFError)


@dataclass
class Handshake:
    version: str = ""
    cipher: str = ""
    peer_cert: Optional[bytes] = None
    chain: list[bytes] = field(default_factory=list)


def inspection_context(version: Optional[ssl.TLSVersion] = None) -> ssl.SSLContext:
    """A client context that accepts any certificate, optionally pinned to one protocol version."""
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
    context.check_hostname = False
    context.verify_mode = ssl.CERT_NONE
    if version is not None:
        context.minimum_version = version
        context.maximum_version = version
        if version < ssl.TLSVersion.TLSv1_2:
            context.set_ciphers("ALL:@SECLEVEL=0")
    return context


def _chain(ssl_object) -> list[bytes]:
    getter = getattr(ssl_object, "get_unverified_chain", None)
    if getter is None:
        return []
    return [cert for cert in (getter() or []) if isinstance(cert, bytes)]


async def handshake(host: str, context: ssl.SSLContext, timeout: float, port: int = HTTPS_PORT) -> Handshake:
    """Complete a TLS handshake with ``host`` and report what was negotiated.

    Connection and handshake failures propagate unchanged; callers decide
    what they mean.
    """
    _, writer = await asyncio.wait_for(asyncio.open_connection(host, port, ssl=context), timeout)
    try:
        ssl_object = writer.get_extra_info("ssl_object")
        cipher = ssl_object.cipher()
        return Handshake(
            version=ssl_object.version() or "",
            cipher=cipher[0] if cipher else "",
            peer_cert=ssl_object.getpeercert(binary_form=True),
            chain=_chain(ssl_object),
        )
    finally:
        writer.close()
        try:
            await asyncio.wait_for(writer.wait_closed(), 1.0)
        except HANDSHAKE_ERRORS as exc:
            logger.debug("tls close failed", extra={"host": host, "error": str(exc)})
