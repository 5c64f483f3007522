from __future__ import annotations

import logging
import time
from typing import Optional

import dns.asyncquery
import dns.asyncresolver
import dns.exception
import dns.flags
import dns.message
import dns.rdatatype
import dns.resolver

from ..errors import ProbeError

logger = logging.getLogger(__name__)


class DnsClient:
    """Thin async wrapper around dnspython.

    ``resolve_records`` goes through the system resolver; ``query`` sends a
    raw message to an explicit nameserver so the caller can see DNSSEC flags
    and RRSIGs.
    """

    def __init__(self, timeout_seconds: float = 5.0, nameserver: Optional[str] = None) -> None:
        self.timeout = timeout_seconds
        self.nameserver = nameserver

    def _resolver(self) -> dns.asyncresolver.Resolver:
        resolver = dns.asyncresolver.Resolver()
        resolver.lifetime = self.timeout
        resolver.timeout = self.timeout
        if self.nameserver:
            resolver.nameservers = [self.nameserver]
        return resolver

    async def resolve_records(self, name: str, record_type: str, missing_ok: bool = False) -> list[str]:
        start = time.monotonic()
        try:
            answers = await self._resolver().resolve(name, record_type)
        except (dns.resolver.NXDOMAIN, dns.resolver.NoAnswer) as exc:
            if missing_ok:
                return []
            raise ProbeError(f"{record_type} lookup failed for {name}: {exc}") from exc
        except dns.exception.DNSException as exc:
            logger.debug("dns lookup failed", extra={"qname": name, "type": record_type, "error": str(exc)})
            raise ProbeError(f"{record_type} lookup failed for {name}: {exc}") from exc
        logger.debug(
            "dns lookup",
            extra={"qname": name, "type": record_type, "duration_ms": int((time.monotonic() - start) * 1000)},
        )
        return [r.to_text() for r in answers]

    async def resolve_txt(self, name: str) -> list[str]:
        """TXT strings with their character-string chunks joined, missing treated as empty."""
        try:
            answers = await self._resolver().resolve(name, "TXT")
        except (dns.resolver.NXDOMAIN, dns.resolver.NoAnswer):
            return []
        except dns.exception.DNSException as exc:
            raise ProbeError(f"TXT lookup failed for {name}: {exc}") from exc
        values = []
        for rdata in answers:
            values.append(b"".join(rdata.strings).decode("utf-8", errors="replace"))
        return values

    async def query(self, name: str, record_type: str, dnssec: bool = False) -> dns.message.Message:
        if not self.nameserver:
            raise ProbeError("raw DNS query requires an explicit nameserver")
        request = dns.message.make_query(name, dns.rdatatype.from_text(record_type), want_dnssec=dnssec)
        request.flags |= dns.flags.RD
        if dnssec:
            request.flags |= dns.flags.AD
        try:
            response, _ = await dns.asyncquery.udp_with_fallback(request, self.nameserver, timeout=self.timeout)
        except (dns.exception.DNSException, OSError) as exc:
            raise ProbeError(f"{record_type} query for {name} failed: {exc}") from exc
        return response
