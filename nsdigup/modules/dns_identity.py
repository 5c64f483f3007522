from __future__ import annotations

import asyncio
from typing import Optional

from ..errors import ProbeError
from ..utils.dns import DnsClient
from ..utils.normalize import dedupe, is_ip_address


async def resolve_ip(domain: str, timeout: float, dns_client: Optional[DnsClient] = None) -> list[str]:
    """A and AAAA addresses for ``domain``, IPv4 first."""
    if is_ip_address(domain):
        return [domain]
    client = dns_client or DnsClient(timeout_seconds=timeout)
    v4, v6 = await asyncio.gather(
        client.resolve_records(domain, "A", missing_ok=True),
        client.resolve_records(domain, "AAAA", missing_ok=True),
        return_exceptions=True,
    )
    if isinstance(v4, BaseException) and isinstance(v6, BaseException):
        raise ProbeError(f"IP lookup failed: {v4}")
    addresses = []
    for answer in (v4, v6):
        if isinstance(answer, list):
            addresses.extend(answer)
    if not addresses:
        raise ProbeError(f"no IP addresses found for {domain}")
    return dedupe(addresses)


async def resolve_nameservers(domain: str, timeout: float, dns_client: Optional[DnsClient] = None) -> list[str]:
    client = dns_client or DnsClient(timeout_seconds=timeout)
    records = await client.resolve_records(domain, "NS")
    if not records:
        raise ProbeError(f"no nameservers found for {domain}")
    return dedupe(records)
