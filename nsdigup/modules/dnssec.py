from __future__ import annotations

from typing import Optional

import dns.flags
import dns.rdatatype

from ..errors import ProbeError
from ..models.results import DnssecResult
from ..utils.dns import DnsClient
from ..utils.normalize import normalize_domain


def _has_rrset(response, rdtype) -> bool:
    return any(rrset.rdtype == rdtype for rrset in response.answer)


async def check_dnssec(
    domain: str,
    timeout: float,
    resolver: str = "8.8.8.8",
    dns_client: Optional[DnsClient] = None,
) -> DnssecResult:
    """DNSSEC status as seen by a validating resolver.

    Never raises: problems land in ``error`` so the identity section can show
    them next to the enabled/valid flags.
    """
    client = dns_client or DnsClient(timeout_seconds=timeout, nameserver=resolver)
    name = normalize_domain(domain)

    try:
        keys = await client.query(name, "DNSKEY", dnssec=True)
    except ProbeError as exc:
        return DnssecResult(error=f"DNSKEY query failed: {exc}")
    if not _has_rrset(keys, dns.rdatatype.DNSKEY):
        return DnssecResult()

    try:
        answer = await client.query(name, "A", dnssec=True)
    except ProbeError as exc:
        return DnssecResult(enabled=True, error=f"DNSSEC validation failed: {exc}")

    has_signatures = _has_rrset(answer, dns.rdatatype.RRSIG)
    authenticated = bool(answer.flags & dns.flags.AD)
    if has_signatures and authenticated:
        return DnssecResult(enabled=True, valid=True)
    if not has_signatures:
        reason = "DNSSEC enabled but no RRSIG records found"
    else:
        reason = "DNSSEC signatures present but validation failed"
    return DnssecResult(enabled=True, valid=False, error=f"DNSSEC validation failed: {reason}")
