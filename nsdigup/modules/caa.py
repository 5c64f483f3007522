from __future__ import annotations

from typing import Optional

import dns.rcode
import dns.rdatatype

from ..models.results import CaaResult
from ..utils.dns import DnsClient
from ..utils.normalize import normalize_domain, parent_domain


def format_caa(rdata) -> str:
    tag = rdata.tag.decode("ascii", errors="replace") if isinstance(rdata.tag, bytes) else str(rdata.tag)
    value = rdata.value.decode("utf-8", errors="replace") if isinstance(rdata.value, bytes) else str(rdata.value)
    return f"{tag} {value}"


async def _caa_records(client: DnsClient, name: str) -> list[str]:
    response = await client.query(name, "CAA")
    if response.rcode() != dns.rcode.NOERROR:
        return []
    records = []
    for rrset in response.answer:
        if rrset.rdtype != dns.rdatatype.CAA:
            continue
        records.extend(format_caa(rdata) for rdata in rrset)
    return records


async def check_caa(
    domain: str,
    timeout: float,
    resolver: str = "8.8.8.8",
    dns_client: Optional[DnsClient] = None,
) -> CaaResult:
    """CAA records for ``domain`` or the closest ancestor that publishes them.

    Query failures propagate as ``ProbeError``; a clean walk to the registrable
    domain without any records reports ``missing``.
    """
    client = dns_client or DnsClient(timeout_seconds=timeout, nameserver=resolver)
    current = normalize_domain(domain)
    while current:
        records = await _caa_records(client, current)
        if records:
            return CaaResult(records=records, missing=False)
        current = parent_domain(current)
    return CaaResult(records=[], missing=True)
