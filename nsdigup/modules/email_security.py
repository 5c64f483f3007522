from __future__ import annotations

import logging
from typing import Iterable, Optional

from ..errors import ProbeError
from ..models.report import EmailSecurity
from ..utils.dns import DnsClient

logger = logging.getLogger(__name__)

DMARC_POLICIES = ("none", "quarantine", "reject")


def find_spf(txt_records: Iterable[str]) -> Optional[str]:
    for rec in txt_records:
        if rec.startswith("v=spf1"):
            return rec
    return None


def parse_dmarc_policy(txt_records: Iterable[str]) -> Optional[str]:
    """Value of the ``p=`` tag from the first DMARC record, if it names a known policy."""
    for rec in txt_records:
        if not rec.startswith("v=DMARC1"):
            continue
        for tag in rec.split(";"):
            tag = tag.strip()
            if tag.startswith("p="):
                policy = tag.split("=", 1)[1].strip().lower()
                return policy if policy in DMARC_POLICIES else None
        return None
    return None


def evaluate_email_security(spf_records: list[str], dmarc_records: list[str]) -> EmailSecurity:
    spf = find_spf(spf_records)
    policy = parse_dmarc_policy(dmarc_records)
    weak = False
    if spf is None:
        weak = True
    elif "+all" in spf or "?all" in spf:
        weak = True
    if policy in (None, "none"):
        weak = True
    return EmailSecurity(spf=spf or "", dmarc=policy or "none", is_weak=weak)


async def _txt(client: DnsClient, name: str) -> list[str]:
    try:
        return await client.resolve_txt(name)
    except ProbeError as exc:
        # an unanswerable lookup is reported the same as a missing record
        logger.debug("txt lookup failed", extra={"qname": name, "error": str(exc)})
        return []


async def check_email_security(domain: str, timeout: float, dns_client: Optional[DnsClient] = None) -> EmailSecurity:
    client = dns_client or DnsClient(timeout_seconds=timeout)
    result = evaluate_email_security(await _txt(client, domain), await _txt(client, f"_dmarc.{domain}"))
    if not result.spf:
        logger.debug("SPF record missing", extra={"domain": domain})
    if result.dmarc == "none":
        logger.debug("weak DMARC policy", extra={"domain": domain, "policy": result.dmarc})
    return result
