from __future__ import annotations

import functools
import ipaddress
import time
from dataclasses import dataclass
from typing import Any, Optional

from ..errors import ScanError, ScanTimeout
from ..models.config import ScanConfig
from ..models.report import Identity
from ..models.results import CaaResult, DnssecResult, WhoisResult
from ..modules import caa, dns_identity, dnssec, whois_lookup
from ..utils.normalize import dedupe
from .context import GroupOutcome, Probe, ScanContext, describe_errors
from .fanout import gather_within


@dataclass
class IdentityProbes:
    resolve_ip: Probe = dns_identity.resolve_ip
    resolve_nameservers: Probe = dns_identity.resolve_nameservers
    check_dnssec: Probe = dnssec.check_dnssec
    check_caa: Probe = caa.check_caa
    check_whois: Probe = whois_lookup.check_whois

    @classmethod
    def from_config(cls, config: ScanConfig) -> "IdentityProbes":
        return cls(
            check_dnssec=functools.partial(dnssec.check_dnssec, resolver=config.resolver),
            check_caa=functools.partial(caa.check_caa, resolver=config.resolver),
        )


def pick_address(addresses: list[str]) -> str:
    """First IPv4 address, else the first address of any family."""
    for address in addresses:
        try:
            if ipaddress.ip_address(address).version == 4:
                return address
        except ValueError:
            continue
    return addresses[0] if addresses else ""


def build_identity(results: dict[str, Any]) -> Identity:
    dnssec_result: DnssecResult = results.get("dnssec") or DnssecResult()
    caa_result: CaaResult = results.get("caa") or CaaResult()
    whois_result: WhoisResult = results.get("whois") or WhoisResult()
    return Identity(
        ip_address=pick_address(results.get("ip") or []),
        nameservers=tuple(dedupe([ns.rstrip(".") for ns in results.get("nameservers") or []])),
        registrar=whois_result.registrar,
        owner=whois_result.owner,
        expires_at=whois_result.expires_at,
        expires_days=whois_result.expires_days,
        dnssec_enabled=dnssec_result.enabled,
        dnssec_valid=dnssec_result.valid,
        dnssec_error=dnssec_result.error,
        caa_records=tuple(caa_result.records),
        caa_missing=caa_result.missing,
    )


class IdentityScanner:
    name = "identity"

    def __init__(self, context: ScanContext, probes: Optional[IdentityProbes] = None) -> None:
        self.context = context
        self.probes = probes or IdentityProbes()

    async def scan(self, domain: str) -> GroupOutcome[Identity]:
        ctx = self.context
        start = time.monotonic()
        fan = await gather_within(
            {
                "ip": self.probes.resolve_ip(domain, ctx.dial_timeout),
                "nameservers": self.probes.resolve_nameservers(domain, ctx.dial_timeout),
                "dnssec": self.probes.check_dnssec(domain, ctx.dial_timeout),
                "caa": self.probes.check_caa(domain, ctx.dial_timeout),
                "whois": self.probes.check_whois(domain, ctx.whois_timeout),
            },
            ctx.timeout,
        )
        for probe, exc in fan.errors.items():
            ctx.logger.debug("identity probe failed", extra={"domain": domain, "probe": probe, "error": str(exc)})

        identity = build_identity(fan.results)
        if fan.timed_out:
            ctx.logger.warning(
                "identity scan timeout",
                extra={"domain": domain, "pending": fan.pending, "duration_ms": int((time.monotonic() - start) * 1000)},
            )
            return GroupOutcome(identity, ScanTimeout("identity scan timeout"))
        if not identity.ip_address and fan.errors:
            return GroupOutcome(identity, ScanError(f"DNS resolution failed: {describe_errors(fan.errors)}"))
        return GroupOutcome(identity)
