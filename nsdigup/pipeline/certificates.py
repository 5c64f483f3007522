from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Optional

from ..errors import ScanError, ScanTimeout
from ..models.report import Certificates
from ..models.results import CertInfo, TlsAnalysis
from ..modules import certificate, tls_analysis
from .context import GroupOutcome, Probe, ScanContext, describe_errors
from .fanout import gather_within


@dataclass
class CertificateProbes:
    get_cert_details: Probe = certificate.get_cert_details
    analyze_tls: Probe = tls_analysis.analyze_tls


def build_certificates(results: dict[str, Any]) -> Certificates:
    cert: CertInfo = results.get("cert") or CertInfo()
    tls: TlsAnalysis = results.get("tls") or TlsAnalysis()
    return Certificates(
        issuer=cert.issuer,
        common_name=cert.common_name,
        subject_alt_names=tuple(cert.subject_alt_names),
        expires_at=cert.expires_at,
        expires_days=cert.expires_days,
        status=cert.status,
        is_wildcard=cert.is_wildcard,
        is_self_signed=cert.is_self_signed,
        is_valid_hostname=cert.is_valid_hostname,
        is_untrusted_root=cert.is_untrusted_root,
        is_revoked=cert.is_revoked,
        tls_versions=tuple(tls.tls_versions),
        weak_tls_versions=tuple(tls.weak_tls_versions),
        cipher_suites=tuple(tls.cipher_suites),
        weak_cipher_suites=tuple(tls.weak_cipher_suites),
    )


class CertificateScanner:
    name = "certificate"

    def __init__(self, context: ScanContext, probes: Optional[CertificateProbes] = None) -> None:
        self.context = context
        self.probes = probes or CertificateProbes()

    async def scan(self, domain: str) -> GroupOutcome[Certificates]:
        ctx = self.context
        start = time.monotonic()
        fan = await gather_within(
            {
                "cert": self.probes.get_cert_details(domain, ctx.dial_timeout),
                "tls": self.probes.analyze_tls(domain, ctx.dial_timeout),
            },
            ctx.timeout,
        )
        for probe, exc in fan.errors.items():
            ctx.logger.debug("certificate probe failed", extra={"domain": domain, "probe": probe, "error": str(exc)})

        certs = build_certificates(fan.results)
        if fan.timed_out:
            ctx.logger.warning(
                "certificate scan timeout",
                extra={"domain": domain, "pending": fan.pending, "duration_ms": int((time.monotonic() - start) * 1000)},
            )
            return GroupOutcome(certs, ScanTimeout("certificate scan timeout"))
        if not certs.issuer and fan.errors:
            return GroupOutcome(certs, ScanError(f"certificate retrieval failed: {describe_errors(fan.errors)}"))
        return GroupOutcome(certs)
