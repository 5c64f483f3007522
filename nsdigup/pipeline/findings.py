from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from ..errors import ScanTimeout
from ..models.report import EmailSecurity, Findings, HttpsRedirect
from ..models.results import RedirectResult
from ..modules import email_security, https_redirect, security_headers
from .context import GroupOutcome, Probe, ScanContext
from .fanout import gather_within


@dataclass
class FindingsProbes:
    check_email_security: Probe = email_security.check_email_security
    check_security_headers: Probe = security_headers.check_security_headers
    check_https_redirect: Probe = https_redirect.check_https_redirect


def build_findings(results: dict[str, Any]) -> Findings:
    redirect: RedirectResult = results.get("redirect") or RedirectResult()
    return Findings(
        email_security=results.get("email") or EmailSecurity(),
        header_issues=tuple(results.get("headers") or ()),
        https_redirect=HttpsRedirect(**redirect.model_dump()),
    )


class FindingsScanner:
    """Best-effort misconfiguration checks; a failed probe just leaves its part empty."""

    name = "findings"

    def __init__(self, context: ScanContext, probes: Optional[FindingsProbes] = None) -> None:
        self.context = context
        self.probes = probes or FindingsProbes()

    async def scan(self, domain: str) -> GroupOutcome[Findings]:
        ctx = self.context
        fan = await gather_within(
            {
                "email": self.probes.check_email_security(domain, ctx.dial_timeout),
                "headers": self.probes.check_security_headers(domain, ctx.dial_timeout),
                "redirect": self.probes.check_https_redirect(domain, ctx.dial_timeout),
            },
            ctx.timeout,
        )
        for probe, exc in fan.errors.items():
            ctx.logger.debug("findings probe failed", extra={"domain": domain, "probe": probe, "error": str(exc)})

        findings = build_findings(fan.results)
        if fan.timed_out:
            ctx.logger.warning("findings scan timeout", extra={"domain": domain, "pending": fan.pending})
            return GroupOutcome(findings, ScanTimeout("findings scan timeout"))
        return GroupOutcome(findings)
