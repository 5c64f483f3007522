from __future__ import annotations

import asyncio
import logging
import time
from typing import Optional, Protocol

from ..errors import ScanError, ScanFailed
from ..models.config import ScanConfig
from ..models.report import Certificates, Findings, Identity, Report, utcnow
from .certificates import CertificateScanner
from .context import GroupOutcome, ScanContext
from .findings import FindingsScanner
from .identity import IdentityProbes, IdentityScanner

logger = logging.getLogger(__name__)


class ScanGroup(Protocol):
    name: str

    async def scan(self, domain: str) -> GroupOutcome: ...


class Scanner:
    """Runs the identity, certificate and findings groups side by side and assembles one report."""

    def __init__(
        self,
        config: Optional[ScanConfig] = None,
        identity: Optional[ScanGroup] = None,
        certificates: Optional[ScanGroup] = None,
        findings: Optional[ScanGroup] = None,
        log: Optional[logging.Logger] = None,
    ) -> None:
        config = config or ScanConfig()
        self.logger = log or logger
        context = ScanContext.from_config(config, self.logger)
        self.identity = identity or IdentityScanner(context, IdentityProbes.from_config(config))
        self.certificates = certificates or CertificateScanner(context)
        self.findings = findings or FindingsScanner(context)

    async def _run_group(self, group: ScanGroup, domain: str) -> GroupOutcome:
        started = time.monotonic()
        try:
            outcome = await group.scan(domain)
        except Exception as exc:
            self.logger.exception("scan group crashed", extra={"domain": domain, "group": group.name})
            outcome = GroupOutcome(None, ScanError(f"{group.name} scan failed: {exc}"))
        duration_ms = int((time.monotonic() - started) * 1000)
        if outcome.error is not None:
            self.logger.warning(
                f"{group.name} scan failed",
                extra={"domain": domain, "group": group.name, "duration_ms": duration_ms, "error": str(outcome.error)},
            )
        else:
            self.logger.debug(
                f"{group.name} scan completed",
                extra={"domain": domain, "group": group.name, "duration_ms": duration_ms},
            )
        return outcome

    async def scan(self, domain: str) -> Report:
        timestamp = utcnow()
        started = time.monotonic()
        identity, certificates, findings = await asyncio.gather(
            self._run_group(self.identity, domain),
            self._run_group(self.certificates, domain),
            self._run_group(self.findings, domain),
        )
        report = Report(
            target=domain,
            timestamp=timestamp,
            identity=identity.section or Identity(),
            certificates=certificates.section or Certificates(),
            findings=findings.section or Findings(),
        )
        errors = [o.error for o in (identity, certificates, findings) if o.error is not None]
        extra = {
            "domain": domain,
            "duration_ms": int((time.monotonic() - started) * 1000),
            "error_count": len(errors),
        }
        if errors and report.is_empty:
            self.logger.error("complete scan failure", extra={**extra, "first_error": str(errors[0])})
            raise ScanFailed(errors[0], report)
        if errors:
            self.logger.info("partial scan success", extra={**extra, "errors": [str(e) for e in errors]})
        else:
            self.logger.debug("scan completed", extra=extra)
        return report
