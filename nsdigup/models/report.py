from __future__ import annotations

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

EXPIRATION_THRESHOLD_DAYS = 30


class CertStatus(str, Enum):
    active = "Active"
    expiring_soon = "Expiring Soon"
    expired = "Expired"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def classify_expiration(expires_at: Optional[datetime], now: Optional[datetime] = None) -> CertStatus:
    """Expired in the past, Expiring Soon within the threshold (inclusive), Active otherwise.

    An unknown expiration classifies as Active.
    """
    if expires_at is None:
        return CertStatus.active
    now = _aware(now or utcnow())
    expires_at = _aware(expires_at)
    if now > expires_at:
        return CertStatus.expired
    if expires_at <= now + timedelta(days=EXPIRATION_THRESHOLD_DAYS):
        return CertStatus.expiring_soon
    return CertStatus.active


def days_until(expires_at: Optional[datetime], now: Optional[datetime] = None) -> int:
    if expires_at is None:
        return 0
    now = _aware(now or utcnow())
    return int((_aware(expires_at) - now).total_seconds() / 86400)


class Section(BaseModel):
    model_config = ConfigDict(frozen=True)


class Identity(Section):
    ip_address: str = ""
    nameservers: tuple[str, ...] = ()
    registrar: str = ""
    owner: str = ""
    expires_at: Optional[datetime] = None
    expires_days: int = 0
    dnssec_enabled: bool = False
    dnssec_valid: bool = False
    dnssec_error: str = ""
    caa_records: tuple[str, ...] = ()
    caa_missing: bool = False


class Certificates(Section):
    issuer: str = ""
    common_name: str = ""
    subject_alt_names: tuple[str, ...] = ()
    expires_at: Optional[datetime] = None
    expires_days: int = 0
    status: Optional[CertStatus] = None
    is_wildcard: bool = False
    is_self_signed: bool = False
    is_valid_hostname: bool = False
    is_untrusted_root: bool = False
    is_revoked: bool = False
    tls_versions: tuple[str, ...] = ()
    weak_tls_versions: tuple[str, ...] = ()
    cipher_suites: tuple[str, ...] = ()
    weak_cipher_suites: tuple[str, ...] = ()


class EmailSecurity(Section):
    spf: str = ""
    dmarc: str = ""
    is_weak: bool = False


class HttpsRedirect(Section):
    enabled: bool = False
    status_code: int = 0
    final_url: str = ""
    redirect_loop: bool = False
    error: str = ""


class Findings(Section):
    email_security: EmailSecurity = Field(default_factory=EmailSecurity)
    header_issues: tuple[str, ...] = ()
    https_redirect: HttpsRedirect = Field(default_factory=HttpsRedirect)


class Report(Section):
    target: str
    timestamp: datetime
    identity: Identity = Field(default_factory=Identity)
    certificates: Certificates = Field(default_factory=Certificates)
    findings: Findings = Field(default_factory=Findings)

    @property
    def is_empty(self) -> bool:
        return not self.identity.ip_address and not self.certificates.common_name
