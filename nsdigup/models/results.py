from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from .report import CertStatus


class DnssecResult(BaseModel):
    enabled: bool = False
    valid: bool = False
    error: str = ""


class CaaResult(BaseModel):
    records: list[str] = Field(default_factory=list)
    missing: bool = False


class WhoisResult(BaseModel):
    registrar: str = ""
    owner: str = ""
    expires_at: Optional[datetime] = None
    expires_days: int = 0


class CertInfo(BaseModel):
    issuer: str = ""
    common_name: str = ""
    subject_alt_names: list[str] = Field(default_factory=list)
    expires_at: Optional[datetime] = None
    expires_days: int = 0
    status: Optional[CertStatus] = None
    is_wildcard: bool = False
    is_self_signed: bool = False
    is_valid_hostname: bool = False
    is_ip_address: bool = False
    is_untrusted_root: bool = False
    is_revoked: bool = False


class TlsAnalysis(BaseModel):
    tls_versions: list[str] = Field(default_factory=list)
    weak_tls_versions: list[str] = Field(default_factory=list)
    cipher_suites: list[str] = Field(default_factory=list)
    weak_cipher_suites: list[str] = Field(default_factory=list)


class RedirectResult(BaseModel):
    enabled: bool = False
    status_code: int = 0
    final_url: str = ""
    redirect_loop: bool = False
    error: str = ""
