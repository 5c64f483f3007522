from __future__ import annotations

from typing import Optional

from .. import __version__
from ..models.report import Certificates, CertStatus, Findings, Identity, Report

RESET = "\033[0m"
BOLD = "\033[1m"
DIM = "\033[2m"
RED = "\033[31m"
GREEN = "\033[32m"
YELLOW = "\033[33m"
BLUE = "\033[34m"
MAGENTA = "\033[35m"
CYAN = "\033[36m"

BANNER = r"""
                 _ _                         _
                | (_)                       | |
  _ __  ___  __| |_  __ _ _   _ _ __   ___ | |__
 | '_ \/ __|/ _' | |/ _' | | | | '_ \ / __|| '_ \
 | | | \__ \ (_| | | (_| | |_| | |_) |\__ \| | | |
 |_| |_|___/\__,_|_|\__, |\__,_| .__(_)___/|_| |_|
                     __/ |     | |
                    |___/      |_|
"""


def _paint(text: str, *codes: str) -> str:
    return f"{''.join(codes)}{text}{RESET}"


def _field(label: str, value: str, indent: int = 2) -> str:
    return f"{' ' * indent}{_paint(label + ':', BOLD)} {value}"


def _days_color(days: int) -> str:
    if days < 30:
        return RED
    if days < 90:
        return YELLOW
    return GREEN


def _identity_lines(identity: Identity) -> list[str]:
    lines = [_paint("[ IDENTITY ]", BOLD, BLUE)]
    if identity.ip_address:
        lines.append(_field("IP Address", identity.ip_address))
    if identity.nameservers:
        lines.append(f"  {_paint('Nameservers:', BOLD)}")
        lines.extend(f"    • {ns}" for ns in identity.nameservers)
    if identity.registrar:
        lines.append(_field("Registrar", identity.registrar))
    if identity.owner:
        lines.append(_field("Owner", identity.owner))
    if identity.expires_days > 0:
        lines.append(_field("Expires", _paint(f"{identity.expires_days} days", _days_color(identity.expires_days))))
    if identity.dnssec_enabled:
        state = _paint("valid", GREEN) if identity.dnssec_valid else _paint("invalid", RED)
        lines.append(_field("DNSSEC", f"enabled ({state})"))
    else:
        lines.append(_field("DNSSEC", _paint("disabled", YELLOW)))
    if identity.dnssec_error:
        lines.append(f"    {_paint('⚠', RED)} {identity.dnssec_error}")
    if identity.caa_records:
        lines.append(f"  {_paint('CAA Records:', BOLD)}")
        lines.extend(f"    • {record}" for record in identity.caa_records)
    elif identity.caa_missing:
        lines.append(_field("CAA", _paint("no records (any CA may issue)", YELLOW)))
    return lines


def _certificate_lines(certs: Certificates) -> list[str]:
    lines = [_paint("[ CERTIFICATES ]", BOLD, MAGENTA)]
    if not certs.common_name:
        lines.append(f"  {_paint('No certificate information available', DIM)}")
        return lines

    lines.append(f"  {_paint('Current Certificate:', BOLD)}")
    name = certs.common_name
    if certs.is_wildcard:
        name += " " + _paint("(wildcard)", YELLOW)
    lines.append(_field("Common Name", name, indent=4))
    if certs.issuer:
        lines.append(_field("Issuer", certs.issuer, indent=4))
    if certs.status is not None:
        color = {CertStatus.expired: RED, CertStatus.expiring_soon: YELLOW}.get(certs.status, GREEN)
        lines.append(_field("Status", _paint(certs.status.value, color), indent=4))
    if certs.expires_at is not None:
        days = certs.expires_days
        color = RED if days < 0 else YELLOW if days < 30 else GREEN
        expiry = certs.expires_at.strftime("%Y-%m-%d")
        lines.append(_field("Expires", _paint(f"{expiry} ({days} days)", color), indent=4))

    warnings = []
    if certs.is_self_signed:
        warnings.append("Self-signed certificate")
    if certs.is_untrusted_root:
        warnings.append("Certificate chain is not trusted")
    if certs.is_revoked:
        warnings.append("Certificate has been revoked")
    if not certs.is_valid_hostname:
        warnings.append("Certificate does not match hostname")
    lines.extend(f"    {_paint('⚠', RED)} {warning}" for warning in warnings)

    if certs.tls_versions:
        versions = [_paint(v, RED) if v in certs.weak_tls_versions else v for v in certs.tls_versions]
        lines.append(_field("TLS Versions", ", ".join(versions), indent=4))
    if certs.cipher_suites:
        lines.append(f"    {_paint('Cipher Suites:', BOLD)}")
        for suite in certs.cipher_suites:
            marker = _paint("⚠", RED) if suite in certs.weak_cipher_suites else _paint("•", GREEN)
            lines.append(f"      {marker} {suite}")
    return lines


def _findings_lines(findings: Findings) -> list[str]:
    lines = [_paint("[ FINDINGS ]", BOLD, YELLOW)]
    email = findings.email_security
    blocks = []

    if email.spf or email.dmarc:
        block = [f"  {_paint('Email Security:', BOLD)}"]
        if email.spf:
            color = RED if "+all" in email.spf or "?all" in email.spf else GREEN
            block.append(_field("SPF", _paint(email.spf, color), indent=4))
        if email.dmarc:
            color = {"none": RED, "quarantine": YELLOW}.get(email.dmarc, GREEN)
            block.append(_field("DMARC Policy", _paint(email.dmarc, color), indent=4))
        if email.is_weak:
            block.append(f"    {_paint('⚠ Weak email security configuration', RED)}")
        blocks.append(block)

    if findings.header_issues:
        block = [f"  {_paint('Security Headers:', BOLD)}"]
        block.extend(f"    {_paint('⚠', RED)} {issue}" for issue in findings.header_issues)
        blocks.append(block)

    redirect = findings.https_redirect
    if redirect.enabled or redirect.error:
        block = [f"  {_paint('HTTPS Redirect:', BOLD)}"]
        if redirect.enabled:
            block.append(f"    {_paint('✓', GREEN)} {redirect.final_url} ({redirect.status_code})")
        else:
            block.append(f"    {_paint('⚠', RED)} {redirect.error}")
        blocks.append(block)

    if not blocks:
        lines.append(f"  {_paint('✓ No misconfigurations detected', GREEN)}")
    for i, block in enumerate(blocks):
        if i:
            lines.append("")
        lines.extend(block)
    return lines


def build_ansi(report: Optional[Report]) -> str:
    if report is None:
        raise ValueError("report cannot be nil")
    lines = [
        _paint("═══ nsdigup ═══", BOLD, CYAN),
        f"{_paint('Target:', BOLD)} {_paint(report.target, GREEN)}",
        f"{_paint('Scanned:', DIM)} {report.timestamp.strftime('%Y-%m-%d %H:%M:%S UTC')}",
        "",
    ]
    for section in (
        _identity_lines(report.identity),
        _certificate_lines(report.certificates),
        _findings_lines(report.findings),
    ):
        lines.extend(section)
        lines.append("")
    return "\n".join(lines) + "\n"


def build_home(address: str, name: str = "nsdigup") -> str:
    lines = [
        _paint(BANNER, CYAN),
        f"{_paint(name, BOLD)} {__version__}: domain health at a glance",
        "",
        _paint("Usage:", BOLD),
        f"  curl {address}/example.com",
        f"  curl -H 'Accept: application/json' {address}/example.com",
        "",
        _paint("Endpoints:", BOLD),
        "  GET /{domain}   scan a domain (ANSI text, or JSON via Accept)",
        "  GET /health     liveness check",
        "",
    ]
    return "\n".join(lines)
