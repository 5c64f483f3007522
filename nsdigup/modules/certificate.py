from __future__ import annotations

import asyncio
import ipaddress
import logging
import ssl
from datetime import datetime
from typing import Awaitable, Optional

import httpx
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.x509 import ocsp
from cryptography.x509.oid import AuthorityInformationAccessOID, NameOID

from ..errors import ProbeError
from ..models.report import CertStatus, classify_expiration, days_until, utcnow
from ..models.results import CertInfo
from ..utils.http import HttpClient
from ..utils.normalize import is_ip_address, normalize_domain
from ..utils.tls import HANDSHAKE_ERRORS, handshake, inspection_context

logger = logging.getLogger(__name__)


def _name_attr(name: x509.Name, oid) -> str:
    values = name.get_attributes_for_oid(oid)
    if not values:
        return ""
    value = values[0].value
    return value.decode("utf-8", errors="replace") if isinstance(value, bytes) else str(value)


def _alt_names(cert: x509.Certificate) -> tuple[list[str], list]:
    try:
        ext = cert.extensions.get_extension_for_class(x509.SubjectAlternativeName).value
    except x509.ExtensionNotFound:
        return [], []
    return ext.get_values_for_type(x509.DNSName), ext.get_values_for_type(x509.IPAddress)


def match_hostname(hostname: str, pattern: str) -> bool:
    """Exact match, or a ``*.`` wildcard covering exactly one leftmost label."""
    if hostname == pattern:
        return True
    if not pattern.startswith("*."):
        return False
    base = pattern[2:]
    if not hostname.endswith("." + base):
        return False
    label = hostname[: -len(base) - 1]
    return bool(label) and "." not in label


def validate_hostname(hostname: str, common_name: str, dns_names: list[str], ip_sans: list) -> bool:
    if is_ip_address(hostname):
        address = ipaddress.ip_address(hostname)
        return any(address == candidate for candidate in ip_sans)
    hostname = hostname.lower()
    if dns_names:
        return any(match_hostname(hostname, name.lower()) for name in dns_names)
    # CN is only consulted when the certificate carries no DNS SANs
    return bool(common_name) and match_hostname(hostname, common_name.lower())


def describe_certificate(cert: x509.Certificate, hostname: str, now: Optional[datetime] = None) -> CertInfo:
    """Everything that can be read off the leaf certificate alone."""
    now = now or utcnow()
    issuer = _name_attr(cert.issuer, NameOID.COMMON_NAME) or _name_attr(cert.issuer, NameOID.ORGANIZATION_NAME)
    common_name = _name_attr(cert.subject, NameOID.COMMON_NAME)
    dns_names, ip_sans = _alt_names(cert)
    expires_at = cert.not_valid_after_utc
    status = classify_expiration(expires_at, now)
    if status == CertStatus.expiring_soon:
        logger.debug(
            "certificate expiring soon",
            extra={"domain": hostname, "common_name": common_name, "expires": expires_at.isoformat()},
        )
    is_valid_hostname = validate_hostname(hostname, common_name, dns_names, ip_sans)
    if not is_valid_hostname:
        logger.debug(
            "hostname mismatch detected",
            extra={"domain": hostname, "common_name": common_name, "sans": dns_names},
        )
    return CertInfo(
        issuer=issuer,
        common_name=common_name,
        subject_alt_names=list(dns_names),
        expires_at=expires_at,
        expires_days=days_until(expires_at, now),
        status=status,
        is_wildcard=any(name.startswith("*.") for name in [common_name, *dns_names]),
        is_self_signed=cert.issuer.rfc4514_string() == cert.subject.rfc4514_string(),
        is_valid_hostname=is_valid_hostname,
        is_ip_address=is_ip_address(hostname),
    )


def ocsp_urls(cert: x509.Certificate) -> list[str]:
    try:
        aia = cert.extensions.get_extension_for_class(x509.AuthorityInformationAccess).value
    except x509.ExtensionNotFound:
        return []
    return [
        desc.access_location.value
        for desc in aia
        if desc.access_method == AuthorityInformationAccessOID.OCSP
    ]


def build_ocsp_request(cert: x509.Certificate, issuer: x509.Certificate) -> bytes:
    request = ocsp.OCSPRequestBuilder().add_certificate(cert, issuer, hashes.SHA1()).build()
    return request.public_bytes(serialization.Encoding.DER)


def read_ocsp_status(body: bytes) -> Optional[bool]:
    """True when revoked, False when good, None when the responder gave no answer."""
    response = ocsp.load_der_ocsp_response(body)
    if response.response_status != ocsp.OCSPResponseStatus.SUCCESSFUL:
        return None
    if response.certificate_status == ocsp.OCSPCertStatus.REVOKED:
        return True
    if response.certificate_status == ocsp.OCSPCertStatus.GOOD:
        return False
    return None


async def check_revocation(
    cert: x509.Certificate,
    issuer: Optional[x509.Certificate],
    timeout: float,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> bool:
    """Ask each OCSP responder in turn; anything short of a REVOKED answer counts as not revoked."""
    urls = ocsp_urls(cert)
    if issuer is None or not urls:
        logger.debug("ocsp check skipped", extra={"has_issuer": issuer is not None, "responders": len(urls)})
        return False
    try:
        payload = build_ocsp_request(cert, issuer)
    except (ValueError, TypeError) as exc:
        logger.debug("failed to create OCSP request", extra={"error": str(exc)})
        return False

    headers = {"Content-Type": "application/ocsp-request", "Accept": "application/ocsp-response"}
    async with HttpClient(timeout_seconds=timeout, transport=transport) as http:
        for url in urls:
            try:
                resp = await http.post(url, payload, headers=headers)
                status = read_ocsp_status(resp.content)
            except (ProbeError, ValueError) as exc:
                logger.debug("ocsp request failed", extra={"server": url, "error": str(exc)})
                continue
            if status is None:
                logger.debug("ocsp status unknown", extra={"server": url})
                continue
            logger.debug("ocsp answer", extra={"server": url, "revoked": status})
            return status
    return False


async def chain_trusted(host: str, timeout: float) -> bool:
    """Repeat the handshake with verification on; only a verification failure counts as untrusted."""
    try:
        await handshake(host, ssl.create_default_context(), timeout)
    except ssl.SSLCertVerificationError as exc:
        logger.debug("certificate chain verification failed", extra={"domain": host, "error": str(exc)})
        return False
    except HANDSHAKE_ERRORS as exc:
        logger.debug("verified handshake failed", extra={"domain": host, "error": str(exc)})
    return True


def _load_issuer(chain: list[bytes]) -> Optional[x509.Certificate]:
    if len(chain) < 2:
        return None
    try:
        return x509.load_der_x509_certificate(chain[1])
    except ValueError as exc:
        logger.debug("issuer certificate unreadable", extra={"error": str(exc)})
        return None


async def _within(step: Awaitable[bool], budget: float, fallback: bool, name: str, host: str) -> bool:
    try:
        return await asyncio.wait_for(step, timeout=budget)
    except asyncio.TimeoutError:
        logger.debug("certificate check out of time", extra={"domain": host, "check": name, "budget": budget})
        return fallback


async def get_cert_details(
    domain: str,
    timeout: float,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> CertInfo:
    """Read the leaf certificate, then spend what is left of ``timeout`` on trust and OCSP.

    The whole probe finishes within ``timeout``. A trust or revocation check
    that runs out of time leaves the certificate trusted and not revoked.
    """
    host = normalize_domain(domain)
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    try:
        session = await handshake(host, inspection_context(), timeout)
    except HANDSHAKE_ERRORS as exc:
        raise ProbeError(f"TLS connection failed: {exc}") from exc
    if not session.peer_cert:
        raise ProbeError("no certificates found")
    try:
        cert = x509.load_der_x509_certificate(session.peer_cert)
    except ValueError as exc:
        raise ProbeError(f"certificate parse failed: {exc}") from exc

    info = describe_certificate(cert, host)
    remaining = deadline - loop.time()
    if remaining <= 0:
        logger.debug("certificate checks skipped", extra={"domain": host, "reason": "deadline"})
        return info
    trusted, revoked = await asyncio.gather(
        _within(chain_trusted(host, remaining), remaining, True, "trust", host),
        _within(check_revocation(cert, _load_issuer(session.chain), remaining, transport), remaining, False, "ocsp", host),
    )
    return info.model_copy(update={"is_untrusted_root": not trusted, "is_revoked": revoked})
