from __future__ import annotations

import logging
import ssl
from typing import Optional

from ..errors import ProbeError
from ..models.results import TlsAnalysis
from ..utils.normalize import dedupe, normalize_domain
from ..utils.tls import HANDSHAKE_ERRORS, handshake, inspection_context

logger = logging.getLogger(__name__)

TLS_VERSIONS = [
    (ssl.TLSVersion.TLSv1, "TLS 1.0"),
    (ssl.TLSVersion.TLSv1_1, "TLS 1.1"),
    (ssl.TLSVersion.TLSv1_2, "TLS 1.2"),
    (ssl.TLSVersion.TLSv1_3, "TLS 1.3"),
]

WEAK_TLS_VERSIONS = {"SSLv3", "TLS 1.0", "TLS 1.1"}

WEAK_CIPHER_PATTERNS = [
    "RC4",
    "DES_CBC",
    "3DES",
    "MD5",
    "anon",
    "EXPORT",
    "NULL",
    "TLS_RSA_WITH_",
]

# The same weaknesses as they appear in OpenSSL's own suite names.
OPENSSL_WEAK_PATTERNS = ["RC4", "DES-CBC", "MD5", "NULL", "EXP", "ADH-", "AECDH-"]

# Key-exchange prefixes of OpenSSL suite names; a TLS 1.2-or-older name
# without one uses plain RSA key exchange.
OPENSSL_KX_PREFIXES = (
    "ECDHE-",
    "DHE-",
    "EDH-",
    "ECDH-",
    "DH-",
    "ADH-",
    "AECDH-",
    "PSK-",
    "RSA-PSK-",
    "SRP-",
    "GOST",
)

# OpenSSL names the ssl module reports, keyed to their IANA registry names.
IANA_CIPHER_NAMES = {
    "TLS_AES_128_GCM_SHA256": "TLS_AES_128_GCM_SHA256",
    "TLS_AES_256_GCM_SHA384": "TLS_AES_256_GCM_SHA384",
    "TLS_CHACHA20_POLY1305_SHA256": "TLS_CHACHA20_POLY1305_SHA256",
    "ECDHE-ECDSA-AES128-GCM-SHA256": "TLS_ECDHE_ECDSA_WITH_AES_128_GCM_SHA256",
    "ECDHE-ECDSA-AES256-GCM-SHA384": "TLS_ECDHE_ECDSA_WITH_AES_256_GCM_SHA384",
    "ECDHE-RSA-AES128-GCM-SHA256": "TLS_ECDHE_RSA_WITH_AES_128_GCM_SHA256",
    "ECDHE-RSA-AES256-GCM-SHA384": "TLS_ECDHE_RSA_WITH_AES_256_GCM_SHA384",
    "ECDHE-ECDSA-CHACHA20-POLY1305": "TLS_ECDHE_ECDSA_WITH_CHACHA20_POLY1305_SHA256",
    "ECDHE-RSA-CHACHA20-POLY1305": "TLS_ECDHE_RSA_WITH_CHACHA20_POLY1305_SHA256",
    "ECDHE-ECDSA-AES128-SHA256": "TLS_ECDHE_ECDSA_WITH_AES_128_CBC_SHA256",
    "ECDHE-ECDSA-AES256-SHA384": "TLS_ECDHE_ECDSA_WITH_AES_256_CBC_SHA384",
    "ECDHE-RSA-AES128-SHA256": "TLS_ECDHE_RSA_WITH_AES_128_CBC_SHA256",
    "ECDHE-RSA-AES256-SHA384": "TLS_ECDHE_RSA_WITH_AES_256_CBC_SHA384",
    "ECDHE-ECDSA-AES128-SHA": "TLS_ECDHE_ECDSA_WITH_AES_128_CBC_SHA",
    "ECDHE-ECDSA-AES256-SHA": "TLS_ECDHE_ECDSA_WITH_AES_256_CBC_SHA",
    "ECDHE-RSA-AES128-SHA": "TLS_ECDHE_RSA_WITH_AES_128_CBC_SHA",
    "ECDHE-RSA-AES256-SHA": "TLS_ECDHE_RSA_WITH_AES_256_CBC_SHA",
    "ECDHE-ECDSA-DES-CBC3-SHA": "TLS_ECDHE_ECDSA_WITH_3DES_EDE_CBC_SHA",
    "ECDHE-RSA-DES-CBC3-SHA": "TLS_ECDHE_RSA_WITH_3DES_EDE_CBC_SHA",
    "ECDHE-ECDSA-RC4-SHA": "TLS_ECDHE_ECDSA_WITH_RC4_128_SHA",
    "ECDHE-RSA-RC4-SHA": "TLS_ECDHE_RSA_WITH_RC4_128_SHA",
    "DHE-RSA-AES128-GCM-SHA256": "TLS_DHE_RSA_WITH_AES_128_GCM_SHA256",
    "DHE-RSA-AES256-GCM-SHA384": "TLS_DHE_RSA_WITH_AES_256_GCM_SHA384",
    "DHE-RSA-CHACHA20-POLY1305": "TLS_DHE_RSA_WITH_CHACHA20_POLY1305_SHA256",
    "DHE-RSA-AES128-SHA256": "TLS_DHE_RSA_WITH_AES_128_CBC_SHA256",
    "DHE-RSA-AES256-SHA256": "TLS_DHE_RSA_WITH_AES_256_CBC_SHA256",
    "DHE-RSA-AES128-SHA": "TLS_DHE_RSA_WITH_AES_128_CBC_SHA",
    "DHE-RSA-AES256-SHA": "TLS_DHE_RSA_WITH_AES_256_CBC_SHA",
    "EDH-RSA-DES-CBC3-SHA": "TLS_DHE_RSA_WITH_3DES_EDE_CBC_SHA",
    "EDH-RSA-DES-CBC-SHA": "TLS_DHE_RSA_WITH_DES_CBC_SHA",
    "ADH-AES128-SHA": "TLS_DH_anon_WITH_AES_128_CBC_SHA",
    "ADH-AES256-SHA": "TLS_DH_anon_WITH_AES_256_CBC_SHA",
    "ADH-AES128-SHA256": "TLS_DH_anon_WITH_AES_128_CBC_SHA256",
    "ADH-AES256-SHA256": "TLS_DH_anon_WITH_AES_256_CBC_SHA256",
    "ADH-AES128-GCM-SHA256": "TLS_DH_anon_WITH_AES_128_GCM_SHA256",
    "ADH-AES256-GCM-SHA384": "TLS_DH_anon_WITH_AES_256_GCM_SHA384",
    "ADH-DES-CBC3-SHA": "TLS_DH_anon_WITH_3DES_EDE_CBC_SHA",
    "ADH-RC4-MD5": "TLS_DH_anon_WITH_RC4_128_MD5",
    "AECDH-AES128-SHA": "TLS_ECDH_anon_WITH_AES_128_CBC_SHA",
    "AECDH-AES256-SHA": "TLS_ECDH_anon_WITH_AES_256_CBC_SHA",
    "AECDH-DES-CBC3-SHA": "TLS_ECDH_anon_WITH_3DES_EDE_CBC_SHA",
    "AECDH-RC4-SHA": "TLS_ECDH_anon_WITH_RC4_128_SHA",
    "AECDH-NULL-SHA": "TLS_ECDH_anon_WITH_NULL_SHA",
    "AES128-GCM-SHA256": "TLS_RSA_WITH_AES_128_GCM_SHA256",
    "AES256-GCM-SHA384": "TLS_RSA_WITH_AES_256_GCM_SHA384",
    "AES128-SHA256": "TLS_RSA_WITH_AES_128_CBC_SHA256",
    "AES256-SHA256": "TLS_RSA_WITH_AES_256_CBC_SHA256",
    "AES128-SHA": "TLS_RSA_WITH_AES_128_CBC_SHA",
    "AES256-SHA": "TLS_RSA_WITH_AES_256_CBC_SHA",
    "CAMELLIA128-SHA": "TLS_RSA_WITH_CAMELLIA_128_CBC_SHA",
    "CAMELLIA256-SHA": "TLS_RSA_WITH_CAMELLIA_256_CBC_SHA",
    "SEED-SHA": "TLS_RSA_WITH_SEED_CBC_SHA",
    "IDEA-CBC-SHA": "TLS_RSA_WITH_IDEA_CBC_SHA",
    "DES-CBC3-SHA": "TLS_RSA_WITH_3DES_EDE_CBC_SHA",
    "DES-CBC-SHA": "TLS_RSA_WITH_DES_CBC_SHA",
    "RC4-SHA": "TLS_RSA_WITH_RC4_128_SHA",
    "RC4-MD5": "TLS_RSA_WITH_RC4_128_MD5",
    "NULL-SHA256": "TLS_RSA_WITH_NULL_SHA256",
    "NULL-SHA": "TLS_RSA_WITH_NULL_SHA",
    "NULL-MD5": "TLS_RSA_WITH_NULL_MD5",
}


def iana_cipher_name(openssl_name: str) -> str:
    return IANA_CIPHER_NAMES.get(openssl_name, openssl_name)


def is_weak_cipher(name: str) -> bool:
    """Flag a suite by its IANA name, or by its OpenSSL name when no IANA name is known."""
    if name.startswith("TLS_"):
        return any(pattern in name for pattern in WEAK_CIPHER_PATTERNS)
    if any(pattern in name for pattern in OPENSSL_WEAK_PATTERNS):
        return True
    return not name.startswith(OPENSSL_KX_PREFIXES)


def summarize_tls(negotiated: list[tuple[str, str]]) -> TlsAnalysis:
    """Build the analysis from ``(version name, cipher name)`` pairs, in probe order."""
    versions = dedupe([version for version, _ in negotiated])
    ciphers = dedupe([iana_cipher_name(cipher) for _, cipher in negotiated])
    return TlsAnalysis(
        tls_versions=versions,
        weak_tls_versions=[v for v in versions if v in WEAK_TLS_VERSIONS],
        cipher_suites=ciphers,
        weak_cipher_suites=[c for c in ciphers if is_weak_cipher(c)],
    )


async def _negotiate(host: str, version: ssl.TLSVersion, timeout: float) -> Optional[str]:
    try:
        context = inspection_context(version)
    except (ValueError, ssl.SSLError) as exc:
        # local OpenSSL build refuses this protocol
        logger.debug("tls version unavailable", extra={"version": version.name, "error": str(exc)})
        return None
    try:
        session = await handshake(host, context, timeout)
    except HANDSHAKE_ERRORS as exc:
        logger.debug("tls version rejected", extra={"domain": host, "version": version.name, "error": str(exc)})
        return None
    return session.cipher


async def analyze_tls(domain: str, timeout: float) -> TlsAnalysis:
    """Dial once per protocol version and record which ones the server accepts.

    Each dial gets an equal share of ``timeout``. The cipher list holds the
    suite negotiated for each accepted version, not a full enumeration.
    """
    host = normalize_domain(domain)
    per_dial = max(timeout / len(TLS_VERSIONS), 0.5)
    negotiated = []
    for version, name in TLS_VERSIONS:
        cipher = await _negotiate(host, version, per_dial)
        if cipher is not None:
            negotiated.append((name, cipher))
    if not negotiated:
        raise ProbeError("unable to establish TLS connection")
    return summarize_tls(negotiated)
