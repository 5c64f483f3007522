import asyncio
import ssl

import pytest

from nsdigup.errors import ProbeError
from nsdigup.modules import tls_analysis
from nsdigup.utils.tls import Handshake


def test_weak_cipher_substring_match():
    assert tls_analysis.is_weak_cipher("TLS_RSA_WITH_AES_128_CBC_SHA")
    assert tls_analysis.is_weak_cipher("TLS_ECDHE_RSA_WITH_RC4_128_SHA")
    assert tls_analysis.is_weak_cipher("TLS_ECDHE_RSA_WITH_3DES_EDE_CBC_SHA")
    assert tls_analysis.is_weak_cipher("TLS_DH_anon_WITH_AES_128_CBC_SHA")
    assert not tls_analysis.is_weak_cipher("TLS_ECDHE_RSA_WITH_AES_128_GCM_SHA256")
    assert not tls_analysis.is_weak_cipher("TLS_AES_256_GCM_SHA384")


def test_openssl_names_map_to_iana():
    assert tls_analysis.iana_cipher_name("ECDHE-RSA-AES128-GCM-SHA256") == "TLS_ECDHE_RSA_WITH_AES_128_GCM_SHA256"
    assert tls_analysis.iana_cipher_name("AES128-SHA") == "TLS_RSA_WITH_AES_128_CBC_SHA"
    assert tls_analysis.iana_cipher_name("SOMETHING-NEW") == "SOMETHING-NEW"


def test_summary_flags_weak_versions_and_ciphers():
    summary = tls_analysis.summarize_tls(
        [
            ("TLS 1.0", "AES128-SHA"),
            ("TLS 1.2", "ECDHE-RSA-AES128-GCM-SHA256"),
            ("TLS 1.3", "TLS_AES_256_GCM_SHA384"),
        ]
    )
    assert summary.tls_versions == ["TLS 1.0", "TLS 1.2", "TLS 1.3"]
    assert summary.weak_tls_versions == ["TLS 1.0"]
    assert summary.cipher_suites == [
        "TLS_RSA_WITH_AES_128_CBC_SHA",
        "TLS_ECDHE_RSA_WITH_AES_128_GCM_SHA256",
        "TLS_AES_256_GCM_SHA384",
    ]
    assert summary.weak_cipher_suites == ["TLS_RSA_WITH_AES_128_CBC_SHA"]


def test_legacy_suites_flagged_weak():
    summary = tls_analysis.summarize_tls(
        [
            ("TLS 1.2", "AES256-SHA256"),
            ("TLS 1.1", "EDH-RSA-DES-CBC3-SHA"),
            ("TLS 1.0", "ADH-AES128-SHA"),
        ]
    )
    assert summary.weak_cipher_suites == [
        "TLS_RSA_WITH_AES_256_CBC_SHA256",
        "TLS_DHE_RSA_WITH_3DES_EDE_CBC_SHA",
        "TLS_DH_anon_WITH_AES_128_CBC_SHA",
    ]


def test_unmapped_openssl_names_checked_in_openssl_form():
    assert tls_analysis.is_weak_cipher("ARIA256-GCM-SHA384")
    assert tls_analysis.is_weak_cipher("EXP-RC2-CBC-MD5")
    assert tls_analysis.is_weak_cipher("AECDH-AES128-SHA256")
    assert tls_analysis.is_weak_cipher("DHE-DSS-DES-CBC3-SHA")
    assert not tls_analysis.is_weak_cipher("DHE-RSA-CAMELLIA256-SHA")
    assert not tls_analysis.is_weak_cipher("ECDHE-ARIA128-GCM-SHA256")


def test_analyze_tls_records_only_accepted_versions(monkeypatch):
    accepted = {
        ssl.TLSVersion.TLSv1_2: "ECDHE-RSA-AES256-GCM-SHA384",
        ssl.TLSVersion.TLSv1_3: "TLS_AES_128_GCM_SHA256",
    }
    dialed = []

    async def fake_handshake(host, context, timeout):
        dialed.append(context.maximum_version)
        if context.maximum_version not in accepted:
            raise ssl.SSLError("unsupported protocol")
        return Handshake(version="x", cipher=accepted[context.maximum_version])

    monkeypatch.setattr(tls_analysis, "handshake", fake_handshake)
    result = asyncio.run(tls_analysis.analyze_tls("example.com", 2.0))
    assert result.tls_versions == ["TLS 1.2", "TLS 1.3"]
    assert result.weak_tls_versions == []
    assert result.cipher_suites == ["TLS_ECDHE_RSA_WITH_AES_256_GCM_SHA384", "TLS_AES_128_GCM_SHA256"]
    assert ssl.TLSVersion.TLSv1_3 in dialed


def test_analyze_tls_raises_when_nothing_connects(monkeypatch):
    async def refuse(host, context, timeout):
        raise ConnectionRefusedError("refused")

    monkeypatch.setattr(tls_analysis, "handshake", refuse)
    with pytest.raises(ProbeError, match="unable to establish TLS connection"):
        asyncio.run(tls_analysis.analyze_tls("example.com", 1.0))
