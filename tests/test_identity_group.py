import asyncio
import logging

from nsdigup.errors import ProbeError, ScanError, ScanTimeout
from nsdigup.models.results import CaaResult, DnssecResult, WhoisResult
from nsdigup.pipeline.context import ScanContext
from nsdigup.pipeline.identity import IdentityProbes, IdentityScanner, pick_address


def _ctx(timeout=1.0):
    return ScanContext(timeout=timeout, dial_timeout=timeout, whois_timeout=timeout, logger=logging.getLogger("test"))


def _returning(value, delay=0.0):
    async def probe(domain, timeout):
        await asyncio.sleep(delay)
        return value

    return probe


def _failing(message):
    async def probe(domain, timeout):
        raise ProbeError(message)

    return probe


def _probes(**overrides):
    probes = {
        "resolve_ip": _returning(["2606:2800:220:1::1", "93.184.216.34"]),
        "resolve_nameservers": _returning(["a.iana-servers.net.", "b.iana-servers.net.", "a.iana-servers.net"]),
        "check_dnssec": _returning(DnssecResult(enabled=True, valid=True)),
        "check_caa": _returning(CaaResult(records=["0 issue letsencrypt.org"])),
        "check_whois": _returning(WhoisResult(registrar="Example Registrar", owner="Example Org", expires_days=200)),
    }
    probes.update(overrides)
    return IdentityProbes(**probes)


def test_identity_prefers_ipv4_and_cleans_nameservers():
    outcome = asyncio.run(IdentityScanner(_ctx(), _probes()).scan("example.com"))
    assert outcome.error is None
    identity = outcome.section
    assert identity.ip_address == "93.184.216.34"
    assert identity.nameservers == ("a.iana-servers.net", "b.iana-servers.net")
    assert identity.dnssec_enabled and identity.dnssec_valid
    assert identity.caa_records == ("0 issue letsencrypt.org",)
    assert identity.registrar == "Example Registrar"
    assert identity.owner == "Example Org"


def test_pick_address_falls_back_to_ipv6():
    assert pick_address(["2001:db8::1"]) == "2001:db8::1"
    assert pick_address([]) == ""


def test_dns_failure_leaves_ip_empty_and_reports_error():
    probes = _probes(resolve_ip=_failing("no such host"), resolve_nameservers=_failing("no such host"))
    outcome = asyncio.run(IdentityScanner(_ctx(), probes).scan("nope.invalid"))
    assert outcome.section.ip_address == ""
    assert isinstance(outcome.error, ScanError)
    assert not isinstance(outcome.error, ScanTimeout)
    assert str(outcome.error).startswith("DNS resolution failed:")
    assert "no such host" in str(outcome.error)


def test_whois_failure_alone_is_not_a_group_error():
    outcome = asyncio.run(IdentityScanner(_ctx(), _probes(check_whois=_failing("whois down"))).scan("example.com"))
    assert outcome.error is None
    assert outcome.section.ip_address == "93.184.216.34"
    assert outcome.section.registrar == ""


def test_deadline_returns_timeout_and_keeps_finished_probes():
    probes = _probes(check_whois=_returning(WhoisResult(registrar="late"), delay=1.0))
    outcome = asyncio.run(IdentityScanner(_ctx(timeout=0.05), probes).scan("example.com"))
    assert isinstance(outcome.error, ScanTimeout)
    assert str(outcome.error) == "identity scan timeout"
    assert outcome.section.ip_address == "93.184.216.34"
    assert outcome.section.registrar == ""


def test_identity_is_deterministic_for_fixed_probes():
    scanner = IdentityScanner(_ctx(), _probes())
    first = asyncio.run(scanner.scan("example.com"))
    second = asyncio.run(scanner.scan("example.com"))
    assert first.section == second.section
