import asyncio

from nsdigup.errors import ProbeError
from nsdigup.modules.email_security import check_email_security, evaluate_email_security, parse_dmarc_policy


def test_dmarc_policy_values():
    assert parse_dmarc_policy(["v=DMARC1; p=none; rua=mailto:dmarc@example.com"]) == "none"
    assert parse_dmarc_policy(["v=DMARC1; p=quarantine"]) == "quarantine"
    assert parse_dmarc_policy(["v=DMARC1;p=reject"]) == "reject"


def test_subdomain_policy_is_not_mistaken_for_policy():
    assert parse_dmarc_policy(["v=DMARC1; sp=none; p=reject"]) == "reject"


def test_dmarc_none_or_missing_is_weak():
    none = evaluate_email_security(["v=spf1 -all"], ["v=DMARC1; p=none"])
    assert none.dmarc == "none" and none.is_weak
    missing = evaluate_email_security(["v=spf1 -all"], [])
    assert missing.dmarc == "none" and missing.is_weak


def test_quarantine_is_not_weak():
    result = evaluate_email_security(["v=spf1 -all"], ["v=DMARC1; p=quarantine"])
    assert result.dmarc == "quarantine"
    assert not result.is_weak


def test_check_email_security_queries_apex_and_dmarc_name():
    calls = []

    class FakeDns:
        async def resolve_txt(self, name):
            calls.append(name)
            if name == "_dmarc.example.com":
                return ["v=DMARC1; p=reject"]
            return ["v=spf1 -all"]

    result = asyncio.run(check_email_security("example.com", 1.0, dns_client=FakeDns()))
    assert calls == ["example.com", "_dmarc.example.com"]
    assert result.spf == "v=spf1 -all"
    assert not result.is_weak


def test_lookup_failure_reads_as_missing_record():
    class BrokenDns:
        async def resolve_txt(self, name):
            raise ProbeError("SERVFAIL")

    result = asyncio.run(check_email_security("example.com", 1.0, dns_client=BrokenDns()))
    assert result.spf == ""
    assert result.dmarc == "none"
    assert result.is_weak
