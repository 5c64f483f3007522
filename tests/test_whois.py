import asyncio
import time
from datetime import datetime, timezone

import pytest

from nsdigup.errors import ProbeError
from nsdigup.modules import whois_lookup

NOW = datetime(2025, 1, 1, tzinfo=timezone.utc)


def test_summarize_prefers_organisation_for_owner():
    entry = {
        "registrar": "MarkMonitor, Inc.",
        "org": "Google LLC",
        "name": "Domain Admin",
        "expiration_date": [datetime(2028, 9, 14, 4, 0), datetime(2028, 9, 13, 21, 0)],
    }
    result = whois_lookup.summarize_whois(entry, now=NOW)
    assert result.registrar == "MarkMonitor, Inc."
    assert result.owner == "Google LLC"
    assert result.expires_at == datetime(2028, 9, 14, 4, 0, tzinfo=timezone.utc)
    assert result.expires_days == 1352


def test_summarize_falls_back_to_name_and_handles_missing_dates():
    result = whois_lookup.summarize_whois({"registrar": None, "name": "Jane Doe"}, now=NOW)
    assert result.owner == "Jane Doe"
    assert result.registrar == ""
    assert result.expires_at is None
    assert result.expires_days == 0


def test_parse_whois_date_formats():
    assert whois_lookup.parse_whois_date("2026-03-01") == datetime(2026, 3, 1, tzinfo=timezone.utc)
    assert whois_lookup.parse_whois_date("01-Mar-2026") == datetime(2026, 3, 1, tzinfo=timezone.utc)
    assert whois_lookup.parse_whois_date("2026.03.01") == datetime(2026, 3, 1, tzinfo=timezone.utc)
    assert whois_lookup.parse_whois_date("soon") is None


def test_lookup_errors_become_probe_errors(monkeypatch):
    def broken(domain):
        raise OSError("connection reset")

    monkeypatch.setattr(whois_lookup, "_lookup", broken)
    with pytest.raises(ProbeError, match="WHOIS fetch failed"):
        asyncio.run(whois_lookup.check_whois("example.com", 1.0))


def test_slow_lookup_times_out(monkeypatch):
    def slow(domain):
        time.sleep(0.3)
        return {}

    monkeypatch.setattr(whois_lookup, "_lookup", slow)
    with pytest.raises(ProbeError, match="timeout"):
        asyncio.run(whois_lookup.check_whois("example.com", 0.05))
