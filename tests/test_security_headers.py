import asyncio

import httpx
import pytest

from nsdigup.errors import ProbeError
from nsdigup.modules.security_headers import check_security_headers, header_issues

HARDENED = {
    "Strict-Transport-Security": "max-age=63072000",
    "Content-Security-Policy": "default-src 'self'",
    "X-Frame-Options": "DENY",
    "X-Content-Type-Options": "nosniff",
    "Referrer-Policy": "no-referrer",
    "Permissions-Policy": "camera=()",
}


def test_no_issues_for_hardened_headers():
    assert header_issues(HARDENED) == []


def test_every_missing_header_reported_once():
    assert header_issues({}) == [
        "Missing HSTS header",
        "Missing CSP header",
        "Missing X-Frame-Options header",
        "Missing X-Content-Type-Options header",
        "Missing Referrer-Policy header",
        "Missing Permissions-Policy header",
    ]


def test_unsafe_csp_is_weak():
    headers = dict(HARDENED, **{"Content-Security-Policy": "script-src 'self' 'unsafe-inline'"})
    assert header_issues(headers) == ["Weak CSP policy (contains unsafe-inline or unsafe-eval)"]


def test_frame_ancestors_replaces_x_frame_options():
    headers = {k: v for k, v in HARDENED.items() if k != "X-Frame-Options"}
    headers["Content-Security-Policy"] = "default-src 'self'; frame-ancestors 'none'"
    assert header_issues(headers) == []


def test_feature_policy_counts_as_permissions_policy():
    headers = {k: v for k, v in HARDENED.items() if k != "Permissions-Policy"}
    headers["Feature-Policy"] = "camera 'none'"
    assert header_issues(headers) == []


def test_falls_back_to_http_when_https_fails():
    seen = []

    def handler(request):
        seen.append((request.method, request.url.scheme))
        if request.url.scheme == "https":
            raise httpx.ConnectError("refused", request=request)
        return httpx.Response(200, headers={"X-Content-Type-Options": "nosniff"})

    issues = asyncio.run(check_security_headers("example.com", 1.0, transport=httpx.MockTransport(handler)))
    assert seen == [("HEAD", "https"), ("HEAD", "http")]
    assert "Missing X-Content-Type-Options header" not in issues
    assert "Missing HSTS header" in issues


def test_redirects_beyond_three_hops_fail():
    def handler(request):
        hop = int(request.url.path.strip("/") or 0)
        return httpx.Response(301, headers={"Location": f"/{hop + 1}"})

    with pytest.raises(ProbeError, match="HTTP request failed"):
        asyncio.run(check_security_headers("example.com", 1.0, transport=httpx.MockTransport(handler)))
