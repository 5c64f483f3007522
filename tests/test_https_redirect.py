import asyncio

import httpx

from nsdigup.modules.https_redirect import check_https_redirect


def _run(handler):
    return asyncio.run(check_https_redirect("example.com", 1.0, transport=httpx.MockTransport(handler)))


def test_direct_https_redirect():
    def handler(request):
        return httpx.Response(301, headers={"Location": "https://example.com/"})

    result = _run(handler)
    assert result.enabled
    assert result.status_code == 301
    assert result.final_url == "https://example.com/"
    assert result.error == ""


def test_relative_location_resolved_against_current_url():
    def handler(request):
        if request.url.path == "/":
            return httpx.Response(302, headers={"Location": "/login"})
        return httpx.Response(301, headers={"Location": f"https://example.com{request.url.path}"})

    result = _run(handler)
    assert result.enabled
    assert result.final_url == "https://example.com/login"


def test_redirect_loop_between_two_hosts():
    def handler(request):
        if request.url.host == "example.com":
            return httpx.Response(302, headers={"Location": "http://b.example.net/"})
        return httpx.Response(302, headers={"Location": "http://example.com/"})

    result = _run(handler)
    assert result.redirect_loop
    assert result.error == "redirect loop detected"
    assert not result.enabled


def test_no_redirect_served_over_plain_http():
    result = _run(lambda request: httpx.Response(200))
    assert not result.enabled
    assert result.status_code == 200
    assert result.error == "no HTTPS redirect found"


def test_large_plain_http_page_is_not_read():
    result = _run(lambda request: httpx.Response(200, content=b"x" * 300_000))
    assert result.status_code == 200
    assert result.error == "no HTTPS redirect found"


def test_redirect_body_ignored():
    def handler(request):
        return httpx.Response(301, headers={"Location": "https://example.com/"}, content=b"moved " * 60_000)

    result = _run(handler)
    assert result.enabled
    assert result.final_url == "https://example.com/"


def test_redirect_without_location():
    result = _run(lambda request: httpx.Response(302))
    assert result.error == "redirect without Location header"


def test_too_many_redirects():
    def handler(request):
        hop = int(request.url.path.strip("/") or 0)
        return httpx.Response(302, headers={"Location": f"/{hop + 1}"})

    result = _run(handler)
    assert result.error == "exceeded maximum redirects (10)"


def test_transport_errors_land_in_error_field():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    result = _run(handler)
    assert result.error.startswith("request failed:")
    assert not result.enabled
