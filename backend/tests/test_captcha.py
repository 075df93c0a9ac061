"""Tests for the Turnstile CAPTCHA client."""

from urllib.parse import parse_qs

import httpx
import pytest

from secretshare.services.captcha import CaptchaVerificationError, TurnstileClient

VERIFY_URL = "https://captcha.test/siteverify"


def make_client(handler) -> TurnstileClient:
    return TurnstileClient(
        "captcha-secret",
        verify_url=VERIFY_URL,
        transport=httpx.MockTransport(handler),
    )


def test_successful_verification():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["form"] = parse_qs(request.content.decode())
        return httpx.Response(200, json={"success": True, "error-codes": []})

    result = make_client(handler).verify("token-123", "198.51.100.7")

    assert result.success is True
    assert result.error_codes == []
    assert seen["url"] == VERIFY_URL
    assert seen["form"] == {
        "secret": ["captcha-secret"],
        "response": ["token-123"],
        "remoteip": ["198.51.100.7"],
    }


def test_remote_ip_optional():
    def handler(request: httpx.Request) -> httpx.Response:
        assert "remoteip" not in parse_qs(request.content.decode())
        return httpx.Response(200, json={"success": True})

    assert make_client(handler).verify("token").success


def test_rejected_token():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200, json={"success": False, "error-codes": ["invalid-input-response"]}
        )

    result = make_client(handler).verify("bad-token")

    assert result.success is False
    assert result.error_codes == ["invalid-input-response"]


def test_http_error_raises():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="unavailable")

    with pytest.raises(CaptchaVerificationError):
        make_client(handler).verify("token")


def test_network_error_raises():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    with pytest.raises(CaptchaVerificationError):
        make_client(handler).verify("token")


@pytest.mark.parametrize("body", ["not json", "[1, 2]"])
def test_undecodable_body_raises(body):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text=body)

    with pytest.raises(CaptchaVerificationError):
        make_client(handler).verify("token")


def test_success_must_be_true():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"success": "yes"})

    assert make_client(handler).verify("token").success is False
