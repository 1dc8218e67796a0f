"""
Tests for reCAPTCHA verification
"""
import httpx

from teamreg.config import RECAPTCHA_TEST_SECRET
from teamreg.services.recaptcha import RecaptchaVerifier


def verifier_with(handler, secret="live-secret"):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return RecaptchaVerifier(secret, client=client)


async def test_test_secret_always_passes():
    verifier = RecaptchaVerifier(RECAPTCHA_TEST_SECRET)
    assert await verifier.verify("anything") is True


async def test_empty_token_fails_even_in_test_mode():
    verifier = RecaptchaVerifier(RECAPTCHA_TEST_SECRET)
    assert await verifier.verify("") is False
    assert await verifier.verify(None) is False


async def test_forwards_secret_and_token():
    seen = {}

    def handler(request):
        seen["body"] = request.content.decode()
        return httpx.Response(200, json={"success": True})

    assert await verifier_with(handler).verify("tok-123") is True
    assert "secret=live-secret" in seen["body"]
    assert "response=tok-123" in seen["body"]


async def test_service_rejection():
    def handler(request):
        return httpx.Response(200, json={"success": False, "error-codes": ["invalid-input-response"]})

    assert await verifier_with(handler).verify("tok") is False


async def test_transport_failure_fails_closed():
    def handler(request):
        raise httpx.ConnectError("unreachable")

    assert await verifier_with(handler).verify("tok") is False


async def test_malformed_response_fails_closed():
    """Non-JSON bodies, error statuses and missing flags all fail"""
    assert await verifier_with(lambda r: httpx.Response(200, text="<html>")).verify("tok") is False
    assert await verifier_with(lambda r: httpx.Response(503, json={"success": True})).verify("tok") is False
    assert await verifier_with(lambda r: httpx.Response(200, json={})).verify("tok") is False
    assert await verifier_with(lambda r: httpx.Response(200, json=["success"])).verify("tok") is False
