"""Tests for studio_mail.recaptcha."""

from __future__ import annotations

import httpx
import pytest
import respx

from studio_mail.recaptcha import RecaptchaVerifier, is_test_secret
from studio_mail.secrets import RECAPTCHA_TEST_SECRET

VERIFY_URL = "https://www.google.com/recaptcha/api/siteverify"


class StaticSecret:
    def __init__(self, value: str) -> None:
        self.value = value

    async def get(self) -> str:
        return self.value


def _verifier(secret: str = "live-secret") -> RecaptchaVerifier:
    return RecaptchaVerifier(StaticSecret(secret), verify_url=VERIFY_URL, min_score=0.5, timeout_seconds=1.0)


class TestIsTestSecret:
    def test_google_test_key(self):
        assert is_test_secret(RECAPTCHA_TEST_SECRET)

    def test_named_test_key(self):
        assert is_test_secret("my-Test-key")

    def test_live_key(self):
        assert not is_test_secret("live-secret")


class TestRecaptchaVerifier:
    @pytest.mark.asyncio
    async def test_empty_token(self):
        assert await _verifier().verify("") is False
        assert await _verifier().verify(None) is False

    @pytest.mark.asyncio
    @respx.mock
    async def test_high_score_accepted(self):
        route = respx.post(VERIFY_URL).respond(200, json={"success": True, "score": 0.9})

        assert await _verifier().verify("token-1") is True
        body = route.calls[0].request.content.decode()
        assert "secret=live-secret" in body
        assert "response=token-1" in body

    @pytest.mark.asyncio
    @respx.mock
    async def test_score_at_threshold_accepted(self):
        respx.post(VERIFY_URL).respond(200, json={"success": True, "score": 0.5})
        assert await _verifier().verify("t") is True

    @pytest.mark.asyncio
    @respx.mock
    async def test_low_score_rejected(self):
        respx.post(VERIFY_URL).respond(200, json={"success": True, "score": 0.1})
        assert await _verifier().verify("t") is False

    @pytest.mark.asyncio
    @respx.mock
    async def test_missing_score_rejected_for_live_key(self):
        respx.post(VERIFY_URL).respond(200, json={"success": True})
        assert await _verifier().verify("t") is False

    @pytest.mark.asyncio
    @respx.mock
    async def test_test_key_ignores_score(self):
        respx.post(VERIFY_URL).respond(200, json={"success": True})
        assert await _verifier(RECAPTCHA_TEST_SECRET).verify("t") is True

    @pytest.mark.asyncio
    @respx.mock
    async def test_unsuccessful(self):
        respx.post(VERIFY_URL).respond(200, json={"success": False, "error-codes": ["invalid-input-response"]})
        assert await _verifier(RECAPTCHA_TEST_SECRET).verify("t") is False

    @pytest.mark.asyncio
    @respx.mock
    async def test_transport_error(self):
        respx.post(VERIFY_URL).mock(side_effect=httpx.ConnectError)
        assert await _verifier().verify("t") is False

    @pytest.mark.asyncio
    @respx.mock
    async def test_invalid_json(self):
        respx.post(VERIFY_URL).respond(200, text="<html>")
        assert await _verifier().verify("t") is False
