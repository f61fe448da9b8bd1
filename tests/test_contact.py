"""Tests for studio_mail.contact."""

from __future__ import annotations

import base64
import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from studio_mail.config import ContactConfig
from studio_mail.contact import (
    CONTACT_SUBJECT,
    QUOTE_SUBJECT,
    ContactFormHandler,
    handler,
    render,
)
from studio_mail.models import ContactFormData


def _event(body: dict | None = None, method: str = "POST") -> dict:
    event = {"requestContext": {"http": {"method": method}}}
    if body is not None:
        event["body"] = json.dumps(body)
    return event


@pytest.fixture
def verifier() -> MagicMock:
    mock = MagicMock()
    mock.verify = AsyncMock(return_value=True)
    return mock


@pytest.fixture
def sender() -> MagicMock:
    mock = MagicMock()
    mock.send_text = AsyncMock(return_value="ses-1")
    return mock


@pytest.fixture
def form_handler(verifier: MagicMock, sender: MagicMock) -> ContactFormHandler:
    config = ContactConfig(from_email="noreply@appbuilderstudio.com", to_email="hello@appbuilderstudio.com")
    return ContactFormHandler(config, verifier, sender)


class TestRender:
    def test_contact_layout(self):
        subject, body = render(ContactFormData(name="Ada", email="ada@example.org", message="Hello"))
        assert subject == CONTACT_SUBJECT
        assert body == (
            "New Contact Form Submission\n"
            "\n"
            "Name: Ada\n"
            "Email: ada@example.org\n"
            "Phone: Not provided\n"
            "\n"
            "Message:\n"
            "Hello\n"
        )

    def test_quote_layout_placeholders(self):
        form = ContactFormData.model_validate(
            {
                "firstName": "Ada",
                "lastName": "Lovelace",
                "email": "ada@example.org",
                "serviceType": "Mobile App",
                "description": "An app for engines.",
            }
        )
        subject, body = render(form)
        assert subject == QUOTE_SUBJECT
        assert "Name: Ada Lovelace\n" in body
        assert "Phone: Not provided\n" in body
        assert "Business Type: Not provided\n" in body
        assert "Company Name: Not provided\n" in body
        assert "Industry: Not provided\n" in body
        assert "Current Website: None\n" in body
        assert "Service Type: Mobile App\n" in body
        assert "Timeline: Not specified\n" in body
        assert body.endswith("PROJECT DETAILS:\nAn app for engines.\n")

    def test_quote_layout_values(self):
        form = ContactFormData.model_validate(
            {
                "formType": "quote",
                "firstName": "Ada",
                "lastName": "Lovelace",
                "businessType": "Startup",
                "currentWebsite": "https://ada.example.org",
                "timeline": "3 months",
            }
        )
        _, body = render(form)
        assert "Business Type: Startup\n" in body
        assert "Current Website: https://ada.example.org\n" in body
        assert "Timeline: 3 months\n" in body


class TestContactFormHandler:
    @pytest.mark.asyncio
    async def test_options_preflight(self, form_handler, verifier, sender):
        response = await form_handler.handle(_event(method="OPTIONS"))

        assert response == {
            "statusCode": 200,
            "headers": {
                "Access-Control-Allow-Origin": "*",
                "Access-Control-Allow-Methods": "POST, OPTIONS",
                "Access-Control-Allow-Headers": "Content-Type",
            },
            "body": "",
        }
        verifier.verify.assert_not_awaited()
        sender.send_text.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_contact_sent(self, form_handler, verifier, sender):
        response = await form_handler.handle(
            _event({"name": "Ada", "email": "ada@example.org", "message": "Hi", "recaptchaToken": "tok"})
        )

        assert response["statusCode"] == 200
        assert json.loads(response["body"]) == {"message": "Email sent successfully"}
        assert response["headers"]["Content-Type"] == "application/json"
        verifier.verify.assert_awaited_once_with("tok")
        kwargs = sender.send_text.await_args.kwargs
        assert kwargs["source"] == "noreply@appbuilderstudio.com"
        assert kwargs["to"] == ["hello@appbuilderstudio.com"]
        assert kwargs["subject"] == CONTACT_SUBJECT
        assert kwargs["reply_to"] == ["ada@example.org"]

    @pytest.mark.asyncio
    async def test_no_reply_to_without_email(self, form_handler, sender):
        await form_handler.handle(_event({"name": "Ada", "message": "Hi", "recaptchaToken": "tok"}))
        assert sender.send_text.await_args.kwargs["reply_to"] is None

    @pytest.mark.asyncio
    async def test_recaptcha_rejected(self, form_handler, verifier, sender):
        verifier.verify.return_value = False
        response = await form_handler.handle(_event({"name": "Ada", "recaptchaToken": "bad"}))

        assert response["statusCode"] == 400
        assert json.loads(response["body"]) == {"error": "reCAPTCHA verification failed. Please try again."}
        sender.send_text.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_send_failure(self, form_handler, sender):
        sender.send_text.side_effect = RuntimeError("throttled")
        response = await form_handler.handle(_event({"name": "Ada", "recaptchaToken": "tok"}))

        assert response["statusCode"] == 500
        assert json.loads(response["body"]) == {"error": "Failed to send email"}

    @pytest.mark.asyncio
    async def test_invalid_json(self, form_handler):
        event = _event()
        event["body"] = "{not json"
        response = await form_handler.handle(event)
        assert response["statusCode"] == 500

    @pytest.mark.asyncio
    async def test_missing_body_fails_recaptcha(self, form_handler, verifier):
        verifier.verify.return_value = False
        response = await form_handler.handle(_event())
        assert response["statusCode"] == 400
        verifier.verify.assert_awaited_once_with(None)

    @pytest.mark.asyncio
    async def test_base64_body(self, form_handler, sender):
        event = _event()
        event["body"] = base64.b64encode(json.dumps({"name": "Ada", "recaptchaToken": "tok"}).encode()).decode()
        event["isBase64Encoded"] = True
        response = await form_handler.handle(event)
        assert response["statusCode"] == 200
        assert "Name: Ada\n" in sender.send_text.await_args.kwargs["body"]


class TestLambdaHandler:
    def test_handler_options(self):
        with patch("studio_mail.ses.boto3"):
            response = handler(_event(method="OPTIONS"), None)
        assert response["statusCode"] == 200
        assert response["body"] == ""
