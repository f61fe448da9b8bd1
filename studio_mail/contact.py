"""Contact and quote form Lambda (HTTP API v2 integration).

Verifies the reCAPTCHA token, renders a plain-text notification and sends
it through SES with ``Reply-To`` set to the visitor's address.
"""

from __future__ import annotations

import asyncio
import base64
import json
from typing import Any

import structlog

from studio_common import setup_logging

from .config import ContactConfig
from .models import ContactFormData
from .recaptcha import RecaptchaVerifier
from .secrets import secret_cache
from .ses import SesSender

logger = structlog.get_logger()

QUOTE_SUBJECT = "New Quote Request - App Builder Studio"
CONTACT_SUBJECT = "New Contact Form Submission - App Builder Studio"

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}
JSON_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Content-Type": "application/json",
}


# ------------------------------------------------------------------
# Rendering
# ------------------------------------------------------------------


def render_quote(form: ContactFormData) -> str:
    return (
        "New Quote Request\n"
        "\n"
        "CONTACT DETAILS:\n"
        f"Name: {form.first_name or ''} {form.last_name or ''}\n"
        f"Email: {form.email or ''}\n"
        f"Phone: {form.phone or 'Not provided'}\n"
        "\n"
        "BUSINESS INFORMATION:\n"
        f"Business Type: {form.business_type or 'Not provided'}\n"
        f"Company Name: {form.company_name or 'Not provided'}\n"
        f"Industry: {form.industry or 'Not provided'}\n"
        f"Current Website: {form.current_website or 'None'}\n"
        "\n"
        "SERVICE DETAILS:\n"
        f"Service Type: {form.service_type or ''}\n"
        f"Timeline: {form.timeline or 'Not specified'}\n"
        "\n"
        "PROJECT DETAILS:\n"
        f"{form.description or ''}\n"
    )


def render_contact(form: ContactFormData) -> str:
    return (
        "New Contact Form Submission\n"
        "\n"
        f"Name: {form.name or ''}\n"
        f"Email: {form.email or ''}\n"
        f"Phone: {form.phone or 'Not provided'}\n"
        "\n"
        "Message:\n"
        f"{form.message or ''}\n"
    )


def render(form: ContactFormData) -> tuple[str, str]:
    """Return ``(subject, body)`` for *form*."""
    if form.is_quote:
        return QUOTE_SUBJECT, render_quote(form)
    return CONTACT_SUBJECT, render_contact(form)


def _response(status_code: int, payload: dict[str, str]) -> dict[str, Any]:
    return {
        "statusCode": status_code,
        "headers": dict(JSON_HEADERS),
        "body": json.dumps(payload),
    }


def _request_method(event: dict[str, Any]) -> str:
    return event.get("requestContext", {}).get("http", {}).get("method", "")


def _request_body(event: dict[str, Any]) -> str:
    body = event.get("body") or "{}"
    if event.get("isBase64Encoded"):
        body = base64.b64decode(body).decode("utf-8")
    return body


# ------------------------------------------------------------------
# Handler
# ------------------------------------------------------------------


class ContactFormHandler:
    """Process one form submission end to end."""

    def __init__(
        self,
        config: ContactConfig,
        verifier: RecaptchaVerifier,
        sender: SesSender,
    ) -> None:
        self._config = config
        self._verifier = verifier
        self._sender = sender

    async def handle(self, event: dict[str, Any]) -> dict[str, Any]:
        if _request_method(event) == "OPTIONS":
            return {"statusCode": 200, "headers": dict(CORS_HEADERS), "body": ""}

        try:
            form = ContactFormData.model_validate_json(_request_body(event))

            if not await self._verifier.verify(form.recaptcha_token):
                logger.warning("contact_form_rejected", reason="recaptcha")
                return _response(400, {"error": "reCAPTCHA verification failed. Please try again."})

            subject, body = render(form)
            message_id = await self._sender.send_text(
                source=self._config.from_email,
                to=[self._config.to_email],
                subject=subject,
                body=body,
                reply_to=[form.email] if form.email else None,
            )
        except ValueError as exc:
            logger.warning("contact_form_invalid", error=str(exc))
            return _response(500, {"error": "Failed to send email"})
        except Exception:
            logger.exception("contact_email_failed")
            return _response(500, {"error": "Failed to send email"})

        logger.info("contact_email_sent", quote=form.is_quote, ses_message_id=message_id)
        return _response(200, {"message": "Email sent successfully"})


def build_handler(config: ContactConfig) -> tuple[ContactFormHandler, SesSender]:
    verifier = RecaptchaVerifier(
        secret_cache(config.recaptcha_parameter_name, config.aws_region),
        verify_url=config.recaptcha_verify_url,
        min_score=config.recaptcha_min_score,
        timeout_seconds=config.recaptcha_timeout_seconds,
    )
    sender = SesSender(config.aws_region)
    return ContactFormHandler(config, verifier, sender), sender


async def _run(event: dict[str, Any]) -> dict[str, Any]:
    form_handler, sender = build_handler(ContactConfig())
    await sender.start()
    try:
        return await form_handler.handle(event)
    finally:
        await sender.stop()


def handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """AWS Lambda entry point."""
    setup_logging()
    return asyncio.run(_run(event))
