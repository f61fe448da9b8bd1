"""SES outbound sending.

All boto3 calls are wrapped with ``asyncio.to_thread()`` to avoid blocking.
Send errors propagate unchanged; redelivery belongs to the caller.
"""

from __future__ import annotations

import asyncio

import boto3
import structlog

logger = structlog.get_logger()


class SesSender:
    """Send raw or simple messages through SES in one region."""

    def __init__(self, region: str) -> None:
        self._region = region
        self._client = None  # type: ignore[assignment]

    async def start(self) -> None:
        """Create the boto3 SES client."""
        self._client = await asyncio.to_thread(boto3.client, "ses", region_name=self._region)
        logger.debug("ses_sender_started", region=self._region)

    async def stop(self) -> None:
        """Clean up the boto3 client."""
        self._client = None

    async def send_raw(self, raw: bytes, destinations: list[str] | tuple[str, ...], source: str) -> str:
        """Submit a complete RFC 822 document.  Returns the SES message id."""
        assert self._client is not None, "SES client not started"
        response = await asyncio.to_thread(
            self._client.send_raw_email,
            RawMessage={"Data": raw},
            Destinations=list(destinations),
            Source=source,
        )
        return response.get("MessageId", "")

    async def send_text(
        self,
        *,
        source: str,
        to: list[str],
        subject: str,
        body: str,
        reply_to: list[str] | None = None,
    ) -> str:
        """Send a plain-text UTF-8 message.  Returns the SES message id."""
        assert self._client is not None, "SES client not started"
        kwargs: dict = {
            "Source": source,
            "Destination": {"ToAddresses": to},
            "Message": {
                "Subject": {"Data": subject, "Charset": "UTF-8"},
                "Body": {"Text": {"Data": body, "Charset": "UTF-8"}},
            },
        }
        if reply_to:
            kwargs["ReplyToAddresses"] = reply_to
        response = await asyncio.to_thread(self._client.send_email, **kwargs)
        return response.get("MessageId", "")
