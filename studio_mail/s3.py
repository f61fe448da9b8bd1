"""S3 access to raw messages stored by the SES receipt rule.

All boto3 calls are wrapped with ``asyncio.to_thread()`` to avoid blocking.
"""

from __future__ import annotations

import asyncio

import boto3
import structlog

from .errors import EmptyMessageError

logger = structlog.get_logger()


class MailStore:
    """Download raw RFC 822 messages keyed by SES message id."""

    def __init__(self, bucket: str, region: str) -> None:
        self._bucket = bucket
        self._region = region
        self._client = None  # type: ignore[assignment]

    async def start(self) -> None:
        """Create the boto3 S3 client."""
        self._client = await asyncio.to_thread(boto3.client, "s3", region_name=self._region)
        logger.debug("mail_store_started", bucket=self._bucket)

    async def stop(self) -> None:
        """Clean up the boto3 client."""
        self._client = None

    async def download(self, message_id: str) -> bytes:
        """Fetch the raw message stored under *message_id*."""
        assert self._client is not None, "S3 client not started"
        response = await asyncio.to_thread(
            self._client.get_object,
            Bucket=self._bucket,
            Key=message_id,
        )
        body = response.get("Body")
        raw_bytes: bytes = await asyncio.to_thread(body.read) if body is not None else b""
        if not raw_bytes:
            raise EmptyMessageError(f"Empty email body from S3 for {message_id}")
        logger.debug("raw_message_downloaded", message_id=message_id, size=len(raw_bytes))
        return raw_bytes
