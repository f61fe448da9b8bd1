"""Inbound mail forwarder: SES receipt, raw message from S3, rewrite, SES send.

Deployed as the ``emailForwarder`` Lambda; ``handler`` is its entry point.
"""

from __future__ import annotations

import asyncio
from typing import Any

import structlog

from studio_common import setup_logging

from .config import ForwarderConfig
from .errors import ConfigurationError
from .models import ForwardedMessage, InboundMessage, SesEvent, SesRecord
from .rewrite import rewrite_message
from .s3 import MailStore
from .ses import SesSender

logger = structlog.get_logger()


class EmailForwarder:
    """Forward every message of an SES receipt event to one mailbox."""

    def __init__(self, config: ForwarderConfig) -> None:
        self._config = config
        self._store = MailStore(config.email_bucket, config.bucket_region)
        self._sender = SesSender(config.send_region)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        await self._store.start()
        await self._sender.start()

    async def stop(self) -> None:
        await self._sender.stop()
        await self._store.stop()

    # ------------------------------------------------------------------
    # Event handling
    # ------------------------------------------------------------------

    async def handle(self, event: dict[str, Any]) -> dict[str, str]:
        """Forward each record in order.  The first failure is raised."""
        missing = self._config.missing()
        if missing:
            logger.error("forwarder_misconfigured", missing=missing)
            raise ConfigurationError(f"Missing required environment variables: {', '.join(missing)}")

        ses_event = SesEvent.model_validate(event)
        for record in ses_event.records:
            await self._handle_record(record)
        return {"status": "success"}

    async def _handle_record(self, record: SesRecord) -> None:
        message_id = record.ses.mail.message_id
        structlog.contextvars.bind_contextvars(message_id=message_id)
        try:
            logger.info("email_received", recipients=record.ses.receipt.recipients)
            raw = await self._store.download(message_id)
            message = InboundMessage.from_record(record, raw)
            await self.forward(message)
        except Exception:
            logger.exception("email_forward_failed")
            raise
        finally:
            structlog.contextvars.unbind_contextvars("message_id")

    async def forward(self, message: InboundMessage) -> ForwardedMessage:
        """Rewrite *message* and submit it.  SES errors propagate."""
        logger.info(
            "email_forwarding",
            original_from=message.original_from,
            subject=message.original_subject,
        )
        forwarded = rewrite_message(
            message.raw_body,
            message.envelope,
            forward_to=self._config.forward_to,
            fallback_from=self._config.forward_from,
        )
        ses_message_id = await self._sender.send_raw(
            forwarded.raw,
            forwarded.destinations,
            forwarded.source,
        )
        logger.info(
            "email_forwarded",
            forward_to=self._config.forward_to,
            source=forwarded.source,
            bounce=forwarded.is_bounce,
            ses_message_id=ses_message_id,
        )
        return forwarded


async def _run(event: dict[str, Any]) -> dict[str, str]:
    forwarder = EmailForwarder(ForwarderConfig())
    await forwarder.start()
    try:
        return await forwarder.handle(event)
    finally:
        await forwarder.stop()


def handler(event: dict[str, Any], context: Any) -> dict[str, str]:
    """AWS Lambda entry point."""
    setup_logging()
    return asyncio.run(_run(event))
