"""SES receiving configuration."""

from __future__ import annotations

import asyncio
from typing import Any

import structlog

logger = structlog.get_logger()


async def activate_receipt_rule_set(client: Any, rule_set_name: str) -> None:
    """Make *rule_set_name* the account's active receipt rule set."""
    await asyncio.to_thread(client.set_active_receipt_rule_set, RuleSetName=rule_set_name)
    logger.info("receipt_rule_set_activated", rule_set=rule_set_name)
