"""Async CloudFormation adapter.

Translates the provider's free-text "stack missing" and "no updates"
errors into a ``None`` describe result and :class:`StackNoChanges`, so the
reconciler never sees raw ``ClientError`` shapes for those two cases.
"""

from __future__ import annotations

import asyncio
from typing import Any

import structlog
from botocore.exceptions import ClientError

from .errors import ProviderErrorKind, StackNoChanges, classify_provider_error
from .models import StackDescriptor

logger = structlog.get_logger()


class StackProvider:
    """Thin async wrapper around a regional CloudFormation client."""

    def __init__(self, client: Any) -> None:
        self._client = client

    async def describe(self, name: str) -> dict | None:
        """Return the stack description, or ``None`` if it does not exist."""
        try:
            response = await asyncio.to_thread(self._client.describe_stacks, StackName=name)
        except ClientError as exc:
            if classify_provider_error(exc) is ProviderErrorKind.STACK_MISSING:
                return None
            raise
        stacks = response.get("Stacks") or []
        return stacks[0] if stacks else None

    async def status(self, name: str) -> str | None:
        stack = await self.describe(name)
        return stack.get("StackStatus") if stack else None

    async def create(self, descriptor: StackDescriptor) -> None:
        await asyncio.to_thread(
            self._client.create_stack,
            StackName=descriptor.name,
            TemplateURL=descriptor.template_url,
            Parameters=descriptor.to_cloudformation(),
            Capabilities=list(descriptor.capabilities),
            DisableRollback=descriptor.disable_rollback,
        )

    async def update(self, descriptor: StackDescriptor) -> None:
        """Start an update.  Raises :class:`StackNoChanges` if nothing differs."""
        try:
            await asyncio.to_thread(
                self._client.update_stack,
                StackName=descriptor.name,
                TemplateURL=descriptor.template_url,
                Parameters=descriptor.to_cloudformation(),
                Capabilities=list(descriptor.capabilities),
            )
        except ClientError as exc:
            if classify_provider_error(exc) is ProviderErrorKind.NO_UPDATES:
                raise StackNoChanges(descriptor.name) from exc
            raise

    async def recent_events(self, name: str) -> list[dict]:
        """Most recent stack events first, as returned by the provider."""
        response = await asyncio.to_thread(self._client.describe_stack_events, StackName=name)
        return response.get("StackEvents") or []
