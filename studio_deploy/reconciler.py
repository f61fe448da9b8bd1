"""Stack reconciler: converge one CloudFormation stack to a template.

The same routine serves the DNS, main and email stacks; only the
:class:`StackDescriptor` differs.  Nothing here knows which kind of stack
it is working on.
"""

from __future__ import annotations

import structlog
from tenacity import RetryError

from studio_common import PollConfig, poll_until

from .credentials import AwsClients
from .errors import StackFailed, StackNoChanges, StackTimeout, is_failure_status
from .models import ChangeResult, Reconciliation, StackDescriptor, StackOutputs, StackState
from .stacks import StackProvider

logger = structlog.get_logger()


class StackReconciler:
    """Create-or-update a stack, wait for it, and return its outputs."""

    def __init__(self, clients: AwsClients, poll: PollConfig) -> None:
        self._clients = clients
        self._poll = poll

    def provider(self, region: str) -> StackProvider:
        return StackProvider(self._clients.client("cloudformation", region))

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def reconcile(self, descriptor: StackDescriptor) -> StackOutputs:
        """Converge *descriptor* and return its outputs.

        Raises :class:`StackFailed` or :class:`StackTimeout`.
        """
        outcome = await self.converge(descriptor)
        if outcome.error is not None:
            raise outcome.error
        return outcome.outputs

    async def converge(self, descriptor: StackDescriptor) -> Reconciliation:
        """Like :meth:`reconcile`, but stack failures are returned, not raised.

        Provider errors other than stack failure/timeout still propagate.
        """
        provider = self.provider(descriptor.region)
        try:
            result, state = await self._apply(provider, descriptor)
        except (StackFailed, StackTimeout) as exc:
            logger.error("stack_reconcile_failed", stack=descriptor.name, error=str(exc))
            return Reconciliation(
                stack_name=descriptor.name,
                result=ChangeResult.FAILED,
                outputs=StackOutputs(),
                state=StackState.FAILED,
                error=exc,
            )

        outputs = await self.outputs(descriptor)
        logger.info(
            "stack_reconciled",
            stack=descriptor.name,
            region=descriptor.region,
            result=result.value,
            state=state.value,
            outputs=sorted(outputs),
        )
        return Reconciliation(
            stack_name=descriptor.name,
            result=result,
            outputs=outputs,
            state=state,
        )

    async def outputs(self, descriptor: StackDescriptor) -> StackOutputs:
        """Fetch the current outputs of a stack (empty if it has none)."""
        stack = await self.provider(descriptor.region).describe(descriptor.name)
        return StackOutputs.from_describe(stack)

    # ------------------------------------------------------------------
    # Apply + wait
    # ------------------------------------------------------------------

    async def _apply(
        self, provider: StackProvider, descriptor: StackDescriptor
    ) -> tuple[ChangeResult, StackState]:
        state = StackState.from_status(await provider.status(descriptor.name))
        logger.info(
            "stack_reconcile_started",
            stack=descriptor.name,
            region=descriptor.region,
            state=state.value,
        )

        if state is StackState.ABSENT:
            operation = "CREATE"
            await provider.create(descriptor)
        else:
            operation = "UPDATE"
            try:
                await provider.update(descriptor)
            except StackNoChanges:
                logger.info("stack_up_to_date", stack=descriptor.name)
                return ChangeResult.UNCHANGED, StackState.NO_CHANGES

        logger.info("stack_wait_started", stack=descriptor.name, operation=operation)
        status = await self.wait(provider, descriptor.name, operation)
        return ChangeResult.CHANGED, StackState.from_status(status)

    async def wait(self, provider: StackProvider, name: str, operation: str) -> str:
        """Poll until ``<operation>_COMPLETE``.

        Raises :class:`StackFailed` on a failed/rollback status and
        :class:`StackTimeout` when the poll budget runs out.
        """
        target = f"{operation}_COMPLETE"

        async def check() -> str | None:
            status = await provider.status(name)
            logger.debug("stack_status_polled", stack=name, status=status)
            if is_failure_status(status):
                raise StackFailed(name, await self._failure_reason(provider, name, status))
            return status

        retryer = poll_until(self._poll, done=lambda status: status == target)
        try:
            return await retryer(check)
        except RetryError as exc:
            raise StackTimeout(name, self._poll.max_attempts) from exc

    async def _failure_reason(self, provider: StackProvider, name: str, status: str | None) -> str:
        events = await provider.recent_events(name)
        for event in events:
            if "FAILED" in (event.get("ResourceStatus") or ""):
                return event.get("ResourceStatusReason") or str(status)
        return str(status)

