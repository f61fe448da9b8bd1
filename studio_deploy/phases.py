"""Fixed, linear deployment phases with explicit preconditions.

Each :class:`Phase` declares when it may run (a predicate over what the
earlier phases produced) and whether its failure aborts the run.  The
list is walked once, in order; there is no dependency resolution.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import structlog

from .models import DeploymentRequest

if TYPE_CHECKING:
    from .credentials import AwsClients
    from .smtp import SmtpCredential

logger = structlog.get_logger()


@dataclass
class DeploymentContext:
    """State threaded from one phase into the next, and the run's report."""

    request: DeploymentRequest
    production_stage: str = "prod"
    clients: AwsClients | None = None
    certificate_arn: str = ""
    distribution_id: str = ""
    distribution_domain_name: str = ""
    smtp_credential: SmtpCredential | None = None
    lambda_uris: dict[str, str] = field(default_factory=dict)
    phases_run: list[str] = field(default_factory=list)
    phases_skipped: list[str] = field(default_factory=list)
    phases_failed: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def warn(self, event: str, **context: object) -> None:
        """Log a warning and keep it for the final summary."""
        logger.warning(event, **context)
        self.warnings.append(event)


Precondition = Callable[[DeploymentContext], bool]
PhaseRunner = Callable[[DeploymentContext], Awaitable[None]]


@dataclass(frozen=True)
class Phase:
    name: str
    run: PhaseRunner
    precondition: Precondition
    fatal: bool = True


# ------------------------------------------------------------------
# Preconditions
# ------------------------------------------------------------------


def always(ctx: DeploymentContext) -> bool:
    return True


def custom_domain_enabled(ctx: DeploymentContext) -> bool:
    return ctx.request.custom_domain_enabled(ctx.production_stage)


def domain_wiring_ready(ctx: DeploymentContext) -> bool:
    """Phase 1 produced a certificate and phase 2 a distribution."""
    return (
        custom_domain_enabled(ctx)
        and bool(ctx.certificate_arn)
        and bool(ctx.distribution_id)
        and bool(ctx.distribution_domain_name)
    )


# ------------------------------------------------------------------
# Runner
# ------------------------------------------------------------------


async def run_phases(phases: tuple[Phase, ...], ctx: DeploymentContext) -> DeploymentContext:
    """Run *phases* in order.

    A failing fatal phase propagates immediately, so later phases never
    run.  A failing non-fatal phase is logged and recorded, and the run
    continues with the next phase.
    """
    for phase in phases:
        if not phase.precondition(ctx):
            logger.info("phase_skipped", phase=phase.name)
            ctx.phases_skipped.append(phase.name)
            continue

        logger.info("phase_started", phase=phase.name)
        try:
            await phase.run(ctx)
        except Exception as exc:
            if phase.fatal:
                logger.error("phase_failed", phase=phase.name, error=str(exc))
                raise
            ctx.phases_failed.append(phase.name)
            ctx.warn("phase_failed_non_fatal", phase=phase.name, error=str(exc))
            continue

        ctx.phases_run.append(phase.name)
        logger.info("phase_completed", phase=phase.name)
    return ctx
