"""Command-line entry point for a deployment run."""

from __future__ import annotations

import asyncio
import sys

import click
import structlog

from studio_common import setup_logging

from .config import DeployConfig
from .errors import DeploymentError
from .models import DeploymentRequest
from .orchestrator import DeploymentOrchestrator
from .smtp import SmtpCredential

logger = structlog.get_logger()


@click.command()
@click.option("--stage", default="dev", show_default=True, help="Deployment stage")
@click.option("--region", default=None, help="AWS region of the main stack [default: ap-southeast-2]")
@click.option("--domain-name", default=None, help="Custom domain name (e.g. appbuilderstudio.com)")
@click.option("--hosted-zone-id", default=None, help="Route53 hosted zone ID for the domain")
@click.option("--debug", is_flag=True, help="Enable debug logging")
def main(
    stage: str,
    region: str | None,
    domain_name: str | None,
    hosted_zone_id: str | None,
    debug: bool,
) -> None:
    """Deploy App Builder Studio infrastructure."""
    config = DeployConfig()
    setup_logging(json=config.log_json, level="DEBUG" if debug else "INFO")

    request = DeploymentRequest(
        stage=stage,
        region=region or config.default_region,
        domain_name=domain_name,
        hosted_zone_id=hosted_zone_id,
        debug=debug,
    )
    orchestrator = DeploymentOrchestrator(config)

    try:
        ctx = asyncio.run(orchestrator.deploy(request))
    except DeploymentError as exc:
        logger.error("deployment_failed", error=str(exc), error_type=type(exc).__name__)
        sys.exit(1)
    except Exception as exc:
        logger.exception("deployment_failed", error=str(exc), error_type=type(exc).__name__)
        sys.exit(1)

    if ctx.smtp_credential is not None:
        echo_smtp_credential(ctx.smtp_credential)


def echo_smtp_credential(credential: SmtpCredential) -> None:
    """Print SMTP settings to the terminal; the password never enters the log stream."""
    click.echo("SMTP configuration for your mail client:")
    click.echo(f"  Server:   {credential.server}")
    click.echo(f"  Port:     {credential.port}")
    click.echo(f"  Username: {credential.username}")
    click.echo(f"  Password: {credential.password}")
