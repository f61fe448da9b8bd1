"""Deploy tooling configuration loaded from environment variables."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings

from studio_common import AwsConfig, PollConfig

# (local path under templates_dir, S3 key) for the main stack.
MAIN_TEMPLATES: tuple[tuple[str, str], ...] = (
    ("cfn-template.yaml", "cfn-template.yaml"),
    ("resources/S3/s3.yaml", "resources/S3/s3.yaml"),
    ("resources/Lambda/lambda.yaml", "resources/Lambda/lambda.yaml"),
    ("resources/CloudFront/cloudfront.yaml", "resources/CloudFront/cloudfront.yaml"),
)
DNS_TEMPLATE = ("resources/DNS/dns.yaml", "dns.yaml")
EMAIL_TEMPLATE = ("resources/Email/email.yaml", "email.yaml")

# Directory the studio_* packages are imported from.
PACKAGE_ROOT = Path(__file__).resolve().parent.parent


class DeployConfig(BaseSettings):
    """Top-level settings for a deployment run.

    All env vars are prefixed with ``DEPLOY_``.
    Example: ``DEPLOY_FORWARD_TO_EMAIL=me@example.com``
    """

    model_config = {"env_prefix": "DEPLOY_"}

    # --- Naming -------------------------------------------------------------
    app_name: str = Field(default="appbuilderstudio", description="Application name used in stack names")
    stack_prefix: str = Field(
        default="nlmonorepo",
        description="Prefix of the main stack and its template bucket",
    )
    production_stage: str = Field(default="prod", description="Stage allowed to use custom domains")

    # --- Regions ------------------------------------------------------------
    default_region: str = Field(default="ap-southeast-2", description="Region of the main stack")
    certificate_region: str = Field(
        default="us-east-1",
        description="Region CloudFront certificates and SES receiving must live in",
    )

    # --- Local sources ------------------------------------------------------
    templates_dir: Path = Field(default=Path("deploy"), description="Directory holding the stack templates")
    lambda_source_dir: Path = Field(
        default=PACKAGE_ROOT,
        description="Directory holding the studio_mail and studio_common packages",
    )
    lambda_dependencies_dir: Path | None = Field(
        default=Path("build/lambda-deps"),
        description="pip --target directory of Lambda dependencies; installed on first use",
    )
    lambda_python_version: str = Field(default="3.12", description="Python version of the Lambda runtime")
    lambda_key_prefix: str = Field(default="lambdas", description="S3 key prefix for Lambda bundles")
    email_forwarder_unit: str = Field(
        default="emailForwarder",
        description="Name of the Lambda unit deployed with the email stack",
    )

    # --- Stack parameters ---------------------------------------------------
    log_retention_days: int = Field(default=14, description="CloudWatch log retention of the main stack")
    forward_to_email: str = Field(
        default="",
        description="Mailbox inbound mail for the custom domain is forwarded to",
    )

    # --- SMTP ---------------------------------------------------------------
    smtp_port: int = Field(default=587, description="SES SMTP submission port shown to the operator")

    # --- Logging ------------------------------------------------------------
    log_json: bool = Field(
        default=False,
        description="Use JSON log output (True for CI, False for a terminal)",
    )

    poll: PollConfig = Field(default_factory=PollConfig)
    aws: AwsConfig = Field(default_factory=AwsConfig)
