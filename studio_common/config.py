"""Shared settings loaded from environment variables.

Uses pydantic-settings so every field can be overridden via env vars,
which is how CI runners and Lambda functions are configured.
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings


class AwsConfig(BaseSettings):
    """AWS client settings shared by every boto3 adapter."""

    model_config = {"env_prefix": "AWS_"}

    profile: str | None = Field(
        default=None,
        description="Named profile from the shared credentials file",
    )
    endpoint_url: str | None = Field(
        default=None,
        description="Custom endpoint URL for every client (e.g. LocalStack)",
    )


class PollConfig(BaseSettings):
    """Fixed-interval polling settings driven by Tenacity."""

    model_config = {"env_prefix": "STACK_POLL_"}

    interval_seconds: float = Field(
        default=10.0,
        description="Seconds to wait between status polls",
    )
    max_attempts: int = Field(
        default=60,
        description="Polls before giving up (60 x 10s covers certificate validation)",
    )
