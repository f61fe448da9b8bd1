"""Mail Lambda configuration loaded from environment variables.

Variable names match the Lambda environment the email and contact
stacks provision (``EMAIL_BUCKET``, ``FORWARD_TO``, ``FROM_EMAIL``, ...).
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings


class ForwarderConfig(BaseSettings):
    """Inbound forwarder: reads from S3 in the receiving region, rewrites, sends via SES in the sending region."""

    email_bucket: str = Field(default="", description="Bucket SES receipt rules store raw mail in")
    forward_to: str = Field(default="", description="Mailbox every inbound message is forwarded to")
    forward_from: str = Field(
        default="",
        description="From address used when the message carries no recipient",
    )
    bucket_region: str = Field(default="us-east-1", description="Region of the receiving bucket")
    send_region: str = Field(
        default="ap-southeast-2",
        description="SES region where the sending domain is verified",
    )

    def missing(self) -> list[str]:
        """Names of required settings that are empty."""
        required = {
            "EMAIL_BUCKET": self.email_bucket,
            "FORWARD_TO": self.forward_to,
            "FORWARD_FROM": self.forward_from,
        }
        return [name for name, value in required.items() if not value]


class ContactConfig(BaseSettings):
    """Contact-form Lambda settings."""

    aws_region: str = Field(default="ap-southeast-2", description="Region for SES and SSM")
    from_email: str = Field(
        default="noreply@appbuilderstudio.com",
        description="Verified SES sender of contact notifications",
    )
    to_email: str = Field(
        default="hello@appbuilderstudio.com",
        description="Mailbox contact notifications are delivered to",
    )
    recaptcha_parameter_name: str = Field(
        default="/app-builder-studio/recaptcha-secret-key",
        description="SSM SecureString holding the reCAPTCHA secret",
    )
    recaptcha_verify_url: str = Field(
        default="https://www.google.com/recaptcha/api/siteverify",
        description="reCAPTCHA verification endpoint",
    )
    recaptcha_min_score: float = Field(default=0.5, description="Lowest accepted reCAPTCHA v3 score")
    recaptcha_timeout_seconds: float = Field(default=10.0, description="HTTP timeout for verification")
