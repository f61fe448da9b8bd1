"""SES SMTP credential derivation.

SES SMTP passwords are not issued directly; they are derived from an IAM
secret access key with the SigV4-style HMAC chain documented by AWS.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
from dataclasses import dataclass, field

_DATE = "11111111"
_SERVICE = "ses"
_TERMINAL = "aws4_request"
_MESSAGE = "SendRawEmail"
_VERSION = b"\x04"


def _sign(key: bytes, message: str) -> bytes:
    return hmac.new(key, message.encode("utf-8"), hashlib.sha256).digest()


def derive_smtp_password(secret_access_key: str, region: str) -> str:
    """Derive the SES SMTP password for *region* from an IAM secret key."""
    signature = _sign(f"AWS4{secret_access_key}".encode("utf-8"), _DATE)
    for part in (region, _SERVICE, _TERMINAL, _MESSAGE):
        signature = _sign(signature, part)
    return base64.b64encode(_VERSION + signature).decode("ascii")


def smtp_endpoint(region: str) -> str:
    return f"email-smtp.{region}.amazonaws.com"


@dataclass(frozen=True)
class SmtpCredential:
    """SMTP settings an operator pastes into an external mail client."""

    username: str
    password: str = field(repr=False)
    server: str
    port: int

    @classmethod
    def from_secret(cls, username: str, secret_access_key: str, region: str, port: int = 587) -> SmtpCredential:
        return cls(
            username=username,
            password=derive_smtp_password(secret_access_key, region),
            server=smtp_endpoint(region),
            port=port,
        )
