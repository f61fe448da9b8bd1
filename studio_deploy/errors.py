"""Deployment error taxonomy and provider error classification.

CloudFormation reports "stack missing" and "nothing to update" as a
generic ``ValidationError`` whose only distinguishing feature is the
free-text message.  All matching against that text lives here.
"""

from __future__ import annotations

from enum import Enum

from botocore.exceptions import ClientError

STACK_MISSING_MARKER = "does not exist"
NO_UPDATES_MARKER = "No updates are to be performed"
FAILURE_STATUS_MARKERS = ("FAILED", "ROLLBACK")


class DeploymentError(Exception):
    """Base class for every error raised by the deploy tooling."""


class ConfigurationError(DeploymentError):
    """A request invariant was violated before any remote call was made."""


class CredentialsError(DeploymentError):
    """No usable AWS credentials could be resolved."""


class PackagingError(DeploymentError):
    """A deployable unit could not be built or published."""


class DomainWiringError(DeploymentError):
    """The CDN distribution could not be bound to the custom domain."""


class StackError(DeploymentError):
    """Base class for errors tied to a single stack."""

    def __init__(self, stack_name: str, message: str) -> None:
        super().__init__(message)
        self.stack_name = stack_name


class StackFailed(StackError):
    """The stack entered a failed or rollback state."""

    def __init__(self, stack_name: str, reason: str) -> None:
        super().__init__(stack_name, f"Stack {stack_name} failed: {reason}")
        self.reason = reason


class StackTimeout(StackError):
    """The poll budget ran out before the stack reached a terminal state."""

    def __init__(self, stack_name: str, attempts: int) -> None:
        super().__init__(
            stack_name,
            f"Timeout waiting for stack {stack_name} after {attempts} polls",
        )
        self.attempts = attempts


class StackNoChanges(StackError):
    """The update call reported there was nothing to change.

    Not a failure: callers normalize it to ``ChangeResult.UNCHANGED``.
    """

    def __init__(self, stack_name: str) -> None:
        super().__init__(stack_name, f"No updates are to be performed on {stack_name}")


class ProviderErrorKind(str, Enum):
    """Named kinds of stack-provider errors the reconciler reacts to."""

    STACK_MISSING = "stack_missing"
    NO_UPDATES = "no_updates"
    OTHER = "other"


def provider_error_message(exc: BaseException) -> str:
    """Best-effort human-readable message of a provider error."""
    if isinstance(exc, ClientError):
        return exc.response.get("Error", {}).get("Message", "") or str(exc)
    return str(exc)


def classify_provider_error(exc: BaseException) -> ProviderErrorKind:
    """Map a stack-provider exception onto a :class:`ProviderErrorKind`."""
    if isinstance(exc, StackNoChanges):
        return ProviderErrorKind.NO_UPDATES
    message = provider_error_message(exc)
    if STACK_MISSING_MARKER in message:
        return ProviderErrorKind.STACK_MISSING
    if NO_UPDATES_MARKER in message:
        return ProviderErrorKind.NO_UPDATES
    return ProviderErrorKind.OTHER


def is_failure_status(status: str | None) -> bool:
    """True if a stack or resource status denotes failure or rollback."""
    if not status:
        return False
    return any(marker in status for marker in FAILURE_STATUS_MARKERS)
