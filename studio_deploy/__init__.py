"""App Builder Studio deploy tooling: phased CloudFormation orchestration."""

from .config import DeployConfig
from .errors import (
    ConfigurationError,
    CredentialsError,
    DeploymentError,
    DomainWiringError,
    PackagingError,
    StackError,
    StackFailed,
    StackNoChanges,
    StackTimeout,
)
from .models import (
    ChangeResult,
    DeploymentRequest,
    StackDescriptor,
    StackOutputs,
    StackState,
)
from .orchestrator import DeploymentOrchestrator
from .reconciler import StackReconciler
from .smtp import SmtpCredential, derive_smtp_password

__all__ = [
    "ChangeResult",
    "ConfigurationError",
    "CredentialsError",
    "DeployConfig",
    "DeploymentError",
    "DeploymentOrchestrator",
    "DeploymentRequest",
    "DomainWiringError",
    "PackagingError",
    "SmtpCredential",
    "StackDescriptor",
    "StackError",
    "StackFailed",
    "StackNoChanges",
    "StackOutputs",
    "StackReconciler",
    "StackState",
    "StackTimeout",
    "derive_smtp_password",
]
