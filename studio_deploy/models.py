"""Data models for deployment requests, stacks and their outputs."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, Field

from .errors import is_failure_status


class Stage(str, Enum):
    """Well-known deployment stages."""

    DEV = "dev"
    STAGING = "staging"
    PROD = "prod"


class DeploymentRequest(BaseModel):
    """Parameters of a single orchestrator run, as given on the command line.

    The domain/zone pairing invariant is checked by the orchestrator
    (not here) so that a bad pairing surfaces as a ``ConfigurationError``
    rather than a pydantic ``ValidationError``.
    """

    stage: str = Field(default=Stage.DEV.value, description="Deployment stage (dev, prod, ...)")
    region: str = Field(default="ap-southeast-2", description="Region of the main stack")
    domain_name: str | None = Field(default=None, description="Custom apex domain, e.g. example.com")
    hosted_zone_id: str | None = Field(default=None, description="Route53 hosted zone of the domain")
    debug: bool = Field(default=False, description="Verbose logging")

    @property
    def has_custom_domain(self) -> bool:
        return bool(self.domain_name) and bool(self.hosted_zone_id)

    def is_production(self, production_stage: str = Stage.PROD.value) -> bool:
        return self.stage == production_stage

    def custom_domain_enabled(self, production_stage: str = Stage.PROD.value) -> bool:
        """Custom-domain and email phases only run for the production stage."""
        return self.has_custom_domain and self.is_production(production_stage)


class StackState(str, Enum):
    """Coarse lifecycle state of a remote stack."""

    ABSENT = "ABSENT"
    CREATE_IN_PROGRESS = "CREATE_IN_PROGRESS"
    CREATE_COMPLETE = "CREATE_COMPLETE"
    UPDATE_IN_PROGRESS = "UPDATE_IN_PROGRESS"
    UPDATE_COMPLETE = "UPDATE_COMPLETE"
    NO_CHANGES = "NO_CHANGES"
    FAILED = "FAILED"

    @classmethod
    def from_status(cls, status: str | None) -> StackState:
        """Map a raw CloudFormation ``StackStatus`` onto a StackState."""
        if not status:
            return cls.ABSENT
        if is_failure_status(status):
            return cls.FAILED
        if status in cls.__members__:
            return cls(status)
        if status.startswith("UPDATE_"):
            return cls.UPDATE_IN_PROGRESS
        return cls.CREATE_IN_PROGRESS


class ChangeResult(str, Enum):
    """Normalized outcome of a create/update call."""

    CHANGED = "changed"
    UNCHANGED = "unchanged"
    FAILED = "failed"


class StackOutputs(dict[str, str]):
    """Output key/value pairs of a completed stack.

    Missing keys are legal: non-prod stacks may not provision everything.
    """

    @classmethod
    def from_describe(cls, stack: dict | None) -> StackOutputs:
        """Build from one entry of a ``describe_stacks`` response."""
        outputs = (stack or {}).get("Outputs") or []
        return cls(
            {
                item["OutputKey"]: item.get("OutputValue") or ""
                for item in outputs
                if item.get("OutputKey")
            }
        )

    def value(self, key: str) -> str:
        """Return the output value, or ``""`` if the key is absent."""
        return self.get(key) or ""


@dataclass(frozen=True)
class StackDescriptor:
    """Everything needed to converge one stack."""

    name: str
    region: str
    template_url: str
    parameters: tuple[tuple[str, str], ...] = ()
    capabilities: tuple[str, ...] = ("CAPABILITY_NAMED_IAM",)
    disable_rollback: bool = False

    def to_cloudformation(self) -> list[dict[str, str]]:
        """Render parameters in the shape the CloudFormation API expects."""
        return [
            {"ParameterKey": key, "ParameterValue": value}
            for key, value in self.parameters
        ]


@dataclass(frozen=True)
class Reconciliation:
    """Result of converging one stack, with failures folded in."""

    stack_name: str
    result: ChangeResult
    outputs: StackOutputs
    state: StackState = StackState.ABSENT
    error: Exception | None = None


def stack_name(*parts: str) -> str:
    """Join name parts into a deterministic stack/bucket name."""
    return "-".join(part for part in parts if part)
