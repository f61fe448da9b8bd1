"""Shared test fixtures for the deploy tooling and mail Lambda test suites."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest
from botocore.exceptions import ClientError

from studio_common import AwsConfig, PollConfig
from studio_deploy.config import DeployConfig
from studio_deploy.packager import ArtifactPackager


def client_error(code: str, message: str, operation: str = "Operation") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": message}}, operation)


# ------------------------------------------------------------------
# Fake AWS services
# ------------------------------------------------------------------


class FakeCloudFormation:
    """In-memory CloudFormation that completes operations on the next poll.

    ``outputs`` maps stack name to the outputs reported once it exists.
    ``status_script`` maps stack name to a list of statuses returned by
    successive describes after a create/update, overriding completion.
    """

    def __init__(self) -> None:
        self.stacks: dict[str, dict[str, Any]] = {}
        self.outputs: dict[str, dict[str, str]] = {}
        self.status_script: dict[str, list[str]] = {}
        self.events: dict[str, list[dict]] = {}
        self.calls: list[tuple[str, str]] = []
        self.created: list[dict] = []
        self.updated: list[dict] = []

    def describe_stacks(self, StackName: str) -> dict:
        self.calls.append(("describe_stacks", StackName))
        stack = self.stacks.get(StackName)
        if stack is None:
            raise client_error(
                "ValidationError",
                f"Stack with id {StackName} does not exist",
                "DescribeStacks",
            )
        script = self.status_script.get(StackName)
        if script:
            stack["StackStatus"] = script.pop(0)
        elif stack["StackStatus"].endswith("_IN_PROGRESS"):
            stack["StackStatus"] = stack["StackStatus"].replace("_IN_PROGRESS", "_COMPLETE")
        outputs = self.outputs.get(StackName, {})
        return {
            "Stacks": [
                {
                    "StackName": StackName,
                    "StackStatus": stack["StackStatus"],
                    "Outputs": [
                        {"OutputKey": key, "OutputValue": value} for key, value in outputs.items()
                    ],
                }
            ]
        }

    def create_stack(self, **kwargs: Any) -> dict:
        self.calls.append(("create_stack", kwargs["StackName"]))
        self.created.append(kwargs)
        self.stacks[kwargs["StackName"]] = {
            "StackStatus": "CREATE_IN_PROGRESS",
            "TemplateURL": kwargs["TemplateURL"],
            "Parameters": kwargs["Parameters"],
        }
        return {"StackId": f"arn:aws:cloudformation:stack/{kwargs['StackName']}"}

    def update_stack(self, **kwargs: Any) -> dict:
        name = kwargs["StackName"]
        self.calls.append(("update_stack", name))
        stack = self.stacks[name]
        if (
            stack["TemplateURL"] == kwargs["TemplateURL"]
            and stack["Parameters"] == kwargs["Parameters"]
        ):
            raise client_error(
                "ValidationError",
                "No updates are to be performed.",
                "UpdateStack",
            )
        self.updated.append(kwargs)
        stack.update(
            StackStatus="UPDATE_IN_PROGRESS",
            TemplateURL=kwargs["TemplateURL"],
            Parameters=kwargs["Parameters"],
        )
        return {"StackId": f"arn:aws:cloudformation:stack/{name}"}

    def describe_stack_events(self, StackName: str) -> dict:
        self.calls.append(("describe_stack_events", StackName))
        return {"StackEvents": self.events.get(StackName, [])}

    def mutating_calls(self) -> list[tuple[str, str]]:
        return [call for call in self.calls if call[0] in ("create_stack", "update_stack")]


class FakeS3:
    def __init__(self) -> None:
        self.buckets: set[str] = set()
        self.objects: dict[tuple[str, str], dict[str, Any]] = {}
        self.created: list[dict] = []

    def head_bucket(self, Bucket: str) -> dict:
        if Bucket not in self.buckets:
            raise client_error("404", "Not Found", "HeadBucket")
        return {}

    def create_bucket(self, **kwargs: Any) -> dict:
        self.created.append(kwargs)
        self.buckets.add(kwargs["Bucket"])
        return {}

    def put_object(self, **kwargs: Any) -> dict:
        self.objects[(kwargs["Bucket"], kwargs["Key"])] = kwargs
        return {"ETag": '"etag"'}


class FakeCloudFront:
    def __init__(self, config: dict | None = None, etag: str = "E1") -> None:
        self.config = config if config is not None else {"CallerReference": "ref", "Comment": "site"}
        self.etag = etag
        self.updates: list[dict] = []

    def get_distribution_config(self, Id: str) -> dict:
        return {"DistributionConfig": self.config, "ETag": self.etag}

    def update_distribution(self, **kwargs: Any) -> dict:
        self.updates.append(kwargs)
        return {"ETag": "E2"}


class FakeSes:
    def __init__(self) -> None:
        self.active_rule_sets: list[str] = []

    def set_active_receipt_rule_set(self, RuleSetName: str) -> dict:
        self.active_rule_sets.append(RuleSetName)
        return {}


class FakeClients:
    """Stand-in for AwsClients: one fake per (service, region)."""

    def __init__(self) -> None:
        self._clients: dict[tuple[str, str], Any] = {}
        self._factories = {
            "cloudformation": FakeCloudFormation,
            "s3": FakeS3,
            "cloudfront": FakeCloudFront,
            "ses": FakeSes,
        }

    def client(self, service: str, region: str) -> Any:
        key = (service, region)
        if key not in self._clients:
            self._clients[key] = self._factories[service]()
        return self._clients[key]


class FakeResolver:
    def __init__(self, clients: FakeClients) -> None:
        self.clients = clients
        self.regions: list[str] = []

    async def resolve(self, region: str) -> FakeClients:
        self.regions.append(region)
        return self.clients


class FakePackager(ArtifactPackager):
    """Records compile calls instead of zipping anything."""

    def __init__(self, store: Any, *, bucket: str, source_dir: Path, **settings: Any) -> None:
        self.bucket = bucket
        self.source_dir = source_dir
        self.settings = settings
        self.compiled: list[str] = []

    async def compile(self, name: str) -> str:
        self.compiled.append(name)
        return f"s3://{self.bucket}/lambdas/{name}.zip"

    async def compile_all(self) -> dict[str, str]:
        return {name: await self.compile(name) for name in ("contactForm", "emailForwarder")}


@pytest.fixture
def fake_clients() -> FakeClients:
    return FakeClients()


@pytest.fixture
def poll_config() -> PollConfig:
    return PollConfig(interval_seconds=0, max_attempts=5)


@pytest.fixture
def templates_dir(tmp_path: Path) -> Path:
    root = tmp_path / "deploy"
    for relative in (
        "cfn-template.yaml",
        "resources/S3/s3.yaml",
        "resources/Lambda/lambda.yaml",
        "resources/CloudFront/cloudfront.yaml",
        "resources/DNS/dns.yaml",
        "resources/Email/email.yaml",
    ):
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(f"# {relative}\nResources: {{}}\n", encoding="utf-8")
    return root


@pytest.fixture
def deploy_config(templates_dir: Path, tmp_path: Path, poll_config: PollConfig) -> DeployConfig:
    return DeployConfig(
        templates_dir=templates_dir,
        lambda_dependencies_dir=tmp_path / "lambda-deps",
        forward_to_email="owner@example.net",
        poll=poll_config,
        aws=AwsConfig(),
    )


@pytest.fixture
def packagers() -> list[FakePackager]:
    return []


@pytest.fixture
def packager_factory(packagers: list[FakePackager]):
    def factory(*args: Any, **kwargs: Any) -> FakePackager:
        packager = FakePackager(*args, **kwargs)
        packagers.append(packager)
        return packager

    return factory


# ------------------------------------------------------------------
# Sample SES events and raw messages
# ------------------------------------------------------------------


def _build_raw_email(
    *,
    from_addr: str = "Alice <alice@example.org>",
    to_addr: str = "hello@appbuilderstudio.com",
    subject: str = "Project enquiry",
    body: str = "Hi there,\r\nFrom: this line is body text\r\n",
    return_path: str | None = "<alice@example.org>",
) -> bytes:
    """Build a minimal raw RFC 822 message with CRLF line endings."""
    lines = []
    if return_path is not None:
        lines.append(f"Return-Path: {return_path}")
    lines += [
        f"From: {from_addr}",
        f"To: {to_addr}",
        f"Subject: {subject}",
        "Message-ID: <msg-001@example.org>",
        "Content-Type: text/plain; charset=utf-8",
    ]
    return ("\r\n".join(lines) + "\r\n\r\n" + body).encode("utf-8")


def _build_ses_event(
    *,
    message_ids: tuple[str, ...] = ("msg-001",),
    from_addr: str = "Alice <alice@example.org>",
    recipients: tuple[str, ...] = ("hello@appbuilderstudio.com",),
    subject: str | None = "Project enquiry",
) -> dict:
    """Build an SES receipt-rule Lambda event."""
    common_headers: dict[str, Any] = {"from": [from_addr] if from_addr else [], "to": list(recipients)}
    if subject is not None:
        common_headers["subject"] = subject
    return {
        "Records": [
            {
                "eventSource": "aws:ses",
                "ses": {
                    "mail": {"messageId": message_id, "commonHeaders": common_headers},
                    "receipt": {"recipients": list(recipients)},
                },
            }
            for message_id in message_ids
        ]
    }
