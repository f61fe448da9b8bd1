"""AWS credential resolution and per-region boto3 client factory."""

from __future__ import annotations

import asyncio
from typing import Any

import boto3
import structlog
from botocore.exceptions import BotoCoreError, ClientError

from studio_common import AwsConfig

from .errors import CredentialsError

logger = structlog.get_logger()


class AwsClients:
    """Lazily creates and caches one boto3 client per (service, region)."""

    def __init__(self, session: boto3.Session, config: AwsConfig) -> None:
        self._session = session
        self._config = config
        self._clients: dict[tuple[str, str], Any] = {}

    def client(self, service: str, region: str) -> Any:
        key = (service, region)
        if key not in self._clients:
            kwargs: dict = {"region_name": region}
            if self._config.endpoint_url:
                kwargs["endpoint_url"] = self._config.endpoint_url
            self._clients[key] = self._session.client(service, **kwargs)
            logger.debug("aws_client_created", service=service, region=region)
        return self._clients[key]


class CredentialResolver:
    """Resolve a boto3 session and prove it can authenticate.

    boto3 handles refreshing time-bounded credentials itself; this only
    checks that *some* valid identity is available before anything is
    deployed.
    """

    def __init__(self, config: AwsConfig) -> None:
        self._config = config

    async def resolve(self, region: str) -> AwsClients:
        """Return a client factory, or raise :class:`CredentialsError`."""
        try:
            session = boto3.Session(profile_name=self._config.profile, region_name=region)
            clients = AwsClients(session, self._config)
            identity = await asyncio.to_thread(clients.client("sts", region).get_caller_identity)
        except (BotoCoreError, ClientError) as exc:
            raise CredentialsError(f"AWS credentials are not usable: {exc}") from exc

        logger.info(
            "aws_credentials_resolved",
            account=identity.get("Account"),
            arn=identity.get("Arn"),
        )
        return clients
