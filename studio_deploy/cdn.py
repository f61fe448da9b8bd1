"""Bind a CloudFront distribution to a custom domain and ACM certificate."""

from __future__ import annotations

import asyncio
import copy
from typing import Any

import structlog
from botocore.exceptions import ClientError

from .errors import DomainWiringError

logger = structlog.get_logger()

SSL_SUPPORT_METHOD = "sni-only"
MINIMUM_PROTOCOL_VERSION = "TLSv1.2_2021"


def with_custom_domain(config: dict, domain_name: str, certificate_arn: str) -> dict:
    """Return a copy of *config* serving ``domain`` and ``www.domain`` over TLS.

    Only the alias list and the viewer-certificate binding change; every
    other field of the distribution config is carried over untouched.
    """
    updated = copy.deepcopy(config)
    updated["Aliases"] = {
        "Quantity": 2,
        "Items": [domain_name, f"www.{domain_name}"],
    }
    updated["ViewerCertificate"] = {
        "ACMCertificateArn": certificate_arn,
        "SSLSupportMethod": SSL_SUPPORT_METHOD,
        "MinimumProtocolVersion": MINIMUM_PROTOCOL_VERSION,
        "Certificate": certificate_arn,
        "CertificateSource": "acm",
    }
    return updated


class DistributionDomainBinder:
    """Read-modify-write of a distribution config guarded by its ETag."""

    def __init__(self, client: Any) -> None:
        self._client = client

    async def get_config(self, distribution_id: str) -> tuple[dict, str]:
        """Return ``(DistributionConfig, ETag)``."""
        response = await asyncio.to_thread(
            self._client.get_distribution_config, Id=distribution_id
        )
        config = response.get("DistributionConfig")
        etag = response.get("ETag")
        if not config or not etag:
            raise DomainWiringError(
                f"Failed to get CloudFront distribution config for {distribution_id}"
            )
        return config, etag

    async def bind(self, distribution_id: str, domain_name: str, certificate_arn: str) -> None:
        """Point the distribution at *domain_name* using *certificate_arn*.

        The update is submitted with ``IfMatch`` so a concurrent change made
        since the config was read is rejected instead of overwritten.
        """
        logger.info("distribution_update_started", distribution=distribution_id, domain=domain_name)
        config, etag = await self.get_config(distribution_id)
        try:
            await asyncio.to_thread(
                self._client.update_distribution,
                Id=distribution_id,
                DistributionConfig=with_custom_domain(config, domain_name, certificate_arn),
                IfMatch=etag,
            )
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code", "")
            if code == "PreconditionFailed":
                raise DomainWiringError(
                    f"Distribution {distribution_id} was modified concurrently; re-run the deployment"
                ) from exc
            raise
        logger.info("distribution_updated", distribution=distribution_id, domain=domain_name)
