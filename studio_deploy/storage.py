"""S3 storage for stack templates and Lambda bundles.

All boto3 calls are wrapped with ``asyncio.to_thread()`` to avoid blocking.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import structlog
from botocore.exceptions import ClientError

from .credentials import AwsClients

logger = structlog.get_logger()

YAML_CONTENT_TYPE = "application/x-yaml"

# S3 rejects an explicit LocationConstraint for its default region.
_DEFAULT_S3_REGION = "us-east-1"
_MISSING_BUCKET_CODES = {"404", "NoSuchBucket", "NotFound"}


class ObjectStore:
    """Bucket and object operations pinned to a single region."""

    def __init__(self, clients: AwsClients, region: str) -> None:
        self._client = clients.client("s3", region)
        self.region = region

    # ------------------------------------------------------------------
    # Buckets
    # ------------------------------------------------------------------

    async def head_exists(self, bucket: str) -> bool:
        """True if *bucket* exists and is reachable with our credentials."""
        try:
            await asyncio.to_thread(self._client.head_bucket, Bucket=bucket)
        except ClientError as exc:
            code = str(exc.response.get("Error", {}).get("Code", ""))
            if code in _MISSING_BUCKET_CODES:
                return False
            raise
        return True

    async def create_bucket(self, bucket: str) -> None:
        kwargs: dict = {"Bucket": bucket}
        if self.region != _DEFAULT_S3_REGION:
            kwargs["CreateBucketConfiguration"] = {"LocationConstraint": self.region}
        try:
            await asyncio.to_thread(self._client.create_bucket, **kwargs)
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") != "BucketAlreadyOwnedByYou":
                raise
        logger.info("bucket_created", bucket=bucket, region=self.region)

    async def ensure_bucket(self, bucket: str) -> None:
        """Create *bucket* unless it already exists."""
        if await self.head_exists(bucket):
            logger.debug("bucket_exists", bucket=bucket, region=self.region)
            return
        await self.create_bucket(bucket)

    # ------------------------------------------------------------------
    # Objects
    # ------------------------------------------------------------------

    async def put_object(
        self,
        bucket: str,
        key: str,
        body: bytes | str,
        content_type: str,
        *,
        metadata: dict[str, str] | None = None,
    ) -> str:
        """Upload *body* to ``bucket/key``.  Returns the ``s3://`` URI."""
        kwargs: dict = {
            "Bucket": bucket,
            "Key": key,
            "Body": body.encode("utf-8") if isinstance(body, str) else body,
            "ContentType": content_type,
        }
        if metadata:
            kwargs["Metadata"] = metadata
        await asyncio.to_thread(self._client.put_object, **kwargs)
        uri = f"s3://{bucket}/{key}"
        logger.debug("object_uploaded", uri=uri)
        return uri

    async def upload_template(self, bucket: str, templates_dir: Path, local: str, key: str) -> str:
        """Upload one YAML template and return its HTTPS URL."""
        content = (templates_dir / local).read_text(encoding="utf-8")
        await self.put_object(bucket, key, content, YAML_CONTENT_TYPE)
        logger.info("template_uploaded", template=local, bucket=bucket)
        return self.template_url(bucket, key)

    async def upload_templates(
        self,
        bucket: str,
        templates_dir: Path,
        templates: tuple[tuple[str, str], ...],
    ) -> list[str]:
        """Upload every (local, key) pair.  Returns their HTTPS URLs."""
        urls: list[str] = []
        for local, key in templates:
            urls.append(await self.upload_template(bucket, templates_dir, local, key))
        return urls

    def template_url(self, bucket: str, key: str) -> str:
        """The URL CloudFormation reads a template from."""
        return f"https://{bucket}.s3.{self.region}.amazonaws.com/{key}"
