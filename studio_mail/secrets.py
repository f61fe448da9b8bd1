"""Process-lifetime cache for SSM SecureString parameters.

A warm Lambda container reuses the module between invocations, but every
invocation runs its own event loop.  The cache therefore guards the first
fetch with a thread lock rather than an event-loop-bound primitive.
"""

from __future__ import annotations

import asyncio
import functools
import threading
from typing import Any

import boto3
import structlog
from botocore.exceptions import BotoCoreError, ClientError

logger = structlog.get_logger()

# Google's public reCAPTCHA test key: every token verifies successfully.
RECAPTCHA_TEST_SECRET = "6LeIxAcTAAAAAGG-vFI1TnRWxMZNFuojJ4WifJWe"


class SecretParameterCache:
    """Fetch one decrypted parameter once; fall back to *fallback* on failure.

    The fallback is returned but never cached, so a later call retries SSM.
    """

    def __init__(
        self,
        parameter_name: str,
        region: str,
        *,
        fallback: str = RECAPTCHA_TEST_SECRET,
        client: Any = None,
    ) -> None:
        self._parameter_name = parameter_name
        self._region = region
        self._fallback = fallback
        self._client = client
        self._value: str | None = None
        self._lock = threading.Lock()

    @property
    def cached(self) -> bool:
        return self._value is not None

    async def get(self) -> str:
        if self._value is not None:
            return self._value
        return await asyncio.to_thread(self._get_sync)

    def _get_sync(self) -> str:
        with self._lock:
            if self._value is not None:
                return self._value
            try:
                if self._client is None:
                    self._client = boto3.client("ssm", region_name=self._region)
                response = self._client.get_parameter(
                    Name=self._parameter_name,
                    WithDecryption=True,
                )
            except (BotoCoreError, ClientError) as exc:
                logger.warning(
                    "secret_parameter_unavailable",
                    parameter=self._parameter_name,
                    error=str(exc),
                )
                return self._fallback

            value = response.get("Parameter", {}).get("Value") or ""
            if not value:
                logger.warning("secret_parameter_empty", parameter=self._parameter_name)
                return self._fallback

            self._value = value
            logger.debug("secret_parameter_cached", parameter=self._parameter_name)
            return value


@functools.lru_cache(maxsize=None)
def secret_cache(parameter_name: str, region: str) -> SecretParameterCache:
    """The shared cache for *parameter_name* in *region*."""
    return SecretParameterCache(parameter_name, region)
