"""reCAPTCHA v3 token verification."""

from __future__ import annotations

import httpx
import structlog

from .secrets import RECAPTCHA_TEST_SECRET, SecretParameterCache

logger = structlog.get_logger()


def is_test_secret(secret: str) -> bool:
    return secret == RECAPTCHA_TEST_SECRET or "Test" in secret


class RecaptchaVerifier:
    """Check form tokens against Google's siteverify endpoint.

    Verification never raises: transport and decoding failures count as a
    rejected token.
    """

    def __init__(
        self,
        secrets: SecretParameterCache,
        *,
        verify_url: str,
        min_score: float = 0.5,
        timeout_seconds: float = 10.0,
    ) -> None:
        self._secrets = secrets
        self._verify_url = verify_url
        self._min_score = min_score
        self._timeout_seconds = timeout_seconds

    async def verify(self, token: str | None) -> bool:
        if not token:
            logger.warning("recaptcha_token_missing")
            return False

        secret = await self._secrets.get()
        try:
            async with httpx.AsyncClient(timeout=httpx.Timeout(self._timeout_seconds)) as client:
                response = await client.post(
                    self._verify_url,
                    data={"secret": secret, "response": token},
                )
            result = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("recaptcha_verification_error", error=str(exc))
            return False

        success = bool(result.get("success"))
        score = result.get("score")
        test_key = is_test_secret(secret)
        accepted = success and (test_key or (score is not None and score >= self._min_score))
        logger.info(
            "recaptcha_verified",
            success=success,
            score=score,
            test_key=test_key,
            accepted=accepted,
        )
        return accepted
