"""Tenacity polling wrapper driven by PollConfig."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from tenacity import (
    AsyncRetrying,
    retry_if_result,
    stop_after_attempt,
    wait_fixed,
)

from .config import PollConfig


def poll_until(config: PollConfig, *, done: Callable[[Any], bool]) -> AsyncRetrying:
    """Return a tenacity retryer that re-runs a check until *done* accepts its result.

    Exceptions raised by the check are never retried and propagate as-is.
    Running out of attempts raises :class:`tenacity.RetryError`.

    Usage::

        retryer = poll_until(config.poll, done=lambda s: s == "CREATE_COMPLETE")
        status = await retryer(check, stack_name)
    """
    return AsyncRetrying(
        stop=stop_after_attempt(config.max_attempts),
        wait=wait_fixed(config.interval_seconds),
        retry=retry_if_result(lambda result: not done(result)),
        reraise=True,
    )
