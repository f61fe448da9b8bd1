"""Shared plumbing for the deploy tooling and the mail Lambdas.

Public API re-exported here for convenience::

    from studio_common import AwsConfig, PollConfig, setup_logging
"""

from .config import AwsConfig, PollConfig
from .logging import setup_logging
from .retry import poll_until

__all__ = [
    "AwsConfig",
    "PollConfig",
    "poll_until",
    "setup_logging",
]
