"""Errors raised by the mail Lambdas."""

from __future__ import annotations


class MailError(Exception):
    """Base class for mail pipeline errors."""


class ConfigurationError(MailError):
    """Required Lambda environment is missing."""


class EmptyMessageError(MailError):
    """The stored raw message had no content."""
