"""Header rewrite for forwarding received mail through SES.

SES only sends from verified identities, and the receiving mailbox would
fail SPF/DMARC for the original author's domain anyway.  So the message is
re-sent *from* the alias that received it, with the real author kept in
``Reply-To`` and ``X-Original-From``.

Only the top-level header block is touched, by line-anchored substitution
on the raw bytes.  The body is never decoded or re-encoded.  Each header
is expected at most once and unfolded; anything else is undefined input.
"""

from __future__ import annotations

import re

from .models import ForwardedMessage, MailEnvelope

BOUNCE_PLACEHOLDER = "bounce notification"

_HEADER_END = re.compile(rb"\r?\n(?=\r?\n)")
_RETURN_PATH = re.compile(rb"^Return-Path:[^\r\n]*(?:\r?\n|\Z)", re.MULTILINE | re.IGNORECASE)
_FROM = re.compile(rb"^From: [^\r\n]+", re.MULTILINE | re.IGNORECASE)
_TO = re.compile(rb"^To: [^\r\n]+", re.MULTILINE | re.IGNORECASE)


def is_bounce(original_from: str) -> bool:
    """True for bounces and mailer notifications (no sensible reply target)."""
    return (
        not original_from
        or "MAILER-DAEMON" in original_from
        or "postmaster@" in original_from
    )


def choose_from_address(recipients: tuple[str, ...] | list[str], fallback: str) -> str:
    """Reply as the alias that received the mail, e.g. ``hello@`` or ``webmaster@``."""
    return recipients[0] if recipients else fallback


def split_headers(raw: bytes) -> tuple[bytes, bytes]:
    """Split into (header block with its final line break, blank line + body)."""
    match = _HEADER_END.search(raw)
    if match is None:
        return raw, b""
    return raw[: match.end()], raw[match.end() :]


def _sub_once(pattern: re.Pattern[bytes], replacement: bytes, data: bytes) -> bytes:
    # Callable replacement: addresses must not be parsed as backreferences.
    return pattern.sub(lambda _: replacement, data, count=1)


def rewrite_headers(
    headers: bytes,
    *,
    from_address: str,
    original_from: str,
    forward_to: str,
    bounce: bool,
) -> bytes:
    headers = _sub_once(_RETURN_PATH, b"", headers)

    if bounce:
        from_lines = (
            f"From: {from_address}\r\n"
            f"X-Original-From: {original_from or BOUNCE_PLACEHOLDER}"
        )
    else:
        from_lines = (
            f"From: {from_address}\r\n"
            f"Reply-To: {original_from}\r\n"
            f"X-Original-From: {original_from}"
        )
    headers = _sub_once(_FROM, from_lines.encode("utf-8"), headers)

    return _sub_once(_TO, f"To: {forward_to}".encode("utf-8"), headers)


def rewrite_message(
    raw: bytes,
    envelope: MailEnvelope,
    forward_to: str,
    fallback_from: str,
) -> ForwardedMessage:
    """Produce the forwardable copy of *raw*.  Pure: *raw* is not modified."""
    bounce = is_bounce(envelope.original_from)
    from_address = choose_from_address(envelope.recipients, fallback_from)

    headers, rest = split_headers(raw)
    rewritten = rewrite_headers(
        headers,
        from_address=from_address,
        original_from=envelope.original_from,
        forward_to=forward_to,
        bounce=bounce,
    )
    return ForwardedMessage(
        raw=rewritten + rest,
        source=from_address,
        destinations=(forward_to,),
        is_bounce=bounce,
    )
