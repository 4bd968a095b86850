"""Message fingerprinting - the identity used to detect duplicates."""

from __future__ import annotations

import base64
import hashlib

from .models import Address, Envelope, FingerprintMode


def _timestamp_text(envelope: Envelope) -> str:
    if envelope.date is not None:
        return envelope.date.isoformat()
    return envelope.raw_date


def _address_lines(tag: str, addresses: list[Address]) -> list[str]:
    return [f"{tag}:{addr.address}" for addr in addresses]


def content_text(envelope: Envelope) -> str:
    """Render the envelope fields that take part in the content hash.

    One ``tag:value`` line per field, in a fixed order. Address lists keep
    their original order and contribute one line per address.
    """
    lines = [
        f"date:{_timestamp_text(envelope)}",
        f"subject:{envelope.subject}",
    ]
    lines += _address_lines("from", envelope.from_)
    lines += _address_lines("sender", envelope.sender)
    lines += _address_lines("reply-to", envelope.reply_to)
    lines += _address_lines("to", envelope.to)
    lines += _address_lines("cc", envelope.cc)
    lines += _address_lines("bcc", envelope.bcc)
    lines.append(f"in-reply-to:{envelope.in_reply_to}")
    return "\n".join(lines)


def content_hash(envelope: Envelope) -> str:
    """Return the base64 encoded SHA-1 digest of the envelope content."""
    digest = hashlib.sha1(content_text(envelope).encode("utf-8")).digest()
    return base64.b64encode(digest).decode("ascii")


def fingerprint(envelope: Envelope, mode: FingerprintMode = FingerprintMode.MESSAGE_ID) -> str:
    """Compute the identity of a message from its envelope.

    In MESSAGE_ID mode a non-empty Message-ID is used verbatim. Otherwise,
    or in CONTENT_HASH mode, the envelope content is hashed.
    """
    if mode == FingerprintMode.MESSAGE_ID and envelope.message_id:
        return envelope.message_id
    return content_hash(envelope)
