"""Parsing of imaplib FETCH responses into MessageRecord objects.

imaplib hands back FETCH data as a flat list. A response without string
literals is a single bytes line; a response containing literals is split
into one ``(prefix, literal)`` tuple per literal, followed by the bytes
tail of the line. For example::

    [b'1 (UID 7 ENVELOPE ("Mon, 1 Jan 2024 10:00:00 +0000" {11}', b'Hello World'),
     b' NIL NIL NIL NIL NIL NIL NIL "<abc@example.com>"))']
"""

from __future__ import annotations

import logging
import re
from email.errors import HeaderParseError
from email.header import decode_header, make_header
from email.utils import parsedate_to_datetime
from typing import Iterable, Iterator, NamedTuple

from .exceptions import ResponseParseError
from .models import Address, Envelope, MessageRecord

logger = logging.getLogger(__name__)

_LITERAL_RE = re.compile(rb"\{(\d+)\}$")


class _Token(NamedTuple):
    kind: str  # "(", ")", "atom" or "string"
    value: bytes


def _tokenize_text(text: bytes) -> Iterator[_Token]:
    i, n = 0, len(text)
    while i < n:
        ch = text[i:i + 1]
        if ch in (b" ", b"\r", b"\n", b"\t"):
            i += 1
        elif ch in (b"(", b")"):
            yield _Token(ch.decode(), ch)
            i += 1
        elif ch == b'"':
            i += 1
            buf = bytearray()
            while i < n and text[i:i + 1] != b'"':
                if text[i:i + 1] == b"\\" and i + 1 < n:
                    i += 1
                buf += text[i:i + 1]
                i += 1
            if i >= n:
                raise ResponseParseError(f"Unterminated quoted string in {text!r}")
            i += 1
            yield _Token("string", bytes(buf))
        else:
            start = i
            while i < n and text[i:i + 1] not in (b" ", b"(", b")", b'"', b"\r", b"\n", b"\t"):
                i += 1
            yield _Token("atom", text[start:i])


def _tokenize(pieces: Iterable[bytes | tuple]) -> Iterator[_Token]:
    for piece in pieces:
        if isinstance(piece, tuple):
            head, literal = piece[0], piece[1]
            m = _LITERAL_RE.search(head)
            if m is None:
                raise ResponseParseError(f"Expected a literal marker at the end of {head!r}")
            yield from _tokenize_text(head[: m.start()])
            yield _Token("string", literal)
        else:
            yield from _tokenize_text(piece)


def parse_response(pieces: Iterable[bytes | tuple]) -> list:
    """Parse one untagged response into nested lists.

    Strings and atoms become bytes, NIL becomes None and parenthesized
    lists become Python lists.
    """
    stack: list[list] = [[]]
    for token in _tokenize(pieces):
        if token.kind == "(":
            child: list = []
            stack[-1].append(child)
            stack.append(child)
        elif token.kind == ")":
            if len(stack) == 1:
                raise ResponseParseError("Unbalanced ')' in FETCH response")
            stack.pop()
        elif token.kind == "atom" and token.value.upper() == b"NIL":
            stack[-1].append(None)
        else:
            stack[-1].append(token.value)
    if len(stack) != 1:
        raise ResponseParseError("Unbalanced '(' in FETCH response")
    return stack[0]


def group_responses(data: Iterable[bytes | tuple | None]) -> Iterator[list[bytes | tuple]]:
    """Split imaplib FETCH data into the pieces of each untagged response."""
    pieces: list[bytes | tuple] = []
    for item in data:
        if item is None:
            continue
        pieces.append(item)
        if isinstance(item, bytes):
            yield pieces
            pieces = []
    if pieces:
        yield pieces


def _text(value: bytes | None) -> str:
    if value is None:
        return ""
    if isinstance(value, list):
        raise ResponseParseError(f"Expected a string, got a list: {value!r}")
    return value.decode("utf-8", "replace")


def _decode_words(value: bytes | None) -> str:
    """Decode RFC 2047 encoded words, falling back to the raw text."""
    text = _text(value)
    if "=?" not in text:
        return text
    try:
        return str(make_header(decode_header(text)))
    except (HeaderParseError, LookupError, UnicodeDecodeError):
        return text


def _parse_addresses(value) -> list[Address]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ResponseParseError(f"Expected an address list, got {value!r}")
    addresses = []
    for item in value:
        if not isinstance(item, list) or len(item) < 4:
            raise ResponseParseError(f"Malformed address {item!r}")
        addresses.append(
            Address(
                name=_decode_words(item[0]),
                mailbox=_text(item[2]),
                host=_text(item[3]),
            )
        )
    return addresses


def parse_envelope(fields) -> Envelope:
    """Build an Envelope from the parsed ENVELOPE list (RFC 3501, 7.4.2)."""
    if not isinstance(fields, list) or len(fields) != 10:
        raise ResponseParseError(f"Malformed ENVELOPE {fields!r}")

    raw_date = _text(fields[0])
    date = None
    if raw_date:
        try:
            date = parsedate_to_datetime(raw_date)
        except (TypeError, ValueError, IndexError):
            logger.debug("Unparseable envelope date %r", raw_date)

    return Envelope(
        date=date,
        raw_date=raw_date,
        subject=_decode_words(fields[1]),
        from_=_parse_addresses(fields[2]),
        sender=_parse_addresses(fields[3]),
        reply_to=_parse_addresses(fields[4]),
        to=_parse_addresses(fields[5]),
        cc=_parse_addresses(fields[6]),
        bcc=_parse_addresses(fields[7]),
        in_reply_to=_text(fields[8]),
        message_id=_text(fields[9]),
    )


def _fetch_attributes(parsed: list) -> dict[str, object]:
    # parsed is [b"<seq>", [b"UID", b"7", b"ENVELOPE", [...]]]
    attrs: dict[str, object] = {}
    for item in parsed:
        if isinstance(item, list):
            for key, value in zip(item[0::2], item[1::2]):
                if isinstance(key, bytes):
                    attrs[key.decode("ascii", "replace").upper()] = value
            break
    return attrs


def parse_fetch_data(data: Iterable[bytes | tuple | None]) -> Iterator[MessageRecord]:
    """Yield a MessageRecord for every UID + ENVELOPE FETCH response in data.

    Unsolicited FETCH responses (e.g. flag updates) carry no envelope and
    are skipped.
    """
    for pieces in group_responses(data):
        attrs = _fetch_attributes(parse_response(pieces))
        uid = attrs.get("UID")
        envelope = attrs.get("ENVELOPE")
        if uid is None or envelope is None:
            logger.debug("Skipping FETCH response without UID/ENVELOPE: %r", pieces)
            continue
        try:
            uid_value = int(uid)
        except (TypeError, ValueError) as e:
            raise ResponseParseError(f"Invalid UID {uid!r}") from e
        yield MessageRecord(uid=uid_value, envelope=parse_envelope(envelope))
