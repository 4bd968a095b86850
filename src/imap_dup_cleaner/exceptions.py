"""Exceptions raised by IMAP Duplicate Cleaner."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import ScanResult


class DedupError(Exception):
    """Base exception for all mailbox deduplication failures."""


class ConnectionFailedError(DedupError):
    """The IMAP server could not be reached."""


class AuthenticationError(DedupError):
    """The IMAP server rejected the credentials."""


class SelectError(DedupError):
    """A mailbox could not be selected."""


class StreamError(DedupError):
    """Fetching message metadata failed part way through the mailbox.

    ``result`` holds the scan computed from every record delivered before
    the failure. It is incomplete and must not be acted upon as if it
    covered the whole mailbox.
    """

    def __init__(self, message: str, result: ScanResult | None = None) -> None:
        super().__init__(message)
        self.result = result


class MarkError(DedupError):
    """Adding the \\Deleted flag to a message failed."""

    def __init__(self, message: str, uid: int, marked: list[int] | None = None) -> None:
        super().__init__(message)
        self.uid = uid
        self.marked = marked or []


class PurgeError(DedupError):
    """EXPUNGE failed after every duplicate was marked."""


class ResponseParseError(DedupError):
    """A FETCH response from the server could not be parsed."""
