"""IMAP mailbox session - selection, envelope streaming, flagging and expunge."""

from __future__ import annotations

import imaplib
import logging
import re
from typing import Iterator, Protocol

from .constants import DELETED_FLAG, FETCH_BATCH_SIZE, FETCH_ITEMS, MAX_UID
from .exceptions import MarkError, PurgeError, ResponseParseError, SelectError, StreamError
from .imap_parser import parse_fetch_data
from .models import MessageRecord

logger = logging.getLogger(__name__)

# Large mailboxes produce very long UID SEARCH lines.
imaplib._MAXLINE = max(10_000_000, imaplib._MAXLINE)

_LIST_RE = re.compile(rb'\((?P<flags>.*?)\) (?P<delimiter>"[^"]*"|NIL) (?P<name>.*)')


class MailboxSession(Protocol):
    """The operations the duplicate scanner and remover need from a mailbox."""

    def select(self, mailbox: str, readonly: bool = False) -> int | None:
        ...

    def stream_metadata(self) -> Iterator[MessageRecord]:
        ...

    def mark_deleted(self, uid: int) -> None:
        ...

    def purge(self) -> None:
        ...


def check_response(resp: tuple[str, list], error: type[Exception] = StreamError) -> list:
    """Return the data of an imaplib response, raising ``error`` unless it is OK."""
    status, value = resp
    if status != "OK":
        raise error(f"Got response {status} {value!r} from server")
    return value


def quote_mailbox(name: str) -> str:
    """Quote a mailbox name for use as an IMAP astring."""
    if name.startswith('"') and name.endswith('"') and len(name) > 1:
        return name
    escaped = name.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _chunks(seq: list[int], size: int) -> Iterator[list[int]]:
    for i in range(0, len(seq), size):
        yield seq[i:i + size]


class ImapSession:
    """A logged-in imaplib connection exposing the MailboxSession operations."""

    def __init__(self, conn: imaplib.IMAP4, batch_size: int = FETCH_BATCH_SIZE) -> None:
        self.conn = conn
        self.batch_size = batch_size

    def select(self, mailbox: str, readonly: bool = False) -> int | None:
        """Select ``mailbox`` and return its UIDVALIDITY."""
        try:
            typ, data = self.conn.select(quote_mailbox(mailbox), readonly=readonly)
        except (imaplib.IMAP4.error, OSError) as e:
            raise SelectError(f"Cannot select mailbox {mailbox!r}: {e}") from e
        if typ != "OK":
            raise SelectError(f"Cannot select mailbox {mailbox!r}: {data!r}")

        _, validity = self.conn.response("UIDVALIDITY")
        uid_validity = None
        if validity and validity[0] is not None:
            uid_validity = int(validity[0])
        logger.debug(
            "Selected %s (%s messages, UIDVALIDITY %s, readonly=%s)",
            mailbox, data[0].decode() if data and data[0] else "?", uid_validity, readonly,
        )
        return uid_validity

    def search_uids(self) -> list[int]:
        """Return every UID in the selected mailbox, ascending."""
        data = check_response(self.conn.uid("SEARCH", "UID", f"1:{MAX_UID}"))
        if not data or not data[0]:
            return []
        return sorted(int(n) for n in data[0].split())

    def stream_metadata(self) -> Iterator[MessageRecord]:
        """Yield UID + ENVELOPE for every message, fetched in batches.

        Raises StreamError if the server or the connection fails part way.
        """
        try:
            uids = self.search_uids()
            logger.debug("Fetching envelopes for %d messages", len(uids))
            for chunk in _chunks(uids, self.batch_size):
                uid_set = ",".join(map(str, chunk))
                data = check_response(self.conn.uid("FETCH", uid_set, FETCH_ITEMS))
                yield from parse_fetch_data(data)
        except (imaplib.IMAP4.error, OSError, ResponseParseError) as e:
            raise StreamError(f"Fetching envelopes failed: {e}") from e

    def mark_deleted(self, uid: int) -> None:
        """Add the \\Deleted flag to a single message."""
        try:
            check_response(
                self.conn.uid("STORE", str(uid), "+FLAGS.SILENT", DELETED_FLAG),
                error=imaplib.IMAP4.error,
            )
        except (imaplib.IMAP4.error, OSError) as e:
            raise MarkError(f"Cannot mark message {uid} as deleted: {e}", uid=uid) from e

    def purge(self) -> None:
        """Permanently remove every message flagged \\Deleted in the mailbox."""
        try:
            check_response(self.conn.expunge(), error=imaplib.IMAP4.error)
        except (imaplib.IMAP4.error, OSError) as e:
            raise PurgeError(f"Expunge failed: {e}") from e

    def list_mailboxes(self) -> list[str]:
        """Return the names of all selectable mailboxes."""
        names = []
        for line in check_response(self.conn.list(), error=imaplib.IMAP4.error):
            if not isinstance(line, bytes):
                continue
            m = _LIST_RE.match(line)
            if m is None:
                logger.warning("Cannot parse LIST response %r", line)
                continue
            if b"\\noselect" in m.group("flags").lower():
                continue
            names.append(m.group("name").strip().strip(b'"').decode("utf-8", "replace"))
        return names

    def logout(self) -> None:
        try:
            self.conn.logout()
        except (imaplib.IMAP4.error, OSError) as e:
            logger.debug("Logout failed: %s", e)
