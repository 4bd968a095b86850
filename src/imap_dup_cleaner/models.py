"""Data models for IMAP Duplicate Cleaner."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class FingerprintMode(str, Enum):
    """How a message identity is derived from its envelope."""

    MESSAGE_ID = "message-id"  # Message-ID header when present, content hash otherwise
    CONTENT_HASH = "content-hash"  # always hash the envelope fields


class Verbosity(str, Enum):
    """Which classification lines the scanner prints."""

    QUIET = "quiet"
    DUPLICATES = "duplicates"
    ALL = "all"


@dataclass(frozen=True)
class Address:
    """One address from an IMAP ENVELOPE address list."""

    name: str = ""
    mailbox: str = ""
    host: str = ""

    @property
    def address(self) -> str:
        if not self.mailbox:
            return ""
        if not self.host:
            return self.mailbox
        return f"{self.mailbox}@{self.host}"


@dataclass
class Envelope:
    """Header-derived summary of a message, as returned by FETCH ENVELOPE."""

    date: datetime | None = None
    raw_date: str = ""
    subject: str = ""
    from_: list[Address] = field(default_factory=list)
    sender: list[Address] = field(default_factory=list)
    reply_to: list[Address] = field(default_factory=list)
    to: list[Address] = field(default_factory=list)
    cc: list[Address] = field(default_factory=list)
    bcc: list[Address] = field(default_factory=list)
    in_reply_to: str = ""
    message_id: str = ""


@dataclass
class MessageRecord:
    """A single mailbox entry observed during a scan."""

    uid: int
    envelope: Envelope


@dataclass
class DuplicateMessage:
    """A message whose fingerprint was already seen earlier in the scan."""

    uid: int
    fingerprint: str
    subject: str
    original_uid: int  # UID of the first message with the same fingerprint


@dataclass
class ScanResult:
    """Result of a duplicate scan over one mailbox."""

    mailbox: str
    uid_validity: int | None = None
    mode: FingerprintMode = FingerprintMode.MESSAGE_ID
    total_messages: int = 0
    unique_messages: int = 0
    duplicates: list[DuplicateMessage] = field(default_factory=list)
    scan_date: str = field(default_factory=lambda: datetime.now().isoformat())

    @property
    def duplicate_uids(self) -> list[int]:
        return [d.uid for d in self.duplicates]
