"""Shared fixtures for tests."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from imap_dup_cleaner.exceptions import MarkError, PurgeError, SelectError, StreamError
from imap_dup_cleaner.models import Address, Envelope, MessageRecord


def _envelope(
    subject: str = "Quarterly report",
    message_id: str = "",
    sender: str = "alice@example.com",
    to: tuple[str, ...] = ("bob@example.com",),
    day: int = 1,
) -> Envelope:
    def addr(value: str) -> Address:
        mailbox, _, host = value.partition("@")
        return Address(name="", mailbox=mailbox, host=host)

    return Envelope(
        date=datetime(2024, 1, day, 9, 30, tzinfo=timezone.utc),
        raw_date=f"Mon, {day} Jan 2024 09:30:00 +0000",
        subject=subject,
        from_=[addr(sender)],
        sender=[addr(sender)],
        reply_to=[addr(sender)],
        to=[addr(a) for a in to],
        message_id=message_id,
    )


class FakeSession:
    """In-memory mailbox implementing the MailboxSession operations."""

    def __init__(
        self,
        records: list[MessageRecord],
        uid_validity: int = 1700000000,
        fail_after: int | None = None,
        fail_mark: set[int] | None = None,
        fail_purge: bool = False,
        missing_mailbox: bool = False,
    ) -> None:
        self.records = list(records)
        self.uid_validity = uid_validity
        self.fail_after = fail_after
        self.fail_mark = fail_mark or set()
        self.fail_purge = fail_purge
        self.missing_mailbox = missing_mailbox
        self.flagged: set[int] = set()
        self.selected: list[tuple[str, bool]] = []
        self.mark_calls: list[int] = []
        self.purge_calls = 0

    def select(self, mailbox: str, readonly: bool = False) -> int:
        if self.missing_mailbox:
            raise SelectError(f"Cannot select mailbox {mailbox!r}")
        self.selected.append((mailbox, readonly))
        return self.uid_validity

    def stream_metadata(self):
        for i, record in enumerate(self.records):
            if self.fail_after is not None and i >= self.fail_after:
                raise StreamError("connection reset by peer")
            yield record
        if self.fail_after is not None and self.fail_after >= len(self.records):
            raise StreamError("connection reset by peer")

    def mark_deleted(self, uid: int) -> None:
        self.mark_calls.append(uid)
        if uid in self.fail_mark:
            raise MarkError(f"Cannot mark message {uid} as deleted", uid=uid)
        self.flagged.add(uid)

    def purge(self) -> None:
        self.purge_calls += 1
        if self.fail_purge:
            raise PurgeError("Expunge failed")
        self.records = [r for r in self.records if r.uid not in self.flagged]
        self.flagged.clear()

    def list_mailboxes(self) -> list[str]:
        return ["INBOX", "Archive"]

    def logout(self) -> None:
        pass


@pytest.fixture
def make_envelope():
    """Builder for envelopes that differ only in the fields a test cares about."""
    return _envelope


@pytest.fixture
def make_session():
    return FakeSession


@pytest.fixture
def make_records():
    """Records with Message-ID ``<uid@x>`` for each given UID."""
    def build(*uids: int) -> list[MessageRecord]:
        return [MessageRecord(uid=u, envelope=_envelope(message_id=f"<{u}@x>")) for u in uids]
    return build


@pytest.fixture
def four_message_ids() -> list[MessageRecord]:
    """Messages 2 and 4 share a Message-ID."""
    return [
        MessageRecord(uid=1, envelope=_envelope("Hello", "<a@example.com>", day=1)),
        MessageRecord(uid=2, envelope=_envelope("Invoice", "<b@example.com>", day=2)),
        MessageRecord(uid=3, envelope=_envelope("Lunch?", "<c@example.com>", day=3)),
        MessageRecord(uid=4, envelope=_envelope("Invoice", "<b@example.com>", day=2)),
    ]


@pytest.fixture
def four_message_contents() -> list[MessageRecord]:
    """No Message-IDs; messages 2 and 4 have identical envelopes."""
    return [
        MessageRecord(uid=1, envelope=_envelope("Hello", day=1)),
        MessageRecord(uid=2, envelope=_envelope("Invoice", day=2)),
        MessageRecord(uid=3, envelope=_envelope("Lunch?", day=3)),
        MessageRecord(uid=4, envelope=_envelope("Invoice", day=2)),
    ]


@pytest.fixture
def fake_session(four_message_ids) -> FakeSession:
    return FakeSession(four_message_ids)
