"""Tests for the fingerprint module."""

import base64
import hashlib
from datetime import datetime, timezone

from imap_dup_cleaner.fingerprint import content_hash, content_text, fingerprint
from imap_dup_cleaner.models import Address, Envelope, FingerprintMode


def test_message_id_used_verbatim(make_envelope):
    env = make_envelope(message_id="<1234@mail.example.com>")
    assert fingerprint(env, FingerprintMode.MESSAGE_ID) == "<1234@mail.example.com>"


def test_empty_message_id_falls_back_to_hash(make_envelope):
    env = make_envelope(message_id="")
    assert fingerprint(env, FingerprintMode.MESSAGE_ID) == content_hash(env)


def test_content_hash_mode_ignores_message_id(make_envelope):
    a = make_envelope(message_id="<one@example.com>")
    b = make_envelope(message_id="<two@example.com>")
    assert fingerprint(a, FingerprintMode.CONTENT_HASH) == fingerprint(b, FingerprintMode.CONTENT_HASH)
    assert fingerprint(a, FingerprintMode.CONTENT_HASH) != "<one@example.com>"


def test_equal_envelopes_equal_fingerprints(make_envelope):
    a = make_envelope("Status", to=("bob@example.com", "carol@example.com"))
    b = make_envelope("Status", to=("bob@example.com", "carol@example.com"))
    assert fingerprint(a, FingerprintMode.CONTENT_HASH) == fingerprint(b, FingerprintMode.CONTENT_HASH)


def test_fingerprint_is_idempotent(make_envelope):
    env = make_envelope("Status")
    assert fingerprint(env, FingerprintMode.CONTENT_HASH) == fingerprint(env, FingerprintMode.CONTENT_HASH)
    assert fingerprint(env, FingerprintMode.MESSAGE_ID) == fingerprint(env, FingerprintMode.MESSAGE_ID)


def test_subject_changes_hash(make_envelope):
    a = make_envelope("Status")
    b = make_envelope("Status update")
    assert content_hash(a) != content_hash(b)


def test_address_order_matters(make_envelope):
    a = make_envelope(to=("bob@example.com", "carol@example.com"))
    b = make_envelope(to=("carol@example.com", "bob@example.com"))
    assert content_hash(a) != content_hash(b)


def test_address_role_matters():
    a = Envelope(subject="x", to=[Address(mailbox="bob", host="example.com")])
    b = Envelope(subject="x", cc=[Address(mailbox="bob", host="example.com")])
    assert content_hash(a) != content_hash(b)


def test_content_text_layout():
    env = Envelope(
        date=datetime(2024, 3, 5, 12, 0, tzinfo=timezone.utc),
        subject="Hi",
        from_=[Address(mailbox="alice", host="example.com")],
        to=[Address(mailbox="bob", host="example.com"), Address(mailbox="carol", host="example.com")],
        in_reply_to="<prev@example.com>",
    )
    assert content_text(env) == (
        "date:2024-03-05T12:00:00+00:00\n"
        "subject:Hi\n"
        "from:alice@example.com\n"
        "to:bob@example.com\n"
        "to:carol@example.com\n"
        "in-reply-to:<prev@example.com>"
    )


def test_content_hash_is_base64_sha1(make_envelope):
    env = make_envelope("Status")
    expected = base64.b64encode(hashlib.sha1(content_text(env).encode("utf-8")).digest()).decode()
    assert content_hash(env) == expected
    assert len(content_hash(env)) == 28


def test_unparsed_date_uses_raw_text():
    env = Envelope(raw_date="sometime last week")
    assert content_text(env).startswith("date:sometime last week\n")


def test_empty_envelope_still_fingerprinted():
    a = fingerprint(Envelope(), FingerprintMode.CONTENT_HASH)
    b = fingerprint(Envelope(), FingerprintMode.MESSAGE_ID)
    assert a
    assert a == b
