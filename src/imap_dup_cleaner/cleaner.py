"""Removal workflow - mark duplicates \\Deleted, then expunge the mailbox."""

from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Callable

from . import constants
from .exceptions import MarkError
from .imap_client import MailboxSession
from .models import ScanResult

logger = logging.getLogger(__name__)


def remove_duplicates(
    session: MailboxSession,
    mailbox: str,
    uids: list[int],
    callback: Callable[[int, int], None] | None = None,
) -> int:
    """Mark every UID in ``uids`` as deleted, in order, then expunge.

    Marks are issued one message at a time. The first failing mark raises
    MarkError and the expunge is skipped, leaving the messages marked so
    far flagged. Expunge removes every \\Deleted message in the mailbox,
    not only the ones marked here.

    Returns the number of messages marked.
    """
    uid_validity = session.select(mailbox, readonly=False)
    logger.info("Removing %d messages from %s (UIDVALIDITY %s)", len(uids), mailbox, uid_validity)

    marked: list[int] = []
    for uid in uids:
        try:
            session.mark_deleted(uid)
        except MarkError as e:
            e.marked = list(marked)
            logger.error("Marking UID %d failed after %d marks, not expunging", uid, len(marked))
            raise
        marked.append(uid)
        if callback:
            callback(len(marked), len(uids))

    session.purge()
    logger.info("Expunged %s", mailbox)
    return len(marked)


def save_removal_log(server: str, scan_result: ScanResult, removed: int) -> None:
    """Append a removal action to the audit log."""
    log_path = constants.REMOVAL_LOG_PATH
    log_path.parent.mkdir(parents=True, exist_ok=True)

    log: list = []
    if log_path.exists():
        with open(log_path) as f:
            try:
                log = json.load(f)
            except json.JSONDecodeError:
                log = []

    entry = {
        "date": datetime.now().isoformat(),
        "server": server,
        "mailbox": scan_result.mailbox,
        "uid_validity": scan_result.uid_validity,
        "mode": scan_result.mode.value,
        "total_messages": scan_result.total_messages,
        "removed": removed,
        "uids": scan_result.duplicate_uids,
    }
    log.append(entry)

    with open(log_path, "w") as f:
        json.dump(log, f, indent=2)
