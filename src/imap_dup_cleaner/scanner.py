"""Scan orchestration - streams envelopes, fingerprints and classifies them."""

from __future__ import annotations

import logging
import queue
import threading
from typing import Callable

from .constants import QUEUE_SIZE
from .display import print_classification
from .exceptions import StreamError
from .fingerprint import fingerprint
from .imap_client import MailboxSession
from .models import DuplicateMessage, FingerprintMode, MessageRecord, ScanResult, Verbosity

logger = logging.getLogger(__name__)

_END_OF_STREAM = object()


class _Fetcher(threading.Thread):
    """Producer thread pushing every streamed record onto a bounded queue.

    The end-of-stream marker is always queued last, after the error slot
    has been filled, so a consumer that drains to the marker sees every
    record and any failure. Setting ``stopped`` makes the thread give up
    on a full queue and exit without streaming further.
    """

    def __init__(self, session: MailboxSession, records: queue.Queue) -> None:
        super().__init__(name="envelope-fetcher", daemon=True)
        self.session = session
        self.records = records
        self.error: BaseException | None = None
        self.stopped = threading.Event()

    def _put(self, item: object) -> bool:
        while not self.stopped.is_set():
            try:
                self.records.put(item, timeout=0.1)
                return True
            except queue.Full:
                continue
        return False

    def run(self) -> None:
        try:
            for record in self.session.stream_metadata():
                if not self._put(record):
                    logger.debug("Fetcher stopped by the consumer")
                    break
        except Exception as e:  # noqa: BLE001 - handed to the consumer
            self.error = e
        finally:
            self._put(_END_OF_STREAM)

    def stop(self) -> None:
        """Stop streaming and wait until the thread has exited."""
        self.stopped.set()
        self.join()


def classify(
    record: MessageRecord,
    seen: dict[str, int],
    mode: FingerprintMode,
) -> tuple[str, DuplicateMessage | None]:
    """Classify one record against the seen set.

    Returns the fingerprint and, when it was seen before, a DuplicateMessage.
    A first occurrence is added to the seen set instead.
    """
    fp = fingerprint(record.envelope, mode)
    if fp in seen:
        return fp, DuplicateMessage(
            uid=record.uid,
            fingerprint=fp,
            subject=record.envelope.subject,
            original_uid=seen[fp],
        )
    seen[fp] = record.uid
    return fp, None


def find_duplicates(
    session: MailboxSession,
    mailbox: str,
    mode: FingerprintMode = FingerprintMode.MESSAGE_ID,
    verbosity: Verbosity = Verbosity.ALL,
    callback: Callable[[int], None] | None = None,
    queue_size: int = QUEUE_SIZE,
) -> ScanResult:
    """Find the duplicate messages in ``mailbox``, in arrival order.

    The mailbox is selected read-only. Envelopes are fetched on a separate
    thread while this thread fingerprints them. If fetching fails, every
    record already delivered is still classified before StreamError is
    raised; the partial result is attached to the exception.
    """
    uid_validity = session.select(mailbox, readonly=True)
    logger.info("Mailbox %s UIDVALIDITY %s", mailbox, uid_validity)

    result = ScanResult(mailbox=mailbox, uid_validity=uid_validity, mode=mode)
    seen: dict[str, int] = {}
    records: queue.Queue = queue.Queue(maxsize=queue_size)

    fetcher = _Fetcher(session, records)
    fetcher.start()

    try:
        while True:
            record = records.get()
            if record is _END_OF_STREAM:
                break

            fp, duplicate = classify(record, seen, mode)
            result.total_messages += 1
            if duplicate is not None:
                result.duplicates.append(duplicate)

            if verbosity == Verbosity.ALL or (verbosity == Verbosity.DUPLICATES and duplicate):
                print_classification(mailbox, record, fp, duplicate is not None)
            if callback:
                callback(result.total_messages)
    except BaseException:
        # The session must not be used by two threads at once.
        fetcher.stop()
        raise

    fetcher.join()
    result.unique_messages = len(seen)

    if fetcher.error is not None:
        raise StreamError(
            f"Scan of {mailbox} stopped after {result.total_messages} messages: {fetcher.error}",
            result=result,
        ) from fetcher.error

    logger.info(
        "Scanned %d messages in %s: %d unique, %d duplicates",
        result.total_messages, mailbox, result.unique_messages, len(result.duplicates),
    )
    return result
