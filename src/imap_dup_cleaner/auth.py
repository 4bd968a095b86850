"""Connection and login helpers for IMAP servers."""

from __future__ import annotations

import imaplib
import logging
import ssl
from contextlib import contextmanager
from typing import Iterator

from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from .constants import CONNECT_ATTEMPTS, DEFAULT_IMAP_PORT, DEFAULT_IMAPS_PORT, SOCKET_TIMEOUT
from .exceptions import AuthenticationError, ConnectionFailedError
from .imap_client import ImapSession

logger = logging.getLogger(__name__)


def default_port(security: str) -> int:
    return DEFAULT_IMAPS_PORT if security == "ssl" else DEFAULT_IMAP_PORT


@retry(
    retry=retry_if_exception_type(OSError),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    stop=stop_after_attempt(CONNECT_ATTEMPTS),
    reraise=True,
)
def _open_connection(server: str, port: int, security: str, timeout: float) -> imaplib.IMAP4:
    if security == "ssl":
        return imaplib.IMAP4_SSL(
            server, port, ssl_context=ssl.create_default_context(), timeout=timeout
        )

    conn = imaplib.IMAP4(server, port, timeout=timeout)
    if security == "starttls":
        try:
            conn.starttls(ssl_context=ssl.create_default_context())
        except imaplib.IMAP4.error as e:
            conn.shutdown()
            raise ConnectionFailedError(f"Server {server} refused STARTTLS: {e}") from e
    else:
        logger.warning("Using an unencrypted connection to %s", server)
    return conn


def connect(
    server: str,
    username: str,
    password: str,
    port: int | None = None,
    security: str = "ssl",
    timeout: float = SOCKET_TIMEOUT,
) -> ImapSession:
    """Connect to ``server``, log in and return an ImapSession.

    Establishing the connection is retried on network errors. A rejected
    login is never retried.
    """
    port = port or default_port(security)
    logger.debug("Connecting to %s:%d (%s)", server, port, security)
    try:
        conn = _open_connection(server, port, security, timeout)
    except OSError as e:
        raise ConnectionFailedError(f"Cannot connect to {server}:{port}: {e}") from e

    try:
        conn.login(username, password)
    except imaplib.IMAP4.error as e:
        conn.shutdown()
        raise AuthenticationError(f"Login failed for {username}: {e}") from e

    logger.debug("Logged in to %s as %s", server, username)
    return ImapSession(conn)


@contextmanager
def open_session(
    server: str,
    username: str,
    password: str,
    port: int | None = None,
    security: str = "ssl",
    timeout: float = SOCKET_TIMEOUT,
) -> Iterator[ImapSession]:
    """Context manager yielding a logged-in session; always logs out."""
    session = connect(server, username, password, port=port, security=security, timeout=timeout)
    try:
        yield session
    finally:
        session.logout()


def check_auth(
    server: str,
    username: str,
    password: str,
    port: int | None = None,
    security: str = "ssl",
) -> list[str]:
    """Log in and return the selectable mailboxes, proving the credentials work."""
    with open_session(server, username, password, port=port, security=security) as session:
        return session.list_mailboxes()
