"""Constants for IMAP Duplicate Cleaner."""

from pathlib import Path

# --- Config paths ---
CONFIG_DIR = Path.home() / ".imap-dup-cleaner"
REMOVAL_LOG_PATH = CONFIG_DIR / "removal_log.json"

# --- Environment variables ---
ENV_PREFIX = "IMAP_DUP"

# --- IMAP connection ---
DEFAULT_IMAPS_PORT = 993
DEFAULT_IMAP_PORT = 143
SOCKET_TIMEOUT = 60  # seconds
CONNECT_ATTEMPTS = 3
SECURITY_MODES = ["ssl", "starttls", "plain"]

# --- IMAP fetch ---
MAX_UID = 4294967295  # UIDs are unsigned 32-bit (RFC 3501)
FETCH_BATCH_SIZE = 200  # UIDs per UID FETCH command
FETCH_ITEMS = "(UID ENVELOPE)"
DELETED_FLAG = r"(\Deleted)"

# --- Pipeline ---
QUEUE_SIZE = 1000  # pending records between fetcher and classifier

# --- Display ---
DUPLICATE_MARKER = "duplicate"
