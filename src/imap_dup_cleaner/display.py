"""Rich-based display functions for IMAP Duplicate Cleaner."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from .constants import DUPLICATE_MARKER
from .models import MessageRecord, ScanResult

console = Console()
err_console = Console(stderr=True)


def setup_logging(verbose: bool = False) -> None:
    """Route the package's logging through Rich on stderr."""
    logger = logging.getLogger("imap_dup_cleaner")
    logger.handlers.clear()
    logger.addHandler(RichHandler(console=err_console, rich_tracebacks=True, show_path=verbose))
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    logger.propagate = False


def print_classification(mailbox: str, record: MessageRecord, fp: str, duplicate: bool) -> None:
    """Print one ``<mailbox>: <subject> <uid> <fingerprint>:`` line."""
    line = f"{mailbox}: {record.envelope.subject} {record.uid} {fp}:"
    if duplicate:
        line += f" {DUPLICATE_MARKER}"
    console.print(line, markup=False, highlight=False, emoji=False, soft_wrap=True)


def create_progress(description: str) -> Progress:
    """Create a configured Rich Progress bar."""
    return Progress(
        SpinnerColumn(),
        TextColumn(f"[bold blue]{description}"),
        BarColumn(),
        MofNCompleteColumn(),
        TimeElapsedColumn(),
        console=console,
    )


def display_scan_summary(scan_result: ScanResult) -> None:
    """Display the totals of a duplicate scan."""
    console.print(
        Panel(
            f"Mailbox: [bold]{escape(scan_result.mailbox)}[/bold]  |  "
            f"UIDVALIDITY: {scan_result.uid_validity}  |  "
            f"Mode: {scan_result.mode.value}\n"
            f"Messages: {scan_result.total_messages}  |  "
            f"Unique: {scan_result.unique_messages}  |  "
            f"Duplicates: [bold]{len(scan_result.duplicates)}[/bold]",
            title="Scan Summary",
        )
    )


def display_duplicates(scan_result: ScanResult) -> None:
    """Display a table of duplicate messages and the UID they duplicate."""
    table = Table(title="Duplicates")
    table.add_column("#", justify="right", style="dim")
    table.add_column("UID", justify="right")
    table.add_column("Duplicate of", justify="right")
    table.add_column("Subject")

    for idx, dup in enumerate(scan_result.duplicates, start=1):
        table.add_row(str(idx), str(dup.uid), str(dup.original_uid), escape(dup.subject))

    console.print(table)


def display_mailboxes(names: list[str]) -> None:
    for name in names:
        console.print(name, markup=False, highlight=False, emoji=False)
    console.print(f"[dim]{len(names)} mailboxes[/dim]")


def display_removal_summary(removed: int, mailbox: str) -> None:
    """Display a success summary after expunging duplicates."""
    console.print(
        Panel(
            f"[bold green]Removed {removed} duplicate messages from {escape(mailbox)}.[/bold green]",
            title="Done",
        )
    )
