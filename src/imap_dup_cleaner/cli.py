"""CLI entry point for IMAP Duplicate Cleaner."""

from __future__ import annotations

import click

from . import auth
from .cleaner import remove_duplicates, save_removal_log
from .constants import ENV_PREFIX, SECURITY_MODES
from .display import (
    console,
    create_progress,
    display_duplicates,
    display_mailboxes,
    display_removal_summary,
    display_scan_summary,
    err_console,
    setup_logging,
)
from .exceptions import DedupError, MarkError, StreamError
from .export import export_duplicates
from .models import FingerprintMode, ScanResult, Verbosity
from .scanner import find_duplicates


CONNECTION_OPTIONS = [
    click.option("-s", "--server", required=True, envvar=f"{ENV_PREFIX}_SERVER", help="IMAP server host."),
    click.option("-p", "--port", default=None, type=int, envvar=f"{ENV_PREFIX}_PORT",
                 help="IMAP server port (default 993 for ssl, 143 otherwise)."),
    click.option("-u", "--username", required=True, envvar=f"{ENV_PREFIX}_USERNAME", help="IMAP user."),
    click.option("-w", "--password", prompt=True, hide_input=True, envvar=f"{ENV_PREFIX}_PASSWORD",
                 help="IMAP password (prompted for when not given)."),
    click.option("--security", type=click.Choice(SECURITY_MODES), default="ssl", show_default=True,
                 help="Connection security."),
]


def connection_options(func):
    """Add the server and credential options shared by every command."""
    for option in reversed(CONNECTION_OPTIONS):
        func = option(func)
    return func


def _scan(session, mailbox: str, mode: FingerprintMode, verbosity: Verbosity) -> ScanResult:
    if verbosity != Verbosity.QUIET:
        return find_duplicates(session, mailbox, mode=mode, verbosity=verbosity)

    with create_progress("Scanning envelopes") as progress:
        task = progress.add_task("scanning", total=None)

        def on_record(count: int) -> None:
            progress.update(task, completed=count)

        return find_duplicates(session, mailbox, mode=mode, verbosity=verbosity, callback=on_record)


def _remove(session, mailbox: str, uids: list[int]) -> int:
    with create_progress("Marking duplicates") as progress:
        task = progress.add_task("marking", total=len(uids))

        def on_mark(done: int, total: int) -> None:
            progress.update(task, completed=done)

        return remove_duplicates(session, mailbox, uids, callback=on_mark)


@click.group()
@click.version_option(version="0.1.0", prog_name="imap-dup-cleaner")
@click.option("-v", "--verbose", is_flag=True, help="Show debug logging.")
def cli(verbose: bool) -> None:
    """IMAP Duplicate Cleaner - find and remove duplicate messages in a mailbox.

    Make sure the server deletes (rather than moves to trash) messages that
    are expunged over IMAP, or the duplicates will just change folders.
    """
    setup_logging(verbose)


@cli.command()
@connection_options
@click.option("-m", "--mbox", "mailbox", required=True, envvar=f"{ENV_PREFIX}_MAILBOX",
              help="Mailbox to remove duplicates from.")
@click.option("--list-only-dups", is_flag=True, help="Only print duplicated messages.")
@click.option("-q", "--quiet", is_flag=True, help="Print no per-message lines, show a progress bar.")
@click.option("--ignore-message-id", is_flag=True,
              help="Ignore Message-ID and hash the envelope of every message instead.")
@click.option("-n", "--dry-run", is_flag=True, help="Only report, remove nothing.")
@click.option("--report", default=None, type=click.Path(dir_okay=False),
              help="Write the duplicate list to this file.")
@click.option("--report-format", type=click.Choice(["csv", "json"]), default="csv", help="Report format.")
def dedup(
    server: str,
    port: int | None,
    username: str,
    password: str,
    security: str,
    mailbox: str,
    list_only_dups: bool,
    quiet: bool,
    ignore_message_id: bool,
    dry_run: bool,
    report: str | None,
    report_format: str,
) -> None:
    """Find duplicate messages in a mailbox and remove them."""
    mode = FingerprintMode.CONTENT_HASH if ignore_message_id else FingerprintMode.MESSAGE_ID
    if quiet:
        verbosity = Verbosity.QUIET
    elif list_only_dups:
        verbosity = Verbosity.DUPLICATES
    else:
        verbosity = Verbosity.ALL

    try:
        with auth.open_session(server, username, password, port=port, security=security) as session:
            scan_result = _scan(session, mailbox, mode, verbosity)
            display_scan_summary(scan_result)
            if scan_result.duplicates and verbosity == Verbosity.QUIET:
                display_duplicates(scan_result)

            if report:
                try:
                    export_duplicates(scan_result, format=report_format, output_path=report)
                except OSError as e:
                    raise click.ClickException(f"cannot write report {report}: {e}") from e

            uids = scan_result.duplicate_uids
            if dry_run:
                console.print(f"[yellow][DRY RUN][/yellow] would have removed {len(uids)} messages")
                return
            if not uids:
                console.print("[green]No duplicates found, nothing to remove.[/green]")
                return

            console.print(f"will remove {len(uids)} messages")
            removed = _remove(session, mailbox, uids)
    except StreamError as e:
        if e.result is not None:
            err_console.print(
                f"[yellow]Scanned {e.result.total_messages} messages "
                f"({len(e.result.duplicates)} duplicates) before the failure; nothing was removed.[/yellow]"
            )
        raise click.ClickException(f"cannot find duplicates: {e}") from e
    except MarkError as e:
        raise click.ClickException(
            f"cannot remove duplicates: {e} "
            f"({len(e.marked)} messages left marked \\Deleted, not expunged)"
        ) from e
    except DedupError as e:
        raise click.ClickException(str(e)) from e

    display_removal_summary(removed, mailbox)
    try:
        save_removal_log(server, scan_result, removed)
    except OSError as e:
        raise click.ClickException(f"removed {removed} messages but cannot write the removal log: {e}") from e


@cli.command()
@connection_options
def mailboxes(server: str, port: int | None, username: str, password: str, security: str) -> None:
    """List the selectable mailboxes on the server."""
    try:
        with auth.open_session(server, username, password, port=port, security=security) as session:
            names = session.list_mailboxes()
    except DedupError as e:
        raise click.ClickException(str(e)) from e

    display_mailboxes(names)


@cli.command(name="auth")
@connection_options
def auth_cmd(server: str, port: int | None, username: str, password: str, security: str) -> None:
    """Test the connection and login."""
    try:
        names = auth.check_auth(server, username, password, port=port, security=security)
    except DedupError as e:
        raise click.ClickException(f"Authentication failed: {e}") from e

    console.print(f"[green]Authenticated as {username} on {server}[/green] ({len(names)} mailboxes)")
