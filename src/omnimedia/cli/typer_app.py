"""
OmniMedia Typer CLI Application

``omnimedia scan`` runs a library scan against the SQLite datastore and
``omnimedia classify`` shows what the scanner learns from file names alone.
"""

from __future__ import annotations

import logging
from concurrent.futures import TimeoutError as FuturesTimeoutError
from pathlib import Path
from typing import Annotated, Any, Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from omnimedia.cli.json_formatter import format_json_output
from omnimedia.cli.progress import ScanProgressDisplay
from omnimedia.config.loader import get_config, reload_config
from omnimedia.config.models import LoggingSettings, Settings
from omnimedia.datastore.sqlite import SQLiteDatastore
from omnimedia.metadata.classifier import classify_media
from omnimedia.metadata.naming import suggest_filename
from omnimedia.scanner.coordinator import ScanCoordinator
from omnimedia.scanner.models import ScanRequest, ScanResult, ScanStatus
from omnimedia.shared.constants import CLIDefaults, ScanDefaults
from omnimedia.shared.errors import OmniMediaError, create_validation_error
from omnimedia.shared.logging import setup_structured_logger

logger = logging.getLogger(__name__)

__version__ = CLIDefaults.VERSION

_EXIT_CODES = {
    ScanStatus.COMPLETED: CLIDefaults.EXIT_SUCCESS,
    ScanStatus.PARTIAL: CLIDefaults.EXIT_PARTIAL,
    ScanStatus.FAILED: CLIDefaults.EXIT_ERROR,
    ScanStatus.CANCELLED: CLIDefaults.EXIT_INTERRUPTED,
}

app = typer.Typer(
    name=CLIDefaults.APP_NAME,
    help=CLIDefaults.APP_DESCRIPTION,
    rich_markup_mode="rich",
    no_args_is_help=True,
)


class CliState:
    """Options shared by every command, set by the main callback."""

    settings: Settings | None = None


_state = CliState()


def version_callback(value: bool) -> None:
    """Print version information and exit."""
    if value:
        typer.echo(f"omnimedia {__version__}")
        raise typer.Exit


@app.callback()
def main(
    config: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="TOML configuration file", dir_okay=False),
    ] = None,
    log_level: Annotated[
        Optional[str],
        typer.Option("--log-level", help="Override the configured log level"),
    ] = None,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=version_callback,
            is_eager=True,
            help="Show version information and exit",
        ),
    ] = False,
) -> None:
    """Scan media libraries into a fingerprinted metadata store."""
    try:
        settings = reload_config(config) if config else get_config()
    except OmniMediaError as e:
        typer.echo(f"Error: {e.message}", err=True)
        raise typer.Exit(CLIDefaults.EXIT_ERROR) from e

    if log_level:
        try:
            logging_settings = LoggingSettings.model_validate(
                {**settings.logging.model_dump(), "level": log_level}
            )
        except ValidationError as e:
            typer.echo(f"Error: invalid log level {log_level!r}", err=True)
            raise typer.Exit(CLIDefaults.EXIT_ERROR) from e
        settings = settings.model_copy(update={"logging": logging_settings})
    _state.settings = settings


def _configure_logging(settings: Settings, *, json_output: bool) -> None:
    level = settings.logging.level
    if json_output and logging.getLevelName(level) < logging.WARNING:
        # Keep the console quiet when stdout carries machine-readable output
        level = "WARNING"
    setup_structured_logger(
        level=level,
        log_file=settings.logging.file,
        use_rich_console=settings.logging.rich_console,
    )


def _run_scan(
    coordinator: ScanCoordinator,
    request: ScanRequest,
    console: Console,
) -> ScanResult:
    """Run the scan in the background so Ctrl+C can cancel it cleanly."""
    future, cancel_event = coordinator.submit(request)
    try:
        while True:
            try:
                return future.result(timeout=CLIDefaults.FUTURE_POLL_SECONDS)
            except FuturesTimeoutError:
                continue
    except KeyboardInterrupt:
        console.print("[yellow]Cancelling scan, waiting for workers to finish...[/yellow]")
        cancel_event.set()
        return future.result()


def _render_result(console: Console, result: ScanResult) -> None:
    colour = {
        ScanStatus.COMPLETED: "green",
        ScanStatus.PARTIAL: "yellow",
        ScanStatus.FAILED: "red",
        ScanStatus.CANCELLED: "yellow",
    }[result.status]

    table = Table(title=f"Scan [{colour}]{result.status.value}[/{colour}]", show_header=False)
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")
    table.add_row("Files found", str(result.total_files))
    table.add_row("Processed", str(result.processed_files))
    table.add_row("Unchanged", str(result.skipped_files))
    table.add_row("Errored", str(result.errored_files))
    table.add_row("Removed", str(result.deleted_files))
    table.add_row("Duration", f"{result.duration_seconds:.2f}s")
    console.print(table)

    if result.fatal_error:
        console.print(f"[red]Error:[/red] {result.fatal_error}")
    for error in result.errors:
        console.print(f"[yellow]{error.code}[/yellow] {error.path}: {error.reason}")
    for warning in result.warnings:
        console.print(f"[dim]warning {warning.code}[/dim] {warning.path}: {warning.reason}")


@app.command("scan")
def scan_command(
    path: Annotated[Path, typer.Argument(help="Library root to scan")],
    user: Annotated[str, typer.Option("--user", "-u", help="Owner of the library")],
    category: Annotated[str, typer.Option("--category", help="Media category of the library")],
    recursive: Annotated[
        bool,
        typer.Option("--recursive/--no-recursive", help="Descend into subdirectories"),
    ] = True,
    parallel: Annotated[
        int,
        typer.Option(
            "--parallel",
            "-p",
            min=ScanDefaults.MIN_PARALLEL,
            max=ScanDefaults.MAX_PARALLEL,
            help="Worker threads",
        ),
    ] = ScanDefaults.DEFAULT_PARALLEL,
    strong_hash: Annotated[
        bool,
        typer.Option("--strong-hash", help="Always verify files with a full SHA-256"),
    ] = False,
    force: Annotated[
        bool,
        typer.Option("--force", help="Re-extract metadata of unchanged files"),
    ] = False,
    db: Annotated[
        Optional[Path],
        typer.Option("--db", help="SQLite database file (defaults to datastore.db_path)"),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output results in JSON format"),
    ] = False,
) -> None:
    """
    Scan a library directory into the datastore.

    New and modified files are fingerprinted and their metadata extracted,
    unchanged files are skipped and fingerprints of removed files are
    cleaned up.

    Examples:
        omnimedia scan ~/Videos --user alice --category tv

        omnimedia scan /srv/music --user alice --category music --parallel 8 --json
    """
    settings = _state.settings or get_config()
    _configure_logging(settings, json_output=json_output)
    console = Console()
    display = ScanProgressDisplay(console, disabled=json_output)

    try:
        request = ScanRequest(
            path=str(path.expanduser().absolute()),
            user_id=user,
            category_id=category,
            recursive=recursive,
            parallel=parallel,
            strong_hash=strong_hash,
            force_rescan=force,
            on_progress=display.update,
        )
    except ValidationError as e:
        error = create_validation_error(
            f"Invalid scan request: {e.errors()[0]['msg']}",
            field=str(e.errors()[0]["loc"][0]),
            operation="scan",
            original_error=e,
        )
        _fail(console, "scan", error.message, json_output=json_output)
        raise typer.Exit(CLIDefaults.EXIT_ERROR) from e

    try:
        datastore = SQLiteDatastore(db or settings.datastore.db_path)
    except OmniMediaError as e:
        _fail(console, "scan", e.message, json_output=json_output)
        raise typer.Exit(CLIDefaults.EXIT_ERROR) from e

    coordinator = ScanCoordinator(datastore, settings=settings)
    try:
        with display:
            result = _run_scan(coordinator, request, console)
    finally:
        coordinator.shutdown()
        datastore.close()

    if json_output:
        typer.echo(
            format_json_output(
                success=result.status in (ScanStatus.COMPLETED, ScanStatus.PARTIAL),
                command="scan",
                data=result.to_dict(),
                errors=[result.fatal_error] if result.fatal_error else None,
                warnings=[f"{w.path}: {w.reason}" for w in result.warnings],
            ).decode()
        )
    else:
        _render_result(console, result)

    raise typer.Exit(_EXIT_CODES[result.status])


def _classification_row(name: str) -> dict[str, Any]:
    classification = classify_media(name)
    return {
        "filename": name,
        "family": classification.family.value,
        "media_type": classification.media_type.value,
        "title": classification.title,
        "season": classification.season,
        "episode": classification.episode,
        "year": classification.year,
        "resolution": classification.resolution,
        "source": classification.source,
        "release_group": classification.release_group,
        "suggested_filename": suggest_filename(classification),
    }


@app.command("classify")
def classify_command(
    names: Annotated[list[str], typer.Argument(help="File names to classify")],
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output results in JSON format"),
    ] = False,
) -> None:
    """
    Classify file names without touching the filesystem.

    Example:
        omnimedia classify "Show.Name.S01E02.1080p.WEB-DL.mkv"
    """
    rows = [_classification_row(name) for name in names]

    if json_output:
        typer.echo(format_json_output(success=True, command="classify", data=rows).decode())
        return

    table = Table(title="Classification")
    for column in ("filename", "media_type", "title", "season", "episode", "year", "suggested_filename"):
        table.add_column(column.replace("_", " ").title())
    for row in rows:
        table.add_row(
            row["filename"],
            row["media_type"],
            row["title"] or "",
            "" if row["season"] is None else str(row["season"]),
            "" if row["episode"] is None else str(row["episode"]),
            "" if row["year"] is None else str(row["year"]),
            row["suggested_filename"],
        )
    Console().print(table)


def _fail(console: Console, command: str, message: str, *, json_output: bool) -> None:
    if json_output:
        typer.echo(format_json_output(success=False, command=command, errors=[message]).decode())
    else:
        console.print(f"[red]Error:[/red] {message}")
