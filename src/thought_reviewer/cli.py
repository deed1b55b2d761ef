"""
Command Line Interface for Thought Review Scheduler

`add` is the writer path; `review` drains the queue once and is what cron runs.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich import print as rich_print
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .analysis.client import DEFAULT_GEMINI_ENDPOINT
from .database.models import Category, InvalidCategoryError, Note
from .database.operations import DEFAULT_DATABASE_PATH, StorageError, ThoughtStore
from .main import DEFAULT_CONFIG_PATH, ThoughtReviewApplication
from .review.drainer import AdapterOutcome, AdapterStatus, CycleReport, CycleStatus
from .security.credentials import (
    AnalyzerCredentials,
    AppConfig,
    CredentialError,
    CredentialManager,
    EmailCredentials,
)


EXIT_OK: int = 0
EXIT_FAILURE: int = 1
EXIT_DELIVERY_FAILED: int = 2


app = typer.Typer(
    name="thoughts",
    help="Thought capture - jot down categorized thoughts and get them back as a digest",
    add_completion=False,
    rich_markup_mode="rich"
)

console = Console()

DB_OPTION = typer.Option(
    DEFAULT_DATABASE_PATH, "--db", envvar="THOUGHTS_DB_PATH", help="SQLite database file"
)
CONFIG_OPTION = typer.Option(
    DEFAULT_CONFIG_PATH, "--config", envvar="THOUGHTS_CONFIG", help="Encrypted configuration file"
)


def open_store(db_path: Path) -> ThoughtStore:
    """Open and initialize the store, exiting on failure."""
    try:
        store = ThoughtStore(db_path)
        store.initialize()
        return store
    except StorageError as e:
        rich_print(f"[red]Could not open thought store {db_path}: {e}[/red]")
        raise typer.Exit(EXIT_FAILURE)


def resolve_master_password(master_password: Optional[str]) -> str:
    if not master_password:
        master_password = typer.prompt("Master password", hide_input=True)
    if not master_password.strip():
        rich_print("[red]Master password is required[/red]")
        raise typer.Exit(EXIT_FAILURE)
    return master_password


def notes_table(notes: list[Note], title: str) -> Table:
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("ID", style="cyan", justify="right")
    table.add_column("Category", style="green")
    table.add_column("Thought")
    table.add_column("Captured", style="dim")
    for note in notes:
        captured: str = note.created_at.strftime("%Y-%m-%d %H:%M") if note.created_at else ""
        table.add_row(str(note.id), note.category.value, note.body, captured)
    return table


def _describe(outcome: AdapterOutcome) -> str:
    colour: str = {
        AdapterStatus.SUCCEEDED: "green",
        AdapterStatus.SKIPPED: "yellow",
        AdapterStatus.FAILED: "red",
    }[outcome.status]
    detail: str = f" ({outcome.error})" if outcome.error else ""
    return f"[{colour}]{outcome.status.value}[/{colour}]{detail}"


def print_report(report: CycleReport) -> None:
    table = Table(title="Review Cycle", show_header=True, header_style="bold magenta")
    table.add_column("Step", style="cyan")
    table.add_column("Result")
    table.add_row("Claimed", f"{len(report.batch)} thoughts")
    table.add_row("Analysis", _describe(report.analysis_outcome))
    table.add_row("Digest", _describe(report.digest_outcome))
    table.add_row("Status", report.status.value)
    table.add_row("Duration", f"{report.duration_seconds:.2f}s")
    console.print(table)

    if report.analysis:
        console.print(Panel(report.analysis, title="Analysis", border_style="blue"))


@app.command()
def add(
    category: str = typer.Option(
        ..., "--category", "-t", help=f"One of: {', '.join(Category.names())} (any case)"
    ),
    content: str = typer.Option(..., "--content", "-c", help="The thought itself"),
    db_path: Path = DB_OPTION,
) -> None:
    """Capture a thought."""
    try:
        parsed: Category = Category.parse(category)
    except InvalidCategoryError as e:
        rich_print(f"[red]{e}[/red]")
        rich_print(f"Valid categories: {', '.join(Category.names())}")
        raise typer.Exit(EXIT_FAILURE)

    store: ThoughtStore = open_store(db_path)
    try:
        note_id: int = store.append(parsed, content)
    except ValueError as e:
        rich_print(f"[red]{e}[/red]")
        raise typer.Exit(EXIT_FAILURE)
    except StorageError as e:
        rich_print(f"[red]Failed to save thought: {e}[/red]")
        raise typer.Exit(EXIT_FAILURE)

    rich_print(f"[green]Captured {parsed.value} thought #{note_id}[/green]")


@app.command()
def pending(db_path: Path = DB_OPTION) -> None:
    """List thoughts waiting for the next review, without claiming them."""
    store: ThoughtStore = open_store(db_path)
    try:
        notes: list[Note] = store.list_unreviewed()
    except StorageError as e:
        rich_print(f"[red]Failed to read thoughts: {e}[/red]")
        raise typer.Exit(EXIT_FAILURE)

    if not notes:
        rich_print("[yellow]No thoughts waiting for review.[/yellow]")
        return
    console.print(notes_table(notes, f"Pending Thoughts ({len(notes)})"))


@app.command()
def status(db_path: Path = DB_OPTION) -> None:
    """Show how many thoughts are stored, reviewed and pending."""
    store: ThoughtStore = open_store(db_path)
    try:
        counts: dict[str, int] = store.count_thoughts()
    except StorageError as e:
        rich_print(f"[red]Failed to read thoughts: {e}[/red]")
        raise typer.Exit(EXIT_FAILURE)

    table = Table(title="Thought Store", show_header=True, header_style="bold magenta")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green", justify="right")
    table.add_row("Database", str(db_path))
    table.add_row("Total", str(counts["total"]))
    table.add_row("Reviewed", str(counts["reviewed"]))
    table.add_row("Pending", str(counts["pending"]))
    console.print(table)


@app.command()
def review(
    config_file: Path = CONFIG_OPTION,
    master_password: Optional[str] = typer.Option(
        None, "--master-password", envvar="THOUGHTS_MASTER_PASSWORD", help="Master password for the config file"
    ),
) -> None:
    """Drain the review queue once: analyse Project thoughts and email the digest.

    Exit code 0 when the cycle completed or nothing was pending, 2 when the
    queue was drained but a delivery failed, 1 when the queue could not be read.
    """
    password: str = resolve_master_password(master_password)

    application = ThoughtReviewApplication(config_file)
    try:
        application.initialize(password)
    except CredentialError as e:
        rich_print(f"[red]Failed to load configuration: {e}[/red]")
        raise typer.Exit(EXIT_FAILURE)

    try:
        report: CycleReport = application.run_review_cycle()
    except StorageError as e:
        rich_print(f"[red]Could not read the review queue: {e}[/red]")
        raise typer.Exit(EXIT_FAILURE)

    print_report(report)

    if report.status is CycleStatus.DELIVERY_FAILED:
        rich_print("[red]Thoughts were marked reviewed but a delivery failed.[/red]")
        raise typer.Exit(EXIT_DELIVERY_FAILED)
    if report.status is CycleStatus.NOTHING_PENDING:
        rich_print("[yellow]Nothing to review; an empty digest was sent.[/yellow]")
    else:
        rich_print(f"[green]Reviewed {len(report.batch)} thoughts.[/green]")


@app.command()
def setup(config_file: Path = CONFIG_OPTION) -> None:
    """Create the encrypted configuration interactively."""
    rich_print("[bold blue]Thought Review Setup[/bold blue]")

    if config_file.exists() and not typer.confirm(f"{config_file} exists. Overwrite it?"):
        raise typer.Exit(EXIT_OK)

    try:
        email_credentials = EmailCredentials(
            username=typer.prompt("Sender email (SMTP username)"),
            password=typer.prompt("SMTP app password", hide_input=True),
            from_name=typer.prompt("Sender display name", default="Thought App"),
            smtp_server=typer.prompt("SMTP server", default="smtp.gmail.com"),
            smtp_port=typer.prompt("SMTP port", default=587, type=int),
        )
        analyzer_credentials = AnalyzerCredentials(
            api_key=typer.prompt("Gemini API key", hide_input=True),
            endpoint=typer.prompt("Gemini endpoint", default=DEFAULT_GEMINI_ENDPOINT),
        )
        app_config = AppConfig(
            recipient_email=typer.prompt("Send digests to"),
            recipient_name=typer.prompt("Recipient name", default=""),
            database_path=typer.prompt("Database path", default=str(DEFAULT_DATABASE_PATH)),
        )
    except ValueError as e:
        rich_print(f"[red]Invalid value: {e}[/red]")
        raise typer.Exit(EXIT_FAILURE)

    master_password: str = typer.prompt(
        "Master password (8+ characters)", hide_input=True, confirmation_prompt=True
    )

    try:
        CredentialManager(config_file, master_password).save_credentials(
            email_credentials, analyzer_credentials, app_config
        )
    except (CredentialError, ValueError) as e:
        rich_print(f"[red]Failed to save configuration: {e}[/red]")
        raise typer.Exit(EXIT_FAILURE)

    rich_print(f"[green]Configuration saved to {config_file}[/green]")
    rich_print("Run [cyan]thoughts review[/cyan] to drain the queue.")


def main() -> None:
    """Main entry point for the CLI application."""
    app()


if __name__ == "__main__":
    main()
