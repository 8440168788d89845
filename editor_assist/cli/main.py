"""
CLI interface for Editor Assist.

Provides command-line access to the usage store and the assistant server.
"""

import sqlite3
import sys
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from editor_assist.config.loader import load_assist_config, load_settings
from editor_assist.config.log_setup import configure_logging
from editor_assist.core.errors import StorageError
from editor_assist.core.quota import QuotaLedger, usage_day
from editor_assist.storage.repository import get_repository

app = typer.Typer()
console = Console()

EXIT_CODE_PASS = 0
EXIT_CODE_FAIL = 1


def _db_path(db: Optional[str]) -> str:
    return db or load_settings().db_path


def _is_missing_schema(error: Exception) -> bool:
    return "no such table" in str(getattr(error, "detail", error)).lower()


def _no_data_hint() -> None:
    console.print("\n[bold yellow]No usage database found[/]")
    console.print("\nRun `editor-assist init` to create it, then start the server with `editor-assist serve`.\n")


@app.callback(invoke_without_command=True)
def main(ctx: typer.Context):
    """Editor Assist CLI."""
    if ctx.invoked_subcommand is None:
        console.print("Editor Assist - Use --help to see available commands")


@app.command()
def status():
    """Check that the configuration loads."""
    try:
        settings = load_settings()
        config = load_assist_config(settings.config_path)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Configuration error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    free = config.tiers.get_policy(False)
    premium = config.tiers.get_policy(True)
    console.print("[green]✓[/] Editor Assist configuration is valid")
    console.print(f"Database: {settings.db_path}")
    console.print(f"Free tier: {free.daily_limit}/day on {free.model}")
    console.print(
        f"Premium tier: {premium.daily_limit}/day on {premium.model}"
        + (f" (power: {premium.power_model})" if premium.power_model else "")
    )


@app.command()
def init(db: Optional[str] = typer.Option(None, "--db", help="Path to the usage database")):
    """Initialize the usage database."""
    try:
        get_repository(_db_path(db)).initialize()
        console.print("[green]✓[/] Database initialized successfully")
        sys.exit(EXIT_CODE_PASS)
    except sqlite3.Error as e:
        console.print(f"[red]Error initializing database:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)


@app.command()
def usage(
    user: Optional[str] = typer.Option(None, "--user", "-u", help="Show one user's quota for today"),
    db: Optional[str] = typer.Option(None, "--db", help="Path to the usage database")
):
    """Show today's quota usage."""
    repository = get_repository(_db_path(db))
    try:
        if user:
            config = load_assist_config(load_settings().config_path)
            premium = repository.get_profile(user).premium
            result = QuotaLedger(repository, config.tiers).usage(user, premium)
            tier = "premium" if premium else "free"
            console.print(f"{user} ({tier}): {result.used}/{result.limit} requests today")
            sys.exit(EXIT_CODE_PASS)

        records = repository.get_daily_usage(usage_day())
    except (sqlite3.OperationalError, StorageError) as e:
        if _is_missing_schema(e):
            _no_data_hint()
            sys.exit(EXIT_CODE_PASS)
        raise

    if not records:
        console.print("\n[dim]No requests admitted today.[/]")
        sys.exit(EXIT_CODE_PASS)

    table = Table(title=f"AI usage for {usage_day()}")
    table.add_column("User")
    table.add_column("Requests", justify="right")
    table.add_column("Last request")
    for record in records:
        table.add_row(record.user_id, str(record.count), record.updated_at.strftime("%H:%M:%S"))
    console.print(table)


@app.command()
def events(
    user: Optional[str] = typer.Option(None, "--user", "-u", help="Filter to one user"),
    feature: Optional[str] = typer.Option(None, "--feature", "-f", help="Filter to one feature"),
    limit: int = typer.Option(20, "--limit", "-n", help="Number of events to show"),
    db: Optional[str] = typer.Option(None, "--db", help="Path to the usage database")
):
    """List recent model calls from the usage log."""
    repository = get_repository(_db_path(db))
    try:
        recent = repository.get_recent_events(user_id=user, feature=feature, limit=limit)
    except sqlite3.OperationalError as e:
        if _is_missing_schema(e):
            _no_data_hint()
            sys.exit(EXIT_CODE_PASS)
        raise

    if not recent:
        console.print("\n[dim]No usage events recorded.[/]")
        sys.exit(EXIT_CODE_PASS)

    table = Table(title="Recent AI requests")
    for column in ("Time", "User", "Feature", "Model", "Prompt chars", "Tokens"):
        table.add_column(column)
    for event in recent:
        table.add_row(
            event.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
            event.user_id,
            event.feature,
            event.model,
            f"{event.prompt_chars:,}",
            f"{event.total_tokens:,}",
        )
    console.print(table)


@app.command()
def premium(
    user: str = typer.Argument(..., help="User id"),
    revoke: bool = typer.Option(False, "--revoke", help="Return the user to the free tier"),
    db: Optional[str] = typer.Option(None, "--db", help="Path to the usage database")
):
    """Grant or revoke the premium tier for a user."""
    try:
        profile = get_repository(_db_path(db)).set_premium(user, not revoke)
    except sqlite3.Error as e:
        console.print(f"[red]Error updating profile:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)
    state = "premium" if profile.premium else "free"
    console.print(f"[green]✓[/] {user} is now on the {state} tier")


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Bind address"),
    port: int = typer.Option(8000, "--port", "-p", help="Bind port")
):
    """Run the assistant HTTP endpoint."""
    import uvicorn

    settings = load_settings()
    configure_logging(settings.log_level)
    if not settings.static_tokens:
        console.print("[yellow]EDITOR_ASSIST_TOKENS is empty; every request will be rejected with 401[/]")
    uvicorn.run("editor_assist.server.app:build_app_from_env", factory=True, host=host, port=port)


if __name__ == "__main__":
    app()
