"""
Command Line Interface for QA Tracker.
"""

import asyncio
from typing import Optional

import typer
import uvicorn
from rich import print as rprint
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..bugs.stats import BugStatistics
from ..config import get_settings
from ..core.errors import QATrackerError
from ..core.security import get_password_hash
from ..db.base import get_session_local, init_database
from ..db.models import UserModel
from ..db.repositories import UserRepository
from ..enums import Role

app = typer.Typer(help="QA Tracker - bug tracking and fix validation for QA teams")
console = Console()


@app.command()
def serve(
    port: Optional[int] = typer.Option(None, help="Port to run the API server on"),
    host: Optional[str] = typer.Option(None, help="Host to bind the server to"),
    dev: bool = typer.Option(False, help="Run in development mode with auto-reload"),
):
    """Start the API server."""
    settings = get_settings()
    host = host or settings.api_host
    port = port or settings.api_port

    rprint(Panel.fit("🐛 Starting QA Tracker", style="bold blue"))
    console.print(f"🚀 Serving on http://{host}:{port}{settings.api_prefix}")
    uvicorn.run(
        "qa_tracker.main:app",
        host=host,
        port=port,
        reload=dev,
        workers=1 if dev else settings.api_workers,
    )


@app.command()
def init_db():
    """Create all database tables."""
    asyncio.run(init_database())
    console.print("✅ Database initialized")


@app.command()
def create_admin(
    email: str = typer.Argument(..., help="Admin email address"),
    name: str = typer.Argument(..., help="Display name"),
    password: str = typer.Option(
        ..., prompt=True, hide_input=True, confirmation_prompt=True, help="Admin password"
    ),
    whatsapp_number: Optional[str] = typer.Option(None, help="WhatsApp number for notifications"),
):
    """Create an admin user."""
    settings = get_settings()
    email = email.strip().lower()

    with get_session_local()() as db:
        users = UserRepository(db)
        if users.get_by_email(email) is not None:
            console.print(f"❌ A user with email {email} already exists")
            raise typer.Exit(code=1)

        try:
            user = users.add(
                UserModel(
                    email=email,
                    password_hash=get_password_hash(password, settings.bcrypt_rounds),
                    name=name,
                    role=Role.ADMIN.value,
                    whatsapp_number=whatsapp_number,
                )
            )
        except QATrackerError as exc:
            console.print(f"❌ {exc.message}")
            raise typer.Exit(code=1)

        console.print(f"✅ Created admin {user.name} <{user.email}> ({user.id})")


@app.command()
def stats(days: int = typer.Option(7, help="Days of trend data to show")):
    """Show bug report statistics."""
    with get_session_local()() as db:
        statistics = BugStatistics(db)
        summary = statistics.summary()
        try:
            trend = statistics.trends(days)
        except QATrackerError as exc:
            console.print(f"❌ {exc.message}")
            raise typer.Exit(code=1)

    table = Table(title="Bug Reports", show_header=True, header_style="bold magenta")
    table.add_column("Metric", style="cyan")
    table.add_column("Count", style="green", justify="right")

    table.add_row("Total", str(summary["total"]))
    for status, count in summary["by_status"].items():
        table.add_row(f"Status: {status.replace('_', '-')}", str(count))
    for severity, count in summary["by_severity"].items():
        table.add_row(f"Severity: {severity}", str(count))
    console.print(table)

    if summary["top_applications"]:
        apps_table = Table(title="Top Applications", show_header=True, header_style="bold cyan")
        apps_table.add_column("Application", style="yellow")
        apps_table.add_column("Version", style="blue")
        apps_table.add_column("Reports", style="green", justify="right")
        for row in summary["top_applications"]:
            apps_table.add_row(row["name"], row["version"], str(row["count"]))
        console.print(apps_table)

    trend_table = Table(title=f"Last {days} days", show_header=True, header_style="bold cyan")
    trend_table.add_column("Date")
    trend_table.add_column("Reports", justify="right")
    for entry in trend:
        trend_table.add_row(entry["date"], str(entry["count"]))
    console.print(trend_table)


@app.command()
def version():
    """Show version information."""
    from .. import __version__

    rprint(Panel.fit(f"QA Tracker v{__version__}", style="bold green"))


def main():
    """Main CLI entry point."""
    app()


if __name__ == "__main__":
    main()
