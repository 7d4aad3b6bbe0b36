"""Command-line interface for focus-todo."""

import logging
from datetime import datetime
from pathlib import Path

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .config import Config, get_config, set_config
from .errors import FocusTodoError
from .recurring import RecurrenceExpander, RecurrenceParser
from .utils.datetime import today_utc


console = Console()


def _parse_day(value):
    if value is None:
        return None
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        raise click.BadParameter(f"Invalid date '{value}'. Use YYYY-MM-DD")


@click.group()
@click.option("--config", type=click.Path(), help="Path to config file")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@click.pass_context
def main(ctx, config, verbose):
    """focus-todo - tasks, recurring series and focus analytics."""
    ctx.ensure_object(dict)
    ctx.obj['verbose'] = verbose

    if config:
        set_config(Config.load(Path(config)))
    else:
        get_config()

    if verbose:
        logging.basicConfig(level=logging.DEBUG)


def _banner(name: str, host: str, port: int, lines) -> None:
    content = Text()
    content.append("Listening on: ", style="white")
    content.append(f"http://{host}:{port}", style="bold green")
    content.append("\n")
    for line in lines:
        content.append(f"\n{line}", style="white")
    console.print(Panel(content, title=Text(name, style="bold cyan"), border_style="cyan", padding=(1, 2)))
    console.print("Press Ctrl+C to stop the server", style="dim")


@main.command()
@click.option("--host", default="127.0.0.1", show_default=True, help="Host to bind the server to")
@click.option("--port", default=8080, type=int, show_default=True, help="Port to bind the server to")
@click.option("--reload", is_flag=True, help="Enable auto-reload")
def serve(host: str, port: int, reload: bool):
    """Start the resource server."""
    import uvicorn

    config = get_config()
    _banner("focus-todo resource server", host, port, [
        f"Database: {config.database_path}",
        f"Language model: {config.llm.base_url} ({config.llm.model})",
    ])
    uvicorn.run("focus_todo.server.app:app", host=host, port=port, reload=reload,
                log_level=config.log_level.lower())


@main.command("serve-bff")
@click.option("--host", default="127.0.0.1", show_default=True, help="Host to bind the proxy to")
@click.option("--port", default=8000, type=int, show_default=True, help="Port to bind the proxy to")
def serve_bff(host: str, port: int):
    """Start the backend-for-frontend proxy."""
    import uvicorn

    config = get_config()
    _banner("focus-todo BFF", host, port, [f"Upstream: {config.bff.resource_server_url}"])
    uvicorn.run("focus_todo.bff.app:app", host=host, port=port, log_level=config.log_level.lower())


@main.command("init-db")
def init_db():
    """Create the database schema."""
    from .storage import get_db

    db = get_db()
    console.print(f"[green]✅ Database ready at {db.db_path}[/green]")


@main.command("init-config")
@click.option("--force", is_flag=True, help="Overwrite an existing config file")
def init_config(force: bool):
    """Write the current configuration to the config file."""
    path = Config.default_path()
    if path.exists() and not force:
        console.print(f"[yellow]Config already exists at {path} (use --force to overwrite)[/yellow]")
        return
    Config.save(get_config(), path)
    console.print(f"[green]✅ Wrote configuration to {path}[/green]")


@main.command()
@click.argument("user_id")
@click.option("--minutes", type=int, help="Token lifetime in minutes")
def token(user_id: str, minutes):
    """Issue a development access token for USER_ID."""
    from .server.auth import create_access_token

    click.echo(create_access_token(user_id, expires_minutes=minutes))


@main.command()
@click.argument("pattern")
@click.option("--start", "-s", help="Series start date (YYYY-MM-DD, default today)")
@click.option("--limit", "-l", type=int, default=20, show_default=True, help="Rows to show")
def preview(pattern: str, start, limit: int):
    """Show the dates a recurrence PATTERN expands to.

    PATTERN is a phrase such as "every 2 weeks" or "weekdays", or an RRULE
    like "FREQ=WEEKLY;BYDAY=MO,WE;COUNT=4".
    """
    start_date = _parse_day(start) or today_utc()

    try:
        rule = RecurrenceParser.parse(pattern)
    except FocusTodoError as e:
        console.print(f"[red]❌ {e.message}[/red]")
        raise SystemExit(1)
    if rule is None:
        console.print(f"[red]❌ Unrecognized recurrence pattern: {pattern}[/red]")
        raise SystemExit(1)

    settings = get_config().recurrence
    expander = RecurrenceExpander(settings.horizon_years, settings.max_occurrences)
    try:
        dates = expander.expand(rule, start_date)
    except FocusTodoError as e:
        console.print(f"[red]❌ {e.message}[/red]")
        raise SystemExit(1)

    table = Table(title=f"{rule.describe()} ({rule.to_rrule()})")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Date", style="cyan")
    table.add_column("Weekday")
    table.add_column("Role", style="green")
    for index, day in enumerate(dates[:limit]):
        table.add_row(str(index + 1), day.isoformat(), day.strftime("%A"), "parent" if index == 0 else "child")
    console.print(table)

    if len(dates) > limit:
        console.print(f"[dim]... {len(dates) - limit} more occurrence(s)[/dim]")


if __name__ == "__main__":
    main()
