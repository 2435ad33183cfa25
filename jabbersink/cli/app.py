"""Main Typer application.

Entry point: ``jabbersink`` (configured via pyproject.toml scripts).
"""

from __future__ import annotations

import logging
from typing import Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from jabbersink.bridge.transport import TransportInitError
from jabbersink.config import SinkSettings
from jabbersink.models.credentials import Credentials
from jabbersink.models.records import LogLevel
from jabbersink.routing.dispatcher import ConfigurationError

app = typer.Typer(
    name="jabbersink",
    help="jabbersink: deliver buffered log messages over Jabber/XMPP.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

console = Console()


def _configure_logging(level: str) -> None:
    package_logger = logging.getLogger("jabbersink")
    package_logger.setLevel(level.upper())
    if not any(isinstance(h, RichHandler) for h in package_logger.handlers):
        package_logger.addHandler(
            RichHandler(console=Console(stderr=True), show_path=False)
        )


def _settings_problems(settings: SinkSettings) -> list[str]:
    problems: list[str] = []
    try:
        Credentials.model_validate(settings.login())
    except ValidationError as exc:
        for err in exc.errors():
            field = ".".join(str(part) for part in err["loc"])
            problems.append(f"login {field}: {err['msg']}")
    if not settings.recipients:
        problems.append("no recipients configured")
    try:
        settings.flush_policy()
    except ValueError as exc:
        problems.append(f"buffer: {exc}")
    try:
        LogLevel.parse(settings.min_level)
    except ValueError as exc:
        problems.append(f"min_level: {exc}")
    return problems


@app.command(name="check", help="Show the effective sink configuration.")
def check_cmd() -> None:
    """Print the settings read from JABBERSINK_* variables and .env."""
    settings = SinkSettings()

    table = Table(title="Jabber Sink Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")

    table.add_row("name", settings.name)
    table.add_row("min_level", settings.min_level)
    table.add_row("server", f"{settings.hostname or '[red]unset[/red]'}:{settings.port}")
    table.add_row("username", settings.username or "[red]unset[/red]")
    table.add_row("password", "********" if settings.password else "[red]unset[/red]")
    table.add_row("resource", settings.resource or "[red]unset[/red]")
    table.add_row("recipients", ", ".join(settings.recipients) or "[red]none[/red]")
    try:
        table.add_row("flush", settings.flush_policy().describe())
    except ValueError:
        table.add_row("flush", f"[red]invalid ({settings.buffer!r})[/red]")
    table.add_row("debug", f"level {settings.debug_level} -> {settings.debug_file or 'stdout'}")
    console.print(table)

    problems = _settings_problems(settings)
    if problems:
        for problem in problems:
            console.print(f"[red]x[/red] {problem}")
        raise typer.Exit(code=1)
    console.print("[green]Configuration complete.[/green]")


@app.command(name="send", help="Send messages to the configured recipients.")
def send_cmd(
    messages: list[str] = typer.Argument(..., help="Messages to log, in order."),
    to: Optional[list[str]] = typer.Option(
        None, "--to", "-t", help="Recipient JID (repeatable); overrides the configured list."
    ),
    buffer: Optional[str] = typer.Option(
        None, "--buffer", "-b", help="Messages per flush, or '-' to send once at the end."
    ),
    level: str = typer.Option("info", "--level", "-l", help="Level of each message."),
    newline: bool = typer.Option(
        True, "--newline/--no-newline", help="Terminate every message with a newline."
    ),
) -> None:
    """Submit MESSAGES through a dispatcher built from the environment."""
    try:
        LogLevel.parse(level)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--level") from exc

    settings = SinkSettings()
    _configure_logging(settings.log_level)

    overrides: dict[str, object] = {}
    if to:
        overrides["recipients"] = to
    if buffer is not None:
        overrides["flush_policy"] = buffer

    try:
        dispatcher = settings.build_dispatcher(**overrides)
    except (ConfigurationError, TransportInitError) as exc:
        console.print(f"[red]Cannot create sink:[/red] {exc}")
        raise typer.Exit(code=1)

    accepted = 0
    with dispatcher:
        for message in messages:
            text = f"{message}\n" if newline else message
            if dispatcher.log(level, text):
                accepted += 1

    reporter = dispatcher.reporter
    failures = reporter.error_count if reporter is not None else 0
    console.print(
        f"{accepted}/{len(messages)} message(s) accepted, "
        f"{dispatcher.flush_count} flush(es), {failures} error(s)."
    )
    if failures:
        raise typer.Exit(code=1)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
