"""Unified CLI entry point for ownerlink.

Config precedence: settings.default.toml -> settings.<env>.toml -> settings.local.toml -> env vars (OWNERLINK_* with double underscores) -> CLI flags.
"""

from __future__ import annotations

import json
import logging
import sys

import typer

from ownerlink.cli.address_cmd import address_app
from ownerlink.cli.monitor_cmd import monitor_command
from ownerlink.cli.open_cmd import open_command
from ownerlink.cli.rules_cmd import rules_app
from ownerlink.cli.scan_cmd import scan_command
from ownerlink.cli.settings_cmd import settings_app

try:
    from importlib.metadata import version

    VERSION = version("ownerlink")
except Exception:
    VERSION = "unknown"

APP_HELP = (
    "ownerlink — find wallet addresses on marketplace pages and link them to a chat. "
    "Config precedence: settings.default.toml -> settings.local.toml -> env vars (OWNERLINK_* with __) -> CLI flags."
)

app = typer.Typer(add_completion=True, help=APP_HELP)

app.add_typer(rules_app, name="rules")
app.add_typer(address_app, name="address")
app.add_typer(settings_app, name="settings")
app.command("scan")(scan_command)
app.command("open")(open_command)
app.command("monitor")(monitor_command)


class JsonLineFormatter(logging.Formatter):
    """One JSON object per log line."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "severity": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
            "time": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
        }
        if record.exc_info and record.exc_info[1]:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def configure_logging(level: str = "WARNING", *, json_logs: bool = False) -> None:
    """Set up root logging for a CLI run.

    Args:
        level: Root log level name.
        json_logs: Emit JSON lines instead of plain text.
    """
    log_level = getattr(logging, level.upper(), logging.WARNING)
    if json_logs:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(JsonLineFormatter())
        logging.root.handlers.clear()
        logging.root.addHandler(handler)
        logging.root.setLevel(log_level)
    else:
        logging.basicConfig(
            level=log_level,
            format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
            stream=sys.stderr,
        )

    # Quieten noisy libraries
    logging.getLogger("asyncio").setLevel(logging.WARNING)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool = typer.Option(False, "--version", help="Show version and exit."),
    log_level: str = typer.Option("WARNING", "--log-level", "-l", envvar="OWNERLINK_LOG_LEVEL", help="Log level."),
    json_logs: bool = typer.Option(False, "--json-logs", help="Emit logs as JSON lines."),
) -> None:
    """Show help when no subcommand is provided."""
    if version:
        typer.echo(f"ownerlink {VERSION}")
        raise typer.Exit()
    configure_logging(log_level, json_logs=json_logs)
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


if __name__ == "__main__":
    app()
