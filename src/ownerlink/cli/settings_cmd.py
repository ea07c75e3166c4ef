"""CLI commands for inspecting and validating ownerlink settings."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

settings_app = typer.Typer(help="Inspect and validate ownerlink configuration.")
console = Console()


@settings_app.command("show")
def show_settings(
    section: Optional[str] = typer.Argument(None, help="Only show one section (engine, chat, rules, ...)."),
) -> None:
    """Print the resolved settings as JSON."""
    from ownerlink.settings import get_settings

    data = get_settings().model_dump(mode="json")
    if section is not None:
        if section not in data:
            console.print(f"[red]Unknown section:[/red] {section} (one of {', '.join(sorted(data))})")
            raise typer.Exit(code=1)
        data = data[section]
    console.print_json(json.dumps(data, indent=2, default=str))


@settings_app.command("validate")
def validate_settings() -> None:
    """Check that the settings load and the files they point at are usable."""
    from ownerlink.exceptions import RuleLoadFailure
    from ownerlink.rules.loader import load_rules_from_file
    from ownerlink.settings import get_settings

    try:
        settings = get_settings()
    except Exception as e:
        console.print(f"[red]✗[/red] Settings failed to load: {e}")
        raise typer.Exit(code=1)

    console.print(f"[green]✓[/green] Settings loaded (env: {settings.env})")
    problems = 0

    try:
        rules = load_rules_from_file(settings.rules.path)
        console.print(f"  Rules:   {len(rules)} from {settings.rules.path}")
    except RuleLoadFailure as e:
        console.print(f"  [red]✗[/red] {e}")
        problems += 1

    locale_file = Path(settings.i18n.locales_dir) / settings.i18n.locale / "messages.json"
    if locale_file.is_file():
        console.print(f"  Locale:  {settings.i18n.locale}")
    else:
        console.print(f"  [yellow]![/yellow] No messages for locale {settings.i18n.locale!r}; labels fall back to {settings.i18n.default_locale!r}")

    if settings.rules.owners_path and not Path(settings.rules.owners_path).is_file():
        console.print(f"  [yellow]![/yellow] Owner mapping not found: {settings.rules.owners_path}")

    if problems:
        raise typer.Exit(code=1)
