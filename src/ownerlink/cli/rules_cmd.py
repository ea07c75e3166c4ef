"""CLI commands for site rule management.

Subcommands for listing, validating, and testing URL matching of the
authored site rules without opening a browser.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

rules_app = typer.Typer(help="Manage site rules — list, validate, and test URL matching.")
console = Console()


def _get_rules_path() -> Path:
    """Return the resolved rule file path from settings."""
    from ownerlink.settings import get_settings

    return Path(get_settings().rules.path)


def _load_or_exit(path: Path):
    from ownerlink.exceptions import RuleLoadFailure
    from ownerlink.rules.loader import load_rules_from_file

    try:
        return load_rules_from_file(path)
    except RuleLoadFailure as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(code=1)


# ---------------------------------------------------------------------------
# ownerlink rules list
# ---------------------------------------------------------------------------


@rules_app.command("list")
def rules_list(
    json_output: bool = typer.Option(False, "--json", "-j", help="Output as JSON."),
    path: Optional[Path] = typer.Option(None, "--file", "-f", help="Override rule file."),
) -> None:
    """List all site rules in match order."""
    rules_path = path or _get_rules_path()
    rules = _load_or_exit(rules_path)

    if json_output:
        data = [rule.model_dump(mode="json", by_alias=True, exclude_none=True) for rule in rules]
        console.print_json(json.dumps(data, indent=2))
        return

    table = Table(title=f"Site rules ({rules_path})")
    table.add_column("#", style="dim", width=4)
    table.add_column("URL prefix", style="cyan", max_width=50)
    table.add_column("Method")
    table.add_column("Dynamic", justify="center")
    table.add_column("Insert", style="dim", max_width=40)
    table.add_column("Category")

    for i, rule in enumerate(rules, 1):
        table.add_row(
            str(i),
            rule.url_prefix,
            rule.acquisition_method.value,
            "[green]✓[/green]" if rule.is_dynamic else "",
            f"{rule.insertion_mode.value} {rule.insert_selector}",
            rule.control_category.value,
        )

    console.print(table)
    console.print(f"\n[bold]{len(rules)}[/bold] rule(s) loaded")


# ---------------------------------------------------------------------------
# ownerlink rules match <url>
# ---------------------------------------------------------------------------


@rules_app.command("match")
def rules_match(
    url: str = typer.Argument(..., help="Page URL to match against the rule prefixes."),
    path: Optional[Path] = typer.Option(None, "--file", "-f", help="Override rule file."),
) -> None:
    """Show which rule would handle a URL (first matching prefix wins)."""
    from ownerlink.rules.matcher import RuleMatcher

    matcher = RuleMatcher(_load_or_exit(path or _get_rules_path()))
    rule = matcher.match(url)
    if rule is None:
        console.print(f"[yellow]No rule matches[/yellow] {url}")
        raise typer.Exit(code=1)

    console.print(f"[green]✓[/green] [bold cyan]{rule.url_prefix}[/bold cyan]")
    console.print(f"  Method:    {rule.acquisition_method.value}")
    console.print(f"  Dynamic:   {'Yes' if rule.is_dynamic else 'No'}")
    if rule.address_selector:
        console.print(f"  Selector:  {rule.address_selector}")
    if rule.secondary_selector:
        console.print(f"  Fallback:  {rule.secondary_selector}")
    console.print(f"  Insert:    {rule.insertion_mode.value} {rule.insert_selector}")

    shadowed = matcher.matches_for(url)[1:]
    if shadowed:
        console.print(f"  [dim]Also matching (shadowed): {', '.join(r.url_prefix for r in shadowed)}[/dim]")


# ---------------------------------------------------------------------------
# ownerlink rules validate
# ---------------------------------------------------------------------------


@rules_app.command("validate")
def rules_validate(
    path: Optional[Path] = typer.Argument(None, help="Path to a rule JSON file (defaults to the configured one)."),
) -> None:
    """Validate a rule file against the schema."""
    rules_path = path or _get_rules_path()
    if not rules_path.exists():
        console.print(f"[red]File not found:[/red] {rules_path}")
        raise typer.Exit(code=1)

    rules = _load_or_exit(rules_path)
    console.print(f"[green]✓[/green] {len(rules)} valid rule(s) in {rules_path}")

    seen: set[str] = set()
    for rule in rules:
        if rule.url_prefix in seen:
            console.print(f"  [yellow]![/yellow] Duplicate prefix (unreachable): {rule.url_prefix}")
        seen.add(rule.url_prefix)
