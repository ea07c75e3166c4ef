"""``ownerlink monitor`` — check every site rule against its live page."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

console = Console()


def _mark(value: bool | None) -> str:
    if value is None:
        return "[dim]–[/dim]"
    return "[green]✓[/green]" if value else "[red]✗[/red]"


def render_report(report) -> Table:
    """Build the rich table for a ``MonitorReport``."""
    table = Table(title="Site monitor")
    table.add_column("Rule", style="cyan", max_width=45)
    table.add_column("Redirect", justify="center")
    table.add_column("Click", justify="center")
    table.add_column("Selector", justify="center")
    table.add_column("Insert", justify="center")
    table.add_column("Control", justify="center")
    table.add_column("Detail", max_width=40)
    for check in report.checks:
        table.add_row(
            check.rule_prefix,
            "[yellow]yes[/yellow]" if check.redirected else "",
            _mark(check.clicked),
            _mark(check.address_selector_found),
            _mark(check.insert_selector_found),
            _mark(check.control_inserted),
            check.error or check.dispatch_failure or (check.address or ""),
        )
    return table


def monitor_command(
    rules_path: Optional[Path] = typer.Option(None, "--rules", "-r", help="Override rule file."),
    only: Optional[str] = typer.Option(None, "--only", help="Only check rules whose prefix contains this text."),
    headed: bool = typer.Option(False, "--headed", help="Show the browser windows."),
    json_output: bool = typer.Option(False, "--json", "-j", help="Output the report as JSON."),
) -> None:
    """Open each rule's monitor URL and check that the control still gets inserted."""
    from ownerlink.exceptions import RuleLoadFailure
    from ownerlink.monitor.monitor import SiteMonitor
    from ownerlink.rules.loader import load_rules_from_file
    from ownerlink.settings import get_settings

    settings = get_settings()
    if headed:
        settings = settings.model_copy(update={"browser": settings.browser.model_copy(update={"headless": False})})
    try:
        rules = load_rules_from_file(rules_path or settings.rules.path)
    except RuleLoadFailure as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(code=1)

    report = asyncio.run(SiteMonitor(settings).run(rules, only=only))

    if json_output:
        data = report.model_dump(mode="json")
        data["summary"] = {
            "total": report.total,
            "healthy": report.healthy_count,
            "redirected": report.redirected_count,
        }
        console.print_json(json.dumps(data, indent=2))
    else:
        console.print(render_report(report))
        console.print(
            f"\n[bold]{report.healthy_count}[/bold]/{report.total} healthy"
            f", {report.redirected_count} redirected, {len(report.skipped)} without a monitor URL"
        )

    if report.failing:
        raise typer.Exit(code=1)
