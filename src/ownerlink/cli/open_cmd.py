"""``ownerlink open`` — run the engine on a live page in Chromium."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

console = Console()


async def _open(url: str, duration: float, settings, rule_source, channel, state_globals: tuple[str, ...]):
    from ownerlink.browser.live import LiveBrowser, LivePageRunner, resilient_goto

    outcomes = []
    async with LiveBrowser(settings) as browser:
        page = await browser.new_page()
        runner = LivePageRunner(
            page, settings, rule_source=rule_source, channel=channel, state_globals=state_globals
        )
        runner.attach()
        try:
            await resilient_goto(page, url, timeout_ms=settings.browser.timeout_ms)
            if duration > 0:
                await asyncio.sleep(duration)
            else:
                # Until the browser window is closed
                await page.wait_for_event("close", timeout=0)
        finally:
            if runner.session is not None:
                outcomes = list(runner.session.outcomes)
            await runner.stop()
    return outcomes


def open_command(
    url: str = typer.Argument(..., help="Page to open."),
    duration: float = typer.Option(30.0, "--duration", "-d", help="Seconds to keep the page open (0 = until closed)."),
    headed: bool = typer.Option(False, "--headed", help="Show the browser window."),
    rules_path: Optional[Path] = typer.Option(None, "--rules", "-r", help="Override rule file."),
    owners: Optional[Path] = typer.Option(None, "--owners", help="JSON object mapping token ids to owner addresses."),
    state_global: list[str] = typer.Option([], "--state-global", "-g", help="Page global exposed to expressions."),
) -> None:
    """Open a page with the engine attached and report every dispatch."""
    from ownerlink.exceptions import NavigationError
    from ownerlink.extraction.resolver import MappingOwnerChannel
    from ownerlink.rules.loader import JsonFileRuleSource
    from ownerlink.settings import get_settings

    settings = get_settings()
    if headed:
        settings = settings.model_copy(update={"browser": settings.browser.model_copy(update={"headless": False})})
    rule_source = JsonFileRuleSource(rules_path) if rules_path else None
    channel = MappingOwnerChannel.from_file(owners) if owners else None

    try:
        outcomes = asyncio.run(_open(url, duration, settings, rule_source, channel, tuple(state_global)))
    except NavigationError as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(code=1)
    except KeyboardInterrupt:
        console.print("[dim]Interrupted[/dim]")
        raise typer.Exit(code=130)

    if not outcomes:
        console.print(f"No dispatches ran on {url}")
        return

    table = Table(title=f"Dispatches on {url}")
    table.add_column("#", style="dim", width=4)
    table.add_column("Page", max_width=50)
    table.add_column("Method")
    table.add_column("Address", style="cyan")
    table.add_column("Result")
    for i, outcome in enumerate(outcomes, 1):
        result = "[green]inserted[/green]" if outcome.ok else f"[red]{outcome.failure.value if outcome.failure else '?'}[/red]"
        table.add_row(str(i), outcome.page_url, outcome.method.value, outcome.address or "", result)
    console.print(table)
