"""``ownerlink scan`` — dispatch a rule against a saved HTML page.

Runs the same extraction and injection as a live page, over an lxml copy
of the document. Useful for checking a rule against a page snapshot
without a browser.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

console = Console()


def scan_command(
    html_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Saved HTML page."),
    url: str = typer.Option(..., "--url", "-u", help="URL the page was saved from (selects the rule)."),
    rules_path: Optional[Path] = typer.Option(None, "--rules", "-r", help="Override rule file."),
    owners: Optional[Path] = typer.Option(None, "--owners", help="JSON object mapping token ids to owner addresses."),
    state: Optional[Path] = typer.Option(None, "--state", help="JSON object exposed to expressions as page globals."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the page with the control inserted."),
    json_output: bool = typer.Option(False, "--json", "-j", help="Output the outcome as JSON."),
) -> None:
    """Dispatch the matching rule against a saved HTML page."""
    from ownerlink.browser.html_document import HtmlDocument
    from ownerlink.engine.factory import create_dispatcher
    from ownerlink.exceptions import RuleLoadFailure
    from ownerlink.extraction.resolver import MappingOwnerChannel
    from ownerlink.rules.loader import load_rules_from_file
    from ownerlink.rules.matcher import RuleMatcher
    from ownerlink.settings import get_settings

    settings = get_settings()
    try:
        rules = load_rules_from_file(rules_path or settings.rules.path)
    except RuleLoadFailure as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(code=1)

    rule = RuleMatcher(rules).match(url)
    if rule is None:
        console.print(f"[yellow]No rule matches[/yellow] {url}")
        raise typer.Exit(code=1)

    page_state = json.loads(state.read_text(encoding="utf-8")) if state else None
    document = HtmlDocument.from_file(str(html_file), url, state=page_state)
    channel = MappingOwnerChannel.from_file(owners) if owners else None
    dispatcher = create_dispatcher(settings, channel=channel)

    outcome = asyncio.run(dispatcher.dispatch(rule, document))

    if output and outcome.injected:
        output.write_text(document.to_html(), encoding="utf-8")

    if json_output:
        console.print_json(outcome.model_dump_json(indent=2))
    elif outcome.ok:
        console.print(f"[green]✓[/green] {outcome.address}")
        console.print(f"  Rule:    {rule.url_prefix}")
        console.print(f"  Method:  {outcome.method.value}")
        console.print(f"  States:  {' → '.join(s.value for s in outcome.states)}")
        if output:
            console.print(f"  Written: {output}")
    else:
        console.print(f"[red]✗[/red] {outcome.failure.value if outcome.failure else 'failed'}: {outcome.detail}")
        if outcome.failed_step:
            console.print(f"  Step:    {outcome.failed_step}")
        if outcome.address:
            console.print(f"  Address: {outcome.address} (not inserted)")

    if not outcome.ok:
        raise typer.Exit(code=1)
