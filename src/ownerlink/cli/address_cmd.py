"""CLI commands for wallet addresses — scan text and build chat links."""

from __future__ import annotations

import json
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

address_app = typer.Typer(help="Address tools — find addresses in text and build chat links.")
console = Console()


# ---------------------------------------------------------------------------
# ownerlink address find <file-or-text>
# ---------------------------------------------------------------------------


@address_app.command("find")
def find(
    source: str = typer.Argument(..., help="Text string or path to a file to scan for addresses."),
    json_output: bool = typer.Option(False, "--json", "-j", help="Output results as JSON."),
) -> None:
    """Find every address-shaped token in text or a file."""
    from ownerlink.address.patterns import find_addresses

    path = Path(source)
    if path.exists() and path.is_file():
        text = path.read_text(encoding="utf-8")
        label = str(path)
    else:
        text = source
        label = "<text>"

    results = find_addresses(text)

    if json_output:
        console.print_json(json.dumps(results, indent=2))
        return

    if not results:
        console.print(f"No addresses found in {label}")
        raise typer.Exit(code=1)

    table = Table(title=f"Addresses found in {label}")
    table.add_column("#", style="dim", width=4)
    table.add_column("Address", style="cyan")
    for i, address in enumerate(results, 1):
        table.add_row(str(i), address)
    console.print(table)


# ---------------------------------------------------------------------------
# ownerlink address chat-url <address>
# ---------------------------------------------------------------------------


@address_app.command("chat-url")
def chat_url(
    address: str = typer.Argument(..., help="Wallet address to link."),
) -> None:
    """Print the chat link the injected control would open."""
    from ownerlink.address.patterns import is_address, sanitize_address
    from ownerlink.engine.injector import build_chat_url
    from ownerlink.settings import get_settings

    if not is_address(sanitize_address(address)):
        console.print(f"[yellow]![/yellow] {address!r} does not look like an address")
    typer.echo(build_chat_url(address, get_settings().chat))
