"""Content-tree abstraction the engine runs against.

The engine never touches a browser or parser directly. It talks to a
``Document``: something that can report the current location, answer CSS
queries with searchable lxml snapshots, place the single chat control, and
notify structural changes. ``HtmlDocument`` (in-memory lxml) and
``PlaywrightDocument`` (live page) implement it.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable
from urllib.parse import urlsplit

import lxml.html

from ownerlink.rules.models import InsertionMode

_DEFAULT_PORTS = {"http": "80", "https": "443"}


@dataclass(frozen=True)
class PageLocation:
    """Read-only view of a page URL with browser ``Location`` field names."""

    href: str
    protocol: str
    host: str
    hostname: str
    port: str
    pathname: str
    search: str
    hash: str
    origin: str

    @classmethod
    def from_url(cls, url: str) -> "PageLocation":
        parts = urlsplit(url)
        hostname = parts.hostname or ""
        port = str(parts.port) if parts.port else ""
        if port and _DEFAULT_PORTS.get(parts.scheme) == port:
            port = ""
        host = f"{hostname}:{port}" if port else hostname
        protocol = f"{parts.scheme}:" if parts.scheme else ""
        return cls(
            href=url,
            protocol=protocol,
            host=host,
            hostname=hostname,
            port=port,
            pathname=parts.path or "/",
            search=f"?{parts.query}" if parts.query else "",
            hash=f"#{parts.fragment}" if parts.fragment else "",
            origin=f"{protocol}//{host}" if host else "null",
        )


@dataclass
class ElementRef:
    """A node matched by a CSS query.

    Attributes:
        selector: The selector that produced the match.
        tree: lxml snapshot of the matched subtree, used for searching.
        handle: Backend-specific handle used for placing the control.
    """

    selector: str
    tree: lxml.html.HtmlElement
    handle: Any = None


@dataclass(frozen=True)
class MutationBatch:
    """One batch of structural change notifications.

    ``added_nodes`` never counts the chat control itself, so placing the
    control cannot trigger a re-dispatch.
    """

    added_nodes: int = 0
    removed_nodes: int = 0


@dataclass(frozen=True)
class ChatControl:
    """The call-to-action control to place in a page.

    Attributes:
        address: The located address.
        label: Visible label text.
        href: Chat URL opened in a new browsing context on activation.
        css_class: Class tagging every control instance for removal.
        attributes: Extra attributes rendered on the control element.
    """

    address: str
    label: str
    href: str
    css_class: str
    attributes: Mapping[str, str] = field(default_factory=dict)


MutationCallback = Callable[[MutationBatch], None]
Unsubscribe = Callable[[], Any]


@runtime_checkable
class Document(Protocol):
    """The page the engine extracts from and injects into."""

    async def current_url(self) -> str:
        """Return the page URL as it is right now."""
        ...

    async def location(self) -> PageLocation:
        """Return a read-only view of the current location."""
        ...

    async def exposed_state(self) -> Mapping[str, Any]:
        """Return the page-exposed state visible to expressions."""
        ...

    async def query(self, selector: str) -> ElementRef | None:
        """Return the first node matching *selector*, or ``None``."""
        ...

    async def place_control(self, target: ElementRef, control: ChatControl, mode: InsertionMode) -> int:
        """Remove every existing control, then insert *control* relative to *target*.

        Returns:
            The number of pre-existing controls removed.
        """
        ...

    async def observe_mutations(self, callback: MutationCallback) -> Unsubscribe:
        """Subscribe *callback* to structural change batches."""
        ...
