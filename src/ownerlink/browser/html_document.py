"""In-memory ``Document`` over an lxml HTML tree.

Used for offline scans of saved pages and as the test double for the
engine. Matched elements are the live tree nodes, so placing a control
mutates the same tree later queries see. Structural changes made through
``append_html`` / ``replace_html`` are reported to mutation observers the
way a browser ``MutationObserver`` would batch them.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import lxml.html
from lxml import etree

from ownerlink.browser.document import (
    ChatControl,
    ElementRef,
    MutationBatch,
    MutationCallback,
    PageLocation,
    Unsubscribe,
)
from ownerlink.rules.models import InsertionMode

logger = logging.getLogger(__name__)


def render_control(control: ChatControl) -> lxml.html.HtmlElement:
    """Build the lxml element for *control*."""
    attrs = {
        "type": "button",
        "class": control.css_class,
        "data-address": control.address,
        "data-href": control.href,
        "title": control.label,
    }
    attrs.update(control.attributes)
    button = lxml.html.Element("button", attrs)
    text = etree.SubElement(button, "span", {"class": "text"})
    text.text = control.label
    return button


class HtmlDocument:
    """A ``Document`` backed by a parsed HTML string.

    Args:
        html: Full page markup.
        url: The page URL reported to the engine.
        state: Page-exposed state visible to expressions.
    """

    def __init__(self, html: str, url: str, *, state: Mapping[str, Any] | None = None) -> None:
        self._root: lxml.html.HtmlElement = lxml.html.document_fromstring(html)
        self._url = url
        self._state: dict[str, Any] = dict(state or {})
        self._observers: list[MutationCallback] = []

    @classmethod
    def from_file(cls, path: str, url: str, **kwargs: Any) -> "HtmlDocument":
        with open(path, encoding="utf-8") as f:
            return cls(f.read(), url, **kwargs)

    # ------------------------------------------------------------------
    # Document protocol
    # ------------------------------------------------------------------

    async def current_url(self) -> str:
        return self._url

    async def location(self) -> PageLocation:
        return PageLocation.from_url(self._url)

    async def exposed_state(self) -> Mapping[str, Any]:
        return self._state

    async def query(self, selector: str) -> ElementRef | None:
        matches = self._root.cssselect(selector)
        if not matches:
            return None
        return ElementRef(selector=selector, tree=matches[0], handle=matches[0])

    async def place_control(self, target: ElementRef, control: ChatControl, mode: InsertionMode) -> int:
        removed = self._remove_controls(control.css_class)
        element = render_control(control)
        container: lxml.html.HtmlElement = target.handle if target.handle is not None else target.tree

        if mode is InsertionMode.APPEND:
            container.append(element)
        elif mode is InsertionMode.PREPEND:
            container.insert(0, element)
        elif mode is InsertionMode.AFTER:
            container.addnext(element)
        elif mode is InsertionMode.BEFORE:
            container.addprevious(element)
        return removed

    async def observe_mutations(self, callback: MutationCallback) -> Unsubscribe:
        self._observers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._observers:
                self._observers.remove(callback)

        return _unsubscribe

    # ------------------------------------------------------------------
    # Page simulation
    # ------------------------------------------------------------------

    def navigate(self, url: str) -> None:
        """Change the URL without a page load, like a client-side route change."""
        self._url = url

    def set_state(self, state: Mapping[str, Any]) -> None:
        self._state = dict(state)

    def append_html(self, selector: str, fragment: str) -> int:
        """Append *fragment* under the first node matching *selector* and notify observers.

        Returns:
            The number of element nodes added.
        """
        container = self._first(selector)
        added = 0
        for node in lxml.html.fragments_fromstring(fragment):
            if isinstance(node, str):
                # Leading text before the first element
                if len(container):
                    last = container[-1]
                    last.tail = (last.tail or "") + node
                else:
                    container.text = (container.text or "") + node
                continue
            container.append(node)
            added += 1
        self.notify(MutationBatch(added_nodes=added))
        return added

    def replace_html(self, selector: str, fragment: str) -> int:
        """Replace the children of the first node matching *selector* and notify observers."""
        container = self._first(selector)
        removed = len(container)
        for child in list(container):
            container.remove(child)
        container.text = None
        added = self.append_html(selector, fragment) if fragment else 0
        if not fragment:
            self.notify(MutationBatch(removed_nodes=removed))
        return added

    def notify(self, batch: MutationBatch) -> None:
        """Deliver *batch* to every observer."""
        for callback in list(self._observers):
            callback(batch)

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    @property
    def root(self) -> lxml.html.HtmlElement:
        return self._root

    def controls(self, css_class: str) -> list[lxml.html.HtmlElement]:
        """Return every control element currently in the tree."""
        return self._root.find_class(css_class)

    def to_html(self) -> str:
        return lxml.html.tostring(self._root, encoding="unicode")

    def _first(self, selector: str) -> lxml.html.HtmlElement:
        matches = self._root.cssselect(selector)
        if not matches:
            raise LookupError(f"No element matches {selector!r}")
        return matches[0]

    def _remove_controls(self, css_class: str) -> int:
        existing = self.controls(css_class)
        for element in existing:
            element.drop_tree()
        if existing:
            logger.debug("Removed %d existing control(s)", len(existing))
        return len(existing)
