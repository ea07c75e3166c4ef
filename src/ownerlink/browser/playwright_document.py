"""``Document`` over a live Playwright page.

Matched elements are snapshotted (``outerHTML``) into lxml subtrees so the
address search runs in Python exactly as it does offline; the element
handle is kept for placing the control. Control placement and the
structural-change observer run inside the page.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

import lxml.html
from lxml import etree
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page

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

_BINDING = "__ownerlinkMutations"

# Remove every control, then build and insert the new one in the same task.
_PLACE_CONTROL_JS = """
(target, c) => {
  const existing = document.querySelectorAll('.' + CSS.escape(c.cssClass));
  existing.forEach((el) => el.remove());

  const button = document.createElement('button');
  button.type = 'button';
  button.classList.add(c.cssClass);
  button.dataset.address = c.address;
  button.dataset.href = c.href;
  button.title = c.label;
  for (const [name, value] of Object.entries(c.attributes)) {
    button.setAttribute(name, value);
  }
  const text = document.createElement('span');
  text.classList.add('text');
  text.textContent = c.label;
  button.appendChild(text);
  button.addEventListener('click', (event) => {
    event.preventDefault();
    event.stopPropagation();
    window.open(c.href, '_blank', 'noopener');
  });

  target.insertAdjacentElement(c.position, button);
  return existing.length;
}
"""

_OBSERVE_JS = """
({ binding, cssClass }) => {
  if (window.__ownerlinkObserver) return false;
  const isControl = (node) =>
    node.nodeType === 1 && (node.classList.contains(cssClass) || node.closest('.' + CSS.escape(cssClass)));
  const observer = new MutationObserver((mutations) => {
    let added = 0;
    let removed = 0;
    for (const m of mutations) {
      if (m.type !== 'childList') continue;
      m.addedNodes.forEach((node) => { if (!isControl(node)) added += 1; });
      removed += m.removedNodes.length;
    }
    if (added || removed) window[binding](added, removed);
  });
  observer.observe(document.body || document.documentElement, { childList: true, subtree: true });
  window.__ownerlinkObserver = observer;
  return true;
}
"""

_DISCONNECT_JS = """
() => {
  if (window.__ownerlinkObserver) {
    window.__ownerlinkObserver.disconnect();
    delete window.__ownerlinkObserver;
  }
}
"""

_EXPOSED_STATE_JS = """
(names) => {
  const out = {};
  for (const name of names) {
    try {
      const value = window[name];
      if (value !== undefined) out[name] = JSON.parse(JSON.stringify(value));
    } catch (e) {
      // Not serializable
    }
  }
  return out;
}
"""


def snapshot_tree(html: str) -> lxml.html.HtmlElement:
    """Parse an element's ``outerHTML`` into an lxml element."""
    try:
        return lxml.html.fragment_fromstring(html)
    except etree.ParserError:
        return lxml.html.fromstring(html)


class PlaywrightDocument:
    """A ``Document`` backed by a Playwright ``Page``.

    Exposed state is a JSON snapshot of the named globals, so functions on
    those objects are not callable from expressions on live pages.

    Args:
        page: The Playwright page.
        control_class: CSS class of the chat control.
        state_globals: Names of ``window`` globals exposed to expressions.
    """

    def __init__(
        self,
        page: Page,
        *,
        control_class: str = "contact-nft-owner-button",
        state_globals: Sequence[str] = (),
    ) -> None:
        self._page = page
        self._control_class = control_class
        self._state_globals = list(state_globals)
        self._observers: list[MutationCallback] = []
        self._binding_installed = False

    @property
    def page(self) -> Page:
        return self._page

    async def current_url(self) -> str:
        return self._page.url

    async def location(self) -> PageLocation:
        return PageLocation.from_url(self._page.url)

    async def exposed_state(self) -> Mapping[str, Any]:
        if not self._state_globals:
            return {}
        return await self._page.evaluate(_EXPOSED_STATE_JS, self._state_globals)

    async def query(self, selector: str) -> ElementRef | None:
        try:
            handle = await self._page.query_selector(selector)
            if handle is None:
                return None
            html = await handle.evaluate("(el) => el.outerHTML")
        except PlaywrightError as e:
            # Typically a navigation tore down the execution context; the next poll retries
            logger.debug("Query %r failed: %s", selector, e)
            return None
        return ElementRef(selector=selector, tree=snapshot_tree(html), handle=handle)

    async def place_control(self, target: ElementRef, control: ChatControl, mode: InsertionMode) -> int:
        payload = {
            "cssClass": control.css_class,
            "address": control.address,
            "href": control.href,
            "label": control.label,
            "attributes": dict(control.attributes),
            "position": mode.adjacent_position,
        }
        removed = await target.handle.evaluate(_PLACE_CONTROL_JS, payload)
        return int(removed or 0)

    async def observe_mutations(self, callback: MutationCallback) -> Unsubscribe:
        if not self._binding_installed:
            await self._page.expose_function(_BINDING, self._deliver)
            self._binding_installed = True
        self._observers.append(callback)
        await self._page.evaluate(_OBSERVE_JS, {"binding": _BINDING, "cssClass": self._control_class})

        async def _unsubscribe() -> None:
            if callback in self._observers:
                self._observers.remove(callback)
            if not self._observers:
                try:
                    await self._page.evaluate(_DISCONNECT_JS)
                except PlaywrightError as e:
                    logger.debug("Observer disconnect failed (page gone?): %s", e)

        return _unsubscribe

    def _deliver(self, added: int, removed: int) -> None:
        batch = MutationBatch(added_nodes=int(added), removed_nodes=int(removed))
        for callback in list(self._observers):
            callback(batch)
