"""Document search — find the first address-shaped string in a content subtree.

Search order for a node:

1. Attribute values, in document order. ``href``-like attributes pointing
   at a known profile/explorer path short-circuit to the path segment after
   the marker; other values are pattern matched.
2. The node's full text content.
3. Element children, depth-first in document order.

The first hit anywhere ends the search. The injected control is skipped so
a stale control never feeds its own address back into a re-dispatch.
"""

from __future__ import annotations

import logging
import re

import lxml.html

from ownerlink.address.patterns import XRPL_ADDRESS, AddressPattern

logger = logging.getLogger(__name__)

HREF_ATTRIBUTES: frozenset[str] = frozenset({"href", "data-href", "{http://www.w3.org/1999/xlink}href", "xlink:href"})
PATH_MARKERS: tuple[str, ...] = ("/profile/", "/explorer/")

_SEGMENT_END_RE = re.compile(r"[/?#]")


def address_from_path(value: str) -> str | None:
    """Return the path segment that follows a known marker in *value*, if any.

    Hash-routed links (``/#/profile/r…``) are handled the same as plain paths.
    """
    for marker in PATH_MARKERS:
        if marker in value:
            remainder = value.split(marker, 1)[1]
            segment = _SEGMENT_END_RE.split(remainder, maxsplit=1)[0]
            if segment:
                return segment
    return None


def _is_element(node: object) -> bool:
    return isinstance(getattr(node, "tag", None), str)


def _has_class(node: lxml.html.HtmlElement, css_class: str) -> bool:
    return css_class in (node.get("class") or "").split()


def find_address_in_node(
    node: lxml.html.HtmlElement | None,
    *,
    pattern: AddressPattern = XRPL_ADDRESS,
    skip_class: str | None = None,
) -> str | None:
    """Return the first address found in *node*'s subtree, or ``None``.

    Args:
        node: Root of the subtree to search.
        pattern: Address pattern to match.
        skip_class: CSS class of elements excluded from the search.

    Returns:
        The address, or ``None`` once the whole subtree is exhausted.
    """
    if node is None or not _is_element(node):
        return None
    if skip_class and _has_class(node, skip_class):
        return None

    for name, value in node.attrib.items():
        if name in HREF_ATTRIBUTES:
            from_path = address_from_path(value)
            if from_path:
                logger.debug("Address in %s path: %s", name, from_path)
                return from_path
        found = pattern.match(value)
        if found:
            logger.debug("Address in attribute %s", name)
            return found

    found = pattern.match(_text_without(node, skip_class))
    if found:
        logger.debug("Address in text content of <%s>", node.tag)
        return found

    for child in node.iterchildren():
        if not _is_element(child):
            continue
        found = find_address_in_node(child, pattern=pattern, skip_class=skip_class)
        if found:
            return found
    return None


def search_document(
    root: lxml.html.HtmlElement,
    *,
    pattern: AddressPattern = XRPL_ADDRESS,
    skip_class: str | None = None,
) -> str | None:
    """Search a whole document tree, starting at ``<body>`` when present."""
    body = root.find("body") if root.tag == "html" else None
    return find_address_in_node(body if body is not None else root, pattern=pattern, skip_class=skip_class)


def _text_without(node: lxml.html.HtmlElement, skip_class: str | None) -> str:
    """Full text content of *node*, leaving out subtrees carrying *skip_class*."""
    if not skip_class or not node.find_class(skip_class):
        return node.text_content()
    parts: list[str] = []

    def _walk(el: lxml.html.HtmlElement) -> None:
        if _is_element(el) and not _has_class(el, skip_class):
            if el.text:
                parts.append(el.text)
            for child in el:
                _walk(child)
        if el is not node and el.tail:
            parts.append(el.tail)

    _walk(node)
    return "".join(parts)
