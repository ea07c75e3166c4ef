"""Page backends for the engine.

* ``document`` — the ``Document`` protocol and shared value types.
* ``html_document`` — in-memory lxml implementation.
* ``playwright_document`` — live Playwright page implementation.
"""

from ownerlink.browser.document import ChatControl, Document, ElementRef, MutationBatch, PageLocation
from ownerlink.browser.html_document import HtmlDocument

__all__ = [
    "ChatControl",
    "Document",
    "ElementRef",
    "HtmlDocument",
    "MutationBatch",
    "PageLocation",
]
