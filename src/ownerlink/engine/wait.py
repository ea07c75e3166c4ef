"""Bounded element wait — poll the document until a selector matches.

Polling at a short fixed interval keeps the primitive independent of the
backend's change-notification machinery; the timeout bounds the worst case.
Every poll yields to the event loop, so waits never block other triggers.
"""

from __future__ import annotations

import asyncio
import logging
import time

from ownerlink.browser.document import Document, ElementRef
from ownerlink.exceptions import SelectorTimeout

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 30_000
DEFAULT_INTERVAL_MS = 100


async def wait_for_element(
    document: Document,
    selector: str,
    timeout_ms: int = DEFAULT_TIMEOUT_MS,
    interval_ms: int = DEFAULT_INTERVAL_MS,
    *,
    step: str = "",
) -> ElementRef:
    """Return the first node matching *selector*, polling until it appears.

    Args:
        document: The document to query.
        selector: CSS selector.
        timeout_ms: Give up once this much time has elapsed.
        interval_ms: Delay between polls.
        step: Dispatch step name recorded on timeout.

    Raises:
        SelectorTimeout: If nothing matched within *timeout_ms*.
    """
    deadline = time.monotonic() + timeout_ms / 1000
    while True:
        ref = await document.query(selector)
        if ref is not None:
            return ref
        if time.monotonic() >= deadline:
            logger.debug("Selector %r not found within %d ms", selector, timeout_ms)
            raise SelectorTimeout(selector, timeout_ms, step=step)
        await asyncio.sleep(interval_ms / 1000)


async def wait_for_any(
    document: Document,
    primary: str,
    secondary: str | None = None,
    timeout_ms: int = DEFAULT_TIMEOUT_MS,
    interval_ms: int = DEFAULT_INTERVAL_MS,
    *,
    step: str = "",
) -> ElementRef:
    """Wait for *primary*; on timeout, wait for *secondary* when one is given.

    Raises:
        SelectorTimeout: If the primary timed out and there is no secondary,
            or the secondary timed out as well.
    """
    try:
        return await wait_for_element(document, primary, timeout_ms, interval_ms, step=step)
    except SelectorTimeout:
        if not secondary:
            raise
        logger.info("Primary selector %r timed out, trying secondary %r", primary, secondary)
    return await wait_for_element(document, secondary, timeout_ms, interval_ms, step=f"{step}_secondary" if step else "secondary")
