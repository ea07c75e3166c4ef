"""Live browser runner — attach the engine to real pages.

``LiveBrowser`` owns the Playwright lifecycle. ``LivePageRunner`` mimics a
content script: every full page load gets a fresh ``PageSession`` over
the page's single ``PlaywrightDocument``; client-side navigations are left
to the session's navigation watcher.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import suppress
from typing import Literal

from playwright.async_api import Browser, BrowserContext, Page, Playwright, Response, async_playwright
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeout

from ownerlink.browser.playwright_document import PlaywrightDocument
from ownerlink.engine.factory import create_session
from ownerlink.engine.session import PageSession
from ownerlink.exceptions import NavigationError
from ownerlink.extraction.resolver import MessageChannel
from ownerlink.rules.loader import RuleSource
from ownerlink.settings.config import Settings

logger = logging.getLogger(__name__)

# Playwright error substrings that indicate non-retryable navigation failures.
_NON_RETRYABLE_ERRORS: tuple[str, ...] = (
    "ERR_NAME_NOT_RESOLVED",
    "ERR_CONNECTION_REFUSED",
    "ERR_CONNECTION_RESET",
    "ERR_SSL_PROTOCOL_ERROR",
    "ERR_CERT_AUTHORITY_INVALID",
    "ERR_ADDRESS_UNREACHABLE",
)

WaitUntil = Literal["commit", "domcontentloaded", "load", "networkidle"]

_FALLBACK_STRATEGY: list[WaitUntil] = ["networkidle", "load", "domcontentloaded"]


async def resilient_goto(
    page: Page,
    url: str,
    *,
    timeout_ms: int = 30_000,
    wait_until: WaitUntil = "networkidle",
) -> Response | None:
    """Navigate to *url*, falling back to weaker wait strategies on timeout.

    Marketplace pages often keep websockets open and never reach
    ``networkidle``; ``load`` and then ``domcontentloaded`` are tried next.

    Raises:
        NavigationError: On DNS, connection or TLS failures.
        PlaywrightTimeout: If every strategy times out.
    """
    strategies = _build_fallback_chain(wait_until)

    last_error: PlaywrightTimeout | None = None
    for strategy in strategies:
        try:
            logger.debug("goto %s (wait_until=%s, timeout=%dms)", url, strategy, timeout_ms)
            return await page.goto(url, wait_until=strategy, timeout=timeout_ms)
        except PlaywrightError as exc:
            error_msg = str(exc)
            for pattern in _NON_RETRYABLE_ERRORS:
                if pattern in error_msg:
                    reason = pattern.replace("ERR_", "").replace("_", " ").lower()
                    logger.warning("Navigation to %s failed (non-retryable): %s", url, pattern)
                    raise NavigationError(url, reason) from exc
            if isinstance(exc, PlaywrightTimeout):
                logger.warning("Navigation to %s timed out with wait_until=%s, retrying", url, strategy)
                last_error = exc
            else:
                raise

    raise last_error  # type: ignore[misc]


def _build_fallback_chain(preferred: WaitUntil) -> list[WaitUntil]:
    if preferred not in _FALLBACK_STRATEGY:
        return [preferred]
    return _FALLBACK_STRATEGY[_FALLBACK_STRATEGY.index(preferred):]


class LiveBrowser:
    """Chromium via Playwright, configured from ``BrowserSettings``.

    Args:
        settings: ownerlink settings.
    """

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._context: BrowserContext | None = None

    async def start(self) -> None:
        cfg = self._settings.browser
        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.launch(headless=cfg.headless)
        self._context = await self._browser.new_context(
            viewport={"width": cfg.viewport_width, "height": cfg.viewport_height},
            user_agent=cfg.user_agent or None,
        )
        self._context.set_default_timeout(cfg.timeout_ms)
        logger.info("Browser started (headless=%s)", cfg.headless)

    async def new_page(self) -> Page:
        if self._context is None:
            raise RuntimeError("LiveBrowser.start() has not been called")
        return await self._context.new_page()

    async def stop(self) -> None:
        """Close everything. Safe to call on a crashed browser."""
        if self._context is not None:
            with suppress(Exception):
                await self._context.close()
            self._context = None
        if self._browser is not None:
            with suppress(Exception):
                await self._browser.close()
            self._browser = None
        if self._playwright is not None:
            with suppress(Exception):
                await self._playwright.stop()
            self._playwright = None
        logger.info("Browser stopped")

    async def __aenter__(self) -> "LiveBrowser":
        await self.start()
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.stop()


class LivePageRunner:
    """Runs a fresh ``PageSession`` for every full load of *page*.

    Args:
        page: The Playwright page to attach to.
        settings: ownerlink settings.
        rule_source: Rule source override (defaults to the configured rule file).
        channel: Resolver channel for token-id rules.
        state_globals: ``window`` globals exposed to expressions.
    """

    def __init__(
        self,
        page: Page,
        settings: Settings,
        *,
        rule_source: RuleSource | None = None,
        channel: MessageChannel | None = None,
        state_globals: tuple[str, ...] = (),
    ) -> None:
        self._page = page
        self._settings = settings
        self._rule_source = rule_source
        self._channel = channel
        # One document per page: the mutation binding survives reloads, the observer is re-armed per session
        self._document = PlaywrightDocument(
            page,
            control_class=settings.chat.control_class,
            state_globals=state_globals,
        )
        self._session: PageSession | None = None
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def session(self) -> PageSession | None:
        return self._session

    def attach(self) -> None:
        """Start a session on every ``load`` event of the page."""
        self._page.on("load", lambda _page: self._spawn(self.restart()))

    async def restart(self) -> PageSession:
        """Stop the current session (if any) and start a new one for the current page."""
        if self._session is not None:
            await self._session.stop()
        self._session = create_session(
            self._document,
            self._settings,
            rule_source=self._rule_source,
            channel=self._channel,
        )
        await self._session.start()
        return self._session

    async def stop(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        if self._session is not None:
            await self._session.stop()
            self._session = None

    def _spawn(self, coro) -> None:
        task = asyncio.get_running_loop().create_task(self._guarded(coro))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    @staticmethod
    async def _guarded(coro) -> None:
        try:
            await coro
        except Exception:
            logger.exception("Page session failed to start")
