"""Change watchers that re-enter the dispatcher.

``StructuralWatcher`` collapses bursts of DOM churn into one re-dispatch per
debounce window. ``NavigationWatcher`` notices client-side URL changes and,
after a settle delay, asks for full rule selection again.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from ownerlink.browser.document import Document, MutationBatch, Unsubscribe

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_MS = 500
DEFAULT_NAVIGATION_POLL_MS = 250
DEFAULT_SETTLE_MS = 1_000


class StructuralWatcher:
    """Debounced re-dispatch on structural changes.

    Every batch with added nodes restarts the debounce timer; when the timer
    expires without another batch, *on_change* runs once.

    Args:
        document: The document to observe.
        on_change: Coroutine function run after each quiet period.
        debounce_ms: Quiet period length.
    """

    def __init__(
        self,
        document: Document,
        on_change: Callable[[], Awaitable[object]],
        debounce_ms: int = DEFAULT_DEBOUNCE_MS,
    ) -> None:
        self._document = document
        self._on_change = on_change
        self._debounce = debounce_ms / 1000
        self._pending: asyncio.Task[None] | None = None
        self._unsubscribe: Unsubscribe | None = None
        self._running: set[asyncio.Task[None]] = set()
        self.fired = 0

    @property
    def active(self) -> bool:
        return self._unsubscribe is not None

    async def start(self) -> None:
        if self._unsubscribe is None:
            self._unsubscribe = await self._document.observe_mutations(self._on_batch)
            logger.debug("Structural watcher armed (debounce %.0f ms)", self._debounce * 1000)

    async def stop(self) -> None:
        if self._unsubscribe is not None:
            result = self._unsubscribe()
            if asyncio.iscoroutine(result):
                await result
            self._unsubscribe = None
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    def _on_batch(self, batch: MutationBatch) -> None:
        if batch.added_nodes <= 0 or self._unsubscribe is None:
            return
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = asyncio.get_running_loop().create_task(self._debounced())

    async def wait_idle(self) -> None:
        """Wait for re-dispatches already started to finish."""
        while self._running:
            await asyncio.gather(*list(self._running), return_exceptions=True)

    async def _debounced(self) -> None:
        await asyncio.sleep(self._debounce)
        # Detach from the timer so a batch arriving mid-dispatch starts a new window
        self._pending = None
        self.fired += 1
        logger.debug("Structural change settled, re-dispatching")
        task = asyncio.get_running_loop().create_task(self._run())
        self._running.add(task)
        task.add_done_callback(self._running.discard)

    async def _run(self) -> None:
        try:
            await self._on_change()
        except Exception:
            logger.exception("Re-dispatch after structural change failed")


class NavigationWatcher:
    """Detects URL changes that happen without a page load.

    Args:
        document: The document whose URL is polled.
        on_navigate: Coroutine function receiving the new URL after the settle delay.
        poll_ms: URL poll interval.
        settle_ms: Delay between detecting a change and calling *on_navigate*.
            A newer navigation during the delay supersedes the pending one.
    """

    def __init__(
        self,
        document: Document,
        on_navigate: Callable[[str], Awaitable[object]],
        poll_ms: int = DEFAULT_NAVIGATION_POLL_MS,
        settle_ms: int = DEFAULT_SETTLE_MS,
    ) -> None:
        self._document = document
        self._on_navigate = on_navigate
        self._poll = poll_ms / 1000
        self._settle = settle_ms / 1000
        self._last_url: str | None = None
        self._loop_task: asyncio.Task[None] | None = None
        self._pending: asyncio.Task[None] | None = None
        self._running: set[asyncio.Task[None]] = set()

    @property
    def last_url(self) -> str | None:
        return self._last_url

    async def start(self) -> None:
        if self._loop_task is not None:
            return
        self._last_url = await self._document.current_url()
        self._loop_task = asyncio.get_running_loop().create_task(self._poll_loop())
        logger.debug("Navigation watcher started at %s", self._last_url)

    async def stop(self) -> None:
        for task in (self._loop_task, self._pending):
            if task is not None and not task.done():
                task.cancel()
        self._loop_task = None
        self._pending = None

    async def check(self) -> bool:
        """Compare the current URL with the last one seen; schedule a callback on change."""
        url = await self._document.current_url()
        if url == self._last_url:
            return False
        logger.info("Navigation detected: %s → %s", self._last_url, url)
        self._last_url = url
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = asyncio.get_running_loop().create_task(self._settled(url))
        return True

    async def wait_idle(self) -> None:
        """Wait for navigation handlers already started to finish."""
        while self._running:
            await asyncio.gather(*list(self._running), return_exceptions=True)

    async def _poll_loop(self) -> None:
        while True:
            await asyncio.sleep(self._poll)
            try:
                await self.check()
            except Exception:
                logger.exception("Navigation check failed")

    async def _settled(self, url: str) -> None:
        await asyncio.sleep(self._settle)
        # Once settled the handler runs to completion even if another navigation arrives
        self._pending = None
        task = asyncio.get_running_loop().create_task(self._run(url))
        self._running.add(task)
        task.add_done_callback(self._running.discard)

    async def _run(self, url: str) -> None:
        try:
            await self._on_navigate(url)
        except Exception:
            logger.exception("Handling navigation to %s failed", url)
