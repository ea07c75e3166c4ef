"""Unit tests for the structural (debounced) and navigation watchers."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from ownerlink.browser.document import MutationBatch
from ownerlink.browser.html_document import HtmlDocument
from ownerlink.engine.watchers import NavigationWatcher, StructuralWatcher

PAGE = "<html><body><div id='feed'></div></body></html>"


def _doc(url: str = "https://a.test/page/1") -> HtmlDocument:
    return HtmlDocument(PAGE, url)


class TestStructuralWatcher:
    @pytest.mark.anyio
    async def test_burst_collapses_to_one_call(self) -> None:
        doc = _doc()
        on_change = AsyncMock()
        watcher = StructuralWatcher(doc, on_change, debounce_ms=50)
        await watcher.start()
        try:
            for i in range(10):
                doc.append_html("#feed", f"<p>item {i}</p>")
                await asyncio.sleep(0.005)
            await asyncio.sleep(0.12)
            await watcher.wait_idle()
        finally:
            await watcher.stop()
        assert on_change.await_count == 1
        assert watcher.fired == 1

    @pytest.mark.anyio
    async def test_separate_bursts(self) -> None:
        doc = _doc()
        on_change = AsyncMock()
        watcher = StructuralWatcher(doc, on_change, debounce_ms=30)
        await watcher.start()
        try:
            doc.append_html("#feed", "<p>a</p>")
            await asyncio.sleep(0.1)
            doc.append_html("#feed", "<p>b</p>")
            await asyncio.sleep(0.1)
            await watcher.wait_idle()
        finally:
            await watcher.stop()
        assert on_change.await_count == 2

    @pytest.mark.anyio
    async def test_removals_alone_are_ignored(self) -> None:
        doc = _doc()
        on_change = AsyncMock()
        watcher = StructuralWatcher(doc, on_change, debounce_ms=20)
        await watcher.start()
        try:
            doc.notify(MutationBatch(removed_nodes=3))
            await asyncio.sleep(0.06)
        finally:
            await watcher.stop()
        on_change.assert_not_awaited()

    @pytest.mark.anyio
    async def test_stop_cancels_pending_and_unsubscribes(self) -> None:
        doc = _doc()
        on_change = AsyncMock()
        watcher = StructuralWatcher(doc, on_change, debounce_ms=30)
        await watcher.start()
        assert watcher.active
        doc.append_html("#feed", "<p>a</p>")
        await watcher.stop()
        assert not watcher.active
        doc.append_html("#feed", "<p>b</p>")
        await asyncio.sleep(0.08)
        on_change.assert_not_awaited()

    @pytest.mark.anyio
    async def test_failing_callback_does_not_kill_watcher(self) -> None:
        doc = _doc()
        on_change = AsyncMock(side_effect=[RuntimeError("boom"), None])
        watcher = StructuralWatcher(doc, on_change, debounce_ms=20)
        await watcher.start()
        try:
            doc.append_html("#feed", "<p>a</p>")
            await asyncio.sleep(0.06)
            await watcher.wait_idle()
            doc.append_html("#feed", "<p>b</p>")
            await asyncio.sleep(0.06)
            await watcher.wait_idle()
        finally:
            await watcher.stop()
        assert on_change.await_count == 2


class TestNavigationWatcher:
    @pytest.mark.anyio
    async def test_check_detects_change(self) -> None:
        doc = _doc()
        on_navigate = AsyncMock()
        watcher = NavigationWatcher(doc, on_navigate, poll_ms=1000, settle_ms=20)
        await watcher.start()
        try:
            assert await watcher.check() is False
            doc.navigate("https://a.test/page/2")
            assert await watcher.check() is True
            assert watcher.last_url == "https://a.test/page/2"
            await asyncio.sleep(0.06)
            await watcher.wait_idle()
        finally:
            await watcher.stop()
        on_navigate.assert_awaited_once_with("https://a.test/page/2")

    @pytest.mark.anyio
    async def test_newer_navigation_supersedes_pending(self) -> None:
        doc = _doc()
        on_navigate = AsyncMock()
        watcher = NavigationWatcher(doc, on_navigate, poll_ms=1000, settle_ms=40)
        await watcher.start()
        try:
            doc.navigate("https://a.test/page/2")
            await watcher.check()
            await asyncio.sleep(0.01)
            doc.navigate("https://a.test/page/3")
            await watcher.check()
            await asyncio.sleep(0.1)
            await watcher.wait_idle()
        finally:
            await watcher.stop()
        on_navigate.assert_awaited_once_with("https://a.test/page/3")

    @pytest.mark.anyio
    async def test_poll_loop(self) -> None:
        doc = _doc()
        on_navigate = AsyncMock()
        watcher = NavigationWatcher(doc, on_navigate, poll_ms=5, settle_ms=10)
        await watcher.start()
        try:
            doc.navigate("https://a.test/page/2")
            await asyncio.sleep(0.08)
            await watcher.wait_idle()
        finally:
            await watcher.stop()
        on_navigate.assert_awaited_once_with("https://a.test/page/2")

    @pytest.mark.anyio
    async def test_stop_cancels_pending_settle(self) -> None:
        doc = _doc()
        on_navigate = AsyncMock()
        watcher = NavigationWatcher(doc, on_navigate, poll_ms=1000, settle_ms=30)
        await watcher.start()
        doc.navigate("https://a.test/page/2")
        await watcher.check()
        await watcher.stop()
        await asyncio.sleep(0.06)
        on_navigate.assert_not_awaited()
