"""Unit tests for the live browser layer — resilient goto and the Playwright document."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeout

from ownerlink.browser.document import ChatControl, MutationBatch
from ownerlink.browser.live import LiveBrowser, _build_fallback_chain, resilient_goto
from ownerlink.browser.playwright_document import PlaywrightDocument, snapshot_tree
from ownerlink.exceptions import NavigationError
from ownerlink.rules.models import InsertionMode
from ownerlink.settings.config import Settings

OWNER = "rN7n3473SaZBCG4dFL83w7p1W9cgZw6ihn"


# ---------------------------------------------------------------------------
# _build_fallback_chain
# ---------------------------------------------------------------------------

class TestBuildFallbackChain:
    def test_networkidle_produces_full_chain(self) -> None:
        assert _build_fallback_chain("networkidle") == ["networkidle", "load", "domcontentloaded"]

    def test_load_skips_networkidle(self) -> None:
        assert _build_fallback_chain("load") == ["load", "domcontentloaded"]

    def test_commit_has_no_fallback(self) -> None:
        assert _build_fallback_chain("commit") == ["commit"]


# ---------------------------------------------------------------------------
# resilient_goto
# ---------------------------------------------------------------------------

class TestResilientGoto:
    @pytest.mark.anyio
    async def test_success_on_first_try(self) -> None:
        page = MagicMock()
        sentinel = MagicMock(name="response")
        page.goto = AsyncMock(return_value=sentinel)

        result = await resilient_goto(page, "https://xrp.cafe/nft/1", timeout_ms=5000)

        assert result is sentinel
        page.goto.assert_awaited_once_with("https://xrp.cafe/nft/1", wait_until="networkidle", timeout=5000)

    @pytest.mark.anyio
    async def test_fallback_on_timeout(self) -> None:
        page = MagicMock()
        sentinel = MagicMock(name="response")
        page.goto = AsyncMock(side_effect=[PlaywrightTimeout("t1"), PlaywrightTimeout("t2"), sentinel])

        result = await resilient_goto(page, "https://xrp.cafe/nft/1")

        assert result is sentinel
        assert page.goto.await_count == 3
        assert page.goto.await_args.kwargs["wait_until"] == "domcontentloaded"

    @pytest.mark.anyio
    async def test_raises_when_all_strategies_time_out(self) -> None:
        page = MagicMock()
        page.goto = AsyncMock(side_effect=PlaywrightTimeout("all failed"))

        with pytest.raises(PlaywrightTimeout):
            await resilient_goto(page, "https://xrp.cafe/nft/1")
        assert page.goto.await_count == 3

    @pytest.mark.anyio
    async def test_dns_failure_is_not_retried(self) -> None:
        page = MagicMock()
        page.goto = AsyncMock(side_effect=PlaywrightError("net::ERR_NAME_NOT_RESOLVED at https://nope.test"))

        with pytest.raises(NavigationError) as exc_info:
            await resilient_goto(page, "https://nope.test")

        assert page.goto.await_count == 1
        assert exc_info.value.url == "https://nope.test"
        assert exc_info.value.reason == "name not resolved"

    @pytest.mark.anyio
    async def test_other_errors_propagate(self) -> None:
        page = MagicMock()
        page.goto = AsyncMock(side_effect=PlaywrightError("Target closed"))

        with pytest.raises(PlaywrightError):
            await resilient_goto(page, "https://xrp.cafe/")
        assert page.goto.await_count == 1


class TestLiveBrowser:
    @pytest.mark.anyio
    async def test_new_page_requires_start(self) -> None:
        browser = LiveBrowser(Settings())
        with pytest.raises(RuntimeError):
            await browser.new_page()

    @pytest.mark.anyio
    async def test_stop_without_start_is_safe(self) -> None:
        await LiveBrowser(Settings()).stop()


# ---------------------------------------------------------------------------
# PlaywrightDocument
# ---------------------------------------------------------------------------

def _page(url: str = "https://xrp.cafe/nft/1") -> MagicMock:
    page = MagicMock()
    page.url = url
    page.evaluate = AsyncMock(return_value=True)
    page.expose_function = AsyncMock()
    page.query_selector = AsyncMock()
    return page


class TestPlaywrightDocument:
    @pytest.mark.anyio
    async def test_location_follows_page_url(self) -> None:
        page = _page("https://xrp.cafe/nft/abc?x=1#top")
        doc = PlaywrightDocument(page)
        loc = await doc.location()
        assert loc.pathname == "/nft/abc"
        assert loc.search == "?x=1"
        assert loc.hash == "#top"
        page.url = "https://xrp.cafe/nft/def"
        assert await doc.current_url() == "https://xrp.cafe/nft/def"

    @pytest.mark.anyio
    async def test_query_snapshots_outer_html(self) -> None:
        page = _page()
        handle = MagicMock()
        handle.evaluate = AsyncMock(return_value=f'<div class="owner"><a>{OWNER}</a></div>')
        page.query_selector.return_value = handle

        ref = await PlaywrightDocument(page).query(".owner")

        assert ref is not None
        assert ref.handle is handle
        assert ref.tree.get("class") == "owner"
        assert OWNER in ref.tree.text_content()

    @pytest.mark.anyio
    async def test_query_missing_and_torn_down(self) -> None:
        page = _page()
        doc = PlaywrightDocument(page)
        page.query_selector.return_value = None
        assert await doc.query(".owner") is None
        page.query_selector.side_effect = PlaywrightError("Execution context was destroyed")
        assert await doc.query(".owner") is None

    @pytest.mark.anyio
    async def test_exposed_state(self) -> None:
        page = _page()
        page.evaluate.return_value = {"__NUXT__": {"state": {"owner": OWNER}}}
        assert await PlaywrightDocument(page).exposed_state() == {}
        state = await PlaywrightDocument(page, state_globals=["__NUXT__"]).exposed_state()
        assert state["__NUXT__"]["state"]["owner"] == OWNER

    @pytest.mark.anyio
    async def test_place_control_payload(self) -> None:
        page = _page()
        handle = MagicMock()
        handle.evaluate = AsyncMock(return_value=1)
        ref = MagicMock(handle=handle)
        control = ChatControl(address=OWNER, label="Chat", href="https://chat/", css_class="c", attributes={"x": "1"})

        removed = await PlaywrightDocument(page).place_control(ref, control, InsertionMode.AFTER)

        assert removed == 1
        payload = handle.evaluate.await_args.args[1]
        assert payload["cssClass"] == "c"
        assert payload["address"] == OWNER
        assert payload["position"] == InsertionMode.AFTER.adjacent_position
        assert payload["attributes"] == {"x": "1"}

    @pytest.mark.anyio
    async def test_binding_exposed_once_and_delivers_batches(self) -> None:
        page = _page()
        doc = PlaywrightDocument(page, control_class="ctl")
        batches: list[MutationBatch] = []

        unsubscribe = await doc.observe_mutations(batches.append)
        await doc.observe_mutations(lambda batch: None)
        page.expose_function.assert_awaited_once()

        deliver = page.expose_function.await_args.args[1]
        deliver(3, 1)
        assert batches == [MutationBatch(added_nodes=3, removed_nodes=1)]

        await unsubscribe()
        deliver(1, 0)
        assert len(batches) == 1


def test_snapshot_tree_handles_fragments() -> None:
    assert snapshot_tree("<span>x</span>").tag == "span"
    assert snapshot_tree(f"<li><a href='/profile/{OWNER}'>o</a></li>").tag == "li"
