"""Page session — one page's rule selection, dispatch and watcher lifecycle.

The session is the explicit context object holding what used to be global
page state: the active rule, its structural watcher, and the navigation
watcher's last URL. On ``start()`` it selects the first matching rule and
either dispatches once (static rules) or arms a structural watcher (dynamic
rules). The navigation watcher is always active and re-runs full rule
selection after client-side navigations, since the new URL may belong to
another rule entirely.
"""

from __future__ import annotations

import logging

from ownerlink.browser.document import Document
from ownerlink.engine.dispatcher import StrategyDispatcher
from ownerlink.engine.outcome import ExtractionOutcome
from ownerlink.engine.watchers import NavigationWatcher, StructuralWatcher
from ownerlink.exceptions import RuleLoadFailure
from ownerlink.rules.loader import RuleSource
from ownerlink.rules.matcher import RuleMatcher
from ownerlink.rules.models import SiteRule
from ownerlink.settings.config import EngineSettings

logger = logging.getLogger(__name__)


class PageSession:
    """Drives the engine for one page.

    Args:
        document: The page.
        rule_source: Supplies the ordered site rules.
        dispatcher: Runs dispatch cycles.
        engine: Debounce / navigation timings.
        watch_navigation: Start the navigation watcher on ``start()``.
    """

    def __init__(
        self,
        document: Document,
        rule_source: RuleSource,
        dispatcher: StrategyDispatcher,
        engine: EngineSettings | None = None,
        *,
        watch_navigation: bool = True,
    ) -> None:
        self._document = document
        self._rule_source = rule_source
        self._dispatcher = dispatcher
        self._engine = engine or EngineSettings()
        self._watch_navigation = watch_navigation
        self._rule: SiteRule | None = None
        self._structural: StructuralWatcher | None = None
        self._navigation: NavigationWatcher | None = None
        self.outcomes: list[ExtractionOutcome] = []

    @property
    def rule(self) -> SiteRule | None:
        """The rule selected for the current URL, if any."""
        return self._rule

    @property
    def structural_watcher(self) -> StructuralWatcher | None:
        return self._structural

    @property
    def navigation_watcher(self) -> NavigationWatcher | None:
        return self._navigation

    async def start(self) -> SiteRule | None:
        """Run rule selection for the current page and start watching navigations."""
        rule = await self.select_and_dispatch()
        if self._watch_navigation and self._navigation is None:
            self._navigation = NavigationWatcher(
                self._document,
                self._on_navigate,
                poll_ms=self._engine.navigation_poll_ms,
                settle_ms=self._engine.navigation_settle_ms,
            )
            await self._navigation.start()
        return rule

    async def stop(self) -> None:
        if self._structural is not None:
            await self._structural.stop()
            self._structural = None
        if self._navigation is not None:
            await self._navigation.stop()
            self._navigation = None

    async def wait_idle(self) -> None:
        """Wait for watcher-triggered work already in flight."""
        if self._navigation is not None:
            await self._navigation.wait_idle()
        if self._structural is not None:
            await self._structural.wait_idle()

    async def select_and_dispatch(self) -> SiteRule | None:
        """Select the rule for the current URL and dispatch or arm its watcher.

        Returns:
            The selected rule, or ``None`` when no rules load or none match.
        """
        if self._structural is not None:
            await self._structural.stop()
            self._structural = None

        try:
            rules = await self._rule_source.get_site_rules()
        except RuleLoadFailure as exc:
            logger.warning("No site rules available, skipping page: %s", exc)
            self._rule = None
            return None

        url = await self._document.current_url()
        rule = RuleMatcher(rules).match(url)
        self._rule = rule
        if rule is None:
            return None

        if rule.is_dynamic:
            self._structural = StructuralWatcher(
                self._document,
                lambda: self.dispatch(rule),
                debounce_ms=self._engine.debounce_ms,
            )
            await self._structural.start()
            logger.info("[%s] Watching dynamic content", rule.url_prefix)
        else:
            await self.dispatch(rule)
        return rule

    async def dispatch(self, rule: SiteRule) -> ExtractionOutcome | None:
        """Run one dispatch for *rule*, isolating any unexpected error."""
        try:
            outcome = await self._dispatcher.dispatch(rule, self._document)
        except Exception:
            logger.exception("[%s] Dispatch crashed", rule.url_prefix)
            return None
        self.outcomes.append(outcome)
        return outcome

    async def _on_navigate(self, url: str) -> None:
        logger.info("Re-selecting rule after navigation to %s", url)
        await self.select_and_dispatch()
