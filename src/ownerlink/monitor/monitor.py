"""Site monitor — check every rule against its live monitor page.

Each rule with a ``monitor_url`` gets its own browser: the page is opened
with a ``PageSession`` attached (as the content script would be), given a
settle delay, clicked where the rule's content only appears after
interaction, and then checked for the address node, the insertion
container, and finally the injected control. Breakage on a site shows up
as a missing selector long before users report it.
"""

from __future__ import annotations

import asyncio
import logging
import time

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page

from ownerlink.browser.live import LiveBrowser, LivePageRunner, resilient_goto
from ownerlink.exceptions import NavigationError
from ownerlink.extraction.resolver import MessageChannel
from ownerlink.monitor.models import MonitorReport, SiteCheck
from ownerlink.rules.loader import StaticRuleSource
from ownerlink.rules.models import SiteRule
from ownerlink.settings.config import Settings

logger = logging.getLogger(__name__)


class SiteMonitor:
    """Runs site checks for a rule set.

    Args:
        settings: ownerlink settings (``monitor`` and ``browser`` sections).
        channel: Resolver channel for token-id rules.
    """

    def __init__(self, settings: Settings, *, channel: MessageChannel | None = None) -> None:
        self._settings = settings
        self._channel = channel

    async def run(self, rules: list[SiteRule], *, only: str | None = None) -> MonitorReport:
        """Check every rule that has a monitor URL.

        Args:
            rules: The full rule set; rule selection on each page runs over all of it.
            only: Restrict the run to rules whose prefix contains this substring.
        """
        report = MonitorReport()
        for rule in rules:
            if only and only not in rule.url_prefix:
                continue
            if not rule.monitor_url:
                report.skipped.append(rule.url_prefix)
                continue
            async with LiveBrowser(self._settings) as browser:
                page = await browser.new_page()
                check = await self.check_rule(page, rule, rules)
            report.checks.append(check)
            logger.info(
                "[%s] %s", rule.url_prefix, "healthy" if check.healthy else f"unhealthy ({check.error or 'no control'})"
            )
        return report

    async def check_rule(self, page: Page, rule: SiteRule, rules: list[SiteRule] | None = None) -> SiteCheck:
        """Check one rule on an open page."""
        cfg = self._settings.monitor
        check = SiteCheck(rule_prefix=rule.url_prefix, monitor_url=rule.monitor_url or "")
        started = time.monotonic()
        runner = LivePageRunner(
            page,
            self._settings,
            rule_source=StaticRuleSource(rules or [rule]),
            channel=self._channel,
        )
        try:
            await resilient_goto(page, check.monitor_url, timeout_ms=self._settings.browser.timeout_ms)
            check.final_url = page.url
            check.redirected = page.url != check.monitor_url
            if check.redirected:
                logger.warning("[%s] Redirected from %s to %s", rule.url_prefix, check.monitor_url, page.url)

            session = await runner.restart()
            await asyncio.sleep(cfg.settle_ms / 1000)

            if rule.is_dynamic and rule.click_selector:
                check.clicked = await self._click(page, rule.click_selector)

            if rule.address_selector:
                check.address_selector_found = await self._present(page, rule.address_selector)
            check.insert_selector_found = await self._present(page, rule.insert_selector)
            if not check.insert_selector_found and rule.secondary_insert_selector:
                check.insert_selector_found = await self._present(page, rule.secondary_insert_selector)

            check.control_inserted = await self._present(
                page, f".{self._settings.chat.control_class}", timeout_ms=cfg.control_timeout_ms
            )
            await session.wait_idle()
            if session.outcomes:
                last = session.outcomes[-1]
                check.address = last.address
                check.dispatch_failure = last.failure.value if last.failure else None
        except (NavigationError, PlaywrightError) as exc:
            logger.warning("[%s] Site check failed: %s", rule.url_prefix, exc)
            check.error = str(exc)
        finally:
            await runner.stop()
            check.duration_sec = round(time.monotonic() - started, 2)
        return check

    async def _click(self, page: Page, selector: str) -> bool:
        try:
            await page.wait_for_selector(selector, timeout=self._settings.monitor.selector_timeout_ms)
            await page.click(selector)
        except PlaywrightError as exc:
            logger.info("Failed to click %s: %s", selector, exc)
            return False
        return True

    async def _present(self, page: Page, selector: str, *, timeout_ms: int | None = None) -> bool:
        timeout = timeout_ms if timeout_ms is not None else self._settings.monitor.selector_timeout_ms
        try:
            await page.wait_for_selector(selector, timeout=timeout)
        except PlaywrightError:
            logger.info("Selector not found within %d ms: %s", timeout, selector)
            return False
        return True
