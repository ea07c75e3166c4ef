"""Rule matcher — URL-to-rule selection.

Rules are checked in ruleset order with a plain string-prefix test. The
first match wins even when later rules' prefixes also match the URL.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from ownerlink.rules.models import SiteRule

logger = logging.getLogger(__name__)


class RuleMatcher:
    """Selects the site rule for a page URL.

    Args:
        rules: Ordered rules; order is significant.
    """

    def __init__(self, rules: Iterable[SiteRule] = ()) -> None:
        self._rules: list[SiteRule] = list(rules)

    def match(self, url: str) -> SiteRule | None:
        """Return the first rule whose ``url_prefix`` is a prefix of *url*.

        Args:
            url: The current page URL.

        Returns:
            The matching ``SiteRule``, or ``None`` if no rule applies.
        """
        for rule in self._rules:
            if rule.matches(url):
                logger.info("Rule match: %s → %s", url, rule.url_prefix)
                return rule
        logger.debug("No rule matches %s", url)
        return None

    def matches_for(self, url: str) -> list[SiteRule]:
        """Return every rule whose prefix matches *url*, in ruleset order."""
        return [rule for rule in self._rules if rule.matches(url)]

    @property
    def count(self) -> int:
        """Return the number of rules."""
        return len(self._rules)

    @property
    def rules(self) -> list[SiteRule]:
        """Return a copy of the rule list."""
        return list(self._rules)
