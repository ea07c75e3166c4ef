"""Rule loader — read the authored site rule set from a JSON file.

The rule file is a JSON array of rule objects (camelCase keys). Loading is
all-or-nothing: a file that is missing, malformed, or contains an invalid
rule raises ``RuleLoadFailure`` so the caller can skip the page load
instead of running with a partial rule set whose first-match order would
silently change.
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from pydantic import ValidationError

from ownerlink.exceptions import RuleLoadFailure
from ownerlink.rules.models import SiteRule

logger = logging.getLogger(__name__)


@runtime_checkable
class RuleSource(Protocol):
    """Supplies the ordered site rule set."""

    async def get_site_rules(self) -> list[SiteRule]:
        """Return the rules in match order, or raise ``RuleLoadFailure``."""
        ...


def parse_rules(data: Any) -> list[SiteRule]:
    """Validate decoded JSON into an ordered list of rules.

    Args:
        data: The decoded JSON document (must be a list).

    Returns:
        The validated rules, in document order.

    Raises:
        RuleLoadFailure: If *data* is not a list or any entry is invalid.
    """
    if not isinstance(data, list):
        raise RuleLoadFailure(f"Rule set must be a JSON array, got {type(data).__name__}")
    rules: list[SiteRule] = []
    for idx, entry in enumerate(data):
        try:
            rules.append(SiteRule.model_validate(entry))
        except ValidationError as exc:
            raise RuleLoadFailure(f"Invalid rule at index {idx}: {exc}") from exc
    return rules


def load_rules_from_file(path: Path | str) -> list[SiteRule]:
    """Load and validate the rule set stored at *path*.

    Raises:
        RuleLoadFailure: If the file cannot be read, decoded, or validated.
    """
    file_path = Path(path)
    try:
        data = json.loads(file_path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise RuleLoadFailure(f"Cannot read rule file {file_path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise RuleLoadFailure(f"Rule file {file_path} is not valid JSON: {exc}") from exc
    rules = parse_rules(data)
    logger.info("Loaded %d site rules from %s", len(rules), file_path.name)
    return rules


class JsonFileRuleSource:
    """``RuleSource`` backed by a JSON file on disk.

    The file is re-read on every call so edits take effect on the next
    page load.

    Args:
        path: Path to the rule JSON file.
    """

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    async def get_site_rules(self) -> list[SiteRule]:
        return await asyncio.to_thread(load_rules_from_file, self._path)


class StaticRuleSource:
    """``RuleSource`` over an in-memory rule list."""

    def __init__(self, rules: list[SiteRule]) -> None:
        self._rules = list(rules)

    async def get_site_rules(self) -> list[SiteRule]:
        return list(self._rules)
