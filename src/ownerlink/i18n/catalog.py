"""Localized message catalog.

Catalogs use the browser-extension ``messages.json`` layout::

    {"chatWithNftOwner": {"message": "Chat with NFT owner", "description": "..."}}

stored at ``<locales_dir>/<locale>/messages.json``. Lookups fall back to the
default locale; unknown keys return an empty string.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


def _read_messages(path: Path) -> dict[str, str]:
    if not path.is_file():
        return {}
    try:
        data: Any = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError:
        logger.warning("Ignoring malformed message catalog %s", path)
        return {}
    messages: dict[str, str] = {}
    for key, entry in data.items():
        if isinstance(entry, Mapping) and isinstance(entry.get("message"), str):
            messages[key] = entry["message"]
        elif isinstance(entry, str):
            messages[key] = entry
    return messages


class MessageCatalog:
    """Synchronous ``get_message(key)`` lookups for one locale.

    Args:
        messages: Messages of the active locale.
        fallback: Messages of the default locale.
    """

    def __init__(self, messages: Mapping[str, str] | None = None, fallback: Mapping[str, str] | None = None) -> None:
        self._messages = dict(messages or {})
        self._fallback = dict(fallback or {})

    @classmethod
    def load(cls, locales_dir: Path | str, locale: str = "en", default_locale: str = "en") -> "MessageCatalog":
        """Load the catalog for *locale* with *default_locale* as fallback.

        A region-qualified locale (``es_MX``) falls back to its language (``es``)
        before the default locale.
        """
        base = Path(locales_dir)
        messages = _read_messages(base / locale / "messages.json")
        if not messages and "_" in locale:
            messages = _read_messages(base / locale.split("_", 1)[0] / "messages.json")
        fallback = _read_messages(base / default_locale / "messages.json") if locale != default_locale else {}
        if not messages and not fallback:
            logger.warning("No message catalog found for locale %s in %s", locale, base)
        return cls(messages, fallback)

    def get_message(self, key: str) -> str:
        """Return the message for *key*, or ``""`` when unknown (browser i18n semantics)."""
        return self._messages.get(key) or self._fallback.get(key) or ""

    def __contains__(self, key: str) -> bool:
        return key in self._messages or key in self._fallback
