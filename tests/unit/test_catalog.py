"""Unit tests for the localized message catalog."""

from __future__ import annotations

import json
from pathlib import Path

from ownerlink.i18n.catalog import MessageCatalog
from ownerlink.settings.config import PROJECT_ROOT


def _write(base: Path, locale: str, messages: dict) -> None:
    (base / locale).mkdir(parents=True)
    (base / locale / "messages.json").write_text(json.dumps(messages), encoding="utf-8")


class TestMessageCatalog:
    def test_shipped_catalogs(self) -> None:
        locales = PROJECT_ROOT / "config" / "locales"
        en = MessageCatalog.load(locales, "en")
        es = MessageCatalog.load(locales, "es")
        assert en.get_message("chatWithNftOwner") == "Chat with NFT owner"
        assert es.get_message("chatWithPlayer") == "Chatear con el jugador"
        for key in ("chatWithNftOwner", "chatWithPlayer", "chatWithWallet", "chatWithTokenIssuer"):
            assert key in en
            assert key in es

    def test_falls_back_to_default_locale(self, tmp_path) -> None:
        _write(tmp_path, "en", {"a": {"message": "A"}, "b": {"message": "B"}})
        _write(tmp_path, "de", {"a": {"message": "Ä"}})
        catalog = MessageCatalog.load(tmp_path, "de", "en")
        assert catalog.get_message("a") == "Ä"
        assert catalog.get_message("b") == "B"

    def test_region_falls_back_to_language(self, tmp_path) -> None:
        _write(tmp_path, "es", {"a": {"message": "hola"}})
        assert MessageCatalog.load(tmp_path, "es_MX", "en").get_message("a") == "hola"

    def test_unknown_key_is_empty(self, tmp_path) -> None:
        _write(tmp_path, "en", {"a": {"message": "A"}})
        catalog = MessageCatalog.load(tmp_path)
        assert catalog.get_message("missing") == ""
        assert "missing" not in catalog

    def test_missing_and_malformed_files(self, tmp_path) -> None:
        (tmp_path / "en").mkdir()
        (tmp_path / "en" / "messages.json").write_text("{not json", encoding="utf-8")
        catalog = MessageCatalog.load(tmp_path, "fr", "en")
        assert catalog.get_message("anything") == ""
