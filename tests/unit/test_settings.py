"""Unit tests for ownerlink settings.

Covers default loading, env var overrides, path resolution, and the
section defaults: engine, chat, rules, i18n, browser, monitor.
"""

from __future__ import annotations

import os


class TestSettings:
    """Core settings loading and override mechanics."""

    def test_default_settings_load(self, monkeypatch):
        """Settings should load without any env overrides."""
        monkeypatch.delenv("OWNERLINK_ENV", raising=False)
        from ownerlink.settings import get_settings

        s = get_settings()
        assert s.env == "local"
        assert s.debug is False

    def test_get_settings_is_cached(self):
        from ownerlink.settings import get_settings

        assert get_settings() is get_settings()

    def test_package_reexports_config_accessor(self):
        import ownerlink.settings
        import ownerlink.settings.config

        assert ownerlink.settings.get_settings is ownerlink.settings.config.get_settings
        assert ownerlink.settings.Settings is ownerlink.settings.config.Settings

    def test_env_override(self, monkeypatch):
        """OWNERLINK_ENGINE__DEBOUNCE_MS should override the default."""
        monkeypatch.setenv("OWNERLINK_ENGINE__DEBOUNCE_MS", "250")
        from ownerlink.settings.config import Settings

        s = Settings()
        assert s.engine.debounce_ms == 250

    def test_multiple_section_overrides(self, monkeypatch):
        monkeypatch.setenv("OWNERLINK_CHAT__BASE_URL", "https://chat.example")
        monkeypatch.setenv("OWNERLINK_BROWSER__HEADLESS", "false")
        monkeypatch.setenv("OWNERLINK_I18N__LOCALE", "es")
        from ownerlink.settings.config import Settings

        s = Settings()
        assert s.chat.base_url == "https://chat.example"
        assert s.browser.headless is False
        assert s.i18n.locale == "es"

    def test_paths_resolved_relative_to_project_root(self):
        from ownerlink.settings.config import Settings

        s = Settings()
        assert os.path.isabs(s.rules.path)
        assert os.path.isabs(s.i18n.locales_dir)
        assert s.rules.path.endswith(os.path.join("config", "sites.json"))

    def test_owners_path_resolved_only_when_set(self, monkeypatch):
        from ownerlink.settings.config import Settings

        assert Settings().rules.owners_path == ""
        monkeypatch.setenv("OWNERLINK_RULES__OWNERS_PATH", "owners.json")
        assert os.path.isabs(Settings().rules.owners_path)

    def test_absolute_paths_kept(self, tmp_path):
        from ownerlink.settings.config import Settings

        rules = tmp_path / "sites.json"
        s = Settings(rules={"path": str(rules)})
        assert s.rules.path == str(rules)


class TestEngineSettings:
    def test_defaults(self):
        from ownerlink.settings.config import Settings

        s = Settings()
        assert s.engine.wait_timeout_ms == 30_000
        assert s.engine.poll_interval_ms == 100
        assert s.engine.debounce_ms == 500
        assert s.engine.navigation_poll_ms == 250
        assert s.engine.navigation_settle_ms == 1_000


class TestChatSettings:
    def test_defaults(self):
        from ownerlink.settings.config import Settings

        s = Settings()
        assert s.chat.base_url == "https://app.textrp.io"
        assert s.chat.realm == "synapse.textrp.io"
        assert s.chat.control_class == "contact-nft-owner-button"


class TestBrowserSettings:
    def test_defaults(self):
        from ownerlink.settings.config import Settings

        s = Settings()
        assert s.browser.headless is True
        assert s.browser.timeout_ms == 30_000
        assert s.browser.user_agent == ""


class TestMonitorSettings:
    def test_defaults(self):
        from ownerlink.settings.config import Settings

        s = Settings()
        assert s.monitor.settle_ms == 5_000
        assert s.monitor.selector_timeout_ms == 5_000
        assert s.monitor.control_timeout_ms == 10_000

    def test_override(self, monkeypatch):
        monkeypatch.setenv("OWNERLINK_MONITOR__SETTLE_MS", "0")
        from ownerlink.settings.config import Settings

        assert Settings().monitor.settle_ms == 0
