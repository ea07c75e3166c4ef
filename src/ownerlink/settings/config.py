"""Configuration loader for ownerlink using Pydantic settings.

Config precedence (highest wins):
  1. CLI flags (where applicable)
  2. Environment variables (OWNERLINK_* with __ for nesting)
  3. settings.local.toml
  4. settings.<env>.toml
  5. settings.default.toml
"""

from __future__ import annotations

import os
import tomllib
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------

_THIS_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = Path(os.getenv("OWNERLINK_PROJECT_ROOT", _THIS_DIR.parents[2]))
CONFIG_DIR = PROJECT_ROOT / "config"

ENV_VAR_NAME = "OWNERLINK_ENV"
DEFAULT_ENV = "local"


def _resolve_env() -> str:
    return (os.getenv(ENV_VAR_NAME) or DEFAULT_ENV).strip()


def _load_toml(path: Path) -> dict[str, Any]:
    if path.is_file():
        with open(path, "rb") as f:
            return tomllib.load(f)
    return {}


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class EngineSettings(BaseSettings):
    """Timing knobs for the extraction-and-injection engine."""

    model_config = SettingsConfigDict(env_prefix="OWNERLINK_ENGINE__")

    wait_timeout_ms: int = Field(default=30_000, ge=0)
    poll_interval_ms: int = Field(default=100, gt=0)
    debounce_ms: int = Field(default=500, ge=0)
    navigation_poll_ms: int = Field(default=250, gt=0)
    navigation_settle_ms: int = Field(default=1_000, ge=0)


class ChatSettings(BaseSettings):
    """Where the injected control sends the user."""

    model_config = SettingsConfigDict(env_prefix="OWNERLINK_CHAT__")

    base_url: str = "https://app.textrp.io"
    realm: str = "synapse.textrp.io"
    control_class: str = "contact-nft-owner-button"


class RulesSettings(BaseSettings):
    """Location of the authored site rules and offline owner mapping."""

    model_config = SettingsConfigDict(env_prefix="OWNERLINK_RULES__")

    path: str = "config/sites.json"
    owners_path: str = ""


class I18nSettings(BaseSettings):
    """Message catalog configuration."""

    model_config = SettingsConfigDict(env_prefix="OWNERLINK_I18N__")

    locale: str = "en"
    default_locale: str = "en"
    locales_dir: str = "config/locales"


class BrowserSettings(BaseSettings):
    """Playwright browser settings."""

    model_config = SettingsConfigDict(env_prefix="OWNERLINK_BROWSER__")

    headless: bool = True
    timeout_ms: int = 30_000
    user_agent: str = ""
    viewport_width: int = 1920
    viewport_height: int = 1080


class MonitorSettings(BaseSettings):
    """Site monitor timings (seconds-scale waits mirror a human-paced check)."""

    model_config = SettingsConfigDict(env_prefix="OWNERLINK_MONITOR__")

    settle_ms: int = 5_000
    selector_timeout_ms: int = 5_000
    control_timeout_ms: int = 10_000


# ---------------------------------------------------------------------------
# Root settings
# ---------------------------------------------------------------------------


class Settings(BaseSettings):
    """Root ownerlink settings with nested sections."""

    model_config = SettingsConfigDict(
        env_prefix="OWNERLINK_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    env: str = Field(default_factory=_resolve_env)
    project_root: Path = Field(default=PROJECT_ROOT)
    debug: bool = False

    engine: EngineSettings = Field(default_factory=EngineSettings)
    chat: ChatSettings = Field(default_factory=ChatSettings)
    rules: RulesSettings = Field(default_factory=RulesSettings)
    i18n: I18nSettings = Field(default_factory=I18nSettings)
    browser: BrowserSettings = Field(default_factory=BrowserSettings)
    monitor: MonitorSettings = Field(default_factory=MonitorSettings)

    @model_validator(mode="before")
    @classmethod
    def _merge_toml_files(cls, values: dict[str, Any]) -> dict[str, Any]:
        """Layer TOML config files before env var overrides."""
        defaults = _load_toml(CONFIG_DIR / "settings.default.toml")
        env_name = (values.get("env") or os.getenv(ENV_VAR_NAME) or DEFAULT_ENV).strip()
        env_overrides = _load_toml(CONFIG_DIR / f"settings.{env_name}.toml")
        local_overrides = _load_toml(CONFIG_DIR / "settings.local.toml")

        # Merge: defaults < env-specific < local < explicit values
        merged: dict[str, Any] = {}
        for layer in (defaults, env_overrides, local_overrides, values):
            for key, val in layer.items():
                if isinstance(val, dict) and isinstance(merged.get(key), dict):
                    merged[key] = {**merged[key], **val}
                else:
                    merged[key] = val
        return merged

    @model_validator(mode="after")
    def _resolve_paths(self) -> "Settings":
        """Normalize relative paths against project_root."""
        root = self.project_root
        if self.rules.path and not Path(self.rules.path).is_absolute():
            self.rules.path = str(root / self.rules.path)
        if self.rules.owners_path and not Path(self.rules.owners_path).is_absolute():
            self.rules.owners_path = str(root / self.rules.owners_path)
        if not Path(self.i18n.locales_dir).is_absolute():
            self.i18n.locales_dir = str(root / self.i18n.locales_dir)
        return self


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the singleton settings instance (cached)."""
    return Settings()
