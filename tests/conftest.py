"""ownerlink test configuration — shared fixtures for unit tests."""

from __future__ import annotations

from pathlib import Path

import pytest

# ---------------------------------------------------------------------------
# Paths and sample data
# ---------------------------------------------------------------------------

FIXTURES_DIR = Path(__file__).parent / "fixtures"
PAGES_DIR = FIXTURES_DIR / "pages"

OWNER = "rN7n3473SaZBCG4dFL83w7p1W9cgZw6ihn"
ISSUER = "rHb9CJAWyB4rj91VRWn96DkukG4bwdtyTh"
TOKEN_ID = "000827106DE2A0F1BF4C2E02BE1C4396DB2B8F7D3D2AD6F20000099B00000000"


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_settings_cache():
    """Clear the settings LRU cache between tests."""
    from ownerlink.settings.config import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def fast_engine():
    """Engine timings shrunk so waits and debounce windows finish in milliseconds."""
    from ownerlink.settings.config import EngineSettings

    return EngineSettings(
        wait_timeout_ms=200,
        poll_interval_ms=10,
        debounce_ms=50,
        navigation_poll_ms=10,
        navigation_settle_ms=40,
    )


# ---------------------------------------------------------------------------
# Engine components
# ---------------------------------------------------------------------------


@pytest.fixture()
def injector(fast_engine):
    from ownerlink.engine.injector import ControlInjector

    return ControlInjector(engine=fast_engine)


@pytest.fixture()
def owners():
    """Offline owner mapping for token-id rules."""
    return {TOKEN_ID: OWNER}


@pytest.fixture()
def dispatcher(injector, fast_engine, owners):
    from ownerlink.engine.dispatcher import StrategyDispatcher
    from ownerlink.extraction.resolver import MappingOwnerChannel, OwnerResolver

    return StrategyDispatcher(injector, OwnerResolver(MappingOwnerChannel(owners)), fast_engine)


@pytest.fixture()
def load_page():
    """Return a factory building an ``HtmlDocument`` from a fixture page."""
    from ownerlink.browser.html_document import HtmlDocument

    def _load(name: str, url: str, **kwargs) -> HtmlDocument:
        return HtmlDocument.from_file(str(PAGES_DIR / name), url, **kwargs)

    return _load


@pytest.fixture()
def anyio_backend():
    """The engine is built on asyncio; run anyio-marked tests on that backend."""
    return "asyncio"
