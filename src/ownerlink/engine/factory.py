"""Factory for wiring engine components from ownerlink settings.

    create_dispatcher()                 — dispatcher with the offline owner mapping, if configured
    create_dispatcher(channel=...)      — dispatcher resolving owners through *channel*
    create_session(document)            — page session over the configured rule file
"""

from __future__ import annotations

import logging
from pathlib import Path

from ownerlink.browser.document import Document
from ownerlink.engine.dispatcher import StrategyDispatcher
from ownerlink.engine.injector import ControlInjector
from ownerlink.engine.session import PageSession
from ownerlink.extraction.resolver import MappingOwnerChannel, MessageChannel, OwnerResolver
from ownerlink.i18n.catalog import MessageCatalog
from ownerlink.rules.loader import JsonFileRuleSource, RuleSource
from ownerlink.settings.config import Settings

logger = logging.getLogger(__name__)


def _settings(settings: Settings | None) -> Settings:
    if settings is not None:
        return settings
    from ownerlink.settings import get_settings

    return get_settings()


def create_dispatcher(
    settings: Settings | None = None,
    *,
    channel: MessageChannel | None = None,
) -> StrategyDispatcher:
    """Create a dispatcher from settings.

    Args:
        settings: Settings to use; defaults to ``get_settings()``.
        channel: Resolver channel. When omitted, ``rules.owners_path`` (if set)
            is loaded into a ``MappingOwnerChannel``; otherwise token-id rules
            fail with ``RemoteResolutionFailed``.
    """
    cfg = _settings(settings)
    catalog = MessageCatalog.load(cfg.i18n.locales_dir, cfg.i18n.locale, cfg.i18n.default_locale)
    injector = ControlInjector(chat=cfg.chat, engine=cfg.engine, catalog=catalog)

    if channel is None and cfg.rules.owners_path:
        owners = Path(cfg.rules.owners_path)
        if owners.is_file():
            channel = MappingOwnerChannel.from_file(owners)
        else:
            logger.warning("Owner mapping %s does not exist; token rules cannot resolve", owners)

    resolver = OwnerResolver(channel) if channel is not None else None
    return StrategyDispatcher(injector, resolver=resolver, engine=cfg.engine)


def create_session(
    document: Document,
    settings: Settings | None = None,
    *,
    rule_source: RuleSource | None = None,
    channel: MessageChannel | None = None,
    watch_navigation: bool = True,
) -> PageSession:
    """Create a ``PageSession`` for *document* wired from settings."""
    cfg = _settings(settings)
    source = rule_source or JsonFileRuleSource(cfg.rules.path)
    return PageSession(
        document,
        source,
        create_dispatcher(cfg, channel=channel),
        cfg.engine,
        watch_navigation=watch_navigation,
    )
