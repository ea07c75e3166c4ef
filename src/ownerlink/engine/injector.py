"""UI injector — build the chat control and place exactly one in the page.

Placement goes through ``Document.place_control``, which removes every
existing control before inserting the new one in a single step. That
removal is what makes overlapping or repeated dispatches idempotent: the
last dispatch to finish owns the visible control.
"""

from __future__ import annotations

import logging

from ownerlink.address.patterns import sanitize_address
from ownerlink.browser.document import ChatControl, Document
from ownerlink.engine.wait import wait_for_any
from ownerlink.i18n.catalog import MessageCatalog
from ownerlink.rules.models import ControlCategory, SiteRule
from ownerlink.settings.config import ChatSettings, EngineSettings

logger = logging.getLogger(__name__)

DEFAULT_LABELS: dict[ControlCategory, str] = {
    ControlCategory.NFT: "Chat with NFT owner",
    ControlCategory.GAME: "Chat with player",
    ControlCategory.WALLET: "Chat with wallet",
    ControlCategory.TOKEN: "Chat with token issuer",
}

LABEL_MESSAGE_KEYS: dict[ControlCategory, str] = {
    ControlCategory.NFT: "chatWithNftOwner",
    ControlCategory.GAME: "chatWithPlayer",
    ControlCategory.WALLET: "chatWithWallet",
    ControlCategory.TOKEN: "chatWithTokenIssuer",
}


def build_chat_url(address: str, settings: ChatSettings | None = None) -> str:
    """Return the chat URL for *address*.

    ``https://app.textrp.io/#/user/@<address>`` with ``:<realm>`` appended
    when a realm is configured. The address is sanitized first.
    """
    chat = settings or ChatSettings()
    url = f"{chat.base_url.rstrip('/')}/#/user/@{sanitize_address(address)}"
    if chat.realm:
        url = f"{url}:{chat.realm}"
    return url


class ControlInjector:
    """Builds and places the chat control.

    Args:
        chat: Chat URL and control class settings.
        engine: Wait timings used to resolve the insertion point.
        catalog: Message catalog for localized labels.
    """

    def __init__(
        self,
        chat: ChatSettings | None = None,
        engine: EngineSettings | None = None,
        catalog: MessageCatalog | None = None,
    ) -> None:
        self._chat = chat or ChatSettings()
        self._engine = engine or EngineSettings()
        self._catalog = catalog

    @property
    def control_class(self) -> str:
        return self._chat.control_class

    def label_for(self, rule: SiteRule) -> str:
        """Return the label text for *rule*'s category."""
        literal = DEFAULT_LABELS[rule.control_category]
        if rule.localized and self._catalog is not None:
            message = self._catalog.get_message(LABEL_MESSAGE_KEYS[rule.control_category])
            if message:
                return message
            logger.debug("No localized label for %s, using literal", rule.control_category.value)
        return literal

    def build_control(self, address: str, rule: SiteRule) -> ChatControl:
        return ChatControl(
            address=sanitize_address(address),
            label=self.label_for(rule),
            href=build_chat_url(address, self._chat),
            css_class=self._chat.control_class,
        )

    async def inject(self, document: Document, address: str, rule: SiteRule) -> ChatControl:
        """Place a control for *address* according to *rule*.

        Raises:
            SelectorTimeout: If neither insertion selector appears in time.
        """
        target = await wait_for_any(
            document,
            rule.insert_selector,
            rule.secondary_insert_selector,
            self._engine.wait_timeout_ms,
            self._engine.poll_interval_ms,
            step="insert_selector",
        )
        control = self.build_control(address, rule)
        removed = await document.place_control(target, control, rule.insertion_mode)
        logger.info(
            "Control inserted (%s %s) for %s%s",
            rule.insertion_mode.value,
            target.selector,
            control.address,
            f", replaced {removed}" if removed else "",
        )
        return control
