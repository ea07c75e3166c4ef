"""Unit tests for the UI injector — labels, chat links and single-instance placement."""

from __future__ import annotations

import pytest

from ownerlink.browser.html_document import HtmlDocument
from ownerlink.engine.injector import DEFAULT_LABELS, ControlInjector, build_chat_url
from ownerlink.i18n.catalog import MessageCatalog
from ownerlink.rules.models import ControlCategory, SiteRule
from ownerlink.settings.config import ChatSettings

OWNER = "rN7n3473SaZBCG4dFL83w7p1W9cgZw6ihn"
ISSUER = "rHb9CJAWyB4rj91VRWn96DkukG4bwdtyTh"
CONTROL = "contact-nft-owner-button"

PAGE = """
<html><body>
  <div class="card"><p class="first">one</p><div class="target"><span>inner</span></div><p class="last">two</p></div>
</body></html>
"""


def _rule(**fields) -> SiteRule:
    data = {"urlPrefix": "https://a.test", "addressSelector": ".card", "insertSelector": ".target"}
    data.update(fields)
    return SiteRule.model_validate(data)


class TestBuildChatUrl:
    def test_default_template(self) -> None:
        assert build_chat_url(OWNER) == f"https://app.textrp.io/#/user/@{OWNER}:synapse.textrp.io"

    def test_address_is_sanitized(self) -> None:
        assert build_chat_url(f" {OWNER}\"><script>") == f"https://app.textrp.io/#/user/@{OWNER}script:synapse.textrp.io"

    def test_custom_settings(self) -> None:
        chat = ChatSettings(base_url="https://chat.example/", realm="")
        assert build_chat_url(OWNER, chat) == f"https://chat.example/#/user/@{OWNER}"


class TestLabels:
    @pytest.mark.parametrize(
        "category,label",
        [
            ("nft", "Chat with NFT owner"),
            ("game", "Chat with player"),
            ("wallet", "Chat with wallet"),
            ("token", "Chat with token issuer"),
        ],
    )
    def test_literal_labels(self, category: str, label: str) -> None:
        assert ControlInjector().label_for(_rule(controlCategory=category)) == label

    def test_localized_label(self) -> None:
        catalog = MessageCatalog({"chatWithPlayer": "Chatear con el jugador"})
        injector = ControlInjector(catalog=catalog)
        assert injector.label_for(_rule(controlCategory="game", localized=True)) == "Chatear con el jugador"
        # Only localized rules consult the catalog
        assert injector.label_for(_rule(controlCategory="game")) == DEFAULT_LABELS[ControlCategory.GAME]

    def test_localized_missing_key_uses_literal(self) -> None:
        injector = ControlInjector(catalog=MessageCatalog({}))
        assert injector.label_for(_rule(controlCategory="token", localized=True)) == "Chat with token issuer"


class TestInject:
    @pytest.mark.anyio
    @pytest.mark.parametrize(
        "mode,check",
        [
            ("append", lambda c: c.getparent().get("class") == "target" and c.getprevious() is not None),
            ("prepend", lambda c: c.getparent().get("class") == "target" and c.getprevious() is None),
            ("after", lambda c: c.getprevious().get("class") == "target"),
            ("before", lambda c: c.getnext().get("class") == "target"),
        ],
    )
    async def test_insertion_modes(self, fast_engine, mode: str, check) -> None:
        doc = HtmlDocument(PAGE, "https://a.test/")
        await ControlInjector(engine=fast_engine).inject(doc, OWNER, _rule(insertionMode=mode))
        (control,) = doc.controls(CONTROL)
        assert check(control)

    @pytest.mark.anyio
    async def test_control_attributes(self, fast_engine) -> None:
        doc = HtmlDocument(PAGE, "https://a.test/")
        control = await ControlInjector(engine=fast_engine).inject(doc, OWNER, _rule())
        assert control.address == OWNER
        (element,) = doc.controls(CONTROL)
        assert element.tag == "button"
        assert element.get("data-address") == OWNER
        assert element.get("data-href") == build_chat_url(OWNER)
        assert element.get("title") == "Chat with NFT owner"

    @pytest.mark.anyio
    async def test_repeated_injection_leaves_one_control(self, fast_engine) -> None:
        doc = HtmlDocument(PAGE, "https://a.test/")
        injector = ControlInjector(engine=fast_engine)
        await injector.inject(doc, ISSUER, _rule())
        await injector.inject(doc, OWNER, _rule(insertSelector=".last", insertionMode="after"))
        await injector.inject(doc, OWNER, _rule(insertSelector=".last", insertionMode="after"))
        controls = doc.controls(CONTROL)
        assert len(controls) == 1
        assert controls[0].get("data-address") == OWNER

    @pytest.mark.anyio
    async def test_custom_control_class(self, fast_engine) -> None:
        doc = HtmlDocument(PAGE, "https://a.test/")
        injector = ControlInjector(chat=ChatSettings(control_class="ol-chat"), engine=fast_engine)
        await injector.inject(doc, OWNER, _rule())
        assert len(doc.controls("ol-chat")) == 1
        assert not doc.controls(CONTROL)
