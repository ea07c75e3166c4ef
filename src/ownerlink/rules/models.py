"""Site rule data model — declarative per-site extraction and placement config.

Rules are authored data (a JSON array) owned by the configuration
collaborator. The engine reads them and never mutates them, so ``SiteRule``
is frozen.

JSON keys are camelCase (``urlPrefix``, ``addressSelector`` …). The keys of
the original site config (``url``, ``selector``, ``type``) are accepted as
aliases so older rule files keep loading.
"""

from __future__ import annotations

from enum import Enum

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

HREF_SENTINEL = "href"


class InsertionMode(str, Enum):
    """How the control attaches relative to the insertion container."""

    APPEND = "append"
    PREPEND = "prepend"
    AFTER = "after"
    BEFORE = "before"

    @property
    def adjacent_position(self) -> str:
        """The DOM ``insertAdjacentElement`` position for this mode."""
        return {
            InsertionMode.APPEND: "beforeend",
            InsertionMode.PREPEND: "afterbegin",
            InsertionMode.AFTER: "afterend",
            InsertionMode.BEFORE: "beforebegin",
        }[self]


class ControlCategory(str, Enum):
    """Selects the label text of the injected control."""

    NFT = "nft"
    GAME = "game"
    WALLET = "wallet"
    TOKEN = "token"


class AcquisitionMethod(str, Enum):
    """How a rule obtains its address, in fixed precedence order."""

    URL_EXPRESSION = "url_expression"
    TOKEN_ID = "token_id"
    CONTENT_SEARCH = "content_search"


class SiteRule(BaseModel):
    """One entry of the site rule set.

    Attributes:
        url_prefix: String prefix matched against the current page URL.
        is_dynamic: Watch for DOM changes and re-dispatch instead of dispatching once.
        address_selector: Primary CSS selector of the node holding the address.
        secondary_selector: Fallback selector consulted when the primary fails.
        address_in_url_expression: Expression whose result is or contains the address.
        token_id_expression: Expression yielding a token id, or ``"href"`` to read
            the final path segment of the primary node's ``href``.
        requires_confirmed_absence_before_fallback: Only fall back to the secondary
            selector once the primary node was found and affirmatively holds no address.
        insert_selector: Where the control is placed.
        secondary_insert_selector: Fallback insertion container.
        insertion_mode: How the control attaches to the container.
        page_load_delay_ms: Settle delay before extraction starts.
        control_category: Label category of the control.
        localized: Resolve the label through the message catalog.
        monitor_url: Page the site monitor opens to check this rule.
        click_selector: Element the site monitor clicks before checking dynamic rules.
    """

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
        extra="ignore",
    )

    url_prefix: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("urlPrefix", "url_prefix", "url"),
    )
    is_dynamic: bool = False
    address_selector: str | None = Field(
        default=None,
        validation_alias=AliasChoices("addressSelector", "address_selector", "selector"),
    )
    secondary_selector: str | None = None
    address_in_url_expression: str | None = None
    token_id_expression: str | None = None
    requires_confirmed_absence_before_fallback: bool = False
    insert_selector: str = Field(..., min_length=1)
    secondary_insert_selector: str | None = None
    insertion_mode: InsertionMode = InsertionMode.APPEND
    page_load_delay_ms: int | None = Field(default=None, ge=0)
    control_category: ControlCategory = Field(
        default=ControlCategory.NFT,
        validation_alias=AliasChoices("controlCategory", "control_category", "type"),
    )
    localized: bool = False

    # Site monitor metadata
    monitor_url: str | None = Field(
        default=None,
        validation_alias=AliasChoices("monitorUrl", "monitor_url", "sitesMonitorUrl"),
    )
    click_selector: str | None = None

    @model_validator(mode="after")
    def _require_acquisition_method(self) -> "SiteRule":
        """A rule must declare at least one way to obtain an address."""
        if not (self.address_in_url_expression or self.token_id_expression or self.address_selector):
            raise ValueError(
                "rule must declare addressInUrlExpression, tokenIdExpression or addressSelector"
            )
        if self.token_id_expression == HREF_SENTINEL and not self.address_selector:
            raise ValueError('tokenIdExpression "href" requires addressSelector')
        return self

    @property
    def acquisition_method(self) -> AcquisitionMethod:
        """The method the dispatcher runs: URL expression, then token id, then content search."""
        if self.address_in_url_expression:
            return AcquisitionMethod.URL_EXPRESSION
        if self.token_id_expression:
            return AcquisitionMethod.TOKEN_ID
        return AcquisitionMethod.CONTENT_SEARCH

    @property
    def reads_token_id_from_href(self) -> bool:
        return self.token_id_expression == HREF_SENTINEL

    def matches(self, url: str) -> bool:
        """Return ``True`` if *url* starts with this rule's prefix."""
        return url.startswith(self.url_prefix)
