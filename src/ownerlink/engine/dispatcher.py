"""Strategy dispatcher — pick and run an extraction method for one rule.

Per rule, highest precedence first:

1. ``page_load_delay_ms``: sleep before anything else.
2. ``address_in_url_expression``: evaluate against the location / exposed
   state; collections yield their first element containing an address,
   scalars are re-matched to normalize.
3. ``token_id_expression``: evaluate it (or read the final ``href`` path
   segment of the primary node for the ``"href"`` sentinel) and resolve the
   owner through the resolver collaborator.
4. Content search: wait for the primary selector, search it, and fall back
   to the secondary selector per the rule's fallback policy.

A located address is handed to the injector. Every failure ends the cycle
as a typed ``ExtractionOutcome``; nothing surfaces to the page except the
absence of a control.

Overlapping dispatches for the same rule are not serialized. Each cycle
ends in ``Document.place_control`` which replaces any existing control, so
the last cycle to finish wins.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any
from urllib.parse import urlsplit

import lxml.html

from ownerlink.address.patterns import first_address
from ownerlink.browser.document import Document
from ownerlink.engine.injector import ControlInjector
from ownerlink.engine.outcome import DispatchContext, ExtractionOutcome
from ownerlink.engine.states import DispatchState
from ownerlink.engine.wait import wait_for_element
from ownerlink.exceptions import (
    AddressNotFound,
    DispatchError,
    ExpressionEvaluationError,
    RemoteResolutionFailed,
    SelectorTimeout,
)
from ownerlink.extraction.expression import EvaluationContext, evaluate
from ownerlink.extraction.resolver import OwnerResolver
from ownerlink.extraction.search import find_address_in_node
from ownerlink.rules.models import AcquisitionMethod, SiteRule
from ownerlink.settings.config import EngineSettings

logger = logging.getLogger(__name__)


def select_candidate(value: Any) -> str | None:
    """Return the address carried by an expression result.

    For a list/tuple, the first string element containing an address wins;
    any other value is stringified and pattern matched.
    """
    if isinstance(value, (list, tuple)):
        for item in value:
            if isinstance(item, str):
                found = first_address(item)
                if found:
                    return found
        return None
    if value is None:
        return None
    return first_address(str(value))


def token_id_from_href(node: lxml.html.HtmlElement) -> str | None:
    """Return the final path segment of *node*'s ``href`` (or its first descendant link's)."""
    href = node.get("href")
    if not href:
        linked = node.xpath(".//*[@href]")
        href = linked[0].get("href") if linked else None
    if not href:
        return None
    segment = urlsplit(href).path.rstrip("/").rsplit("/", 1)[-1]
    return segment or None


def _token_id_from_value(value: Any) -> str | None:
    if isinstance(value, (list, tuple)):
        for item in value:
            if isinstance(item, (str, int)) and str(item).strip():
                return str(item).strip()
        return None
    token = str(value).strip()
    return token or None


class StrategyDispatcher:
    """Runs one dispatch cycle per call.

    Args:
        injector: Places the control once an address is located.
        resolver: Owner resolver for token-id rules; token-id rules fail with
            ``RemoteResolutionFailed`` when absent.
        engine: Wait and poll timings.
    """

    def __init__(
        self,
        injector: ControlInjector,
        resolver: OwnerResolver | None = None,
        engine: EngineSettings | None = None,
    ) -> None:
        self._injector = injector
        self._resolver = resolver
        self._engine = engine or EngineSettings()

    async def dispatch(self, rule: SiteRule, document: Document) -> ExtractionOutcome:
        """Extract an address for *rule* and inject the control.

        Returns:
            The outcome; expected failures are reported, never raised.
        """
        ctx = DispatchContext(rule, await document.current_url())
        logger.debug("[%s] Dispatch started (%s) on %s", rule.url_prefix, rule.acquisition_method.value, ctx.page_url)

        try:
            address = await self.extract(rule, document, ctx)
        except DispatchError as exc:
            return self._fail(ctx, exc)

        try:
            await self._injector.inject(document, address, rule)
        except DispatchError as exc:
            return self._fail(ctx, exc, address=address)

        outcome = ctx.resolved(address, injected=True)
        logger.info(
            "[%s] Resolved %s via %s in %.2fs",
            rule.url_prefix, address, outcome.method.value, outcome.duration_sec,
        )
        return outcome

    async def extract(self, rule: SiteRule, document: Document, ctx: DispatchContext | None = None) -> str:
        """Run the extraction state machine and return the located address.

        Raises:
            DispatchError: A typed terminal failure.
        """
        if ctx is None:
            ctx = DispatchContext(rule, await document.current_url())

        if rule.page_load_delay_ms:
            ctx.transition(DispatchState.AWAITING_LOAD_DELAY)
            await asyncio.sleep(rule.page_load_delay_ms / 1000)

        method = rule.acquisition_method
        if method is AcquisitionMethod.URL_EXPRESSION:
            return await self._from_url_expression(rule, document, ctx)
        if method is AcquisitionMethod.TOKEN_ID:
            return await self._from_token_id(rule, document, ctx)
        return await self._from_content(rule, document, ctx)

    # ------------------------------------------------------------------
    # Methods
    # ------------------------------------------------------------------

    async def _evaluate(self, expression: str, document: Document, step: str) -> Any:
        context = EvaluationContext(location=await document.location(), state=await document.exposed_state())
        try:
            return evaluate(expression, context)
        except ExpressionEvaluationError as exc:
            exc.step = f"{step}:{exc.step}" if exc.step else step
            raise

    async def _from_url_expression(self, rule: SiteRule, document: Document, ctx: DispatchContext) -> str:
        ctx.transition(DispatchState.EXTRACTING_FROM_URL)
        step = "address_in_url_expression"
        value = await self._evaluate(rule.address_in_url_expression or "", document, step)
        address = select_candidate(value)
        if not address:
            raise AddressNotFound(f"No address in result of {rule.address_in_url_expression!r}: {value!r}", step=step)
        return address

    async def _from_token_id(self, rule: SiteRule, document: Document, ctx: DispatchContext) -> str:
        if rule.reads_token_id_from_href:
            step = "token_id_href"
            ctx.transition(DispatchState.AWAITING_PRIMARY_SELECTOR)
            ref = await wait_for_element(
                document,
                rule.address_selector or "",
                self._engine.wait_timeout_ms,
                self._engine.poll_interval_ms,
                step=step,
            )
            token_id = token_id_from_href(ref.tree)
            ctx.transition(DispatchState.RESOLVING_TOKEN_ID)
        else:
            step = "token_id_expression"
            ctx.transition(DispatchState.RESOLVING_TOKEN_ID)
            token_id = _token_id_from_value(await self._evaluate(rule.token_id_expression or "", document, step))

        if not token_id:
            raise AddressNotFound("No token id found", step=step)
        logger.debug("[%s] Token id %s", rule.url_prefix, token_id)

        if self._resolver is None:
            raise RemoteResolutionFailed("No owner resolver configured", step="resolve_owner")
        owner = await self._resolver.resolve_owner(token_id)
        address = first_address(owner)
        if not address:
            raise RemoteResolutionFailed(f"Resolver returned a non-address for token {token_id}: {owner!r}", step="resolve_owner")
        return address

    async def _from_content(self, rule: SiteRule, document: Document, ctx: DispatchContext) -> str:
        skip = self._injector.control_class
        confirm_first = rule.requires_confirmed_absence_before_fallback

        ctx.transition(DispatchState.AWAITING_PRIMARY_SELECTOR)
        try:
            ref = await wait_for_element(
                document,
                rule.address_selector or "",
                self._engine.wait_timeout_ms,
                self._engine.poll_interval_ms,
                step="primary_selector",
            )
        except SelectorTimeout:
            # Not loaded yet is not proof of absence when confirmation is required
            if not rule.secondary_selector or confirm_first:
                raise
            logger.info("[%s] Primary selector timed out, trying secondary", rule.url_prefix)
            ref = None

        if ref is not None:
            ctx.transition(DispatchState.EXTRACTING_FROM_CONTENT)
            address = find_address_in_node(ref.tree, skip_class=skip)
            if address:
                return address
            if not (rule.secondary_selector and confirm_first):
                raise AddressNotFound(f"No address under {rule.address_selector!r}", step="primary_selector")
            logger.info("[%s] Confirmed no address under primary selector, trying secondary", rule.url_prefix)

        ctx.transition(DispatchState.AWAITING_SECONDARY_SELECTOR)
        ref = await wait_for_element(
            document,
            rule.secondary_selector or "",
            self._engine.wait_timeout_ms,
            self._engine.poll_interval_ms,
            step="secondary_selector",
        )
        ctx.transition(DispatchState.EXTRACTING_FROM_CONTENT)
        address = find_address_in_node(ref.tree, skip_class=skip)
        if not address:
            raise AddressNotFound(f"No address under {rule.secondary_selector!r}", step="secondary_selector")
        return address

    # ------------------------------------------------------------------
    # Failure reporting
    # ------------------------------------------------------------------

    def _fail(self, ctx: DispatchContext, exc: DispatchError, *, address: str | None = None) -> ExtractionOutcome:
        exc.rule = exc.rule or ctx.rule.url_prefix
        outcome = ctx.failed(exc, address=address)
        logger.warning(
            "[%s] Dispatch failed at %s (%s): %s",
            exc.rule, exc.step or "unknown", exc.kind, exc,
        )
        return outcome
