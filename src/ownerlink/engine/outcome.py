"""Dispatch results.

``ExtractionOutcome`` is produced fresh by every dispatch and never
persisted. ``DispatchContext`` is the explicit per-cycle context threaded
through the dispatcher instead of module-level "last address" state.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field

from ownerlink.engine.states import STATE_TRANSITIONS, TERMINAL_STATES, DispatchState
from ownerlink.exceptions import DispatchError
from ownerlink.rules.models import AcquisitionMethod, SiteRule

logger = logging.getLogger(__name__)


class FailureKind(str, Enum):
    """Typed dispatch failures."""

    NOT_FOUND = "not_found"
    SELECTOR_TIMEOUT = "selector_timeout"
    REMOTE_RESOLUTION_FAILED = "remote_resolution_failed"
    EXPRESSION_EVALUATION_ERROR = "expression_evaluation_error"

    @classmethod
    def from_error(cls, exc: DispatchError) -> "FailureKind":
        return cls(exc.kind)


class ExtractionOutcome(BaseModel):
    """Outcome of one dispatch: a located address or a typed failure."""

    rule_prefix: str
    page_url: str
    method: AcquisitionMethod
    address: str | None = None
    failure: FailureKind | None = None
    failed_step: str = ""
    detail: str = ""
    injected: bool = False
    states: list[DispatchState] = Field(default_factory=list)
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    duration_sec: float = 0.0

    @property
    def ok(self) -> bool:
        """``True`` when an address was located."""
        return self.address is not None and self.failure is None


class DispatchContext:
    """Mutable state of a single dispatch cycle.

    Args:
        rule: The rule being dispatched.
        page_url: The page URL when the cycle started.
    """

    def __init__(self, rule: SiteRule, page_url: str) -> None:
        self.rule = rule
        self.page_url = page_url
        self.state = DispatchState.IDLE
        self.history: list[DispatchState] = [DispatchState.IDLE]
        self.started_at = datetime.now(timezone.utc)
        self._started = time.monotonic()

    def transition(self, new_state: DispatchState) -> None:
        """Move to *new_state*, logging non-standard transitions."""
        allowed = STATE_TRANSITIONS.get(self.state, [])
        if new_state not in allowed and new_state not in TERMINAL_STATES:
            logger.warning(
                "Non-standard transition: %s → %s (allowed: %s)",
                self.state.value, new_state.value, [s.value for s in allowed],
            )
        logger.debug("[%s] State: %s → %s", self.rule.url_prefix, self.state.value, new_state.value)
        self.state = new_state
        self.history.append(new_state)

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self._started

    def resolved(self, address: str, *, injected: bool) -> ExtractionOutcome:
        self.transition(DispatchState.RESOLVED)
        return ExtractionOutcome(
            rule_prefix=self.rule.url_prefix,
            page_url=self.page_url,
            method=self.rule.acquisition_method,
            address=address,
            injected=injected,
            states=list(self.history),
            started_at=self.started_at,
            duration_sec=self.elapsed,
        )

    def failed(self, exc: DispatchError, *, address: str | None = None) -> ExtractionOutcome:
        self.transition(DispatchState.FAILED)
        return ExtractionOutcome(
            rule_prefix=self.rule.url_prefix,
            page_url=self.page_url,
            method=self.rule.acquisition_method,
            address=address,
            failure=FailureKind.from_error(exc),
            failed_step=exc.step,
            detail=str(exc),
            states=list(self.history),
            started_at=self.started_at,
            duration_sec=self.elapsed,
        )
