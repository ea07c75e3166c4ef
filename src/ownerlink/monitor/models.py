"""Site monitor result models."""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, Field


class SiteCheck(BaseModel):
    """Health of one site rule against its live monitor page.

    Selector checks are ``None`` when the rule has nothing to check
    (e.g. no address selector on a URL-expression rule, or no click
    selector on a static rule).
    """

    rule_prefix: str
    monitor_url: str
    final_url: str = ""
    redirected: bool = False
    clicked: bool | None = None
    address_selector_found: bool | None = None
    insert_selector_found: bool | None = None
    control_inserted: bool = False
    address: str | None = None
    dispatch_failure: str | None = None
    error: str | None = None
    duration_sec: float = 0.0

    @property
    def healthy(self) -> bool:
        """``True`` when the page loaded and the control was inserted."""
        return self.error is None and self.control_inserted


class MonitorReport(BaseModel):
    """All site checks of one monitor run."""

    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    checks: list[SiteCheck] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.checks)

    @property
    def healthy_count(self) -> int:
        return sum(1 for c in self.checks if c.healthy)

    @property
    def redirected_count(self) -> int:
        return sum(1 for c in self.checks if c.redirected)

    @property
    def failing(self) -> list[SiteCheck]:
        return [c for c in self.checks if not c.healthy]
