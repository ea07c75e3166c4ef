"""ownerlink exception hierarchy.

Dispatch failures carry a ``kind`` that maps one-to-one onto
``ownerlink.engine.outcome.FailureKind`` so the dispatcher can turn any
raised error into a typed ``ExtractionOutcome`` without string matching.
"""

from __future__ import annotations


class OwnerLinkError(Exception):
    """Base exception for all ownerlink-specific errors."""


class RuleLoadFailure(OwnerLinkError):
    """Raised when the site rule set cannot be obtained.

    The page session treats this as "no rules available" and does nothing
    for the current page load.
    """


class DispatchError(OwnerLinkError):
    """Base class for failures that terminate a single dispatch.

    Attributes:
        kind: Failure kind identifier (``FailureKind`` value).
        step: The dispatch step that failed, e.g. ``"primary_selector"``.
        rule: URL prefix of the rule being dispatched, when known.
    """

    kind = "dispatch_error"

    def __init__(self, message: str, *, step: str = "", rule: str = "") -> None:
        self.step = step
        self.rule = rule
        super().__init__(message)


class SelectorTimeout(DispatchError):
    """Raised when a bounded element wait exhausts its timeout.

    Attributes:
        selector: The CSS selector that never matched.
        timeout_ms: The timeout that elapsed.
    """

    kind = "selector_timeout"

    def __init__(self, selector: str, timeout_ms: int, *, step: str = "", rule: str = "") -> None:
        self.selector = selector
        self.timeout_ms = timeout_ms
        super().__init__(
            f'Element with selector "{selector}" not found within {timeout_ms} ms',
            step=step,
            rule=rule,
        )


class ExpressionEvaluationError(DispatchError):
    """Raised when a path/property expression cannot be parsed or evaluated."""

    kind = "expression_evaluation_error"


class RemoteResolutionFailed(DispatchError):
    """Raised when the owner resolver collaborator returns an error or no address."""

    kind = "remote_resolution_failed"


class AddressNotFound(DispatchError):
    """Raised when a search completed but no address-shaped text existed."""

    kind = "not_found"


class NavigationError(OwnerLinkError):
    """Raised when a live page cannot be reached at all (DNS, TLS, refused connection).

    Attributes:
        url: The URL that failed to load.
        reason: Short human-readable cause.
    """

    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"Navigation to {url} failed: {reason}")
