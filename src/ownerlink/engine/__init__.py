"""Adaptive extraction-and-injection engine.

* ``states`` — dispatch state machine.
* ``outcome`` — ``ExtractionOutcome`` and the per-cycle ``DispatchContext``.
* ``wait`` — bounded element wait.
* ``injector`` — chat control construction and single-instance placement.
* ``dispatcher`` — per-rule strategy selection and fallback policy.
* ``watchers`` — structural (debounced) and navigation change watchers.
* ``session`` — per-page lifecycle tying the above together.
"""

from ownerlink.engine.dispatcher import StrategyDispatcher
from ownerlink.engine.injector import ControlInjector, build_chat_url
from ownerlink.engine.outcome import ExtractionOutcome, FailureKind
from ownerlink.engine.session import PageSession
from ownerlink.engine.states import DispatchState
from ownerlink.engine.wait import wait_for_any, wait_for_element
from ownerlink.engine.watchers import NavigationWatcher, StructuralWatcher

__all__ = [
    "ControlInjector",
    "DispatchState",
    "ExtractionOutcome",
    "FailureKind",
    "NavigationWatcher",
    "PageSession",
    "StrategyDispatcher",
    "StructuralWatcher",
    "build_chat_url",
    "wait_for_any",
    "wait_for_element",
]
