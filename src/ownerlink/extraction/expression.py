"""Path/property expressions evaluated against a read-only page view.

Rules use small expressions to pull an address or token id out of the
current location or the page-exposed state, e.g.::

    location.pathname.split('/').pop()
    location.hash.split('@').at(1)
    nftStore.current.owner
    window.app.selectedWallets()

Grammar: ``segment ('.' segment)*`` where ``segment := NAME call*`` and
``call := '(' [literal (',' literal)*] ')'``. Literals are quoted strings,
integers, ``true``, ``false`` and ``null``.

Evaluation only sees an ``EvaluationContext``: ``location``, ``window``
(the context itself) and the top-level keys of the exposed state. Property
access is limited to mapping keys, ``PageLocation`` fields and ``length``;
calls are limited to callables supplied in the state and an allow-list of
non-mutating string/list methods with JavaScript names.
"""

from __future__ import annotations

import dataclasses
import logging
import re
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from functools import lru_cache
from types import MappingProxyType
from typing import Any

from ownerlink.browser.document import PageLocation
from ownerlink.exceptions import ExpressionEvaluationError

logger = logging.getLogger(__name__)

_TOKEN_RE = re.compile(
    r"""
    \s*(?:
        (?P<string>'(?:[^'\\]|\\.)*'|"(?:[^"\\]|\\.)*")
      | (?P<number>-?\d+)
      | (?P<name>[A-Za-z_$][A-Za-z0-9_$]*)
      | (?P<punct>[.(),])
    )\s*
    """,
    re.VERBOSE,
)

_KEYWORDS: dict[str, Any] = {"true": True, "false": False, "null": None}
_ESCAPE_RE = re.compile(r"\\(.)")


# ---------------------------------------------------------------------------
# AST
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Segment:
    """One dotted segment: a property name followed by zero or more calls."""

    name: str
    calls: tuple[tuple[Any, ...], ...] = ()


@dataclass(frozen=True)
class Expression:
    """A parsed expression."""

    source: str
    segments: tuple[Segment, ...]


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def _tokenize(text: str) -> list[tuple[str, str]]:
    tokens: list[tuple[str, str]] = []
    pos = 0
    while pos < len(text):
        m = _TOKEN_RE.match(text, pos)
        if not m or m.end() == pos:
            raise ExpressionEvaluationError(
                f"Unexpected character {text[pos]!r} at position {pos} in {text!r}",
                step="parse",
            )
        kind = m.lastgroup or ""
        tokens.append((kind, m.group(kind)))
        pos = m.end()
    return tokens


def _literal(kind: str, value: str, source: str) -> Any:
    if kind == "string":
        return _ESCAPE_RE.sub(r"\1", value[1:-1])
    if kind == "number":
        return int(value)
    if kind == "name" and value in _KEYWORDS:
        return _KEYWORDS[value]
    raise ExpressionEvaluationError(f"Expected a literal argument, got {value!r} in {source!r}", step="parse")


@lru_cache(maxsize=256)
def parse_expression(text: str) -> Expression:
    """Parse *text* into an ``Expression``.

    Raises:
        ExpressionEvaluationError: On any syntax error.
    """
    tokens = _tokenize(text.strip())
    if not tokens:
        raise ExpressionEvaluationError("Empty expression", step="parse")

    segments: list[Segment] = []
    i = 0
    while True:
        if i >= len(tokens) or tokens[i][0] != "name" or tokens[i][1] in _KEYWORDS:
            raise ExpressionEvaluationError(f"Expected a property name in {text!r}", step="parse")
        name = tokens[i][1]
        i += 1

        calls: list[tuple[Any, ...]] = []
        while i < len(tokens) and tokens[i] == ("punct", "("):
            i += 1
            args: list[Any] = []
            if i < len(tokens) and tokens[i] == ("punct", ")"):
                i += 1
            else:
                while True:
                    if i >= len(tokens):
                        raise ExpressionEvaluationError(f"Unclosed call in {text!r}", step="parse")
                    args.append(_literal(*tokens[i], text))
                    i += 1
                    if i < len(tokens) and tokens[i] == ("punct", ","):
                        i += 1
                        continue
                    if i < len(tokens) and tokens[i] == ("punct", ")"):
                        i += 1
                        break
                    raise ExpressionEvaluationError(f"Unclosed call in {text!r}", step="parse")
            calls.append(tuple(args))
        segments.append(Segment(name=name, calls=tuple(calls)))

        if i == len(tokens):
            break
        if tokens[i] != ("punct", "."):
            raise ExpressionEvaluationError(f"Unexpected {tokens[i][1]!r} in {text!r}", step="parse")
        i += 1

    return Expression(source=text, segments=tuple(segments))


# ---------------------------------------------------------------------------
# Allowed methods (JavaScript names, never mutating)
# ---------------------------------------------------------------------------


def _split(s: str, sep: str | None = None, limit: int | None = None) -> list[str]:
    if sep is None:
        parts = [s]
    elif sep == "":
        parts = list(s)
    else:
        parts = s.split(sep)
    return parts[:limit] if limit is not None else parts


def _substring(s: str, start: int, end: int | None = None) -> str:
    end = len(s) if end is None else end
    start, end = max(0, min(start, len(s))), max(0, min(end, len(s)))
    if start > end:
        start, end = end, start
    return s[start:end]


def _at(seq: Sequence[Any], index: int) -> Any:
    try:
        return seq[index]
    except IndexError:
        return None


def _index_of(seq: Sequence[Any], item: Any) -> int:
    if isinstance(seq, str):
        return seq.find(item)
    return seq.index(item) if item in seq else -1


_STRING_METHODS: dict[str, Callable[..., Any]] = {
    "split": _split,
    "at": _at,
    "slice": lambda s, start=0, end=None: s[start:end],
    "substring": _substring,
    "trim": lambda s: s.strip(),
    "toLowerCase": lambda s: s.lower(),
    "toUpperCase": lambda s: s.upper(),
    "replace": lambda s, old, new: s.replace(old, new, 1),
    "includes": lambda s, sub: sub in s,
    "startsWith": lambda s, prefix: s.startswith(prefix),
    "endsWith": lambda s, suffix: s.endswith(suffix),
    "indexOf": _index_of,
}

_LIST_METHODS: dict[str, Callable[..., Any]] = {
    "pop": lambda seq: seq[-1] if seq else None,
    "shift": lambda seq: seq[0] if seq else None,
    "at": _at,
    "slice": lambda seq, start=0, end=None: list(seq[start:end]),
    "join": lambda seq, sep=",": sep.join("" if v is None else str(v) for v in seq),
    "includes": lambda seq, item: item in seq,
    "indexOf": _index_of,
}


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EvaluationContext:
    """Read-only view an expression is evaluated against.

    Attributes:
        location: The current page location.
        state: Page-exposed state (top-level names).
    """

    location: PageLocation | None = None
    state: Mapping[str, Any] = field(default_factory=dict)

    def names(self) -> Mapping[str, Any]:
        """The root namespace, also reachable as ``window``."""
        namespace: dict[str, Any] = dict(self.state)
        if self.location is not None:
            namespace["location"] = self.location
        return MappingProxyType(namespace)

    def lookup(self, name: str) -> Any:
        if name == "window":
            return self.names()
        namespace = self.names()
        if name not in namespace:
            raise ExpressionEvaluationError(f"{name!r} is not defined", step="evaluate")
        return namespace[name]


def _get_property(obj: Any, name: str, path: str) -> Any:
    if obj is None:
        raise ExpressionEvaluationError(f"Cannot read {name!r} of undefined at {path!r}", step="evaluate")
    if isinstance(obj, Mapping):
        if name in obj:
            return obj[name]
    elif isinstance(obj, PageLocation):
        if name in {f.name for f in dataclasses.fields(PageLocation)}:
            return getattr(obj, name)
    elif name == "length" and isinstance(obj, (str, list, tuple)):
        return len(obj)
    raise ExpressionEvaluationError(f"{name!r} is undefined at {path!r}", step="evaluate")


def _call_method(obj: Any, name: str, args: tuple[Any, ...], path: str) -> Any:
    if isinstance(obj, Mapping) and name in obj:
        return _invoke(obj[name], args, path)
    if isinstance(obj, str):
        method = _STRING_METHODS.get(name)
    elif isinstance(obj, (list, tuple)):
        method = _LIST_METHODS.get(name)
    else:
        method = None
    if method is None:
        raise ExpressionEvaluationError(f"{name}() is not callable at {path!r}", step="evaluate")
    try:
        return method(obj, *args)
    except (TypeError, ValueError) as exc:
        raise ExpressionEvaluationError(f"{name}() failed at {path!r}: {exc}", step="evaluate") from exc


def _invoke(fn: Any, args: tuple[Any, ...], path: str) -> Any:
    if not callable(fn):
        raise ExpressionEvaluationError(f"{path!r} is not a function", step="evaluate")
    try:
        return fn(*args)
    except Exception as exc:
        raise ExpressionEvaluationError(f"Call at {path!r} raised: {exc}", step="evaluate") from exc


def evaluate(expression: str | Expression, context: EvaluationContext) -> Any:
    """Evaluate *expression* against *context*.

    Args:
        expression: Source text or an already parsed ``Expression``.
        context: The read-only view to evaluate against.

    Returns:
        The resulting value (string, list, number, mapping …).

    Raises:
        ExpressionEvaluationError: If parsing fails, any segment is undefined,
            a call is not allowed, or the result is undefined.
    """
    expr = parse_expression(expression) if isinstance(expression, str) else expression

    value: Any = None
    path = ""
    for idx, segment in enumerate(expr.segments):
        path = f"{path}.{segment.name}" if path else segment.name
        calls = list(segment.calls)
        if idx == 0:
            value = context.lookup(segment.name)
        elif calls:
            value = _call_method(value, segment.name, calls.pop(0), path)
        else:
            value = _get_property(value, segment.name, path)
        for args in calls:
            value = _invoke(value, args, path)

    if value is None:
        raise ExpressionEvaluationError(f"{expr.source!r} evaluated to undefined", step="evaluate")
    logger.debug("Expression %r → %r", expr.source, value)
    return value
