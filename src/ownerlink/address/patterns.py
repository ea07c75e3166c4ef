"""Wallet address lexical patterns.

The engine only needs a lightweight lexical check: a fixed leading
character followed by 24–34 characters of the base-58 alphabet used by the
XRP Ledger (no ``0``, ``O``, ``I`` or ``l``). Checksums are never verified.

``find_addresses`` is the primitive used both for passive page-wide scans
and inside the dispatcher to normalize candidate values.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

logger = logging.getLogger(__name__)

BASE58_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"

_NON_ALNUM_RE = re.compile(r"[^a-zA-Z0-9]")


@dataclass(frozen=True)
class AddressPattern:
    """A single regex pattern for matching wallet addresses.

    Attributes:
        name: Human-readable ledger name, e.g. ``"XRP Ledger"``.
        symbol: Token symbol, e.g. ``"XRP"``.
        regex: Compiled regex with one capturing group for the address.
        min_length: Minimum address length.
        max_length: Maximum address length.
        example: A well-known example address for documentation / testing.
    """

    name: str
    symbol: str
    regex: re.Pattern[str]
    min_length: int = 25
    max_length: int = 35
    example: str = ""

    def match(self, text: str) -> str | None:
        """Return the first address in *text*, else ``None``."""
        for addr in self.find_all(text):
            return addr
        return None

    def find_all(self, text: str) -> list[str]:
        """Return every non-overlapping address in *text*, in order of appearance."""
        if not text or not isinstance(text, str):
            return []
        results: list[str] = []
        for m in self.regex.finditer(text):
            addr = m.group(1) if m.lastindex else m.group(0)
            if self.min_length <= len(addr) <= self.max_length:
                results.append(addr)
        return results

    def fullmatch(self, text: str) -> bool:
        """Return ``True`` if the whole of *text* is a single address."""
        return bool(text) and self.match(text) == text


XRPL_ADDRESS = AddressPattern(
    name="XRP Ledger",
    symbol="XRP",
    regex=re.compile(r"(r[1-9A-HJ-NP-Za-km-z]{24,34})"),
    min_length=25,
    max_length=35,
    example="rN7n3473SaZBCG4dFL83w7p1W9cgZw6ihn",
)


def find_addresses(text: str, pattern: AddressPattern = XRPL_ADDRESS) -> list[str]:
    """Return all address-shaped substrings of *text* in document order.

    Duplicates are kept; an empty list means no occurrence.
    """
    return pattern.find_all(text)


def first_address(text: str, pattern: AddressPattern = XRPL_ADDRESS) -> str | None:
    """Return the first address-shaped substring of *text*, or ``None``."""
    return pattern.match(text)


def is_address(value: str, pattern: AddressPattern = XRPL_ADDRESS) -> bool:
    """Return ``True`` if *value* (stripped) is exactly one address."""
    return pattern.fullmatch(value.strip()) if isinstance(value, str) else False


def sanitize_address(value: str) -> str:
    """Strip every character outside ``[A-Za-z0-9]`` from *value*."""
    return _NON_ALNUM_RE.sub("", value)
