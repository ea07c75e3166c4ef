"""ownerlink — find the wallet behind a web page and offer a chat with its owner."""

from __future__ import annotations

try:
    from importlib.metadata import version

    __version__ = version("ownerlink")
except Exception:
    __version__ = "0.0.0"
