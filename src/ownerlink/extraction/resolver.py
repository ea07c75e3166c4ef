"""Owner resolver client — map a token identifier to its owning address.

The ledger lookup itself belongs to an external collaborator reached over
an asynchronous message channel. A request is ``{"action": "getXrpAddress",
"tokenId": ...}``; a reply carries either ``address`` or ``error``. This
client never retries; timeouts and retry policy are the collaborator's.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from ownerlink.address.patterns import first_address
from ownerlink.exceptions import RemoteResolutionFailed

logger = logging.getLogger(__name__)

RESOLVE_ACTION = "getXrpAddress"


@runtime_checkable
class MessageChannel(Protocol):
    """Asynchronous request/response channel to a collaborator."""

    async def send(self, message: dict[str, Any]) -> Mapping[str, Any] | None:
        """Send *message* and suspend until the reply arrives."""
        ...


class OwnerResolver:
    """Resolves token identifiers to owner addresses through a ``MessageChannel``.

    Args:
        channel: The channel to the ledger-lookup collaborator.
    """

    def __init__(self, channel: MessageChannel) -> None:
        self._channel = channel

    async def resolve_owner(self, token_id: str) -> str:
        """Return the owning address of *token_id*.

        Raises:
            RemoteResolutionFailed: If the collaborator replies with an error,
                replies without an address, or the channel itself fails.
        """
        try:
            response = await self._channel.send({"action": RESOLVE_ACTION, "tokenId": token_id})
        except RemoteResolutionFailed:
            raise
        except Exception as exc:
            raise RemoteResolutionFailed(
                f"Resolver channel failed for token {token_id}: {exc}", step="resolve_owner"
            ) from exc

        logger.debug("Resolver reply for %s: %s", token_id, response)
        if not response:
            raise RemoteResolutionFailed(f"No valid response received for token {token_id}", step="resolve_owner")
        if response.get("error"):
            raise RemoteResolutionFailed(
                f"Resolver error for token {token_id}: {response['error']}", step="resolve_owner"
            )
        address = response.get("address") or response.get("xrpAddress")
        if not isinstance(address, str) or not address.strip():
            raise RemoteResolutionFailed(f"No address in resolver reply for token {token_id}", step="resolve_owner")
        return address.strip()


class MappingOwnerChannel:
    """A ``MessageChannel`` answering from a static token → owner mapping.

    Stands in for the ledger collaborator during offline scans.

    Args:
        owners: Mapping of token id to owner address.
    """

    def __init__(self, owners: Mapping[str, str] | None = None) -> None:
        self._owners = dict(owners or {})

    @classmethod
    def from_file(cls, path: Path | str) -> "MappingOwnerChannel":
        """Load a JSON object of ``{"<tokenId>": "<address>"}`` from *path*."""
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError(f"Owner mapping in {path} must be a JSON object")
        return cls({str(k): str(v) for k, v in data.items()})

    async def send(self, message: dict[str, Any]) -> dict[str, Any]:
        if message.get("action") != RESOLVE_ACTION:
            return {"error": f"Unsupported action: {message.get('action')}"}
        token_id = str(message.get("tokenId", ""))
        owner = self._owners.get(token_id)
        if owner and first_address(owner):
            return {"address": owner}
        return {"error": f"Token {token_id} not found"}
