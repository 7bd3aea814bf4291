"""
Content store capability.

The reconciler only talks to the IPFS node through this interface, so the
local-daemon and remote-API variants are interchangeable.
"""

from abc import ABC, abstractmethod
from typing import List

from pinkeeper.core.content_addressing import ContentIdentifier, PinRecord


class ContentStore(ABC):
    """Async handle on an IPFS node."""

    # Whether the node has to join the swarm before pin work is meaningful.
    requires_readiness: bool = False

    @abstractmethod
    async def list_peers(self) -> List[str]:
        """Connected swarm peers. Raises StoreError."""

    @abstractmethod
    async def add_pin(self, cid: ContentIdentifier) -> None:
        """Recursively pin cid, fetching it if needed. Raises PinAddError."""

    @abstractmethod
    async def list_pins(self) -> List[PinRecord]:
        """Current pin set, direct and indirect. Raises PinListError."""

    @abstractmethod
    async def remove_pin(self, cid: ContentIdentifier) -> None:
        """Remove a direct pin. Raises PinRemoveError."""

    async def close(self) -> None:
        """Release the handle."""
