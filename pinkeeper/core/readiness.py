"""
Swarm readiness gate.

Pin work is pointless until the node has at least one swarm peer, so the
reconciliation loop waits here first.
"""

import asyncio
import logging
from typing import TYPE_CHECKING, Optional

from pinkeeper.core.errors import ReadinessTimeout, StoreError

if TYPE_CHECKING:
    from pinkeeper.backends.base import ContentStore

logger = logging.getLogger(__name__)


class ReadinessGate:
    """Polls the node's peer list until somebody is connected."""

    def __init__(
        self,
        store: "ContentStore",
        poll_interval: float = 5.0,
        timeout: Optional[float] = None,
    ):
        """
        Args:
            store: Node to poll
            poll_interval: Seconds between peer list checks
            timeout: Give up after this many seconds (None waits forever)
        """
        self.store = store
        self.poll_interval = poll_interval
        self.timeout = timeout

    async def await_ready(self) -> int:
        """
        Block until the node reports at least one peer.

        A failing peer list call counts as "no peers yet".

        Returns:
            Number of peers seen

        Raises:
            ReadinessTimeout: only when a timeout was configured
        """
        loop = asyncio.get_running_loop()
        deadline = None if self.timeout is None else loop.time() + self.timeout

        while True:
            try:
                peers = await self.store.list_peers()
            except StoreError as e:
                logger.debug(f"Swarm peer check failed: {e}")
                peers = []

            if peers:
                return len(peers)

            if deadline is not None and loop.time() + self.poll_interval > deadline:
                raise ReadinessTimeout(
                    f"No swarm peers after {self.timeout:.0f}s. Check your Internet connection."
                )
            await asyncio.sleep(self.poll_interval)
