"""
Pin reconciliation.

Each tick resolves the published identifier, pins it when it changed and
then prunes the pin set down to {current} plus indirect pins. Pruning runs on
every regular tick, so an interrupted tick is repaired by the next one.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, List, Optional
import logging

from pinkeeper.core.content_addressing import ContentIdentifier
from pinkeeper.core.errors import PinAddError, PinKeeperError, PinListError, PinRemoveError, ResolutionError
from pinkeeper.core.resolver import DNSLinkResolver

if TYPE_CHECKING:
    from pinkeeper.backends.base import ContentStore

logger = logging.getLogger(__name__)


class ReconcilerState(Enum):
    """Phase of the reconciler. Ticks end in UNCHANGED, PINNING or ERROR and rest in IDLE."""

    IDLE = "idle"
    RESOLVING = "resolving"
    UNCHANGED = "unchanged"
    PINNING = "pinning"
    PRUNING = "pruning"
    ERROR = "error"


@dataclass
class TickResult:
    """Outcome of one reconciliation tick."""
    state: ReconcilerState  # UNCHANGED, PINNING or ERROR
    resolved: Optional[ContentIdentifier] = None
    pinned: Optional[ContentIdentifier] = None  # newly pinned in this tick
    unpinned: List[ContentIdentifier] = field(default_factory=list)
    error: Optional[PinKeeperError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class Reconciler:
    """
    Keeps the node's direct pins equal to {last_known}.

    last_known only moves forward after a successful pin.add.
    """

    def __init__(self, resolver: DNSLinkResolver, store: "ContentStore"):
        self.resolver = resolver
        self.store = store
        self.last_known: Optional[ContentIdentifier] = None
        self.pending_pin: Optional[ContentIdentifier] = None
        self.state = ReconcilerState.IDLE

    async def tick(self, prune: bool = True) -> TickResult:
        """
        Run one resolve, pin, prune pass. Never raises PinKeeperError.

        Args:
            prune: Unpin stale direct pins after pinning. Verification runs
                pass False so they leave the existing pin set alone.
        """
        try:
            return await self._tick(prune)
        finally:
            self.pending_pin = None
            self.state = ReconcilerState.IDLE

    async def _tick(self, prune: bool) -> TickResult:
        self.state = ReconcilerState.RESOLVING
        try:
            cid = await self.resolver.resolve_latest()
        except ResolutionError as e:
            logger.warning(str(e))
            return TickResult(state=ReconcilerState.ERROR, error=e)

        pinned = None
        if cid == self.last_known:
            self.state = ReconcilerState.UNCHANGED
        else:
            self.state = ReconcilerState.PINNING
            logger.info(f"Detected new checkpoints IPFS hash: {cid}")
            logger.info(f"Attempting to pin locally: {cid}")

            self.pending_pin = cid
            try:
                await self.store.add_pin(cid)
            except PinAddError as e:
                logger.warning(str(e))
                return TickResult(state=ReconcilerState.ERROR, resolved=cid, error=e)
            finally:
                self.pending_pin = None

            self.last_known = cid
            pinned = cid
            logger.info(f"Pinned successfully: {cid}")

        if not prune:
            final = ReconcilerState.UNCHANGED if pinned is None else ReconcilerState.PINNING
            return TickResult(state=final, resolved=cid, pinned=pinned)

        self.state = ReconcilerState.PRUNING
        try:
            unpinned = await self.prune()
        except PinListError as e:
            logger.warning(str(e))
            return TickResult(state=ReconcilerState.ERROR, resolved=cid, pinned=pinned, error=e)

        final = ReconcilerState.UNCHANGED if pinned is None else ReconcilerState.PINNING
        return TickResult(state=final, resolved=cid, pinned=pinned, unpinned=unpinned)

    async def prune(self) -> List[ContentIdentifier]:
        """
        Unpin every direct pin other than last_known.

        Indirect pins are never touched. A failed unpin is logged and skipped.

        Returns:
            Identifiers that were unpinned

        Raises:
            PinListError: if the pin set cannot be listed
        """
        records = await self.store.list_pins()

        stale = [r.cid for r in records if r.is_direct and r.cid != self.last_known]

        removed = []
        for cid in stale:
            try:
                await self.store.remove_pin(cid)
            except PinRemoveError as e:
                logger.warning(str(e))
                continue
            removed.append(cid)
            logger.warning(f"Unpinned hash: {cid}")

        return removed
