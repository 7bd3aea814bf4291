"""
IPFS HTTP API content store.

Talks to an IPFS daemon through ipfshttpclient. The client is blocking, so
short calls run on a small thread pool owned by the store and pin.add runs on
a daemon thread of its own, which interpreter shutdown does not wait for.
"""

from typing import Any, Dict, List, Optional
from concurrent.futures import ThreadPoolExecutor
import asyncio
import functools
import ipaddress
import logging
import math
import threading
import time

import ipfshttpclient

from pinkeeper.backends.base import ContentStore
from pinkeeper.core.content_addressing import ContentIdentifier, PinRecord, RetentionClass
from pinkeeper.core.errors import PinAddError, PinListError, PinRemoveError, StoreError

logger = logging.getLogger(__name__)


def api_multiaddr(host: str, port: int) -> str:
    """Build the multiaddr of an IPFS HTTP API endpoint."""
    try:
        ip = ipaddress.ip_address(host)
        proto = "ip4" if ip.version == 4 else "ip6"
    except ValueError:
        proto = "dns"
    return f"/{proto}/{host}/tcp/{int(port)}/http"


class IPFSStore(ContentStore):
    """
    Content store backed by a remote IPFS node.

    The node is assumed to be reachable and already part of the swarm, so
    readiness gating is skipped for this variant.
    """

    requires_readiness = False

    def __init__(
        self,
        ipfs_addr: str = "/ip4/127.0.0.1/tcp/5001/http",
        timeout: int = 60,
        pin_timeout: Optional[float] = None,
        retry_attempts: int = 3,
        retry_backoff: float = 0.5,
    ):
        """
        Initialize IPFS store.

        Args:
            ipfs_addr: IPFS daemon API address (multiaddr format)
            timeout: Timeout for short IPFS operations (seconds)
            pin_timeout: Timeout for pin.add (seconds), None for unbounded
            retry_attempts: Number of tries for transient IPFS failures
            retry_backoff: Base backoff (seconds) between retries
        """
        self.ipfs_addr = ipfs_addr
        self.timeout = timeout
        self.pin_timeout = pin_timeout
        self.retry_attempts = max(1, retry_attempts)
        self.retry_backoff = max(0.1, retry_backoff)
        self.client = None
        self._executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="ipfs")

    async def connect(self) -> Dict[str, Any]:
        """
        Connect to the IPFS daemon and check it answers.

        Returns:
            The daemon's version info

        Raises:
            StoreError: if the daemon cannot be reached
        """
        try:
            self.client = ipfshttpclient.Client(self.ipfs_addr, timeout=self.timeout)
            version = await self._call(self.client.version)
        except Exception as e:
            raise StoreError(f"IPFS connection to {self.ipfs_addr} failed: {e}") from e

        logger.info(f"Connected to IPFS {version.get('Version', '?')} at {self.ipfs_addr}")
        return version

    async def list_peers(self) -> List[str]:
        try:
            result = await self._call(self.client.swarm.peers)
        except Exception as e:
            raise StoreError(f"Could not list swarm peers: {e}") from e

        # go-ipfs answers {"Peers": null} when nobody is connected
        peers = (result or {}).get("Peers") or []
        return [peer.get("Peer", "") for peer in peers]

    async def add_pin(self, cid: ContentIdentifier) -> None:
        try:
            # ipfshttpclient reads timeout=None as "client default", inf as "no timeout"
            timeout = math.inf if self.pin_timeout is None else self.pin_timeout
            await self._run_detached(self.client.pin.add, cid, timeout=timeout)
        except Exception as e:
            raise PinAddError(f"Could not pin {cid}: {e}") from e

    async def list_pins(self) -> List[PinRecord]:
        try:
            result = await self._call(self.client.pin.ls, type="all")
        except Exception as e:
            raise PinListError(f"Could not list pins: {e}") from e

        keys = (result or {}).get("Keys") or {}
        records = []
        for cid, info in keys.items():
            pin_type = (info or {}).get("Type", "recursive")
            records.append(
                PinRecord(
                    cid=cid,
                    retention=RetentionClass.from_pin_type(pin_type),
                    pin_type=pin_type,
                )
            )
        return records

    async def remove_pin(self, cid: ContentIdentifier) -> None:
        try:
            await self._call(self.client.pin.rm, cid)
        except Exception as e:
            raise PinRemoveError(f"Could not unpin {cid}: {e}") from e

    async def close(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)
        if self.client is not None:
            try:
                self.client.close()
            except Exception as e:
                logger.debug(f"Error closing IPFS client: {e}")
            self.client = None

    # Internal methods

    async def _run(self, func, *args, **kwargs):
        """Run a blocking client call on the store's thread pool."""
        if self.client is None:
            raise StoreError("IPFS store is not connected")
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            self._executor, functools.partial(func, *args, **kwargs)
        )

    async def _run_detached(self, func, *args, **kwargs):
        """Run a blocking client call on a daemon thread."""
        if self.client is None:
            raise StoreError("IPFS store is not connected")
        loop = asyncio.get_running_loop()
        future = loop.create_future()

        def settle(result, exc):
            if future.done():
                return
            if exc is not None:
                future.set_exception(exc)
            else:
                future.set_result(result)

        def worker():
            result, exc = None, None
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                exc = e
            try:
                loop.call_soon_threadsafe(settle, result, exc)
            except RuntimeError:
                logger.debug("Event loop closed before IPFS call returned")

        threading.Thread(target=worker, name="ipfs-pin", daemon=True).start()
        return await future

    async def _call(self, func, *args, **kwargs):
        """Run a short client call with retries."""
        return await self._run(self._execute_with_retries, func, *args, **kwargs)

    def _execute_with_retries(self, func, *args, **kwargs):
        """Execute a function with retry and backoff for transient IPFS errors."""
        attempt = 0
        last_exc = None
        while attempt < self.retry_attempts:
            try:
                return func(*args, **kwargs)
            except Exception as exc:  # Broad on purpose: network client errors vary
                last_exc = exc
                attempt += 1
                if attempt >= self.retry_attempts:
                    break
                delay = self.retry_backoff * (2 ** (attempt - 1))
                logger.warning(
                    f"IPFS operation failed (attempt {attempt}/{self.retry_attempts}): {exc}. "
                    f"Retrying in {delay:.2f}s"
                )
                time.sleep(delay)
        raise last_exc
