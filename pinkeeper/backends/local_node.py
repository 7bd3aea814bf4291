"""
Locally owned IPFS node.

Runs `ipfs daemon` as a child process against our own repo directory and
talks to it through the HTTP API, like IPFSStore does for a remote node.
"""

from pathlib import Path
from typing import List, Optional
import asyncio
import logging
import os

from pinkeeper.backends.ipfs_backend import IPFSStore, api_multiaddr
from pinkeeper.core.errors import StoreError

logger = logging.getLogger(__name__)


class LocalIPFSNode(IPFSStore):
    """
    IPFS node started and stopped by this process.

    Features:
    - Initializes the repo on first use (`ipfs init`)
    - Relay service and DHT routing enabled
    - Daemon output forwarded to the log
    - Must join the swarm before pin work (readiness gated)
    """

    requires_readiness = True

    def __init__(
        self,
        repo_path: Path,
        ipfs_binary: str = "ipfs",
        api_port: int = 5001,
        startup_timeout: float = 60.0,
        **kwargs,
    ):
        """
        Initialize local node.

        Args:
            repo_path: IPFS repo directory (IPFS_PATH)
            ipfs_binary: ipfs executable
            api_port: Port the daemon's HTTP API listens on
            startup_timeout: Seconds to wait for the API to answer
            **kwargs: Passed on to IPFSStore
        """
        super().__init__(ipfs_addr=api_multiaddr("127.0.0.1", api_port), **kwargs)
        self.repo_path = Path(repo_path).expanduser().resolve()
        self.ipfs_binary = ipfs_binary
        self.api_port = api_port
        self.startup_timeout = startup_timeout
        self.process: Optional[asyncio.subprocess.Process] = None
        self._pumps: List[asyncio.Task] = []

    @property
    def env(self) -> dict:
        return {**os.environ, "IPFS_PATH": str(self.repo_path)}

    async def start(self) -> None:
        """
        Initialize the repo if needed, launch the daemon and connect to it.

        Raises:
            StoreError: if the daemon cannot be started
        """
        logger.info(f"Starting IPFS node in: {self.repo_path}")
        self.repo_path.mkdir(parents=True, exist_ok=True)

        if not (self.repo_path / "config").exists():
            await self._ipfs("init")
        await self._ipfs("config", "Addresses.API", f"/ip4/127.0.0.1/tcp/{self.api_port}")
        await self._ipfs("config", "--json", "Swarm.RelayService.Enabled", "true")
        await self._ipfs("config", "Routing.Type", "dht")

        try:
            self.process = await asyncio.create_subprocess_exec(
                self.ipfs_binary, "daemon",
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=self.env,
            )
        except OSError as e:
            raise StoreError(f"Could not launch {self.ipfs_binary} daemon: {e}") from e

        self._pumps = [
            asyncio.create_task(self._pump(self.process.stdout, logging.DEBUG)),
            asyncio.create_task(self._pump(self.process.stderr, logging.ERROR)),
        ]

        await self._wait_for_api()
        logger.info("IPFS node started")

    async def close(self) -> None:
        await super().close()

        if self.process is not None and self.process.returncode is None:
            self.process.terminate()
            try:
                await asyncio.wait_for(self.process.wait(), timeout=10)
            except asyncio.TimeoutError:
                logger.warning("IPFS daemon did not stop in time, killing it")
                self.process.kill()
                await self.process.wait()

        for task in self._pumps:
            task.cancel()
        self._pumps = []

    # Internal methods

    async def _ipfs(self, *args: str) -> str:
        """Run a one-shot ipfs command against our repo."""
        try:
            proc = await asyncio.create_subprocess_exec(
                self.ipfs_binary, *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=self.env,
            )
        except OSError as e:
            raise StoreError(f"Could not run {self.ipfs_binary}: {e}") from e

        stdout, stderr = await proc.communicate()
        if proc.returncode != 0:
            raise StoreError(
                f"`ipfs {' '.join(args)}` failed ({proc.returncode}): "
                f"{stderr.decode(errors='replace').strip()}"
            )
        return stdout.decode(errors="replace")

    async def _wait_for_api(self) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.startup_timeout
        while True:
            if self.process.returncode is not None:
                raise StoreError(f"IPFS daemon exited with code {self.process.returncode}")
            try:
                await self.connect()
                return
            except StoreError as e:
                if loop.time() >= deadline:
                    raise StoreError(
                        f"IPFS daemon API not ready after {self.startup_timeout:.0f}s: {e}"
                    ) from e
            await asyncio.sleep(1)

    async def _pump(self, stream: asyncio.StreamReader, level: int) -> None:
        while True:
            line = await stream.readline()
            if not line:
                return
            logger.log(level, line.decode(errors="replace").rstrip())
