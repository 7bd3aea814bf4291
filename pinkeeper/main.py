#!/usr/bin/env python3
"""
PinKeeper entry point.

Commands:
- run: keep the node pinned to the published object (default)
- test: one-shot verification run, exits 0 once the object is pinned
"""

import argparse
import asyncio
import logging
import signal
import sys
from typing import List, Optional

from pinkeeper.backends import ContentStore, IPFSStore, LocalIPFSNode, api_multiaddr
from pinkeeper.config import PinKeeperConfig, parse_log_level
from pinkeeper.core.errors import ConfigError, ReadinessTimeout, StoreError
from pinkeeper.core.readiness import ReadinessGate
from pinkeeper.core.reconciler import Reconciler
from pinkeeper.core.resolver import DNSLinkResolver
from pinkeeper.core.scheduler import EXIT_FAILURE, Scheduler
from pinkeeper.logging_setup import configure_logging

logger = logging.getLogger(__name__)

EXIT_CONFIG = 2


def build_store(config: PinKeeperConfig) -> ContentStore:
    """Pick the store variant for this configuration."""
    if config.use_remote_node:
        return IPFSStore(
            ipfs_addr=api_multiaddr(config.ipfs_host, config.ipfs_port),
            timeout=config.ipfs_timeout,
            pin_timeout=config.pin_timeout,
        )
    return LocalIPFSNode(
        repo_path=config.ipfs_repo_path,
        ipfs_binary=config.ipfs_binary,
        api_port=config.ipfs_api_port,
        timeout=config.ipfs_timeout,
        pin_timeout=config.pin_timeout,
    )


async def open_store(config: PinKeeperConfig) -> ContentStore:
    store = build_store(config)
    try:
        if isinstance(store, LocalIPFSNode):
            await store.start()
        else:
            logger.info(f"Using IPFS node at {config.ipfs_host}:{config.ipfs_port}")
            await store.connect()
    except StoreError:
        await store.close()
        raise
    return store


def remaining_budget(config: PinKeeperConfig, elapsed: float) -> float:
    return max(0.0, config.test_maximum_seconds - elapsed)


async def run_service(config: PinKeeperConfig, diagnostic: bool = False) -> int:
    """
    Start the node, wait for the swarm and run the reconciliation loop.

    In diagnostic mode node startup, swarm readiness and the first pin share
    one time budget.

    Returns:
        Process exit code
    """
    loop = asyncio.get_running_loop()
    started = loop.time()

    try:
        store = await open_store(config)
    except StoreError as e:
        logger.error(str(e))
        return EXIT_FAILURE

    try:
        if store.requires_readiness:
            logger.info("Waiting for IPFS node to connect to swarm...")
            gate = ReadinessGate(
                store,
                poll_interval=config.readiness_poll_seconds,
                timeout=remaining_budget(config, loop.time() - started) if diagnostic else None,
            )
            try:
                peers = await gate.await_ready()
            except ReadinessTimeout as e:
                logger.error(str(e))
                return EXIT_FAILURE
            logger.info(f"IPFS node connected to swarm ({peers} peers)...")

        resolver = DNSLinkResolver(config.checkpoints_hostname, dns_timeout=config.dns_timeout)
        reconciler = Reconciler(resolver, store)
        scheduler = Scheduler(
            reconciler,
            interval=config.reconcile_interval_seconds,
            diagnostic=diagnostic,
            time_budget=remaining_budget(config, loop.time() - started),
        )

        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, scheduler.stop)
            except (NotImplementedError, RuntimeError):
                pass

        return await scheduler.run()
    finally:
        await store.close()


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="pinkeeper",
        description="Keep an IPFS node pinned to the object published via DNSLink",
    )
    parser.add_argument(
        "command",
        nargs="?",
        default="run",
        choices=["run", "test"],
        help="run: keep pinning on a schedule; test: one-shot verification run",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        type=parse_log_level,
        help="Override LOG_LEVEL (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    try:
        config = PinKeeperConfig.from_env()
    except ConfigError as e:
        configure_logging("ERROR")
        logger.error(str(e))
        return EXIT_CONFIG

    configure_logging(args.log_level or config.log_level)
    diagnostic = args.command == "test"

    return asyncio.run(run_service(config, diagnostic=diagnostic))


if __name__ == "__main__":
    sys.exit(main())
