"""
Reconciliation scheduler.

Fires a tick right away and then on a fixed period. At most one tick is in
flight; a period that fires while the previous tick is still running is
skipped.

Diagnostic ("test") mode is a one-shot verification run: it stops with exit
code 0 on the first successful pin and with exit code 1 if nothing was pinned
within the time budget. It never prunes, so verifying against a node leaves
the node's other pins in place.
"""

import asyncio
import logging
from typing import List, Optional

from pinkeeper.core.reconciler import Reconciler

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1


class Scheduler:
    """Drives a Reconciler on a fixed cadence."""

    def __init__(
        self,
        reconciler: Reconciler,
        interval: float = 60 * 60,
        diagnostic: bool = False,
        time_budget: float = 15 * 60,
        ping_interval: float = 30,
    ):
        """
        Initialize scheduler.

        Args:
            reconciler: Reconciler to drive
            interval: Seconds between ticks
            diagnostic: Run in one-shot verification mode
            time_budget: Diagnostic mode: seconds allowed for the first pin
            ping_interval: Diagnostic mode: seconds between "still waiting" lines
        """
        self.reconciler = reconciler
        self.interval = interval
        self.diagnostic = diagnostic
        self.time_budget = time_budget
        self.ping_interval = ping_interval

        self.exit_code = EXIT_OK
        self.ticks_started = 0
        self.ticks_skipped = 0
        self._current: Optional[asyncio.Task] = None
        self._finished = asyncio.Event()

    @property
    def tick_in_flight(self) -> bool:
        return self._current is not None and not self._current.done()

    async def run(self) -> int:
        """
        Run until stopped (or, in diagnostic mode, until pass/fail).

        Returns:
            Process exit code
        """
        if self.diagnostic:
            logger.debug("Starting test run...")

        tasks: List[asyncio.Task] = [asyncio.create_task(self._ticker())]
        if self.diagnostic:
            tasks.append(asyncio.create_task(self._watchdog()))
            tasks.append(asyncio.create_task(self._ping()))

        try:
            await self._finished.wait()
        finally:
            if self._current is not None:
                tasks.append(self._current)
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

        return self.exit_code

    def stop(self, exit_code: int = EXIT_OK) -> None:
        """Finish the run with the given exit code (first call wins)."""
        if not self._finished.is_set():
            self.exit_code = exit_code
            self._finished.set()

    def fire(self) -> bool:
        """
        Start a tick unless one is still running.

        Returns:
            True if a tick was started
        """
        if self.tick_in_flight:
            self.ticks_skipped += 1
            logger.warning("Previous reconciliation still running, skipping this tick")
            return False

        self.ticks_started += 1
        self._current = asyncio.create_task(self._run_tick())
        return True

    # Internal methods

    async def _ticker(self) -> None:
        while True:
            self.fire()
            await asyncio.sleep(self.interval)

    async def _run_tick(self) -> None:
        try:
            result = await self.reconciler.tick(prune=not self.diagnostic)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Reconciliation tick failed")
            return

        if result.pinned is not None and self.diagnostic:
            logger.debug("Test completed. Stopping...")
            self.stop(EXIT_OK)

    async def _watchdog(self) -> None:
        await asyncio.sleep(self.time_budget)
        target = self.reconciler.pending_pin or self.reconciler.last_known
        logger.error(
            f"Could not pin {target} within test period. "
            "Check your Internet connection and try again. Cancelling test..."
        )
        self.stop(EXIT_FAILURE)

    async def _ping(self) -> None:
        while True:
            await asyncio.sleep(self.ping_interval)
            if self.reconciler.pending_pin is not None:
                logger.debug(f"Waiting for pin of: {self.reconciler.pending_pin}")
