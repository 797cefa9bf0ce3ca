#!/usr/bin/env python3
"""
Mock Market Maker - Scheduler
Fires one cycle for every pair per tick, all pairs concurrently, and waits for
the whole tick to drain before scheduling the next one.
"""

import asyncio
import logging
import signal
import time
from typing import List, Optional, Sequence

from .cycle_engine import PairCycleEngine
from .protocol import FatalStop

logger = logging.getLogger("scheduler")

EXIT_OK = 0


class CycleScheduler:
    def __init__(self, engines: Sequence[PairCycleEngine], interval_seconds: float):
        self.engines = list(engines)
        self.interval_seconds = interval_seconds
        self.cycle_count = 0
        self.stop_event = asyncio.Event()
        self._tick_task: Optional[asyncio.Task] = None

    async def run_tick(self) -> None:
        """One cycle for every pair; returns once every pair has settled.

        A FatalStop from any pair cancels the pairs still in flight and is
        re-raised. Any other task failure is logged and ignored.
        """
        self.cycle_count += 1
        cycle = self.cycle_count
        logger.info("[Cycle #%d] %d pair(s)", cycle, len(self.engines))

        tasks: List[asyncio.Task] = [
            asyncio.create_task(engine.run_cycle(cycle), name=f"cycle-{cycle}-{engine.pair.symbol}")
            for engine in self.engines
        ]
        try:
            pending = set(tasks)
            while pending:
                done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_EXCEPTION)
                for task in done:
                    exc = task.exception()
                    if isinstance(exc, FatalStop):
                        raise exc
        finally:
            await self._drain(tasks)

        for task, engine in zip(tasks, self.engines):
            exc = task.exception()
            if exc is not None:
                logger.error("[%s] Cycle #%d task failed: %r", engine.pair.symbol, cycle, exc)

        logger.info("✓ All pairs finished. Next in %.0fs", self.interval_seconds)

    @staticmethod
    async def _drain(tasks: Sequence[asyncio.Task]) -> None:
        for task in tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    async def run(self) -> int:
        """Tick immediately, then every interval until stopped; returns the exit code."""
        self.install_signal_handlers()
        try:
            while not self.stop_event.is_set():
                tick_start = time.monotonic()
                self._tick_task = asyncio.create_task(self.run_tick())
                try:
                    await self._tick_task
                except asyncio.CancelledError:
                    if not self.stop_event.is_set():
                        raise
                    break
                finally:
                    self._tick_task = None

                elapsed = time.monotonic() - tick_start
                delay = max(0.0, self.interval_seconds - elapsed)
                try:
                    await asyncio.wait_for(self.stop_event.wait(), timeout=delay)
                except asyncio.TimeoutError:
                    pass
        except FatalStop as stop:
            logger.critical("🛑 Stopping: %s (exit %d)", stop, stop.exit_code)
            return stop.exit_code
        finally:
            self.remove_signal_handlers()

        logger.info("🛑 Stopped.")
        return EXIT_OK

    def stop(self) -> None:
        if not self.stop_event.is_set():
            logger.info("🛑 Stop requested")
            self.stop_event.set()
        if self._tick_task and not self._tick_task.done():
            self._tick_task.cancel()

    def install_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.stop)
            except NotImplementedError:
                signal.signal(sig, lambda *_: self.stop())

    def remove_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.remove_signal_handler(sig)
            except NotImplementedError:
                pass
