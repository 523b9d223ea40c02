"""Bounded-concurrency task queue with a minimum spacing between task starts.

Two independent limits apply: at most ``concurrency`` tasks run at once, and
consecutive task starts are at least ``interval`` seconds apart. Tasks start
in submission order. A failing task is logged and counted; it never stops
the queue.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional

from hera.utils.logging import get_logger

LOGGER = get_logger(__name__)

TaskFactory = Callable[[], Awaitable[object]]


@dataclass
class QueueStats:
    submitted: int = 0
    completed: int = 0
    failed: int = 0
    running: int = 0
    peak_running: int = 0


class RateLimitedQueue:
    """Run submitted coroutine factories under concurrency and pacing limits."""

    def __init__(
        self,
        concurrency: int = 1,
        interval: float = 0.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        name: str = "queue",
    ):
        """Initialize the queue.

        Args:
            concurrency: Maximum number of tasks running at once
            interval: Minimum seconds between two consecutive task starts
            clock: Monotonic time source
            sleep: Awaitable sleep used while waiting for the interval
            name: Label used in log lines
        """
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        if interval < 0:
            raise ValueError("interval must not be negative")

        self.concurrency = concurrency
        self.interval = interval
        self.name = name
        self.stats = QueueStats()
        self._clock = clock
        self._sleep = sleep
        self._pending: Optional[asyncio.Queue] = None
        self._start_lock: Optional[asyncio.Lock] = None
        self._workers: List[asyncio.Task] = []
        self._last_start: Optional[float] = None

    def add(self, task: TaskFactory, name: Optional[str] = None) -> None:
        """Submit a zero-argument coroutine factory; it runs when a slot and the interval allow."""
        self._ensure_workers()
        self.stats.submitted += 1
        self._pending.put_nowait((task, name or f"task-{self.stats.submitted}"))

    async def on_idle(self) -> None:
        """Wait until every submitted task has finished, successfully or not."""
        if self._pending is None:
            return
        await self._pending.join()

    async def close(self) -> None:
        """Stop the workers. Tasks still queued are dropped."""
        for worker in self._workers:
            worker.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []
        self._pending = None
        self._start_lock = None

    async def __aenter__(self) -> "RateLimitedQueue":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def _ensure_workers(self) -> None:
        if self._pending is None:
            self._pending = asyncio.Queue()
            self._start_lock = asyncio.Lock()
        if not self._workers:
            self._workers = [
                asyncio.create_task(self._worker(), name=f"{self.name}-worker-{i}")
                for i in range(self.concurrency)
            ]

    async def _wait_for_start_slot(self) -> None:
        # Held while pacing so that starts are serialized in FIFO order
        async with self._start_lock:
            if self._last_start is not None:
                while True:
                    remaining = self._last_start + self.interval - self._clock()
                    if remaining <= 0:
                        break
                    await self._sleep(remaining)
            self._last_start = self._clock()

    async def _worker(self) -> None:
        while True:
            task, task_name = await self._pending.get()
            try:
                await self._wait_for_start_slot()
                self.stats.running += 1
                self.stats.peak_running = max(self.stats.peak_running, self.stats.running)
                try:
                    await task()
                    self.stats.completed += 1
                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    self.stats.failed += 1
                    LOGGER.error(
                        f"[{self.name}] task {task_name} failed: {e}",
                        exc_info=True,
                    )
                finally:
                    self.stats.running -= 1
            finally:
                self._pending.task_done()
