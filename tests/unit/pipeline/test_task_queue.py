import asyncio
import time

import pytest

from hera.pipeline.task_queue import RateLimitedQueue


class FakeClock:
    """Monotonic clock that only moves when the queue sleeps."""

    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.now += seconds
        await asyncio.sleep(0)


class TestRateLimitedQueue:
    @pytest.mark.asyncio
    async def test_starts_are_spaced_by_interval_in_submission_order(self):
        clock = FakeClock()
        queue = RateLimitedQueue(concurrency=2, interval=5.0, clock=clock, sleep=clock.sleep)
        starts = []

        def task(name):
            async def run():
                starts.append((name, clock()))
                await asyncio.sleep(0)
            return run

        for name in ["a", "b", "c", "d"]:
            queue.add(task(name), name=name)
        await queue.on_idle()
        await queue.close()

        assert starts == [("a", 0.0), ("b", 5.0), ("c", 10.0), ("d", 15.0)]

    @pytest.mark.asyncio
    async def test_never_exceeds_concurrency(self):
        queue = RateLimitedQueue(concurrency=2, interval=0.0)
        running = 0
        peak = 0

        async def task():
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0.01)
            running -= 1

        for _ in range(6):
            queue.add(task)
        await queue.on_idle()
        await queue.close()

        assert peak == 2
        assert queue.stats.peak_running == 2
        assert queue.stats.completed == 6

    @pytest.mark.asyncio
    async def test_real_clock_spacing(self):
        interval = 0.03
        queue = RateLimitedQueue(concurrency=3, interval=interval)
        starts = []

        async def task():
            starts.append(time.monotonic())
            await asyncio.sleep(0.05)

        for _ in range(4):
            queue.add(task)
        await queue.on_idle()
        await queue.close()

        gaps = [later - earlier for earlier, later in zip(starts, starts[1:])]
        assert len(starts) == 4
        assert all(gap >= interval - 0.001 for gap in gaps)

    @pytest.mark.asyncio
    async def test_failing_task_does_not_stop_queue(self):
        queue = RateLimitedQueue(concurrency=1, interval=0.0)
        finished = []

        async def boom():
            raise RuntimeError("boom")

        async def ok():
            finished.append("ok")

        queue.add(ok)
        queue.add(boom, name="boom")
        queue.add(ok)
        await queue.on_idle()
        await queue.close()

        assert finished == ["ok", "ok"]
        assert queue.stats.submitted == 3
        assert queue.stats.completed == 2
        assert queue.stats.failed == 1

    @pytest.mark.asyncio
    async def test_on_idle_without_tasks_returns(self):
        queue = RateLimitedQueue(concurrency=1, interval=1.0)

        await asyncio.wait_for(queue.on_idle(), timeout=1.0)

    def test_rejects_invalid_limits(self):
        with pytest.raises(ValueError):
            RateLimitedQueue(concurrency=0)
        with pytest.raises(ValueError):
            RateLimitedQueue(concurrency=1, interval=-1.0)
