"""Tests for the bounded scan queue."""

import asyncio

import pytest

from fraudlens.services.task_queue import TaskQueue


class Job:
    """Task that records when it starts and waits to be released."""

    def __init__(self, name, started, fail=False):
        self.name = name
        self.started = started
        self.fail = fail
        self.release = asyncio.Event()

    async def __call__(self):
        self.started.append(self.name)
        await self.release.wait()
        if self.fail:
            raise RuntimeError(f"{self.name} crashed")
        return self.name


async def settle():
    for _ in range(5):
        await asyncio.sleep(0)


@pytest.mark.asyncio
async def test_limit_then_fifo():
    """limit tasks start immediately; the overflow starts in submission order."""
    limit = 2
    queue = TaskQueue(limit)
    started = []
    jobs = [Job(f"job{i}", started) for i in range(limit + 3)]

    tasks = [asyncio.create_task(queue.submit(job)) for job in jobs]
    await settle()

    assert started == ["job0", "job1"]
    assert queue.active_count == limit
    assert queue.pending_count == 3

    jobs[1].release.set()
    await settle()
    assert started == ["job0", "job1", "job2"]

    jobs[0].release.set()
    await settle()
    assert started == ["job0", "job1", "job2", "job3"]

    for job in jobs[2:]:
        job.release.set()
    results = await asyncio.gather(*tasks)

    assert started == [f"job{i}" for i in range(limit + 3)]
    assert results == [f"job{i}" for i in range(limit + 3)]
    assert queue.active_count == 0
    assert queue.pending_count == 0


@pytest.mark.asyncio
async def test_failing_task_frees_slot():
    queue = TaskQueue(1)
    started = []
    crashing = Job("crash", started, fail=True)
    waiting = Job("next", started)

    first = asyncio.create_task(queue.submit(crashing))
    second = asyncio.create_task(queue.submit(waiting))
    await settle()
    assert started == ["crash"]

    crashing.release.set()
    with pytest.raises(RuntimeError, match="crash crashed"):
        await first

    await settle()
    assert started == ["crash", "next"]
    waiting.release.set()
    assert await second == "next"
    assert queue.active_count == 0


@pytest.mark.asyncio
async def test_on_idle_waits_for_drain():
    queue = TaskQueue(1)
    started = []
    jobs = [Job("a", started), Job("b", started)]
    tasks = [asyncio.create_task(queue.submit(job)) for job in jobs]
    await settle()

    idle = asyncio.create_task(queue.on_idle())
    await settle()
    assert not idle.done()

    for job in jobs:
        job.release.set()
    await asyncio.gather(*tasks)
    await asyncio.wait_for(idle, timeout=1)


@pytest.mark.asyncio
async def test_cancelled_waiter_does_not_block_queue():
    queue = TaskQueue(1)
    started = []
    running = Job("running", started)
    cancelled = Job("cancelled", started)
    last = Job("last", started)

    t1 = asyncio.create_task(queue.submit(running))
    t2 = asyncio.create_task(queue.submit(cancelled))
    t3 = asyncio.create_task(queue.submit(last))
    await settle()

    t2.cancel()
    await settle()
    running.release.set()
    last.release.set()
    await asyncio.gather(t1, t3)

    assert started == ["running", "last"]
    assert queue.pending_count == 0


def test_invalid_limit():
    with pytest.raises(ValueError):
        TaskQueue(0)
