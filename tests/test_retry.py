from __future__ import annotations

import asyncio

import pytest


class FlakyJob:
    def __init__(self, failures: int):
        self.failures = failures
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise RuntimeError(f"failure {self.calls}")


@pytest.mark.asyncio
async def test_succeeds_after_transient_failures():
    from nhl_shots.jobs.retry import run_with_backoff

    job = FlakyJob(failures=2)

    assert await run_with_backoff("flaky", job, max_attempts=5, base_delay=0) is True
    assert job.calls == 3


@pytest.mark.asyncio
async def test_gives_up_after_max_attempts_without_raising():
    from nhl_shots.jobs.retry import run_with_backoff

    job = FlakyJob(failures=10)

    assert await run_with_backoff("broken", job, max_attempts=3, base_delay=0) is False
    assert job.calls == 3


@pytest.mark.asyncio
async def test_first_attempt_success_runs_once():
    from nhl_shots.jobs.retry import run_with_backoff

    job = FlakyJob(failures=0)

    assert await run_with_backoff("steady", job, base_delay=3600) is True
    assert job.calls == 1


@pytest.mark.asyncio
async def test_stop_event_interrupts_backoff():
    from nhl_shots.jobs.retry import run_with_backoff

    job = FlakyJob(failures=10)
    stop = asyncio.Event()
    task = asyncio.create_task(run_with_backoff("slow", job, max_attempts=5, base_delay=3600, stop_event=stop))

    while job.calls == 0:
        await asyncio.sleep(0)
    await asyncio.sleep(0.01)
    stop.set()

    assert await asyncio.wait_for(task, timeout=2) is False
    assert job.calls == 1


@pytest.mark.asyncio
async def test_cancellation_during_attempt_is_not_retried():
    from nhl_shots.jobs.retry import run_with_backoff

    started = asyncio.Event()
    calls = 0

    async def hanging_job():
        nonlocal calls
        calls += 1
        started.set()
        await asyncio.sleep(3600)

    task = asyncio.create_task(run_with_backoff("hanging", hanging_job, max_attempts=5, base_delay=0))
    await started.wait()
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await asyncio.wait_for(task, timeout=2)
    assert calls == 1
