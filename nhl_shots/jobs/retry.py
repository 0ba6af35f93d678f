"""
Bounded exponential backoff for scheduled jobs
"""
import asyncio
import logging
from typing import Awaitable, Callable, Optional

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    retry_if_not_exception_type,
    stop_after_attempt,
    stop_when_event_set,
    wait_exponential,
)

logger = logging.getLogger(__name__)


class RetryStopped(Exception):
    """Shutdown was requested between attempts"""


async def run_with_backoff(job_name: str,
                           job: Callable[[], Awaitable[None]],
                           max_attempts: int = 5,
                           base_delay: float = 60.0,
                           stop_event: Optional[asyncio.Event] = None) -> bool:
    """
    Run a job, retrying failures with delays of base_delay * 2^attempt

    Never raises for job failures: the final failure is logged as terminal.
    Setting stop_event wakes a pending backoff sleep and abandons remaining attempts.
    Cancellation of the calling task propagates without further attempts.

    Args:
        job_name: Name used in logs
        job: Coroutine function to run
        max_attempts: Total attempts including the first
        base_delay: Delay before the first retry, in seconds
        stop_event: Shutdown signal

    Returns:
        True if an attempt succeeded
    """
    stop_event = stop_event or asyncio.Event()

    async def interruptible_sleep(seconds: float):
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass

    def log_failed_attempt(retry_state: RetryCallState):
        logger.error(
            f"{job_name} attempt {retry_state.attempt_number}/{max_attempts} failed: "
            f"{retry_state.outcome.exception()}; retrying in {retry_state.next_action.sleep:.0f}s"
        )

    retrying = AsyncRetrying(
        stop=stop_after_attempt(max_attempts) | stop_when_event_set(stop_event),
        wait=wait_exponential(multiplier=base_delay, exp_base=2),
        retry=retry_if_not_exception_type((RetryStopped, asyncio.CancelledError)),
        sleep=interruptible_sleep,
        before_sleep=log_failed_attempt,
    )

    try:
        async for attempt in retrying:
            with attempt:
                if attempt.retry_state.attempt_number > 1 and stop_event.is_set():
                    raise RetryStopped()
                await job()
    except RetryStopped:
        logger.warning(f"{job_name} abandoned: shutdown requested during backoff")
        return False
    except RetryError as e:
        attempts = e.last_attempt.attempt_number
        if stop_event.is_set() and attempts < max_attempts:
            logger.warning(f"{job_name} abandoned after {attempts} attempts: shutdown requested")
        else:
            logger.error(f"{job_name} failed permanently after {attempts} attempts: {e.last_attempt.exception()}")
        return False

    return True
