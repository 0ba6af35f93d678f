"""
Background scheduler for daily predictions and periodic validation
"""
import asyncio
import logging
from typing import Awaitable, Callable, Optional, Set

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from nhl_shots.config import Settings, get_settings
from nhl_shots.jobs.daily_predictions import DailyPredictionJob
from nhl_shots.jobs.retry import run_with_backoff
from nhl_shots.jobs.validation import ValidationJob

logger = logging.getLogger(__name__)


class PredictionScheduler:
    """Cron-driven prediction and validation jobs with bounded retries"""

    def __init__(self,
                 daily_job: DailyPredictionJob,
                 validation_job: ValidationJob,
                 settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.daily_job = daily_job
        self.validation_job = validation_job
        self.scheduler = AsyncIOScheduler(timezone=self.settings.league_timezone)
        self._stopping = asyncio.Event()
        self._in_flight: Set[asyncio.Task] = set()
        self.setup_jobs()

    def setup_jobs(self):
        """Configure scheduled jobs"""
        # Daily at 5 AM league time: fetch games and store predictions
        self.scheduler.add_job(
            self.run_daily_now,
            'cron',
            hour=self.settings.daily_prediction_hour,
            minute=0,
            id='daily_predictions',
            name='Daily Shot Predictions',
            max_instances=1,
            coalesce=True,
        )

        # Every 6 hours: validate pending predictions against box scores
        self.scheduler.add_job(
            self.run_validation_now,
            'cron',
            hour=f"*/{self.settings.validation_interval_hours}",
            minute=0,
            id='prediction_validation',
            name='Prediction Validation',
            max_instances=1,
            coalesce=True,
        )

    async def _run(self, job_name: str, job: Callable[[], Awaitable[None]]) -> bool:
        if self._stopping.is_set():
            logger.warning(f"Not starting {job_name}: scheduler is stopping")
            return False

        task = asyncio.current_task()
        self._in_flight.add(task)
        try:
            return await run_with_backoff(
                job_name,
                job,
                max_attempts=self.settings.job_max_attempts,
                base_delay=self.settings.job_backoff_base_seconds,
                stop_event=self._stopping,
            )
        finally:
            self._in_flight.discard(task)

    async def run_daily_now(self) -> bool:
        """Run the daily prediction job immediately (with retries)"""
        return await self._run("daily predictions", self.daily_job.run)

    async def run_validation_now(self) -> bool:
        """Run the validation job immediately (with retries)"""
        return await self._run("prediction validation", self.validation_job.run)

    @property
    def running(self) -> bool:
        return self.scheduler.running

    def start(self):
        """Start the scheduler"""
        self._stopping.clear()
        self.scheduler.start()
        for job in self.scheduler.get_jobs():
            logger.info(f"Scheduled '{job.name}' next at {job.next_run_time}")
        logger.info("Prediction scheduler started")

    async def stop(self, timeout: Optional[float] = None):
        """
        Stop triggering jobs and wait for in-flight runs

        Pending backoff sleeps wake immediately and no further attempts are made.
        """
        timeout = self.settings.scheduler_shutdown_timeout if timeout is None else timeout
        if self.scheduler.running:
            self.scheduler.pause()
        self._stopping.set()

        in_flight = [task for task in self._in_flight if task is not asyncio.current_task()]
        if in_flight:
            logger.info(f"Waiting up to {timeout:.0f}s for {len(in_flight)} running job(s)")
            done, pending = await asyncio.wait(in_flight, timeout=timeout)
            if pending:
                logger.warning(f"{len(pending)} job(s) still running at shutdown")

        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        logger.info("Prediction scheduler stopped")
