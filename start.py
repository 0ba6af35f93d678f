#!/usr/bin/env python
"""
Process starter for the NHL shot prediction service
Handles environment configuration and scheduler initialization
"""

import argparse
import asyncio
import logging
import signal
import sys

from nhl_shots.config import get_settings

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

from database.predictions import PredictionStore  # noqa: E402
from nhl_shots.data.nhl_client import NHLStatsClient, request_count  # noqa: E402
from nhl_shots.jobs import DailyPredictionJob, PredictionScheduler, ValidationJob  # noqa: E402
from nhl_shots.ml.model_registry import ModelRegistry  # noqa: E402
from nhl_shots.services.predictions import PredictionService  # noqa: E402


async def run(run_now: bool = False):
    """Build the service graph and run the scheduler until interrupted"""
    store = PredictionStore.from_url(settings.database_url)
    await store.init()

    registry = ModelRegistry(active_version_id=settings.active_model_version)
    async with NHLStatsClient() as client:
        service = PredictionService(client, registry)
        scheduler = PredictionScheduler(
            DailyPredictionJob(service, store),
            ValidationJob(client, store),
            settings=settings,
        )

        stop_requested = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, stop_requested.set)
            except NotImplementedError:
                pass

        scheduler.start()
        if run_now:
            await scheduler.run_daily_now()
            await scheduler.run_validation_now()

        try:
            await stop_requested.wait()
        finally:
            logger.info("Shutting down prediction scheduler...")
            await scheduler.stop()
            await store.close()
            logger.info(f"Issued {request_count()} upstream requests")


def main():
    """Start the prediction scheduler"""
    parser = argparse.ArgumentParser(description="NHL shot prediction scheduler")
    parser.add_argument("--run-now", action="store_true", help="Run predictions and validation once at startup")
    args = parser.parse_args()

    logger.info("Starting NHL shot prediction service")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Active model version: {settings.active_model_version}")
    logger.info(f"Daily predictions at {settings.daily_prediction_hour:02d}:00 {settings.league_timezone}")

    try:
        asyncio.run(run(run_now=args.run_now))
    except KeyboardInterrupt:
        logger.info("Interrupted")
    except Exception as e:
        logger.error(f"Failed to start scheduler: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
