"""
Validation job: reconcile pending predictions with box score results
"""
import logging
from datetime import date, timedelta
from typing import Optional, Union

from database.predictions import PredictionStore
from nhl_shots.config import get_settings
from nhl_shots.data.nhl_client import NHLStatsClient
from nhl_shots.exceptions import JobFailure, NHLShotsError
from nhl_shots.utils.dates import league_today, parse_date
from nhl_shots.utils.iterables import group_by

logger = logging.getLogger(__name__)


class ValidationJob:
    """Write actual shots for predictions of completed games"""

    def __init__(self, client: NHLStatsClient, store: PredictionStore, lookback_days: Optional[int] = None):
        """
        Initialize validation job

        Args:
            client: NHL API client
            store: Prediction store
            lookback_days: Oldest game date still checked, in days before today.
                Games that never go final (postponed) drop out after this window.
        """
        self.client = client
        self.store = store
        self.lookback_days = lookback_days if lookback_days is not None else get_settings().validation_lookback_days

    async def run(self, as_of: Optional[Union[str, date]] = None):
        """
        Validate pending predictions dated before today

        Only final box scores are used. Once a game is final it leaves the
        pending set; players missing from its box score did not play and keep
        no outcome. Box score failures do not stop the remaining games; they
        fail the run afterwards so it is retried.
        """
        today = parse_date(as_of) if as_of else league_today()
        since = today - timedelta(days=self.lookback_days)
        pending = await self.store.get_pending_predictions(today, since=since)
        if not pending:
            logger.info("No pending predictions to validate")
            return

        by_game = group_by(pending, lambda record: record.game_id)
        logger.info(f"Validating {len(pending)} predictions across {len(by_game)} games since {since}")

        failed = []
        validated = 0
        for game_id, records in by_game.items():
            try:
                shots = await self.client.fetch_box_score(game_id)
            except NHLShotsError as e:
                logger.warning(f"Box score for game {game_id} unavailable: {e}")
                failed.append(game_id)
                continue

            if not shots:
                logger.info(f"Game {game_id} is not final yet")
                continue

            for record in records:
                actual = shots.get(record.player_id)
                if actual is None:
                    logger.debug(f"Player {record.player_id} did not play in game {game_id}")
                    continue
                await self.store.store_actual_shots(record, actual)
                validated += 1
            await self.store.mark_game_final(records[0])

        logger.info(f"Validated {validated} predictions")
        if failed:
            raise JobFailure(f"Box scores unavailable for {len(failed)} game(s): {failed}")
