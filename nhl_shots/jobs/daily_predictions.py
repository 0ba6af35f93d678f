"""
Daily job: register today's games and store predictions from every model
"""
import logging
from datetime import date, datetime
from typing import Optional, Union

from database.predictions import PredictionStore
from nhl_shots.data.nhl_client import request_count
from nhl_shots.exceptions import JobFailure, PersistenceError
from nhl_shots.models import GameData
from nhl_shots.services.predictions import PredictionService
from nhl_shots.utils.dates import league_today, parse_date
from nhl_shots.utils.iterables import find_first

logger = logging.getLogger(__name__)


class DailyPredictionJob:
    """Fetch the day's games, run all models and persist one batch per game and model"""

    def __init__(self, service: PredictionService, store: PredictionStore):
        self.service = service
        self.store = store

    async def run(self, game_date: Optional[Union[str, date]] = None):
        """
        Execute the daily prediction pass

        Games already marked processed are skipped, so a retried run only
        redoes the games that failed.

        Raises:
            JobFailure: when any game could not be fetched or stored
        """
        start_time = datetime.now()
        day = parse_date(game_date) if game_date else league_today()
        logger.info(f"Starting daily predictions for {day}")

        data = await self.service.fetch_game_data(day)
        if not data.games:
            logger.info(f"No games scheduled for {day}")
            return

        for game in data.games:
            if await self.store.insert_game(game):
                logger.info(f"Registered game {game.game_id} ({game.title})")

        unprocessed = {g.game_id for g in await self.store.get_unprocessed_games(since=day)}
        games = [game for game in data.games if game.game_id in unprocessed]
        if not games:
            logger.info(f"All {len(data.games)} games on {day} already have predictions")
            return

        pending = GameData(date=day, games=games, team_stats=data.team_stats, rest_days=data.rest_days)
        model_predictions = await self.service.run_all_models(day, game_data=pending)

        failed = []
        stored = 0
        for game in games:
            batches = {
                model_id: find_first(entries, lambda entry: entry.game.game_id == game.game_id)
                for model_id, entries in model_predictions.items()
            }
            if not batches or any(batch is None for batch in batches.values()):
                failed.append(game.game_id)
                continue
            try:
                for model_id, batch in batches.items():
                    stored += await self.store.store_game_predictions(batch.game, batch.players, model_id)
            except PersistenceError as e:
                logger.error(f"Game {game.game_id}: {e}")
                failed.append(game.game_id)
                continue
            await self.store.mark_game_processed(game.game_id)

        duration = (datetime.now() - start_time).total_seconds()
        logger.info(
            f"Daily predictions for {day}: stored {stored} rows for {len(games) - len(failed)}/{len(games)} games "
            f"in {duration:.2f} seconds ({request_count()} upstream requests so far)"
        )
        if failed:
            raise JobFailure(f"Predictions missing for {len(failed)} game(s) on {day}: {failed}")
