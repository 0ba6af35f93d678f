"""
Operations exposed to an HTTP layer: predictions, stored records and model comparison
"""
import logging
from datetime import date
from typing import Optional, Union

from sqlalchemy.exc import SQLAlchemyError

from database.accuracy import get_model_comparison_stats, get_player_past_accuracy, get_prediction_accuracy
from database.predictions import PredictionStore
from nhl_shots.exceptions import NHLShotsError, PersistenceError
from nhl_shots.schemas import (
    ModelComparisonEntry,
    OperationResult,
    PredictionAccuracyOut,
    PredictionRecordOut,
    as_payload,
)
from nhl_shots.services.predictions import PredictionService
from nhl_shots.utils.dates import league_today, parse_date

logger = logging.getLogger(__name__)


def _resolve_date(game_date: Optional[Union[str, date]]) -> date:
    return parse_date(game_date) if game_date else league_today()


class PredictionOperations:
    """Request-level wrappers that turn service outcomes into OperationResults"""

    def __init__(self, service: PredictionService, store: PredictionStore):
        self.service = service
        self.store = store

    async def get_predictions_for_date(self, game_date: Optional[Union[str, date]] = None) -> OperationResult:
        """Live predictions with the active model, each player enriched with past accuracy"""
        try:
            day = _resolve_date(game_date)
        except ValueError:
            return OperationResult.fail(f"Invalid date: {game_date}", code=400)

        try:
            games = await self.service.get_predictions_for_date(day)
        except NHLShotsError as e:
            logger.error(f"Failed to build predictions for {day}: {e}")
            return OperationResult.fail(f"Failed to fetch game data: {e}", code=502)

        if not games:
            return OperationResult.ok(data=[], message=f"No games scheduled for {day}")

        accuracy_cache = {}
        for entry in games:
            for player in entry.players:
                if player.player_id not in accuracy_cache:
                    try:
                        accuracy_cache[player.player_id] = await get_player_past_accuracy(self.store, player.player_id)
                    except SQLAlchemyError as e:
                        logger.warning(f"Past accuracy unavailable for player {player.player_id}: {e}")
                        accuracy_cache[player.player_id] = None
                player.past_prediction_accuracy = accuracy_cache[player.player_id]

        return OperationResult.ok(data=[entry.to_dict() for entry in games])

    async def get_prediction_records_for_date(self,
                                              game_date: Optional[Union[str, date]] = None,
                                              model_version_id: Optional[int] = None) -> OperationResult:
        try:
            day = _resolve_date(game_date)
        except ValueError:
            return OperationResult.fail(f"Invalid date: {game_date}", code=400)

        try:
            records = await self.store.get_prediction_records_for_date(day, model_version_id)
        except SQLAlchemyError as e:
            logger.error(f"Failed to load prediction records for {day}: {e}")
            return OperationResult.fail("Failed to load prediction records")

        return OperationResult.ok(data=[PredictionRecordOut.from_record(r).model_dump() for r in records])

    async def run_and_store_all_model_predictions(self,
                                                  game_date: Optional[Union[str, date]] = None) -> OperationResult:
        try:
            day = _resolve_date(game_date)
        except ValueError:
            return OperationResult.fail(f"Invalid date: {game_date}", code=400)

        try:
            predictions = await self.service.run_all_models(day)
            stored = await self.store.store_model_predictions(day, predictions)
        except PersistenceError as e:
            logger.error(f"Storing model predictions for {day} failed: {e}")
            return OperationResult.fail(str(e))
        except NHLShotsError as e:
            logger.error(f"Running models for {day} failed: {e}")
            return OperationResult.fail(f"Failed to fetch game data: {e}", code=502)

        return OperationResult.ok(
            data={"date": day.isoformat(), "models": sorted(predictions), "stored": stored},
            message=f"Stored {stored} predictions from {len(predictions)} models",
        )

    async def get_model_comparison(self) -> OperationResult:
        try:
            stats = await get_model_comparison_stats(self.store)
        except SQLAlchemyError as e:
            logger.error(f"Failed to compute model comparison: {e}")
            return OperationResult.fail("Failed to compute model comparison")

        entries = {}
        for model in self.service.registry.get_all_models():
            model_stats = stats.get(model.id)
            entries[model.id] = ModelComparisonEntry(
                model_version_id=model.id,
                name=model.name,
                strategy=model.calculation_strategy.value,
                active=model.id == self.service.registry.get_active_version_id(),
                total_predictions=model_stats.total_predictions if model_stats else 0,
                successful_predictions=model_stats.successful_predictions if model_stats else 0,
                accuracy=model_stats.accuracy if model_stats else 0.0,
                avg_absolute_error=model_stats.avg_absolute_error if model_stats else 0.0,
            )
        return OperationResult.ok(data=as_payload(entries))

    async def get_prediction_accuracy(self,
                                      days: int = 7,
                                      model_version_id: Optional[int] = None) -> OperationResult:
        """Validated predictions from the last `days` days, newest first"""
        if days < 0:
            return OperationResult.fail(f"Invalid number of days: {days}", code=400)

        try:
            rows = await get_prediction_accuracy(self.store, days, model_version_id)
        except SQLAlchemyError as e:
            logger.error(f"Failed to load prediction accuracy: {e}")
            return OperationResult.fail("Failed to load prediction accuracy")

        return OperationResult.ok(data=[PredictionAccuracyOut.from_row(row).model_dump() for row in rows])
