"""
Backtesting aggregates and per-prediction reports over validated predictions
"""
import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Dict, List, Optional, Union

from sqlalchemy import case, func, select

from database.models import GamePrediction
from database.predictions import PredictionStore
from nhl_shots.utils.dates import league_today, parse_date

logger = logging.getLogger(__name__)


@dataclass
class ModelAccuracyStats:
    """Validated prediction totals for one model version"""
    model_version_id: int
    total_predictions: int
    successful_predictions: int
    accuracy: float
    avg_absolute_error: float


def _hit_rate():
    return func.coalesce(func.avg(case((GamePrediction.successful.is_(True), 1.0), else_=0.0)), 0.0)


async def _accuracy(store: PredictionStore, *conditions) -> float:
    query = select(_hit_rate()).where(GamePrediction.validated_at.is_not(None), *conditions)
    async with store.session() as session:
        result = await session.execute(query)
        return float(result.scalar_one())


async def get_total_accuracy(store: PredictionStore) -> float:
    """Share of validated predictions that hit, 0.0 when nothing is validated"""
    return await _accuracy(store)


async def get_player_past_accuracy(store: PredictionStore,
                                   player_id: int,
                                   model_version_id: Optional[int] = None) -> float:
    conditions = [GamePrediction.player_id == player_id]
    if model_version_id is not None:
        conditions.append(GamePrediction.model_version_id == model_version_id)
    return await _accuracy(store, *conditions)


async def get_model_accuracy(store: PredictionStore, model_version_id: int) -> float:
    return await _accuracy(store, GamePrediction.model_version_id == model_version_id)


async def get_model_comparison_stats(store: PredictionStore) -> Dict[int, ModelAccuracyStats]:
    """Per-model accuracy and mean absolute error over validated predictions"""
    query = (
        select(
            GamePrediction.model_version_id,
            func.count(GamePrediction.id),
            func.coalesce(func.sum(case((GamePrediction.successful.is_(True), 1), else_=0)), 0),
            _hit_rate(),
            func.coalesce(func.avg(func.abs(GamePrediction.actual_shots - GamePrediction.predicted_shots)), 0.0),
        )
        .where(GamePrediction.validated_at.is_not(None))
        .group_by(GamePrediction.model_version_id)
        .order_by(GamePrediction.model_version_id)
    )
    async with store.session() as session:
        result = await session.execute(query)
        rows = result.all()

    stats = {
        model_id: ModelAccuracyStats(
            model_version_id=model_id,
            total_predictions=int(total),
            successful_predictions=int(successful),
            accuracy=float(accuracy),
            avg_absolute_error=float(error),
        )
        for model_id, total, successful, accuracy, error in rows
    }
    logger.debug(f"Model comparison covers {len(stats)} model versions")
    return stats


@dataclass
class PredictionAccuracy:
    """One validated prediction next to its outcome"""
    game_id: int
    game_date: date
    player_id: int
    player_name: str
    model_version_id: int
    predicted_shots: float
    actual_shots: int
    difference: float
    confidence: float


async def get_prediction_accuracy(store: PredictionStore,
                                  days: int,
                                  model_version_id: Optional[int] = None,
                                  as_of: Optional[Union[str, date]] = None) -> List[PredictionAccuracy]:
    """
    Validated predictions from the last `days` days, newest game first

    Within a date, the closest predictions come first.
    """
    end = parse_date(as_of) if as_of else league_today()
    difference = func.abs(GamePrediction.predicted_shots - GamePrediction.actual_shots)
    query = (
        select(
            GamePrediction.game_id,
            GamePrediction.game_date,
            GamePrediction.player_id,
            GamePrediction.player_name,
            GamePrediction.model_version_id,
            GamePrediction.predicted_shots,
            GamePrediction.actual_shots,
            difference,
            GamePrediction.confidence,
        )
        .where(GamePrediction.validated_at.is_not(None))
        .where(GamePrediction.game_date >= end - timedelta(days=days))
        .where(GamePrediction.game_date <= end)
    )
    if model_version_id is not None:
        query = query.where(GamePrediction.model_version_id == model_version_id)
    query = query.order_by(GamePrediction.game_date.desc(), difference, GamePrediction.player_id)

    async with store.session() as session:
        result = await session.execute(query)
        rows = result.all()

    return [
        PredictionAccuracy(
            game_id=game_id,
            game_date=game_date,
            player_id=player_id,
            player_name=player_name,
            model_version_id=model_id,
            predicted_shots=predicted,
            actual_shots=actual,
            difference=float(diff),
            confidence=confidence,
        )
        for game_id, game_date, player_id, player_name, model_id, predicted, actual, diff, confidence in rows
    ]
