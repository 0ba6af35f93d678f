"""
Prediction store: persists per-model predictions and their validated outcomes
"""
import logging
from datetime import date
from typing import Dict, List, Optional, Union

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from database.connection import create_engine_from_url, create_session_factory, get_db_session, init_db
from database.models import GamePrediction, GameStatus, ScheduledGame, utcnow
from nhl_shots.exceptions import PersistenceError
from nhl_shots.models import Game, GameWithPlayers, PlayerPrediction
from nhl_shots.utils.dates import parse_date

logger = logging.getLogger(__name__)

PREDICTION_KEY = ['game_id', 'player_id', 'model_version_id']

# Columns rewritten when a prediction is stored again for the same key
_REFRESHED_COLUMNS = [
    'game_date', 'game_title', 'away_team_abbrev', 'away_team_id', 'home_team_abbrev',
    'home_team_id', 'player_name', 'player_team_abbrev', 'player_team_id',
    'predicted_shots', 'confidence', 'created_at',
]


class PredictionStore:
    """Async persistence for predictions and scheduled games"""

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self.session_factory = create_session_factory(engine)

    @classmethod
    def from_url(cls, db_url: Optional[str] = None) -> "PredictionStore":
        return cls(create_engine_from_url(db_url))

    async def init(self):
        await init_db(self.engine)

    async def close(self):
        await self.engine.dispose()

    def session(self):
        return get_db_session(self.session_factory)

    def _insert(self, table):
        dialect = self.engine.dialect.name
        if dialect == "postgresql":
            return pg_insert(table)
        if dialect == "sqlite":
            return sqlite_insert(table)
        raise PersistenceError(f"Unsupported database dialect for upserts: {dialect}")

    @staticmethod
    def _prediction_row(game: Game, player: PlayerPrediction, model_version_id: int) -> Dict:
        return {
            'game_date': parse_date(game.est_date),
            'game_id': game.game_id,
            'game_title': game.title,
            'away_team_abbrev': game.away_team.abbrev,
            'away_team_id': game.away_team.id,
            'home_team_abbrev': game.home_team.abbrev,
            'home_team_id': game.home_team.id,
            'player_id': player.player_id,
            'player_name': player.name,
            'player_team_abbrev': player.team_abbrev,
            'player_team_id': player.team_id,
            'predicted_shots': player.predicted_shots,
            'confidence': player.confidence,
            'model_version_id': model_version_id,
            'created_at': utcnow(),
        }

    async def store_game_predictions(self,
                                     game: Game,
                                     players: List[PlayerPrediction],
                                     model_version_id: int) -> int:
        """
        Upsert one game's predictions for a model in a single transaction

        A repeated write for the same (game, player, model) replaces the
        prediction and clears any recorded outcome.

        Returns:
            Number of rows written
        """
        if not players:
            return 0

        try:
            async with self.session() as session:
                for player in players:
                    row = self._prediction_row(game, player, model_version_id)
                    stmt = self._insert(GamePrediction).values(**row)
                    refreshed = {column: stmt.excluded[column] for column in _REFRESHED_COLUMNS}
                    refreshed.update(actual_shots=None, successful=None, validated_at=None)
                    stmt = stmt.on_conflict_do_update(index_elements=PREDICTION_KEY, set_=refreshed)
                    await session.execute(stmt)
                await session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Rolled back predictions for game {game.game_id} (model {model_version_id}): {e}")
            raise PersistenceError(
                f"Failed to store predictions for game {game.game_id} (model {model_version_id})"
            ) from e

        logger.info(f"Stored {len(players)} predictions for {game.title} (model {model_version_id})")
        return len(players)

    async def store_model_predictions(self,
                                      game_date: Union[str, date],
                                      model_predictions: Dict[int, List[GameWithPlayers]]) -> int:
        """
        Store every model's predictions, one transaction per game

        Failed games are rolled back individually; the rest are still written and a
        single PersistenceError lists the failures afterwards.
        """
        stored = 0
        failures = []
        for model_version_id, games in model_predictions.items():
            for entry in games:
                try:
                    stored += await self.store_game_predictions(entry.game, entry.players, model_version_id)
                except PersistenceError as e:
                    failures.append(str(e))

        logger.info(f"Stored {stored} predictions for {parse_date(game_date)} across {len(model_predictions)} models")
        if failures:
            raise PersistenceError(f"{len(failures)} game batch(es) failed: " + "; ".join(failures))
        return stored

    async def store_actual_shots(self, record: GamePrediction, actual_shots: int) -> GamePrediction:
        """Record the box-score outcome; a prediction hits when actual >= predicted"""
        successful = actual_shots >= record.predicted_shots
        validated_at = utcnow()
        try:
            async with self.session() as session:
                await session.execute(
                    update(GamePrediction)
                    .where(GamePrediction.id == record.id)
                    .values(actual_shots=actual_shots, successful=successful, validated_at=validated_at)
                )
                await session.commit()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to store actual shots for prediction {record.id}") from e

        record.actual_shots = actual_shots
        record.successful = successful
        record.validated_at = validated_at
        return record

    async def get_prediction_records_for_date(self,
                                              game_date: Union[str, date],
                                              model_version_id: Optional[int] = None) -> List[GamePrediction]:
        query = select(GamePrediction).where(GamePrediction.game_date == parse_date(game_date))
        if model_version_id is not None:
            query = query.where(GamePrediction.model_version_id == model_version_id)
        query = query.order_by(GamePrediction.game_id, GamePrediction.confidence.desc())
        async with self.session() as session:
            result = await session.execute(query)
            return list(result.scalars().all())

    async def get_pending_predictions(self,
                                      before_date: Union[str, date],
                                      since: Optional[Union[str, date]] = None) -> List[GamePrediction]:
        """
        Predictions without an outcome for games before a date

        Games already marked final are left out: players missing from a final
        box score did not play and keep no outcome.
        """
        final_games = select(ScheduledGame.game_id).where(ScheduledGame.status == GameStatus.FINAL.value)
        query = (
            select(GamePrediction)
            .where(GamePrediction.actual_shots.is_(None))
            .where(GamePrediction.game_date < parse_date(before_date))
            .where(GamePrediction.game_id.not_in(final_games))
        )
        if since is not None:
            query = query.where(GamePrediction.game_date >= parse_date(since))
        query = query.order_by(GamePrediction.game_date, GamePrediction.game_id)
        async with self.session() as session:
            result = await session.execute(query)
            return list(result.scalars().all())

    async def get_player_prediction_record(self,
                                           player_id: int,
                                           game_id: Optional[int] = None,
                                           model_version_id: Optional[int] = None) -> Optional[GamePrediction]:
        """Most recent prediction for a player, optionally for one game or model"""
        query = select(GamePrediction).where(GamePrediction.player_id == player_id)
        if game_id is not None:
            query = query.where(GamePrediction.game_id == game_id)
        if model_version_id is not None:
            query = query.where(GamePrediction.model_version_id == model_version_id)
        query = query.order_by(GamePrediction.game_date.desc(), GamePrediction.id.desc()).limit(1)
        async with self.session() as session:
            result = await session.execute(query)
            return result.scalars().first()

    # ============ Scheduled games ============

    async def insert_game(self, game: Game) -> bool:
        """Register a game; returns False when it was already known"""
        stmt = self._insert(ScheduledGame).values(
            game_id=game.game_id,
            game_date=parse_date(game.est_date),
            away_team_id=game.away_team.id,
            home_team_id=game.home_team.id,
            season=game.season,
            start_time_utc=game.start_time_utc,
            status=GameStatus.SCHEDULED.value,
            processed=False,
            created_at=utcnow(),
        ).on_conflict_do_nothing(index_elements=['game_id'])
        try:
            async with self.session() as session:
                result = await session.execute(stmt)
                await session.commit()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to register game {game.game_id}") from e
        return result.rowcount > 0

    async def mark_game_processed(self, game_id: int):
        await self._update_game(game_id, processed=True)

    async def update_game_status(self, game_id: int, status: GameStatus):
        await self._update_game(game_id, status=GameStatus(status).value)

    async def mark_game_final(self, record: GamePrediction):
        """Mark a prediction's game final, registering the game if it was never inserted"""
        stmt = self._insert(ScheduledGame).values(
            game_id=record.game_id,
            game_date=record.game_date,
            away_team_id=record.away_team_id,
            home_team_id=record.home_team_id,
            status=GameStatus.FINAL.value,
            processed=True,
            created_at=utcnow(),
        )
        stmt = stmt.on_conflict_do_update(index_elements=['game_id'], set_={'status': GameStatus.FINAL.value})
        try:
            async with self.session() as session:
                await session.execute(stmt)
                await session.commit()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to mark game {record.game_id} final") from e

    async def _update_game(self, game_id: int, **values):
        try:
            async with self.session() as session:
                await session.execute(
                    update(ScheduledGame).where(ScheduledGame.game_id == game_id).values(**values)
                )
                await session.commit()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to update game {game_id}") from e

    async def get_unprocessed_games(self, since: Optional[Union[str, date]] = None) -> List[ScheduledGame]:
        query = select(ScheduledGame).where(ScheduledGame.processed.is_(False))
        if since is not None:
            query = query.where(ScheduledGame.game_date >= parse_date(since))
        query = query.order_by(ScheduledGame.game_date, ScheduledGame.game_id)
        async with self.session() as session:
            result = await session.execute(query)
            return list(result.scalars().all())

    async def get_game(self, game_id: int) -> Optional[ScheduledGame]:
        async with self.session() as session:
            result = await session.execute(select(ScheduledGame).where(ScheduledGame.game_id == game_id))
            return result.scalars().first()
