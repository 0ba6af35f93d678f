"""
SQLAlchemy models for NHL shot predictions
Stored predictions per model version and the games they belong to
"""
from datetime import datetime, timezone
from enum import Enum as PyEnum

from sqlalchemy import (
    Column, String, Integer, Float, DateTime, Boolean, Date,
    UniqueConstraint, Index, CheckConstraint
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class GameStatus(str, PyEnum):
    """Lifecycle of a scheduled game"""
    SCHEDULED = "scheduled"
    FINAL = "final"


class ScheduledGame(Base):
    """Games registered by the daily prediction job"""
    __tablename__ = 'games'

    id = Column(Integer, primary_key=True, autoincrement=True)
    game_id = Column(Integer, unique=True, nullable=False)
    game_date = Column(Date, nullable=False, index=True)
    away_team_id = Column(Integer, nullable=False)
    home_team_id = Column(Integer, nullable=False)
    season = Column(String(8))
    start_time_utc = Column(String(32))
    status = Column(String(16), nullable=False, default=GameStatus.SCHEDULED.value)
    processed = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    __table_args__ = (
        Index('idx_games_processed', 'processed'),
    )


class GamePrediction(Base):
    """One player's predicted shots for one game under one model version"""
    __tablename__ = 'game_predictions'

    id = Column(Integer, primary_key=True, autoincrement=True)
    game_date = Column(Date, nullable=False)
    game_id = Column(Integer, nullable=False)
    game_title = Column(String(32), nullable=False)
    away_team_abbrev = Column(String(8), nullable=False)
    away_team_id = Column(Integer, nullable=False)
    home_team_abbrev = Column(String(8), nullable=False)
    home_team_id = Column(Integer, nullable=False)

    player_id = Column(Integer, nullable=False)
    player_name = Column(String(100), nullable=False)
    player_team_abbrev = Column(String(8), nullable=False)
    player_team_id = Column(Integer, nullable=False)

    predicted_shots = Column(Float, nullable=False)
    confidence = Column(Float, nullable=False)
    actual_shots = Column(Integer)
    successful = Column(Boolean)

    model_version_id = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    validated_at = Column(DateTime(timezone=True))

    __table_args__ = (
        UniqueConstraint('game_id', 'player_id', 'model_version_id', name='uq_prediction_game_player_model'),
        CheckConstraint('confidence >= 0 AND confidence <= 10', name='check_confidence_range'),
        Index('idx_predictions_game_id', 'game_id'),
        Index('idx_predictions_game_date', 'game_date'),
        Index('idx_predictions_model_version', 'model_version_id'),
    )

    @property
    def is_validated(self) -> bool:
        return self.actual_shots is not None

    def __repr__(self):
        return (f"<GamePrediction game={self.game_id} player={self.player_id} "
                f"model={self.model_version_id} predicted={self.predicted_shots}>")
