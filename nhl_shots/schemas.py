"""
Pydantic models returned by the operational surface
"""
from pydantic import BaseModel, Field
from typing import Any, Dict, Optional


class OperationResult(BaseModel):
    """Outcome of an operation, shaped for an HTTP layer to serialize"""
    success: bool = Field(..., description="Whether the operation succeeded")
    code: int = Field(200, description="HTTP-style status code")
    message: str = Field("", description="Human readable summary")
    data: Optional[Any] = Field(None, description="Operation payload")

    @classmethod
    def ok(cls, data: Any = None, message: str = "OK") -> "OperationResult":
        return cls(success=True, code=200, message=message, data=data)

    @classmethod
    def fail(cls, message: str, code: int = 500) -> "OperationResult":
        return cls(success=False, code=code, message=message)


class ModelComparisonEntry(BaseModel):
    """Backtest summary for one model version"""
    model_config = {"protected_namespaces": ()}

    model_version_id: int
    name: str
    strategy: str
    active: bool
    total_predictions: int = 0
    successful_predictions: int = 0
    accuracy: float = Field(0.0, ge=0.0, le=1.0)
    avg_absolute_error: float = 0.0


class PredictionRecordOut(BaseModel):
    """Stored prediction as returned to callers"""
    game_date: str
    game_id: int
    game_title: str
    player_id: int
    player_name: str
    player_team_abbrev: str
    predicted_shots: float
    confidence: float
    actual_shots: Optional[int] = None
    successful: Optional[bool] = None
    model_version_id: int

    model_config = {"protected_namespaces": ()}

    @classmethod
    def from_record(cls, record) -> "PredictionRecordOut":
        return cls(
            game_date=record.game_date.isoformat(),
            game_id=record.game_id,
            game_title=record.game_title,
            player_id=record.player_id,
            player_name=record.player_name,
            player_team_abbrev=record.player_team_abbrev,
            predicted_shots=record.predicted_shots,
            confidence=record.confidence,
            actual_shots=record.actual_shots,
            successful=record.successful,
            model_version_id=record.model_version_id,
        )


def as_payload(models: Dict[Any, BaseModel]) -> Dict[Any, Dict[str, Any]]:
    return {key: value.model_dump() for key, value in models.items()}


class PredictionAccuracyOut(BaseModel):
    """Validated prediction with its absolute error"""
    game_id: int
    game_date: str
    player_id: int
    player_name: str
    model_version_id: int
    predicted_shots: float
    actual_shots: int
    difference: float
    confidence: float

    model_config = {"protected_namespaces": ()}

    @classmethod
    def from_row(cls, row) -> "PredictionAccuracyOut":
        return cls(**{**vars(row), "game_date": row.game_date.isoformat()})
