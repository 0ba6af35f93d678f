"""
Model versions and their tunable parameters
"""
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import List, Tuple

DEFAULT_MODEL_VERSION = 1
MIN_SHOTS = 2.0


class CalculationStrategy(str, Enum):
    """Formula family a model version uses"""
    STANDARD = "standard"
    WEIGHTED_RECENCY = "weighted_recency"
    TOI_DRIVEN = "toi_driven"
    MATCHUP_FOCUSED = "matchup_focused"


@dataclass(frozen=True)
class ModelParameters:
    """All coefficients of the shot prediction and confidence formulas"""
    # Weight factors
    recent_performance_weight: float
    season_performance_weight: float

    # Team and game factors
    game_pace_exponent: float
    team_offense_exponent: float
    team_defense_exponent: float

    defense_position_factor: float

    # Rest day factors
    back_to_back_factor: float
    one_rest_day_factor: float
    four_plus_rest_day_factor: float

    # Confidence
    shot_score_multiplier: float
    toi_base_multiplier: float
    toi_bonus_threshold: float
    toi_bonus_multiplier: float
    trend_upward_score: float
    trend_improvement_score: float
    defense_confidence_factor: float

    # Most recent game first
    game_weights: Tuple[float, ...] = (0.0, 0.0, 0.0, 0.0, 0.0)
    opposing_goalie_quality_factor: float = 0.0
    home_ice_advantage_factor: float = 0.0
    streak_impact_factor: float = 0.0


@dataclass(frozen=True)
class ModelVersion:
    """One named, parameterized configuration of the prediction formula"""
    id: int
    name: str
    description: str
    calculation_strategy: CalculationStrategy
    parameters: ModelParameters
    active: bool = False
    created_at: str = ""

    def with_active(self, active: bool) -> "ModelVersion":
        return replace(self, active=active)


ORIGINAL_PARAMETERS = ModelParameters(
    recent_performance_weight=0.7,
    season_performance_weight=0.3,
    game_pace_exponent=1.0,
    team_offense_exponent=0.8,
    team_defense_exponent=0.6,
    defense_position_factor=0.75,
    back_to_back_factor=0.9,
    one_rest_day_factor=0.95,
    four_plus_rest_day_factor=1.1,
    shot_score_multiplier=4.0,
    toi_base_multiplier=3.0,
    toi_bonus_threshold=18.0,
    toi_bonus_multiplier=1.0,
    trend_upward_score=1.5,
    trend_improvement_score=0.75,
    defense_confidence_factor=0.9,
)


def get_default_models() -> List[ModelVersion]:
    """Built-in catalog; model 1 is the active default"""
    return [
        ModelVersion(
            id=1,
            name="Original Model",
            description="The initial shot prediction model",
            calculation_strategy=CalculationStrategy.STANDARD,
            parameters=ORIGINAL_PARAMETERS,
            active=True,
            created_at="2025-03-11",
        ),
        ModelVersion(
            id=2,
            name="Enhanced Recent Performance",
            description="Increased weight on recent performance and rest factors",
            calculation_strategy=CalculationStrategy.STANDARD,
            parameters=replace(
                ORIGINAL_PARAMETERS,
                recent_performance_weight=0.8,
                season_performance_weight=0.2,
                team_offense_exponent=0.9,
                team_defense_exponent=0.7,
                defense_position_factor=0.8,
                back_to_back_factor=0.85,
                four_plus_rest_day_factor=1.15,
                toi_base_multiplier=3.2,
                toi_bonus_multiplier=1.1,
                trend_upward_score=1.6,
                trend_improvement_score=0.8,
            ),
            created_at="2025-03-27",
        ),
        ModelVersion(
            id=3,
            name="Weighted Recency Model",
            description="Weighs individual games based on recency",
            calculation_strategy=CalculationStrategy.WEIGHTED_RECENCY,
            parameters=replace(
                ORIGINAL_PARAMETERS,
                recent_performance_weight=0.85,
                season_performance_weight=0.15,
                game_pace_exponent=1.1,
                team_defense_exponent=0.7,
                four_plus_rest_day_factor=1.08,
                game_weights=(0.4, 0.25, 0.15, 0.1, 0.1),
            ),
            created_at="2025-03-27",
        ),
        ModelVersion(
            id=4,
            name="Matchup-Focused Model",
            description="Emphasizes team matchups and contextual factors",
            calculation_strategy=CalculationStrategy.MATCHUP_FOCUSED,
            parameters=replace(
                ORIGINAL_PARAMETERS,
                recent_performance_weight=0.6,
                season_performance_weight=0.4,
                game_pace_exponent=1.2,
                team_offense_exponent=1.0,
                team_defense_exponent=0.9,
                defense_position_factor=0.8,
                back_to_back_factor=0.85,
                one_rest_day_factor=0.92,
                four_plus_rest_day_factor=1.15,
                shot_score_multiplier=3.5,
                toi_bonus_threshold=17.5,
                trend_upward_score=1.2,
                trend_improvement_score=0.6,
                opposing_goalie_quality_factor=1.1,
                home_ice_advantage_factor=1.05,
                streak_impact_factor=0.05,
            ),
            created_at="2025-03-27",
        ),
        ModelVersion(
            id=5,
            name="TOI-Driven Model",
            description="Uses ice time as primary predictor with minimal adjustment factors",
            calculation_strategy=CalculationStrategy.TOI_DRIVEN,
            parameters=replace(
                ORIGINAL_PARAMETERS,
                recent_performance_weight=0.5,
                season_performance_weight=0.5,
                game_pace_exponent=0.7,
                team_offense_exponent=0.5,
                team_defense_exponent=0.4,
                defense_position_factor=0.8,
                back_to_back_factor=0.92,
                one_rest_day_factor=0.97,
                four_plus_rest_day_factor=1.05,
                shot_score_multiplier=3.0,
                toi_base_multiplier=4.5,
                toi_bonus_threshold=16.0,
                toi_bonus_multiplier=1.5,
                trend_upward_score=1.0,
                trend_improvement_score=0.5,
                defense_confidence_factor=0.95,
            ),
            created_at="2025-03-27",
        ),
    ]


def create_default_model() -> ModelVersion:
    """Minimal fallback used when no catalog entry can be resolved"""
    return ModelVersion(
        id=DEFAULT_MODEL_VERSION,
        name="Default Model",
        description="Basic shot prediction model",
        calculation_strategy=CalculationStrategy.STANDARD,
        parameters=ORIGINAL_PARAMETERS,
        active=True,
    )
