"""
Confidence score (0-10) for a shot prediction
"""
from typing import Sequence

from nhl_shots.ml.parameters import ModelParameters
from nhl_shots.ml.strategies import round_tenth

MAX_CONFIDENCE = 10.0


def population_variance(values: Sequence[int]) -> float:
    if not values:
        return 0.0
    mean = sum(values) / len(values)
    return sum((value - mean) ** 2 for value in values) / len(values)


def calculate_confidence(predicted_shots: float,
                         avg_toi: float,
                         trend: Sequence[int],
                         position: str,
                         params: ModelParameters) -> float:
    """
    Score how much to trust a prediction

    Shot volume and ice time carry most of the weight; a rising, steady
    three-game trend adds to it. Defensemen are discounted.

    Args:
        predicted_shots: Predicted shots for the game
        avg_toi: Average minutes over the last five games
        trend: Shots in the three most recent games, oldest first
        position: Position code ('C', 'L', 'R', 'D')
        params: Model parameters

    Returns:
        Confidence in [0, 10], rounded to 0.1
    """
    score = min(predicted_shots / 4.0, 1.0) * params.shot_score_multiplier

    score += min(avg_toi / 20.0, 1.0) * params.toi_base_multiplier
    if avg_toi > params.toi_bonus_threshold:
        score += min((avg_toi - params.toi_bonus_threshold) / 4.0, 1.0) * params.toi_bonus_multiplier

    variance = population_variance(trend) if len(trend) >= 3 else 0.0
    if len(trend) >= 3:
        trend_score = 0.0
        if trend[2] > trend[1] > trend[0]:
            trend_score = params.trend_upward_score
        elif trend[2] > trend[0]:
            trend_score = params.trend_improvement_score
        score += trend_score * max(0.5, 1.0 - variance / 4.0)

    if position == "D":
        score *= params.defense_confidence_factor

    if len(trend) >= 3:
        score += max(0.0, 0.5 - variance / 6.0)

    return round_tenth(min(max(score, 0.0), MAX_CONFIDENCE))
