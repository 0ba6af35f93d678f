"""Shot prediction models"""
from .parameters import CalculationStrategy, ModelParameters, ModelVersion, MIN_SHOTS
from .model_registry import ModelRegistry
from .strategies import calculate_predicted_shots
from .confidence import calculate_confidence
from .shooting_stats import calculate_shooting_stats

__all__ = [
    'CalculationStrategy',
    'ModelParameters',
    'ModelVersion',
    'MIN_SHOTS',
    'ModelRegistry',
    'calculate_predicted_shots',
    'calculate_confidence',
    'calculate_shooting_stats',
]
