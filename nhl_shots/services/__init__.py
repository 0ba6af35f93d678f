"""Prediction services"""
from .predictions import PredictionService
from .operations import PredictionOperations

__all__ = ['PredictionService', 'PredictionOperations']
