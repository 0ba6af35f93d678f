"""Scheduled jobs for the shot prediction service"""
from .daily_predictions import DailyPredictionJob
from .validation import ValidationJob
from .retry import run_with_backoff
from .scheduler import PredictionScheduler

__all__ = ['DailyPredictionJob', 'ValidationJob', 'run_with_backoff', 'PredictionScheduler']
