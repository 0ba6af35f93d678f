"""Upstream NHL data collection"""
from .nhl_client import NHLStatsClient, request_count
from .player_fetcher import FetchPolicy, PlayerFetchResult, get_player_stats
from .rest_days import get_teams_rest

__all__ = ['NHLStatsClient', 'request_count', 'FetchPolicy', 'PlayerFetchResult', 'get_player_stats', 'get_teams_rest']
