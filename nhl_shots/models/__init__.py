"""Domain models for the NHL shot prediction service"""
from .game_data import (
    Team,
    Game,
    GameData,
    GameWithPlayers,
    PlayerDetail,
    PlayerGameLog,
    PlayerPrediction,
    PlayerRef,
    TeamStats,
)

__all__ = [
    'Team',
    'Game',
    'GameData',
    'GameWithPlayers',
    'PlayerDetail',
    'PlayerGameLog',
    'PlayerPrediction',
    'PlayerRef',
    'TeamStats',
]
