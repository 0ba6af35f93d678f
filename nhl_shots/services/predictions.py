"""
Prediction orchestration: schedule, team stats, rest days, rosters and models for a date
"""
import asyncio
import logging
from datetime import date
from typing import Dict, List, Optional, Sequence, Union

from nhl_shots.data.nhl_client import NHLStatsClient, request_count
from nhl_shots.data.player_fetcher import FetchPolicy, get_player_stats
from nhl_shots.data.rest_days import get_teams_rest
from nhl_shots.exceptions import NHLShotsError
from nhl_shots.ml.model_registry import ModelRegistry
from nhl_shots.ml.parameters import ModelVersion
from nhl_shots.ml.shooting_stats import calculate_shooting_stats
from nhl_shots.models import Game, GameData, GameWithPlayers, PlayerDetail, PlayerPrediction, TeamStats
from nhl_shots.utils.dates import parse_date
from nhl_shots.utils.iterables import filter_by

logger = logging.getLogger(__name__)


class PredictionService:
    """Builds per-game shot predictions for a date with one or all model versions"""

    def __init__(self,
                 client: NHLStatsClient,
                 registry: ModelRegistry,
                 fetch_policy: Optional[FetchPolicy] = None):
        """
        Initialize prediction service

        Args:
            client: NHL API client
            registry: Model versions
            fetch_policy: How partial roster/player failures are treated
        """
        self.client = client
        self.registry = registry
        self.fetch_policy = fetch_policy

    async def fetch_game_data(self, game_date: Union[str, date]) -> GameData:
        """Games, season team stats and rest days for a date; empty when no games"""
        day = parse_date(game_date)
        games = await self.client.fetch_schedule(day)
        if not games:
            return GameData(date=day)

        team_stats = await self.client.fetch_team_stats(games[0].season)
        rest_days = await get_teams_rest(self.client, day, games)
        return GameData(date=day, games=games, team_stats=team_stats, rest_days=rest_days)

    async def fetch_players(self, games: Sequence[Game]) -> Dict[int, List[PlayerDetail]]:
        """
        Fetch rosters and player details for every game concurrently

        Games whose fetch fails are logged and left out of the result.
        """
        async def fetch(game: Game):
            try:
                result = await get_player_stats(self.client, game.game_id, game.teams, policy=self.fetch_policy)
            except NHLShotsError as e:
                logger.warning(f"Skipping game {game.game_id} ({game.title}): {e}")
                return None
            return result.players

        fetched = await asyncio.gather(*(fetch(game) for game in games))
        return {
            game.game_id: players
            for game, players in zip(games, fetched)
            if players is not None
        }

    async def predict_games(self,
                            games: Sequence[Game],
                            team_stats: Sequence[TeamStats],
                            rest_days: Dict[int, int],
                            model: ModelVersion,
                            game_date: Union[str, date],
                            players_by_game: Optional[Dict[int, List[PlayerDetail]]] = None) -> List[GameWithPlayers]:
        """
        Run one model over already-fetched game data

        Args:
            games: Games on the date
            team_stats: Season team stats
            rest_days: Rest days by team id
            model: Model version to apply
            game_date: Date being predicted
            players_by_game: Pre-fetched players keyed by game id; fetched when omitted

        Returns:
            Games with players sorted by confidence, failed games omitted
        """
        if players_by_game is None:
            players_by_game = await self.fetch_players(games)

        predictions: List[PlayerPrediction] = []
        for game in games:
            players = players_by_game.get(game.game_id)
            if players is None:
                continue
            predictions.extend(calculate_shooting_stats(players, team_stats, rest_days, model, game_date))

        results = []
        for game in games:
            if game.game_id not in players_by_game:
                continue
            game_players = filter_by(predictions, lambda p: game.involves(p.team_id))
            game_players.sort(key=lambda p: p.confidence, reverse=True)
            results.append(GameWithPlayers(game=game, players=game_players))
        return results

    async def get_predictions_for_date(self,
                                       game_date: Union[str, date],
                                       model_version_id: Optional[int] = None) -> List[GameWithPlayers]:
        """
        Predictions for every game on a date with one model version

        Args:
            game_date: League-local date
            model_version_id: Model to use; the registry's active version when omitted
        """
        data = await self.fetch_game_data(game_date)
        if not data.games:
            logger.info(f"No games on {data.date}")
            return []

        model = self.registry.get_model_version(model_version_id)
        results = await self.predict_games(data.games, data.team_stats, data.rest_days, model, data.date)
        logger.info(
            f"Predicted {sum(len(g.players) for g in results)} players across {len(results)} games "
            f"on {data.date} with model {model.id} ({request_count()} upstream requests so far)"
        )
        return results

    async def run_all_models(self,
                             game_date: Union[str, date],
                             game_data: Optional[GameData] = None) -> Dict[int, List[GameWithPlayers]]:
        """
        Predictions from every registered model version

        Games, team stats, rest days and rosters are fetched once and shared.

        Args:
            game_date: League-local date
            game_data: Already-fetched data for the date, fetched when omitted
        """
        data = game_data or await self.fetch_game_data(game_date)
        if not data.games:
            logger.info(f"No games on {data.date}")
            return {}

        players_by_game = await self.fetch_players(data.games)
        results: Dict[int, List[GameWithPlayers]] = {}
        for model in self.registry.get_all_models():
            results[model.id] = await self.predict_games(
                data.games, data.team_stats, data.rest_days, model, data.date, players_by_game
            )
        logger.info(
            f"Ran {len(results)} models over {len(data.games)} games on {data.date} "
            f"({request_count()} upstream requests so far)"
        )
        return results
