"""
Turn fetched player details into sorted shot predictions
"""
import logging
from datetime import date, timedelta
from typing import Dict, List, Optional, Sequence, Union

from nhl_shots.data.rest_days import DEFAULT_REST_DAYS
from nhl_shots.ml.confidence import calculate_confidence
from nhl_shots.ml.parameters import MIN_SHOTS, ModelVersion
from nhl_shots.ml.strategies import average_toi, calculate_predicted_shots
from nhl_shots.models import PlayerDetail, PlayerPrediction, TeamStats
from nhl_shots.utils.dates import parse_date

logger = logging.getLogger(__name__)

REQUIRED_GAMES = 5
MAX_DAYS_SINCE_LAST_GAME = 7


def is_eligible(player: PlayerDetail, game_date: Optional[date] = None) -> bool:
    """Five logged games, the latest within a week of the game being predicted"""
    if len(player.last5_games) < REQUIRED_GAMES:
        return False
    if game_date is None:
        return True
    latest = max(parse_date(game.game_date) for game in player.last5_games)
    return game_date - latest <= timedelta(days=MAX_DAYS_SINCE_LAST_GAME)


def calculate_shooting_stats(players: Sequence[PlayerDetail],
                             team_stats: Sequence[TeamStats],
                             rest_days: Dict[int, int],
                             model: ModelVersion,
                             game_date: Optional[Union[str, date]] = None) -> List[PlayerPrediction]:
    """
    Predict shots for every eligible player

    Args:
        players: Players fetched for one or more games
        team_stats: Season stats for every team
        rest_days: Rest days by team id
        model: Model version to apply
        game_date: Date of the games; players idle for over a week before it are skipped

    Returns:
        Predictions of at least MIN_SHOTS, highest confidence first
    """
    target_date = parse_date(game_date) if game_date is not None else None
    params = model.parameters
    predictions: List[PlayerPrediction] = []
    skipped = 0

    for player in players:
        if not is_eligible(player, target_date):
            skipped += 1
            continue

        recent = player.last5_games[:REQUIRED_GAMES]
        shots_last5 = [game.shots for game in recent]
        shot_trend = [game.shots for game in reversed(recent[:3])]
        avg_toi = average_toi(recent)
        season_spg = player.season_shots_per_game

        predicted = calculate_predicted_shots(player, shots_last5, season_spg, team_stats, rest_days, model)
        if predicted < MIN_SHOTS:
            continue

        predictions.append(PlayerPrediction(
            player_id=player.player_id,
            name=player.name,
            position=player.position,
            team_abbrev=player.current_team_abbrev,
            team_id=player.current_team_id,
            shots_last5=shots_last5,
            avg_shots_last5=sum(shots_last5) / REQUIRED_GAMES,
            shot_trend=shot_trend,
            avg_toi=avg_toi,
            season_shots_per_game=season_spg,
            predicted_shots=predicted,
            confidence=calculate_confidence(predicted, avg_toi, shot_trend, player.position, params),
            rest_days=rest_days.get(player.current_team_id, DEFAULT_REST_DAYS),
            headshot=player.headshot,
            model_version_id=model.id,
        ))

    if skipped:
        logger.debug(f"Skipped {skipped} players without five recent games")
    predictions.sort(key=lambda p: p.confidence, reverse=True)
    return predictions
