"""
Shot prediction formulas, one pure function per calculation strategy
"""
import math
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from nhl_shots.ml.parameters import CalculationStrategy, ModelParameters, ModelVersion
from nhl_shots.models import PlayerDetail, PlayerGameLog, TeamStats

TOI_TIERS = ((20.0, 3.5), (15.0, 2.5), (10.0, 1.5))
TOI_FLOOR_BASELINE = 0.8
TOI_TIER_WEIGHT = 0.7
TOI_TEAM_EXPONENT_SCALE = 0.8
TOI_REST_EXPONENT = 0.7
MATCHUP_PACE_SCALE = 1.2
MATCHUP_TEAM_SCALE = 1.1
STREAK_FACTOR = 1.0

Matchup = Tuple[TeamStats, TeamStats, float]


def round_tenth(value: float) -> float:
    """Round half away from zero to one decimal place"""
    return math.copysign(math.floor(abs(value) * 10 + 0.5) / 10, value)


def average_toi(games: Sequence[PlayerGameLog]) -> float:
    if not games:
        return 0.0
    return sum(game.toi_minutes for game in games) / len(games)


def league_shot_average(team_stats: Sequence[TeamStats]) -> float:
    if not team_stats:
        return 0.0
    return sum(stats.shots_for_per_game for stats in team_stats) / len(team_stats)


def find_team_stats(team_id: Optional[int], team_stats: Sequence[TeamStats]) -> Optional[TeamStats]:
    if team_id is None:
        return None
    for stats in team_stats:
        if stats.team_id == team_id:
            return stats
    return None


def resolve_matchup(player: PlayerDetail, team_stats: Sequence[TeamStats]) -> Optional[Matchup]:
    """Player's team, opponent and league average; None when any is unavailable"""
    team = find_team_stats(player.current_team_id, team_stats)
    opponent = find_team_stats(player.opposing_team_id, team_stats)
    league = league_shot_average(team_stats)
    if team is None or opponent is None or league <= 0:
        return None
    return team, opponent, league


def rest_factor(params: ModelParameters, rest_days: Dict[int, int], team_id: int) -> float:
    if team_id not in rest_days:
        return 1.0
    days = rest_days[team_id]
    if days == 0:
        return params.back_to_back_factor
    if days == 1:
        return params.one_rest_day_factor
    if days >= 4:
        return params.four_plus_rest_day_factor
    return 1.0


def _adjust(base: float,
            player: PlayerDetail,
            matchup: Matchup,
            params: ModelParameters,
            pace_exponent: float,
            offense_exponent: float,
            defense_exponent: float) -> float:
    team, opponent, league = matchup
    pace = ((team.shots_for_per_game + opponent.shots_against_per_game) / (2 * league)) ** pace_exponent
    offense = (team.shots_for_per_game / league) ** offense_exponent
    defense = (opponent.shots_against_per_game / league) ** defense_exponent
    position = params.defense_position_factor if player.position == "D" else 1.0
    ice_time = min(average_toi(player.last5_games) / 20.0, 1.0)
    return base * pace * offense * defense * position * ice_time


def _mean(values: Sequence[int]) -> float:
    return sum(values) / len(values) if values else 0.0


def standard_prediction(player: PlayerDetail,
                        recent_shots: Sequence[int],
                        season_shots_per_game: float,
                        team_stats: Sequence[TeamStats],
                        rest_days: Dict[int, int],
                        params: ModelParameters) -> float:
    recent = _mean(recent_shots)
    matchup = resolve_matchup(player, team_stats)
    if matchup is None:
        return (recent + season_shots_per_game) / 2
    base = recent * params.recent_performance_weight + season_shots_per_game * params.season_performance_weight
    adjusted = _adjust(base, player, matchup, params,
                       params.game_pace_exponent,
                       params.team_offense_exponent,
                       params.team_defense_exponent)
    return adjusted * rest_factor(params, rest_days, player.current_team_id)


def weighted_recent_shots(recent_shots: Sequence[int], weights: Sequence[float]) -> float:
    """Per-game weighted shots, most recent game first; weights are normalized by their sum"""
    pairs = list(zip(weights, recent_shots))
    total_weight = sum(weight for weight, _ in pairs)
    if total_weight <= 0:
        return _mean(recent_shots)
    return sum(weight * shots for weight, shots in pairs) / total_weight


def weighted_recency_prediction(player: PlayerDetail,
                                recent_shots: Sequence[int],
                                season_shots_per_game: float,
                                team_stats: Sequence[TeamStats],
                                rest_days: Dict[int, int],
                                params: ModelParameters) -> float:
    recent = weighted_recent_shots(recent_shots, params.game_weights)
    matchup = resolve_matchup(player, team_stats)
    if matchup is None:
        return (recent + season_shots_per_game) / 2
    base = recent * params.recent_performance_weight + season_shots_per_game * params.season_performance_weight
    adjusted = _adjust(base, player, matchup, params,
                       params.game_pace_exponent,
                       params.team_offense_exponent,
                       params.team_defense_exponent)
    return adjusted * rest_factor(params, rest_days, player.current_team_id)


def toi_baseline(avg_toi: float) -> float:
    for threshold, baseline in TOI_TIERS:
        if avg_toi >= threshold:
            return baseline
    return TOI_FLOOR_BASELINE


def toi_driven_prediction(player: PlayerDetail,
                          recent_shots: Sequence[int],
                          season_shots_per_game: float,
                          team_stats: Sequence[TeamStats],
                          rest_days: Dict[int, int],
                          params: ModelParameters) -> float:
    recent = _mean(recent_shots)
    matchup = resolve_matchup(player, team_stats)
    if matchup is None:
        return (recent + season_shots_per_game) / 2
    standard_base = recent * params.recent_performance_weight + season_shots_per_game * params.season_performance_weight
    tier = toi_baseline(average_toi(player.last5_games))
    base = TOI_TIER_WEIGHT * tier + (1 - TOI_TIER_WEIGHT) * standard_base
    adjusted = _adjust(base, player, matchup, params,
                       params.game_pace_exponent * TOI_TEAM_EXPONENT_SCALE,
                       params.team_offense_exponent * TOI_TEAM_EXPONENT_SCALE,
                       params.team_defense_exponent * TOI_TEAM_EXPONENT_SCALE)
    return adjusted * rest_factor(params, rest_days, player.current_team_id) ** TOI_REST_EXPONENT


def matchup_focused_prediction(player: PlayerDetail,
                               recent_shots: Sequence[int],
                               season_shots_per_game: float,
                               team_stats: Sequence[TeamStats],
                               rest_days: Dict[int, int],
                               params: ModelParameters) -> float:
    recent = _mean(recent_shots)
    matchup = resolve_matchup(player, team_stats)
    if matchup is None:
        return (recent + season_shots_per_game) / 2
    base = recent * params.recent_performance_weight + season_shots_per_game * params.season_performance_weight
    adjusted = _adjust(base, player, matchup, params,
                       params.game_pace_exponent * MATCHUP_PACE_SCALE,
                       params.team_offense_exponent * MATCHUP_TEAM_SCALE,
                       params.team_defense_exponent * MATCHUP_TEAM_SCALE)
    if player.is_home and params.home_ice_advantage_factor > 0:
        adjusted *= params.home_ice_advantage_factor
    # No team streak data upstream yet
    adjusted *= STREAK_FACTOR
    return adjusted * rest_factor(params, rest_days, player.current_team_id)


StrategyFn = Callable[[PlayerDetail, Sequence[int], float, Sequence[TeamStats], Dict[int, int], ModelParameters], float]

STRATEGIES: Dict[CalculationStrategy, StrategyFn] = {
    CalculationStrategy.STANDARD: standard_prediction,
    CalculationStrategy.WEIGHTED_RECENCY: weighted_recency_prediction,
    CalculationStrategy.TOI_DRIVEN: toi_driven_prediction,
    CalculationStrategy.MATCHUP_FOCUSED: matchup_focused_prediction,
}


def calculate_predicted_shots(player: PlayerDetail,
                              recent_shots: List[int],
                              season_shots_per_game: float,
                              team_stats: Sequence[TeamStats],
                              rest_days: Dict[int, int],
                              model: ModelVersion) -> float:
    """
    Predict shots on goal for one player in one game

    Args:
        player: Player tagged with current and opposing team
        recent_shots: Shots in the last five games, most recent first
        season_shots_per_game: Season average
        team_stats: Season stats for every team
        rest_days: Rest days by team id
        model: Model version whose strategy and parameters apply

    Returns:
        Predicted shots rounded to 0.1
    """
    strategy = STRATEGIES.get(model.calculation_strategy, standard_prediction)
    predicted = strategy(player, recent_shots, season_shots_per_game, team_stats, rest_days, model.parameters)
    return round_tenth(predicted)
