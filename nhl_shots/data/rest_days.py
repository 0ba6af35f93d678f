"""
Days of rest for each team ahead of its next game
"""
import logging
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Union

from nhl_shots.data.nhl_client import NHLStatsClient
from nhl_shots.models import Game
from nhl_shots.utils.dates import league_tz, parse_date, parse_utc

logger = logging.getLogger(__name__)

LOOKBACK_DAYS = 6
DEFAULT_REST_DAYS = 7


def calculate_rest_days(games: List[Game], recent_games: Iterable[Game]) -> Dict[int, int]:
    """
    Rest days per team from already-fetched schedule data

    Args:
        games: Games being predicted
        recent_games: Schedule window that precedes (and may include) those games

    Returns:
        Mapping of team id to whole days off; teams without a prior game get 7
    """
    upcoming: Dict[int, Game] = {}
    for game in games:
        for team in game.teams:
            upcoming[team.id] = game

    last_played: Dict[int, datetime] = {}
    for past in sorted(recent_games, key=lambda g: parse_utc(g.start_time_utc)):
        started = parse_utc(past.start_time_utc)
        for team in past.teams:
            target = upcoming.get(team.id)
            if target is None or started >= parse_utc(target.start_time_utc):
                continue
            last_played[team.id] = started

    tz = league_tz()
    rest: Dict[int, int] = {}
    for team_id, game in upcoming.items():
        if team_id not in last_played:
            rest[team_id] = DEFAULT_REST_DAYS
            continue
        last_day = last_played[team_id].astimezone(tz).date()
        gap = (parse_date(game.est_date) - last_day).days
        rest[team_id] = max(0, gap - 1)
    return rest


async def get_teams_rest(client: NHLStatsClient,
                         current_date: Union[str, date],
                         games: List[Game]) -> Dict[int, int]:
    """Fetch the preceding schedule week and compute rest days for every team playing"""
    if not games:
        return {}
    start = parse_date(current_date) - timedelta(days=LOOKBACK_DAYS)
    week = await client.fetch_schedule_week(start)
    recent = [game for _, day_games in week for game in day_games]
    rest = calculate_rest_days(games, recent)
    logger.debug(f"Rest days from {start}: {rest}")
    return rest
