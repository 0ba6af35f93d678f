"""
NHL API client for fetching schedule, roster, player and box score data
"""
import asyncio
import logging
import threading
from datetime import date
from typing import Any, Dict, List, Optional, Tuple, Union

import httpx

from nhl_shots.config import get_settings
from nhl_shots.exceptions import DecodeError, TransportError
from nhl_shots.models import Game, PlayerDetail, PlayerGameLog, PlayerRef, Team, TeamStats
from nhl_shots.utils.dates import parse_date

logger = logging.getLogger(__name__)

FINAL_GAME_STATES = {"OFF", "FINAL"}


class RequestCounter:
    """Process-wide count of upstream requests (observability only)"""

    def __init__(self):
        self._lock = threading.Lock()
        self._value = 0

    def increment(self) -> int:
        with self._lock:
            self._value += 1
            return self._value

    @property
    def value(self) -> int:
        return self._value


REQUEST_COUNTER = RequestCounter()


def request_count() -> int:
    """Total upstream requests issued by every client in this process"""
    return REQUEST_COUNTER.value


def _name(field: Any) -> str:
    if isinstance(field, dict):
        return field.get("default", "")
    return field or ""


def _parse_team(data: Dict[str, Any]) -> Team:
    return Team(id=int(data["id"]), abbrev=data["abbrev"], logo=data.get("logo", ""))


def parse_schedule_week(payload: Dict[str, Any]) -> List[Tuple[str, List[Game]]]:
    """Parse a schedule response into (day, games) pairs in calendar order"""
    try:
        days = []
        for week in payload.get("gameWeek", []):
            day = week["date"]
            games = [
                Game(
                    game_id=int(game["id"]),
                    away_team=_parse_team(game["awayTeam"]),
                    home_team=_parse_team(game["homeTeam"]),
                    season=str(game["season"]),
                    start_time_utc=game["startTimeUTC"],
                    est_date=day,
                    game_state=game.get("gameState", "FUT"),
                )
                for game in week.get("games", [])
            ]
            days.append((day, games))
        return days
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise DecodeError(f"Malformed schedule payload: {e}") from e


def parse_roster(payload: Dict[str, Any]) -> List[PlayerRef]:
    """Forwards and defensemen from a roster response (goalies excluded)"""
    try:
        skaters = list(payload.get("forwards", [])) + list(payload.get("defensemen", []))
        return [
            PlayerRef(
                id=int(player["id"]),
                first_name=_name(player.get("firstName")),
                last_name=_name(player.get("lastName")),
                position=player.get("positionCode", ""),
            )
            for player in skaters
        ]
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise DecodeError(f"Malformed roster payload: {e}") from e


def parse_player_detail(payload: Dict[str, Any]) -> PlayerDetail:
    """Player landing response; last-5 games are ordered most recent first"""
    try:
        sub_season = (
            (payload.get("featuredStats") or {})
            .get("regularSeason", {})
            .get("subSeason", {})
        )
        last5 = [
            PlayerGameLog(
                shots=int(entry.get("shots", 0)),
                toi=entry.get("toi", ""),
                game_date=entry["gameDate"],
            )
            for entry in payload.get("last5Games", [])
        ]
        last5.sort(key=lambda g: g.game_date, reverse=True)
        return PlayerDetail(
            player_id=int(payload["playerId"]),
            first_name=_name(payload.get("firstName")),
            last_name=_name(payload.get("lastName")),
            position=payload.get("position", ""),
            current_team_id=int(payload["currentTeamId"]),
            current_team_abbrev=payload.get("currentTeamAbbrev", ""),
            season_shots=int(sub_season.get("shots", 0)),
            season_games_played=int(sub_season.get("gamesPlayed", 0)),
            last5_games=last5,
            headshot=payload.get("headshot", ""),
        )
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise DecodeError(f"Malformed player payload: {e}") from e


def parse_team_stats(payload: Dict[str, Any]) -> List[TeamStats]:
    try:
        return [
            TeamStats(
                team_id=int(row["teamId"]),
                team_full_name=row.get("teamFullName", ""),
                games_played=int(row.get("gamesPlayed", 0)),
                shots_for_per_game=float(row["shotsForPerGame"]),
                shots_against_per_game=float(row["shotsAgainstPerGame"]),
                goals_for_per_game=float(row.get("goalsForPerGame") or 0.0),
                goals_against_per_game=float(row.get("goalsAgainstPerGame") or 0.0),
            )
            for row in payload["data"]
        ]
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise DecodeError(f"Malformed team stats payload: {e}") from e


def parse_box_score(payload: Dict[str, Any]) -> Dict[int, int]:
    """Shots on goal by player id for both teams; empty until the game is final"""
    try:
        if payload.get("gameState") not in FINAL_GAME_STATES:
            return {}
        by_team = payload.get("playerByGameStats")
        if by_team is None:
            raise DecodeError("Final box score is missing player stats")
        shots: Dict[int, int] = {}
        for side in ("awayTeam", "homeTeam"):
            team = by_team.get(side, {})
            for player in list(team.get("forwards", [])) + list(team.get("defense", [])):
                shots[int(player["playerId"])] = int(player.get("sog", 0))
        return shots
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise DecodeError(f"Malformed box score payload: {e}") from e


class NHLStatsClient:
    """Async client for the public NHL web and stats APIs"""

    def __init__(self,
                 base_url: Optional[str] = None,
                 stats_base_url: Optional[str] = None,
                 timeout: Optional[float] = None,
                 max_concurrent_requests: Optional[int] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        """
        Initialize NHL client

        Args:
            base_url: Base URL of the web API (schedule, roster, player, boxscore)
            stats_base_url: Base URL of the stats REST API (team summaries)
            timeout: Per-request timeout in seconds
            max_concurrent_requests: Cap on in-flight upstream requests
            transport: Optional httpx transport (used by tests)
        """
        settings = get_settings()
        self.base_url = (base_url or settings.nhl_api_base).rstrip("/")
        self.stats_base_url = (stats_base_url or settings.nhl_stats_api_base).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.http_timeout
        limit = max_concurrent_requests or settings.max_concurrent_requests
        self._semaphore = asyncio.Semaphore(limit)
        self._http = httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout),
            follow_redirects=True,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    async def __aenter__(self) -> "NHLStatsClient":
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()

    async def aclose(self):
        await self._http.aclose()

    async def _get_json(self, url: str, params: Optional[Dict[str, Any]] = None) -> Any:
        REQUEST_COUNTER.increment()
        async with self._semaphore:
            try:
                response = await self._http.get(url, params=params)
            except httpx.TimeoutException as e:
                raise TransportError(f"Timed out after {self.timeout}s fetching {url}", url=url) from e
            except httpx.HTTPError as e:
                raise TransportError(f"Request to {url} failed: {e}", url=url) from e

        if response.status_code >= 400:
            raise TransportError(
                f"GET {url} returned HTTP {response.status_code}",
                url=url,
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError as e:
            raise DecodeError(f"Invalid JSON from {url}: {e}", url=url) from e

    async def fetch_schedule_week(self, day: Union[str, date]) -> List[Tuple[str, List[Game]]]:
        """
        Fetch the schedule week starting on a date

        Returns:
            List of (YYYY-MM-DD, games) pairs in calendar order
        """
        day_str = parse_date(day).isoformat()
        payload = await self._get_json(f"{self.base_url}/schedule/{day_str}")
        return parse_schedule_week(payload)

    async def fetch_schedule(self, day: Union[str, date]) -> List[Game]:
        """
        Fetch the games scheduled on a league-local date

        Args:
            day: Date as YYYY-MM-DD or date

        Returns:
            Games on that date only (empty if none)
        """
        day_str = parse_date(day).isoformat()
        for week_day, games in await self.fetch_schedule_week(day_str):
            if week_day == day_str:
                logger.info(f"Found {len(games)} games for {day_str}")
                return games
        logger.info(f"No games scheduled for {day_str}")
        return []

    async def fetch_roster(self, team_abbrev: str) -> List[PlayerRef]:
        payload = await self._get_json(f"{self.base_url}/roster/{team_abbrev}/current")
        return parse_roster(payload)

    async def fetch_player_detail(self, player_id: int) -> PlayerDetail:
        payload = await self._get_json(f"{self.base_url}/player/{player_id}/landing")
        return parse_player_detail(payload)

    async def fetch_team_stats(self, season: str) -> List[TeamStats]:
        """
        Fetch season summaries for every team

        Args:
            season: Season id such as '20242025'
        """
        payload = await self._get_json(
            f"{self.stats_base_url}/team/summary",
            params={"cayenneExp": f"seasonId={season}"},
        )
        stats = parse_team_stats(payload)
        logger.info(f"Fetched team stats for {len(stats)} teams in season {season}")
        return stats

    async def fetch_box_score(self, game_id: int) -> Dict[int, int]:
        """
        Fetch actual shots on goal for a completed game

        Returns:
            Mapping of player id to shots on goal; empty until the game is final
        """
        payload = await self._get_json(f"{self.base_url}/gamecenter/{game_id}/boxscore")
        return parse_box_score(payload)

