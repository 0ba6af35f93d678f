"""Shared pytest fixtures and fake NHL API payloads."""

from __future__ import annotations

import os
import sys
from datetime import date, timedelta
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Union

import httpx
import pytest
import pytest_asyncio

PROJECT_ROOT = Path(__file__).resolve().parents[1]
PROJECT_ROOT_STR = str(PROJECT_ROOT)
if PROJECT_ROOT_STR not in sys.path:
    sys.path.insert(0, PROJECT_ROOT_STR)

os.environ.setdefault("LOG_LEVEL", "WARNING")

WEB_BASE = "https://api-web.test/v1"
STATS_BASE = "https://stats.test/rest/en"
SEASON = 20242025
GAME_DATE = "2025-03-10"

Route = Union[dict, Callable[[httpx.Request], httpx.Response], Exception]


# =============================================================================
# Payload builders
# =============================================================================

def team_ref(team_id: int, abbrev: str) -> dict:
    return {"id": team_id, "abbrev": abbrev, "logo": f"https://assets.test/{abbrev}.svg"}


def game_payload(game_id: int, away: dict, home: dict, start: str, state: str = "FUT") -> dict:
    return {
        "id": game_id,
        "season": SEASON,
        "startTimeUTC": start,
        "gameState": state,
        "awayTeam": away,
        "homeTeam": home,
    }


def schedule_payload(days: Dict[str, List[dict]]) -> dict:
    return {"gameWeek": [{"date": day, "games": games} for day, games in days.items()]}


def roster_payload(forwards: Iterable[int], defensemen: Iterable[int] = (), goalies: Iterable[int] = ()) -> dict:
    def entry(player_id: int, position: str) -> dict:
        return {
            "id": player_id,
            "firstName": {"default": "Player"},
            "lastName": {"default": str(player_id)},
            "positionCode": position,
        }

    return {
        "forwards": [entry(pid, "C") for pid in forwards],
        "defensemen": [entry(pid, "D") for pid in defensemen],
        "goalies": [entry(pid, "G") for pid in goalies],
    }


def player_payload(player_id: int,
                   team_id: int,
                   team_abbrev: str,
                   position: str = "C",
                   shots: Sequence[int] = (4, 4, 4, 4, 4),
                   toi: str = "20:00",
                   last_game: str = "2025-03-08",
                   season_shots: int = 240,
                   games_played: int = 60) -> dict:
    """Landing payload; shots are listed most recent game first."""
    latest = date.fromisoformat(last_game)
    return {
        "playerId": player_id,
        "firstName": {"default": "Player"},
        "lastName": {"default": str(player_id)},
        "position": position,
        "currentTeamId": team_id,
        "currentTeamAbbrev": team_abbrev,
        "headshot": f"https://assets.test/{player_id}.png",
        "featuredStats": {
            "regularSeason": {"subSeason": {"shots": season_shots, "gamesPlayed": games_played}}
        },
        "last5Games": [
            {"shots": s, "toi": toi, "gameDate": (latest - timedelta(days=2 * i)).isoformat()}
            for i, s in enumerate(shots)
        ],
    }


def team_stats_payload(rows: Iterable[tuple]) -> dict:
    """Rows of (team_id, shots_for_per_game, shots_against_per_game)."""
    return {
        "data": [
            {
                "teamId": team_id,
                "teamFullName": f"Team {team_id}",
                "gamesPlayed": 60,
                "shotsForPerGame": sf,
                "shotsAgainstPerGame": sa,
                "goalsForPerGame": 3.0,
                "goalsAgainstPerGame": 3.0,
            }
            for team_id, sf, sa in rows
        ]
    }


def box_score_payload(away: Dict[int, int], home: Dict[int, int], state: str = "OFF") -> dict:
    def side(shots: Dict[int, int]) -> dict:
        return {
            "forwards": [{"playerId": pid, "sog": sog} for pid, sog in shots.items()],
            "defense": [],
            "goalies": [],
        }

    return {"gameState": state, "playerByGameStats": {"awayTeam": side(away), "homeTeam": side(home)}}


# =============================================================================
# Fake upstream
# =============================================================================

class FakeNHLApi:
    """Routes requests by URL path to canned payloads."""

    def __init__(self, routes: Optional[Dict[str, Route]] = None):
        self.routes: Dict[str, Route] = dict(routes or {})
        self.requests: List[httpx.Request] = []

    def add(self, path: str, route: Route) -> "FakeNHLApi":
        self.routes[path] = route
        return self

    def paths(self) -> List[str]:
        return [request.url.path for request in self.requests]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(request.url.path)
        if route is None:
            return httpx.Response(404, json={"message": "not found"})
        if isinstance(route, Exception):
            raise route
        if callable(route):
            return route(request)
        return httpx.Response(200, json=route)


def two_games_api(skaters_per_team: Optional[int] = None) -> FakeNHLApi:
    """BOS @ TOR and NYR @ MTL on GAME_DATE.

    By default each team dresses two forwards and one defenseman. With
    ``skaters_per_team`` every roster holds that many skaters, six of them
    defensemen, with ids ``team_id * 1000 + n``.
    """
    bos, tor, nyr, mtl = team_ref(6, "BOS"), team_ref(10, "TOR"), team_ref(3, "NYR"), team_ref(8, "MTL")
    games = [
        game_payload(1001, bos, tor, "2025-03-10T23:00:00Z"),
        game_payload(1002, nyr, mtl, "2025-03-10T23:30:00Z"),
    ]
    api = FakeNHLApi()
    api.add(f"/v1/schedule/{GAME_DATE}", schedule_payload({GAME_DATE: games, "2025-03-11": []}))
    api.add("/v1/schedule/2025-03-04", schedule_payload({
        "2025-03-08": [game_payload(990, bos, nyr, "2025-03-08T23:00:00Z", state="OFF")],
    }))
    api.add("/rest/en/team/summary", team_stats_payload([
        (6, 32.0, 28.0), (10, 30.0, 31.0), (3, 29.0, 30.0), (8, 27.0, 33.0),
    ]))

    if skaters_per_team is None:
        players = {
            "BOS": (6, [61, 62], [63]),
            "TOR": (10, [101, 102], [103]),
            "NYR": (3, [31, 32], [33]),
            "MTL": (8, [81, 82], [83]),
        }
    else:
        defense_count = min(6, skaters_per_team)
        players = {}
        for abbrev, team_id in (("BOS", 6), ("TOR", 10), ("NYR", 3), ("MTL", 8)):
            ids = [team_id * 1000 + n for n in range(1, skaters_per_team + 1)]
            players[abbrev] = (team_id, ids[defense_count:], ids[:defense_count])

    for abbrev, (team_id, forwards, defense) in players.items():
        api.add(f"/v1/roster/{abbrev}/current", roster_payload(forwards, defense, goalies=[team_id * 100 + 99]))
        for pid in forwards:
            api.add(f"/v1/player/{pid}/landing", player_payload(pid, team_id, abbrev, shots=(5, 4, 3, 4, 4)))
        for pid in defense:
            api.add(f"/v1/player/{pid}/landing",
                    player_payload(pid, team_id, abbrev, position="D", shots=(3, 3, 2, 3, 3), toi="23:30"))
    return api


def make_client(api: FakeNHLApi, **kwargs):
    from nhl_shots.data.nhl_client import NHLStatsClient

    return NHLStatsClient(
        base_url=WEB_BASE,
        stats_base_url=STATS_BASE,
        transport=httpx.MockTransport(api.handler),
        **kwargs,
    )


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def fake_api() -> FakeNHLApi:
    return two_games_api()


@pytest_asyncio.fixture
async def client(fake_api):
    nhl_client = make_client(fake_api)
    yield nhl_client
    await nhl_client.aclose()


@pytest.fixture
def registry():
    from nhl_shots.ml.model_registry import ModelRegistry

    return ModelRegistry()


@pytest_asyncio.fixture
async def store(tmp_path):
    from database.predictions import PredictionStore

    prediction_store = PredictionStore.from_url(f"sqlite+aiosqlite:///{tmp_path / 'predictions.db'}")
    await prediction_store.init()
    yield prediction_store
    await prediction_store.close()


@pytest.fixture
def make_game():
    from nhl_shots.models import Game, Team

    def _make(game_id: int = 1001,
              away=(6, "BOS"),
              home=(10, "TOR"),
              est_date: str = GAME_DATE,
              start: str = "2025-03-10T23:00:00Z") -> Game:
        return Game(
            game_id=game_id,
            away_team=Team(id=away[0], abbrev=away[1]),
            home_team=Team(id=home[0], abbrev=home[1]),
            season=str(SEASON),
            start_time_utc=start,
            est_date=est_date,
        )

    return _make


@pytest.fixture
def make_prediction():
    from nhl_shots.models import PlayerPrediction

    def _make(player_id: int = 61,
              team_id: int = 6,
              team_abbrev: str = "BOS",
              predicted: float = 3.0,
              confidence: float = 7.5,
              model_version_id: int = 1) -> PlayerPrediction:
        return PlayerPrediction(
            player_id=player_id,
            name=f"Player {player_id}",
            position="C",
            team_abbrev=team_abbrev,
            team_id=team_id,
            shots_last5=[3, 3, 3, 3, 3],
            avg_shots_last5=3.0,
            shot_trend=[3, 3, 3],
            avg_toi=19.0,
            season_shots_per_game=3.0,
            predicted_shots=predicted,
            confidence=confidence,
            rest_days=1,
            model_version_id=model_version_id,
        )

    return _make
