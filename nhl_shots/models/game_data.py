"""
Domain structures for NHL schedule, roster and player statistics
"""
from dataclasses import dataclass, field, asdict
from datetime import date
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class Team:
    """NHL team reference"""
    id: int
    abbrev: str
    logo: str = ""


@dataclass
class Game:
    """Scheduled game on a league-local date"""
    game_id: int
    away_team: Team
    home_team: Team
    season: str
    start_time_utc: str
    est_date: str
    game_state: str = "FUT"

    @property
    def title(self) -> str:
        return f"{self.away_team.abbrev} @ {self.home_team.abbrev}"

    @property
    def teams(self) -> List[Team]:
        """Away team first, home team second"""
        return [self.away_team, self.home_team]

    def involves(self, team_id: int) -> bool:
        return team_id in (self.away_team.id, self.home_team.id)


@dataclass(frozen=True)
class PlayerRef:
    """Roster entry"""
    id: int
    first_name: str
    last_name: str
    position: str


@dataclass(frozen=True)
class PlayerGameLog:
    """One entry of a player's last-5-games log"""
    shots: int
    toi: str
    game_date: str

    @property
    def toi_minutes(self) -> float:
        """'18:30' -> 18.5; malformed values count as zero"""
        parts = self.toi.split(":") if self.toi else []
        if len(parts) != 2:
            return 0.0
        try:
            return float(parts[0]) + float(parts[1]) / 60
        except ValueError:
            return 0.0


@dataclass
class PlayerDetail:
    """Raw per-player facts from the player landing endpoint"""
    player_id: int
    first_name: str
    last_name: str
    position: str
    current_team_id: int
    current_team_abbrev: str
    season_shots: int = 0
    season_games_played: int = 0
    last5_games: List[PlayerGameLog] = field(default_factory=list)
    headshot: str = ""
    opposing_team_id: Optional[int] = None
    opposing_team_abbrev: Optional[str] = None
    is_home: Optional[bool] = None

    @property
    def name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def season_shots_per_game(self) -> float:
        if self.season_games_played <= 0:
            return 0.0
        return self.season_shots / self.season_games_played


@dataclass(frozen=True)
class TeamStats:
    """Season team aggregates from the stats summary endpoint"""
    team_id: int
    team_full_name: str
    games_played: int
    shots_for_per_game: float
    shots_against_per_game: float
    goals_for_per_game: float = 0.0
    goals_against_per_game: float = 0.0


@dataclass
class PlayerPrediction:
    """Computed shot prediction for one player in one game"""
    player_id: int
    name: str
    position: str
    team_abbrev: str
    team_id: int
    shots_last5: List[int]
    avg_shots_last5: float
    shot_trend: List[int]
    avg_toi: float
    season_shots_per_game: float
    predicted_shots: float
    confidence: float
    rest_days: int
    headshot: str = ""
    model_version_id: int = 1
    past_prediction_accuracy: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class GameWithPlayers:
    """A game and its players sorted by confidence"""
    game: Game
    players: List[PlayerPrediction] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self.game)
        data["title"] = self.game.title
        data["players"] = [p.to_dict() for p in self.players]
        return data


@dataclass
class GameData:
    """Everything fetched once per date and shared across models"""
    date: date
    games: List[Game] = field(default_factory=list)
    team_stats: List[TeamStats] = field(default_factory=list)
    rest_days: Dict[int, int] = field(default_factory=dict)
