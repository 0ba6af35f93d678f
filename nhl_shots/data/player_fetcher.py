"""
Concurrent roster and player detail fetching for a single game
"""
import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence

from nhl_shots.config import get_settings
from nhl_shots.data.nhl_client import NHLStatsClient
from nhl_shots.exceptions import NHLShotsError, PlayerFetchError
from nhl_shots.models import PlayerDetail, PlayerRef, Team

logger = logging.getLogger(__name__)

_DONE = object()


class FetchPolicy(str, Enum):
    """What to do when some roster or player fetches fail"""
    FAIL_FAST = "fail_fast"
    BEST_EFFORT = "best_effort"


@dataclass
class PlayerFetchResult:
    players: List[PlayerDetail] = field(default_factory=list)
    errors: List[Exception] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def default_policy() -> FetchPolicy:
    try:
        return FetchPolicy(get_settings().player_fetch_policy)
    except ValueError:
        return FetchPolicy.FAIL_FAST


async def get_player_stats(client: NHLStatsClient,
                           game_id: int,
                           teams: Sequence[Team],
                           policy: Optional[FetchPolicy] = None,
                           max_concurrency: Optional[int] = None,
                           queue_size: Optional[int] = None) -> PlayerFetchResult:
    """
    Fetch both rosters and every rostered skater's detail concurrently

    Args:
        client: NHL API client
        game_id: Game being predicted (for error reporting)
        teams: [away_team, home_team]
        policy: FAIL_FAST raises PlayerFetchError on any failure,
            BEST_EFFORT returns partial players with the error list
        max_concurrency: Optional cap on concurrent player fetches for this call
        queue_size: Capacity of the result queue; producers wait while it is full

    Returns:
        PlayerFetchResult with players tagged with their opponent and home flag
    """
    if len(teams) != 2:
        raise ValueError(f"Expected exactly two teams for game {game_id}, got {len(teams)}")

    policy = policy or default_policy()
    capacity = queue_size or get_settings().player_queue_size
    player_queue: asyncio.Queue = asyncio.Queue(maxsize=capacity)
    error_queue: asyncio.Queue = asyncio.Queue()
    limiter = asyncio.Semaphore(max_concurrency) if max_concurrency else None

    async def fetch_player(team: Team, player: PlayerRef):
        try:
            if limiter is not None:
                async with limiter:
                    detail = await client.fetch_player_detail(player.id)
            else:
                detail = await client.fetch_player_detail(player.id)
        except NHLShotsError as e:
            logger.warning(f"Player {player.id} fetch failed for game {game_id}: {e}")
            error_queue.put_nowait(e)
            return

        opponent = teams[1] if team.id == teams[0].id else teams[0]
        detail.opposing_team_id = opponent.id
        detail.opposing_team_abbrev = opponent.abbrev
        detail.is_home = team.id == teams[1].id

        # The caller drains concurrently, so a full queue only delays this put
        await player_queue.put(detail)

    async def fetch_team(team: Team):
        try:
            roster = await client.fetch_roster(team.abbrev)
        except NHLShotsError as e:
            logger.warning(f"Roster fetch failed for {team.abbrev} (game {game_id}): {e}")
            error_queue.put_nowait(e)
            return
        await asyncio.gather(*(fetch_player(team, player) for player in roster))

    async def close_when_done():
        try:
            await asyncio.gather(*(fetch_team(team) for team in teams))
        finally:
            await player_queue.put(_DONE)
            error_queue.put_nowait(_DONE)

    closer = asyncio.create_task(close_when_done())

    result = PlayerFetchResult()
    try:
        while True:
            item = await player_queue.get()
            if item is _DONE:
                break
            result.players.append(item)
        while True:
            item = await error_queue.get()
            if item is _DONE:
                break
            result.errors.append(item)
    except asyncio.CancelledError:
        # Producers may be blocked on the full queue
        closer.cancel()
        raise
    await closer

    if result.errors:
        if policy is FetchPolicy.FAIL_FAST:
            raise PlayerFetchError(game_id, result.errors)
        logger.warning(
            f"Game {game_id}: returning {len(result.players)} players with {len(result.errors)} fetch errors"
        )
    return result
