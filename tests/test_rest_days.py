from __future__ import annotations

import pytest

from conftest import GAME_DATE


def _past(make_game, game_id, away, home, start, est_date):
    return make_game(game_id=game_id, away=away, home=home, start=start, est_date=est_date)


def test_two_days_apart_is_one_rest_day(make_game):
    from nhl_shots.data.rest_days import calculate_rest_days

    target = make_game()
    previous = _past(make_game, 990, (6, "BOS"), (3, "NYR"), "2025-03-08T23:00:00Z", "2025-03-08")

    rest = calculate_rest_days([target], [previous])

    assert rest[6] == 1


def test_team_without_recent_game_gets_default(make_game):
    from nhl_shots.data.rest_days import DEFAULT_REST_DAYS, calculate_rest_days

    rest = calculate_rest_days([make_game()], [])

    assert rest == {6: DEFAULT_REST_DAYS, 10: DEFAULT_REST_DAYS}
    assert DEFAULT_REST_DAYS == 7


def test_back_to_back_is_zero(make_game):
    from nhl_shots.data.rest_days import calculate_rest_days

    previous = _past(make_game, 991, (10, "TOR"), (8, "MTL"), "2025-03-10T00:00:00Z", "2025-03-09")

    rest = calculate_rest_days([make_game()], [previous])

    assert rest[10] == 0


def test_latest_earlier_game_wins_and_later_games_are_ignored(make_game):
    from nhl_shots.data.rest_days import calculate_rest_days

    games = [
        _past(make_game, 980, (6, "BOS"), (3, "NYR"), "2025-03-05T00:00:00Z", "2025-03-04"),
        _past(make_game, 981, (6, "BOS"), (8, "MTL"), "2025-03-07T00:00:00Z", "2025-03-06"),
        make_game(),
        _past(make_game, 982, (6, "BOS"), (3, "NYR"), "2025-03-12T00:00:00Z", "2025-03-11"),
    ]

    rest = calculate_rest_days([make_game()], games)

    # Last game before the target was late on 2025-03-06 league time
    assert rest[6] == 3


def test_evening_game_is_dated_in_league_time(make_game):
    from nhl_shots.data.rest_days import calculate_rest_days

    # 01:30 UTC on the 9th is still the evening of the 8th in New York
    previous = _past(make_game, 990, (6, "BOS"), (3, "NYR"), "2025-03-09T01:30:00Z", "2025-03-08")

    assert calculate_rest_days([make_game()], [previous])[6] == 1


@pytest.mark.asyncio
async def test_get_teams_rest_reads_the_preceding_week(client, fake_api):
    from nhl_shots.data.rest_days import get_teams_rest

    games = await client.fetch_schedule(GAME_DATE)
    rest = await get_teams_rest(client, GAME_DATE, games)

    assert "/v1/schedule/2025-03-04" in fake_api.paths()
    assert rest == {6: 1, 10: 7, 3: 1, 8: 7}


@pytest.mark.asyncio
async def test_get_teams_rest_without_games_skips_fetch(client, fake_api):
    from nhl_shots.data.rest_days import get_teams_rest

    assert await get_teams_rest(client, GAME_DATE, []) == {}
    assert fake_api.requests == []
