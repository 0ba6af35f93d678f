from __future__ import annotations

import pytest

from conftest import GAME_DATE, box_score_payload, make_client, two_games_api


def _daily_job(client, registry, store):
    from nhl_shots.data.player_fetcher import FetchPolicy
    from nhl_shots.jobs.daily_predictions import DailyPredictionJob
    from nhl_shots.services.predictions import PredictionService

    return DailyPredictionJob(PredictionService(client, registry, fetch_policy=FetchPolicy.FAIL_FAST), store)


@pytest.mark.asyncio
async def test_daily_job_stores_every_model_and_marks_games(client, fake_api, registry, store):
    job = _daily_job(client, registry, store)

    await job.run(GAME_DATE)

    records = await store.get_prediction_records_for_date(GAME_DATE)
    assert {r.model_version_id for r in records} == {1, 2, 3, 4, 5}
    assert {r.game_id for r in records} == {1001, 1002}
    assert await store.get_unprocessed_games() == []
    assert (await store.get_game(1001)).status == "scheduled"

    landing_before = len([p for p in fake_api.paths() if p.endswith("/landing")])
    await job.run(GAME_DATE)
    landing_after = len([p for p in fake_api.paths() if p.endswith("/landing")])

    assert landing_after == landing_before
    assert len(await store.get_prediction_records_for_date(GAME_DATE)) == len(records)


@pytest.mark.asyncio
async def test_daily_job_retry_only_redoes_failed_games(registry, store):
    from nhl_shots.exceptions import JobFailure

    api = two_games_api()
    tor_roster = api.routes.pop("/v1/roster/TOR/current")

    async with make_client(api) as client:
        job = _daily_job(client, registry, store)
        with pytest.raises(JobFailure):
            await job.run(GAME_DATE)

        assert [g.game_id for g in await store.get_unprocessed_games()] == [1001]
        assert {r.game_id for r in await store.get_prediction_records_for_date(GAME_DATE)} == {1002}

        api.add("/v1/roster/TOR/current", tor_roster)
        await job.run(GAME_DATE)

    assert await store.get_unprocessed_games() == []
    assert {r.game_id for r in await store.get_prediction_records_for_date(GAME_DATE)} == {1001, 1002}
    assert "/v1/roster/NYR/current" in api.paths()
    assert api.paths().count("/v1/roster/NYR/current") == 1


@pytest.mark.asyncio
async def test_daily_job_without_games_is_a_no_op(registry, store):
    from conftest import FakeNHLApi, schedule_payload

    api = FakeNHLApi({"/v1/schedule/2025-07-01": schedule_payload({"2025-07-01": []})})
    async with make_client(api) as client:
        await _daily_job(client, registry, store).run("2025-07-01")

    assert await store.get_unprocessed_games() == []


async def _seed(store, make_game, make_prediction):
    game = make_game()
    other = make_game(game_id=1002, away=(3, "NYR"), home=(8, "MTL"))
    await store.insert_game(game)
    await store.insert_game(other)
    await store.store_game_predictions(game, [make_prediction(61, predicted=3.0), make_prediction(62, predicted=2.5)], 1)
    await store.store_game_predictions(game, [make_prediction(61, predicted=3.4, model_version_id=2)], 2)
    await store.store_game_predictions(other, [make_prediction(31, team_id=3, team_abbrev="NYR")], 1)


@pytest.mark.asyncio
async def test_validation_records_actuals_and_closes_out_final_games(store, make_game, make_prediction):
    from conftest import FakeNHLApi
    from nhl_shots.exceptions import JobFailure
    from nhl_shots.jobs.validation import ValidationJob

    await _seed(store, make_game, make_prediction)
    api = FakeNHLApi({"/v1/gamecenter/1001/boxscore": box_score_payload({61: 3}, {101: 1})})

    async with make_client(api) as client:
        with pytest.raises(JobFailure):
            await ValidationJob(client, store).run(as_of="2025-03-11")

    model_one = await store.get_player_prediction_record(61, game_id=1001, model_version_id=1)
    model_two = await store.get_player_prediction_record(61, game_id=1001, model_version_id=2)
    assert model_one.actual_shots == 3 and model_one.successful is True
    assert model_two.actual_shots == 3 and model_two.successful is False

    pending = {(r.game_id, r.player_id) for r in await store.get_pending_predictions("2100-01-01")}
    assert pending == {(1002, 31)}
    assert (await store.get_player_prediction_record(62)).actual_shots is None
    assert (await store.get_game(1001)).status == "final"
    assert (await store.get_game(1002)).status == "scheduled"


@pytest.mark.asyncio
async def test_validation_skips_games_not_yet_final(store, make_game, make_prediction):
    from conftest import FakeNHLApi
    from nhl_shots.jobs.validation import ValidationJob

    await _seed(store, make_game, make_prediction)
    api = FakeNHLApi({
        "/v1/gamecenter/1001/boxscore": {"gameState": "LIVE"},
        "/v1/gamecenter/1002/boxscore": box_score_payload({31: 5}, {}),
    })

    async with make_client(api) as client:
        await ValidationJob(client, store).run(as_of="2025-03-11")

    pending = {(r.game_id, r.player_id) for r in await store.get_pending_predictions("2100-01-01")}
    assert pending == {(1001, 61), (1001, 62)}
    assert (await store.get_player_prediction_record(31)).actual_shots == 5


@pytest.mark.asyncio
async def test_validation_ignores_live_box_score_with_player_stats(store, make_game, make_prediction):
    from conftest import FakeNHLApi
    from nhl_shots.jobs.validation import ValidationJob

    await _seed(store, make_game, make_prediction)
    api = FakeNHLApi({
        "/v1/gamecenter/1001/boxscore": box_score_payload({61: 1, 62: 0}, {}, state="LIVE"),
        "/v1/gamecenter/1002/boxscore": {"gameState": "FUT"},
    })

    async with make_client(api) as client:
        await ValidationJob(client, store).run(as_of="2025-03-11")

    assert (await store.get_player_prediction_record(61, model_version_id=1)).actual_shots is None
    assert (await store.get_player_prediction_record(62)).actual_shots is None
    assert (await store.get_game(1001)).status == "scheduled"
    pending = {(r.game_id, r.player_id) for r in await store.get_pending_predictions("2100-01-01")}
    assert pending == {(1001, 61), (1001, 62), (1002, 31)}


@pytest.mark.asyncio
async def test_second_validation_run_does_not_refetch_final_games(store, make_game, make_prediction):
    from conftest import FakeNHLApi
    from nhl_shots.jobs.validation import ValidationJob

    await _seed(store, make_game, make_prediction)
    api = FakeNHLApi({
        "/v1/gamecenter/1001/boxscore": box_score_payload({61: 3}, {101: 1}),
        "/v1/gamecenter/1002/boxscore": box_score_payload({31: 2}, {}),
    })

    async with make_client(api) as client:
        job = ValidationJob(client, store)
        await job.run(as_of="2025-03-11")
        await job.run(as_of="2025-03-12")

    assert api.paths().count("/v1/gamecenter/1001/boxscore") == 1
    assert api.paths().count("/v1/gamecenter/1002/boxscore") == 1
    assert (await store.get_player_prediction_record(62)).actual_shots is None


@pytest.mark.asyncio
async def test_validation_stops_checking_games_older_than_lookback(store, make_game, make_prediction):
    from conftest import FakeNHLApi
    from nhl_shots.jobs.validation import ValidationJob

    postponed = make_game(game_id=900, est_date="2025-02-01")
    await store.insert_game(postponed)
    await store.store_game_predictions(postponed, [make_prediction(61)], 1)
    await store.store_game_predictions(make_game(), [make_prediction(62)], 1)
    api = FakeNHLApi({"/v1/gamecenter/1001/boxscore": box_score_payload({62: 4}, {})})

    async with make_client(api) as client:
        await ValidationJob(client, store, lookback_days=14).run(as_of="2025-03-11")

    assert api.paths() == ["/v1/gamecenter/1001/boxscore"]
    assert (await store.get_player_prediction_record(62)).actual_shots == 4


@pytest.mark.asyncio
async def test_validation_marks_unregistered_game_final(store, make_game, make_prediction):
    from conftest import FakeNHLApi
    from nhl_shots.jobs.validation import ValidationJob

    await store.store_game_predictions(make_game(), [make_prediction(61), make_prediction(62)], 1)
    api = FakeNHLApi({"/v1/gamecenter/1001/boxscore": box_score_payload({61: 2}, {})})

    async with make_client(api) as client:
        await ValidationJob(client, store).run(as_of="2025-03-11")

    game = await store.get_game(1001)
    assert game.status == "final"
    assert game.processed is True
    assert await store.get_pending_predictions("2100-01-01") == []
