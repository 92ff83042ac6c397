from __future__ import annotations

import asyncio
import random
from datetime import UTC, datetime, timedelta

import pytest

from db.repository import WichtelState
from services.errors import InvalidScheduleState, SourceUnavailable, WichtelInputError
from services.wichtel_service import EXPIRY_TASK_NAME, WichtelController, WichtelSettings, parse_event_date
from utils.localization import get_string


async def _open_round(wichtel: WichtelController, *user_ids: int):
    started = await wichtel.start_round("24.12.2026, 18:00", 3)
    for user_id in user_ids:
        await wichtel.join(
            user_id=user_id,
            display_name=f"user{user_id}",
            platform_name="Steam",
            platform_friend_code=f"FC-{user_id}",
        )
    return started


@pytest.mark.asyncio
async def test_start_round_ends_at_local_midnight_after_signup_days(wichtel, repo, gateway, scheduler):
    started = await wichtel.start_round("24.12.2026, 18:00", 3)

    # 04.12.2026 23:59:59 Europe/Berlin (UTC+1)
    assert started.end_at == datetime(2026, 12, 4, 22, 59, 59, tzinfo=UTC)
    assert started.event_label == get_string("de", "wichtel_event_label", date="24.12.2026", time="18:00")
    state = repo.get_wichtel_state()
    assert state.active is True
    assert state.message_id == started.message_id == gateway.sent[0]["message_id"]
    assert state.channel_id == 555
    assert scheduler.is_running(EXPIRY_TASK_NAME)


@pytest.mark.asyncio
async def test_start_round_in_test_mode_opens_two_minutes(repo, gateway, scheduler, config):
    settings = WichtelSettings.from_config(config)
    settings.test_mode = True
    now = datetime(2026, 12, 1, 10, 0, tzinfo=UTC)
    controller = WichtelController(repo, gateway, scheduler, settings=settings, clock=lambda: now)

    started = await controller.start_round("24.12.2026, 18:00", 0)

    assert started.end_at == now + timedelta(minutes=2)


@pytest.mark.asyncio
async def test_start_round_rejects_bad_input_and_second_round(wichtel):
    with pytest.raises(WichtelInputError) as bad_date:
        await wichtel.start_round("2026-12-24 18:00", 3)
    assert bad_date.value.key == "wichtel_bad_date"

    with pytest.raises(WichtelInputError) as bad_days:
        await wichtel.start_round("24.12.2026, 18:00", 0)
    assert bad_days.value.key == "wichtel_bad_days"

    await wichtel.start_round("24.12.2026, 18:00", 3)
    with pytest.raises(InvalidScheduleState):
        await wichtel.start_round("24.12.2026, 18:00", 3)


@pytest.mark.asyncio
async def test_start_round_resets_state_when_announcement_fails(wichtel, repo, gateway, scheduler):
    gateway.send_fails = True

    with pytest.raises(SourceUnavailable):
        await wichtel.start_round("24.12.2026, 18:00", 3)

    assert repo.get_wichtel_state().active is False
    assert not scheduler.is_running(EXPIRY_TASK_NAME)


@pytest.mark.asyncio
async def test_start_round_clears_previous_participants(wichtel, repo):
    await _open_round(wichtel, 101, 102)
    repo.reset_wichtel_state()

    started = await wichtel.start_round("24.12.2026, 18:00", 3)

    assert started.reset_participants == 2
    assert repo.list_participants() == []


@pytest.mark.asyncio
async def test_join_when_idle_is_rejected(wichtel, repo):
    with pytest.raises(WichtelInputError) as exc:
        await wichtel.join(user_id=1, display_name="a", platform_name="x", platform_friend_code="y")

    assert exc.value.key == "wichtel_join_closed"
    assert repo.list_participants() == []


@pytest.mark.asyncio
async def test_join_twice_keeps_single_record_and_display_name(wichtel, repo):
    await wichtel.start_round("24.12.2026, 18:00", 3)
    await wichtel.join(user_id=7, display_name="First", platform_name="Steam", platform_friend_code="1")
    await wichtel.join(user_id=7, display_name="Second", platform_name="Switch", platform_friend_code="2")

    rows = repo.list_participants()
    assert len(rows) == 1
    assert rows[0].display_name == "First"
    assert rows[0].platform_name == "Switch"


@pytest.mark.asyncio
async def test_expiry_before_end_does_nothing(wichtel, repo, gateway):
    started = await _open_round(wichtel, 101, 102)

    result = await wichtel.check_expiry(now=started.end_at - timedelta(seconds=1))

    assert result is None
    assert repo.get_wichtel_state().active is True
    assert gateway.dm_attempts == []


@pytest.mark.asyncio
async def test_three_participants_with_one_failed_dm(wichtel, repo, gateway, scheduler):
    started = await _open_round(wichtel, 101, 102, 103)
    gateway.raising_dm_users.add(102)

    result = await wichtel.check_expiry(now=started.end_at + timedelta(seconds=1))

    assert result.status == "matched"
    assert result.participants == 3
    assert result.notified == 2
    assert [failure.user_id for failure in result.failures] == [102]
    assert sorted(gateway.dm_attempts) == [101, 102, 103]
    assert (555, started.message_id) in gateway.deleted

    summary = gateway.sent[-1]["content"]
    assert all(f"<@{user_id}>" in summary for user_id in (101, 102, 103))

    assert repo.get_wichtel_state().active is False
    assert repo.list_participants() == []
    assert not scheduler.is_running(EXPIRY_TASK_NAME)


@pytest.mark.asyncio
async def test_periodic_check_ends_round_once_the_window_elapses(repo, gateway, scheduler, config):
    settings = WichtelSettings.from_config(config)
    settings.check_interval_seconds = 0.01
    clock = [datetime(2026, 12, 1, 10, 0, tzinfo=UTC)]
    wichtel = WichtelController(
        repo, gateway, scheduler, settings=settings, clock=lambda: clock[0], rng=random.Random(7)
    )
    started = await _open_round(wichtel, 101, 102, 103)
    task = scheduler.registry.get(EXPIRY_TASK_NAME)

    await asyncio.sleep(0.05)
    assert repo.get_wichtel_state().active is True
    assert gateway.dm_attempts == []

    clock[0] = started.end_at + timedelta(seconds=1)
    await asyncio.wait_for(task, timeout=2)

    assert sorted(gateway.dm_attempts) == [101, 102, 103]
    assert repo.get_wichtel_state().active is False
    assert repo.list_participants() == []
    assert not scheduler.is_running(EXPIRY_TASK_NAME)

@pytest.mark.asyncio
async def test_match_dm_never_names_the_giver_as_receiver(wichtel, gateway):
    await _open_round(wichtel, 101, 102, 103, 104)

    await wichtel.end_round()

    for giver_id, embed in gateway.dms:
        assert f"<@{giver_id}>" not in embed.description


@pytest.mark.asyncio
async def test_single_participant_gets_not_enough_notice(wichtel, repo, gateway, scheduler):
    await _open_round(wichtel, 101)

    result = await wichtel.end_round()

    assert result.status == "not_enough_participants"
    assert gateway.dm_attempts == []
    assert gateway.sent[-1]["content"] == get_string("de", "wichtel_not_enough")
    assert repo.get_wichtel_state().active is False
    assert repo.list_participants() == []
    assert not scheduler.is_running(EXPIRY_TASK_NAME)


@pytest.mark.asyncio
async def test_undeletable_announcement_loses_its_buttons(wichtel, gateway):
    started = await _open_round(wichtel, 101, 102)
    gateway.undeletable_messages.add(started.message_id)

    await wichtel.end_round()

    assert gateway.edited == [(555, started.message_id, {"view": None})]


@pytest.mark.asyncio
async def test_concurrent_end_triggers_run_once(wichtel, gateway):
    await _open_round(wichtel, 101, 102)

    results = await asyncio.gather(wichtel.end_round(reason="manual"), wichtel.end_round(reason="expired"))

    assert sorted(result.status for result in results) == ["matched", "not_running"]
    assert sorted(gateway.dm_attempts) == [101, 102]


@pytest.mark.asyncio
async def test_malformed_end_resets_without_matching(wichtel, repo, gateway, scheduler):
    await _open_round(wichtel, 101, 102)
    state = repo.get_wichtel_state()
    repo.set_wichtel_state(WichtelState(end_text="kaputt", channel_id=555, message_id=state.message_id))

    result = await wichtel.check_expiry()

    assert result.status == "invalid_state"
    assert gateway.dm_attempts == []
    assert gateway.sent[-1]["content"] == get_string("de", "wichtel_invalid_state")
    assert repo.get_wichtel_state().active is False
    assert repo.list_participants() == []
    assert not scheduler.is_running(EXPIRY_TASK_NAME)


@pytest.mark.asyncio
async def test_absent_end_stops_checks_quietly(wichtel, gateway):
    result = await wichtel.check_expiry()

    assert result.status == "invalid_state"
    assert gateway.sent == []


@pytest.mark.asyncio
async def test_reset_is_idempotent(wichtel, repo):
    await _open_round(wichtel, 101, 102)
    await wichtel.end_round()

    second = await wichtel.end_round()

    assert second.status == "not_running"
    assert repo.list_participants() == []
    assert repo.reset_participants() == 0


@pytest.mark.asyncio
async def test_resume_restarts_expiry_checks(wichtel, repo, scheduler):
    assert wichtel.resume() is False

    repo.set_wichtel_state(WichtelState(end_text="2026-12-04T22:59:59+00:00", channel_id=555))

    assert wichtel.resume() is True
    assert scheduler.is_running(EXPIRY_TASK_NAME)


def test_parse_event_date_rejects_impossible_dates():
    assert parse_event_date("24.12.2026, 18:00") == datetime(2026, 12, 24, 18, 0)
    with pytest.raises(WichtelInputError):
        parse_event_date("31.02.2026, 18:00")
