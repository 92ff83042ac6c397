from __future__ import annotations

from datetime import UTC, datetime

import pytest

from db.models import REQUIRED_BOOT_TABLES
from db.repository import WichtelState
from services.startup_service import EXPECTED_SLASH_COMMANDS, command_registry_health, run_boot_smoke_checks


def test_command_registry_health_reports_missing_and_unexpected():
    registered, missing, unexpected = command_registry_health(["poll", "teams", "poll", "music"])

    assert registered == ["music", "poll", "teams"]
    assert missing == [
        "endwichteln",
        "help",
        "random",
        "randomuser",
        "rolemessage",
        "roll",
        "rollhelp",
        "status",
        "wichteln",
    ]
    assert unexpected == ["music"]


def test_command_registry_health_is_clean_for_expected_set():
    _registered, missing, unexpected = command_registry_health(EXPECTED_SLASH_COMMANDS)

    assert missing == []
    assert unexpected == []


def test_boot_smoke_checks_count_repository_state(repo):
    repo.participant_joined(user_id=1, display_name="a", platform_name="Steam", platform_friend_code="1")
    repo.add_poll(
        message_id=10,
        channel_id=77,
        guild_id=None,
        question="?",
        options=[("🍕", "Pizza")],
        end_at=datetime(2026, 12, 1, tzinfo=UTC),
        max_votes=None,
    )
    repo.set_wichtel_state(WichtelState(end_text="2026-12-04T22:59:59+00:00"))

    stats = run_boot_smoke_checks(repo, REQUIRED_BOOT_TABLES)

    assert stats.required_tables == len(REQUIRED_BOOT_TABLES)
    assert stats.participants == 1
    assert stats.active_polls == 1
    assert stats.wichteln_active is True


def test_boot_smoke_checks_fail_on_missing_tables(repo):
    with pytest.raises(RuntimeError, match="Missing required DB tables"):
        run_boot_smoke_checks(repo, ["polls"])
