from __future__ import annotations

import pytest

from bot.config import DEFAULT_MATCH_MAX_ATTEMPTS, env_bool, env_int, env_reaction_roles, load_config


@pytest.fixture(autouse=True)
def _database_url(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "postgresql+asyncpg://u:p@localhost/db")
    for name in (
        "WICHTEL_TEST_MODE",
        "WICHTEL_MATCH_MAX_ATTEMPTS",
        "TIMEZONE",
        "BOT_LANGUAGE",
        "LOG_LEVEL",
        "DISCORD_LOG_LEVEL",
        "WICHTEL_CHANNEL_ID",
        "REACTION_ROLES",
    ):
        monkeypatch.delenv(name, raising=False)


def test_env_bool_parser_truthy_falsy_defaults(monkeypatch):
    monkeypatch.setenv("FLAG", "yes")
    assert env_bool("FLAG") is True

    monkeypatch.setenv("FLAG", "off")
    assert env_bool("FLAG") is False

    monkeypatch.delenv("FLAG", raising=False)
    assert env_bool("FLAG", default=True) is True


def test_env_int_rejects_garbage(monkeypatch):
    monkeypatch.setenv("NUMBER", "  ")
    assert env_int("NUMBER", default=5) == 5

    monkeypatch.setenv("NUMBER", "zwölf")
    with pytest.raises(ValueError, match="Invalid integer env NUMBER"):
        env_int("NUMBER", default=5)



def test_env_reaction_roles_reads_emoji_role_pairs(monkeypatch):
    monkeypatch.setenv("ROLES", " <:drachi:1175173441989656626>=1141372038368477254 , 🎮 = 1141364800828481677,")

    assert env_reaction_roles("ROLES") == (
        ("<:drachi:1175173441989656626>", 1141372038368477254),
        ("🎮", 1141364800828481677),
    )

    monkeypatch.delenv("ROLES")
    assert env_reaction_roles("ROLES") == ()


@pytest.mark.parametrize(
    ("value", "message"),
    [
        ("🎮", "expected emoji=role_id"),
        ("=123", "expected emoji=role_id"),
        ("🎮=gamer", "Invalid role id"),
    ],
)
def test_env_reaction_roles_rejects_bad_entries(monkeypatch, value, message):
    monkeypatch.setenv("ROLES", value)
    with pytest.raises(ValueError, match=message):
        env_reaction_roles("ROLES")

def test_defaults(monkeypatch):
    cfg = load_config()

    assert cfg.wichtel_test_mode is False
    assert cfg.wichtel_match_max_attempts == DEFAULT_MATCH_MAX_ATTEMPTS
    assert cfg.timezone_name == "Europe/Berlin"
    assert cfg.language == "de"
    assert cfg.discord_log_level == "INFO"


def test_wichtel_settings_reach_config(monkeypatch):
    monkeypatch.setenv("WICHTEL_CHANNEL_ID", "123")
    monkeypatch.setenv("WICHTEL_TEST_MODE", "true")
    monkeypatch.setenv("BOT_LANGUAGE", "EN")

    cfg = load_config()

    assert cfg.wichtel_channel_id == 123
    assert cfg.wichtel_test_mode is True
    assert cfg.language == "en"


def test_database_url_is_required(monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    with pytest.raises(ValueError, match="DATABASE_URL must be set"):
        load_config()


@pytest.mark.parametrize(
    ("name", "value", "message"),
    [
        ("WICHTEL_MATCH_MAX_ATTEMPTS", "0", "WICHTEL_MATCH_MAX_ATTEMPTS must be >= 1"),
        ("POLL_CHECK_INTERVAL_SECONDS", "0", "POLL_CHECK_INTERVAL_SECONDS must be >= 1"),
        ("TIMEZONE", "Mars/Olympus", "TIMEZONE is not a known zone"),
        ("BOT_LANGUAGE", "fr", "BOT_LANGUAGE must be one of"),
        ("DISCORD_LOG_LEVEL", "trace", "DISCORD_LOG_LEVEL must be one of"),
        ("REACTION_ROLES", "🎮=1,🎮=2", "REACTION_ROLES must not repeat an emoji"),
        ("REACTION_ROLES", "🎮=0", "REACTION_ROLES role ids must be > 0"),
    ],
)
def test_validation_rejects_invalid_values(monkeypatch, name, value, message):
    monkeypatch.setenv(name, value)
    with pytest.raises(ValueError, match=message):
        load_config()
