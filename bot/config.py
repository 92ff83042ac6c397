from __future__ import annotations

from dataclasses import dataclass
import os
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


TRUTHY_VALUES = {"1", "true", "yes", "on"}
VALID_LANGUAGES = {"de", "en"}
VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
DEFAULT_MATCH_MAX_ATTEMPTS = 1000


def env_bool(name: str, *, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in TRUTHY_VALUES


def env_reaction_roles(name: str) -> tuple[tuple[str, int], ...]:
    """Parse ``emoji=role_id`` pairs separated by commas, e.g. ``<:drachi:117>=114,🎮=115``."""
    raw = (os.getenv(name) or "").strip()
    pairs: list[tuple[str, int]] = []
    for entry in (part.strip() for part in raw.split(",")):
        if not entry:
            continue
        marker, sep, role = entry.rpartition("=")
        marker = marker.strip()
        if not sep or not marker:
            raise ValueError(f"Invalid {name} entry {entry!r}, expected emoji=role_id")
        try:
            role_id = int(role.strip())
        except ValueError as exc:
            raise ValueError(f"Invalid role id in {name} entry {entry!r}") from exc
        pairs.append((marker, role_id))
    return tuple(pairs)


def env_int(name: str, *, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    text = raw.strip()
    if not text:
        return default
    try:
        return int(text)
    except ValueError as exc:
        raise ValueError(f"Invalid integer env {name}={raw!r}") from exc


@dataclass(frozen=True)
class BotConfig:
    discord_token: str
    database_url: str
    db_echo: bool
    guild_id: int
    wichtel_channel_id: int
    admin_user_id: int
    wichtel_test_mode: bool
    wichtel_match_max_attempts: int
    wichtel_check_interval_seconds: int
    poll_check_interval_seconds: int
    timezone_name: str
    language: str
    log_guild_id: int
    log_channel_id: int
    log_level: str
    discord_log_level: str
    reaction_roles: tuple[tuple[str, int], ...] = ()

    def validate(self) -> None:
        if not self.database_url:
            raise ValueError("DATABASE_URL must be set")
        if self.guild_id < 0 or self.wichtel_channel_id < 0 or self.admin_user_id < 0:
            raise ValueError("GUILD_ID/WICHTEL_CHANNEL_ID/ADMIN_USER_ID must be >= 0")
        if self.wichtel_match_max_attempts < 1:
            raise ValueError("WICHTEL_MATCH_MAX_ATTEMPTS must be >= 1")
        if self.wichtel_check_interval_seconds < 1:
            raise ValueError("WICHTEL_CHECK_INTERVAL_SECONDS must be >= 1")
        if self.poll_check_interval_seconds < 1:
            raise ValueError("POLL_CHECK_INTERVAL_SECONDS must be >= 1")
        if self.log_guild_id < 0 or self.log_channel_id < 0:
            raise ValueError("LOG_GUILD_ID/LOG_CHANNEL_ID must be >= 0")
        if self.language not in VALID_LANGUAGES:
            raise ValueError("BOT_LANGUAGE must be one of: de, en")
        if self.log_level not in VALID_LOG_LEVELS:
            valid = ", ".join(sorted(VALID_LOG_LEVELS))
            raise ValueError(f"LOG_LEVEL must be one of: {valid}")
        if self.discord_log_level not in VALID_LOG_LEVELS:
            valid = ", ".join(sorted(VALID_LOG_LEVELS))
            raise ValueError(f"DISCORD_LOG_LEVEL must be one of: {valid}")
        markers = [marker for marker, _role_id in self.reaction_roles]
        if len(markers) != len(set(markers)):
            raise ValueError("REACTION_ROLES must not repeat an emoji")
        if any(role_id <= 0 for _marker, role_id in self.reaction_roles):
            raise ValueError("REACTION_ROLES role ids must be > 0")
        try:
            ZoneInfo(self.timezone_name)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"TIMEZONE is not a known zone: {self.timezone_name!r}") from exc


def load_config() -> BotConfig:
    cfg = BotConfig(
        discord_token=os.getenv("DISCORD_TOKEN", ""),
        database_url=os.getenv("DATABASE_URL", ""),
        db_echo=env_bool("DB_ECHO", default=False),
        guild_id=env_int("GUILD_ID", default=0),
        wichtel_channel_id=env_int("WICHTEL_CHANNEL_ID", default=0),
        admin_user_id=env_int("ADMIN_USER_ID", default=0),
        wichtel_test_mode=env_bool("WICHTEL_TEST_MODE", default=False),
        wichtel_match_max_attempts=env_int("WICHTEL_MATCH_MAX_ATTEMPTS", default=DEFAULT_MATCH_MAX_ATTEMPTS),
        wichtel_check_interval_seconds=env_int("WICHTEL_CHECK_INTERVAL_SECONDS", default=1),
        poll_check_interval_seconds=env_int("POLL_CHECK_INTERVAL_SECONDS", default=1),
        timezone_name=os.getenv("TIMEZONE", "Europe/Berlin").strip() or "Europe/Berlin",
        language=os.getenv("BOT_LANGUAGE", "de").strip().lower() or "de",
        log_guild_id=env_int("LOG_GUILD_ID", default=0),
        log_channel_id=env_int("LOG_CHANNEL_ID", default=0),
        log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper(),
        discord_log_level=os.getenv("DISCORD_LOG_LEVEL", "INFO").strip().upper(),
        reaction_roles=env_reaction_roles("REACTION_ROLES"),
    )
    cfg.validate()
    return cfg
