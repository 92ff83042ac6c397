from __future__ import annotations

import random
from datetime import datetime
from typing import Iterable, Sequence

import discord

from utils.localization import Language, get_string
from utils.text import clip
from utils.time_utils import unix_timestamp


WICHTEL_COLOR = 0xDB27B7
POLL_COLOR = 0x2210E8
INPUT_ERROR_COLOR = 0xED1010
TEAM_COLORS = (0x008080, 0x0000FF, 0x800080, 0xFFA500, 0x00FF00, 0x800000, 0xFF0000)
ROLL_COLOR = 0x0099FF
HELP_COLOR = 0x0DEC09

FIELD_VALUE_LIMIT = 1024
DESCRIPTION_LIMIT = 4096


def wichtel_announcement_embed(*, event_label: str, end_local: datetime, language: Language = "de") -> discord.Embed:
    description = get_string(
        language,
        "wichtel_announcement",
        event=event_label,
        end_date=end_local.strftime("%d.%m.%Y"),
        end_time=end_local.strftime("%H:%M"),
    )
    return discord.Embed(
        title=get_string(language, "wichtel_title"),
        description=clip(description, DESCRIPTION_LIMIT),
        color=WICHTEL_COLOR,
    )


def wichtel_match_embed(
    *,
    receiver_id: int,
    display_name: str,
    platform_name: str,
    friend_code: str,
    event_label: str,
    language: Language = "de",
) -> discord.Embed:
    embed = discord.Embed(
        title=get_string(language, "wichtel_dm_title"),
        description=get_string(
            language,
            "wichtel_dm_body",
            user_id=receiver_id,
            display_name=display_name,
            platform_name=platform_name or "-",
            friend_code=friend_code or "-",
            event=event_label,
        ),
        color=WICHTEL_COLOR,
    )
    embed.add_field(
        name=get_string(language, "wichtel_checklist_title"),
        value=get_string(language, "wichtel_checklist"),
        inline=False,
    )
    return embed


def poll_embed(
    *,
    question: str,
    options: Iterable[tuple[str, str]],
    end_at: datetime,
    max_votes: int | None,
    language: Language = "de",
) -> discord.Embed:
    embed = discord.Embed(
        title=get_string(language, "poll_title"),
        description=clip(question, DESCRIPTION_LIMIT),
        color=POLL_COLOR,
    )
    embed.add_field(
        name=get_string(language, "poll_field_answers"),
        value=clip("\n".join(f"{marker} {label}" for marker, label in options), FIELD_VALUE_LIMIT),
        inline=False,
    )
    embed.add_field(
        name=get_string(language, "poll_field_info"),
        value=get_string(
            language,
            "poll_info",
            timestamp=unix_timestamp(end_at),
            max_votes=max_votes if max_votes is not None else "∞",
        ),
        inline=False,
    )
    return embed


def poll_results_embed(*, question: str, lines: Sequence[str], language: Language = "de") -> discord.Embed:
    embed = discord.Embed(
        title=get_string(language, "poll_results_title"),
        description=clip(question, DESCRIPTION_LIMIT),
        color=POLL_COLOR,
    )
    embed.add_field(
        name=get_string(language, "poll_results_field"),
        value=clip("\n".join(lines) or "-", FIELD_VALUE_LIMIT),
        inline=False,
    )
    return embed


def poll_input_embed(
    *,
    question: str,
    time_text: str,
    max_votes: int | None,
    answers: Sequence[str | None],
    language: Language = "de",
) -> discord.Embed:
    lines = [f"**question**: {question}", f"**time**: {time_text}"]
    if max_votes is not None:
        lines.append(f"**max_votes**: {max_votes}")
    lines.extend(f"**answer{index}**: {answer}" for index, answer in enumerate(answers, start=1) if answer)
    return discord.Embed(
        title=get_string(language, "poll_input_title"),
        description=clip("\n".join(lines), DESCRIPTION_LIMIT),
        color=INPUT_ERROR_COLOR,
    )


def teams_embed(
    teams: Sequence[Sequence[str]],
    *,
    language: Language = "de",
    rng: random.Random | None = None,
) -> discord.Embed:
    picker = rng or random
    embed = discord.Embed(
        title=get_string(language, "teams_title"),
        description=get_string(
            language,
            "teams_description",
            count=sum(len(team) for team in teams),
            teams=len(teams),
        ),
        color=picker.choice(TEAM_COLORS),
    )
    for index, team in enumerate(teams, start=1):
        embed.add_field(
            name=get_string(language, "teams_field", index=index),
            value=clip(", ".join(team), FIELD_VALUE_LIMIT),
            inline=False,
        )
    return embed


def roll_embed(*, prompt: str, fields: Sequence[tuple[str, str]], language: Language = "de") -> discord.Embed:
    embed = discord.Embed(
        title=get_string(language, "roll_title"),
        description=get_string(language, "roll_description", prompt=clip(prompt, 200)),
        color=ROLL_COLOR,
    )
    for name, value in fields:
        embed.add_field(name=name, value=clip(value, FIELD_VALUE_LIMIT), inline=False)
    return embed


def roll_help_embed(*, language: Language = "de") -> discord.Embed:
    embed = discord.Embed(
        title=get_string(language, "rollhelp_title"),
        description=get_string(language, "rollhelp_description"),
        color=ROLL_COLOR,
    )
    for section in ("single", "multiple", "modifier", "keep_high", "keep_low", "combined"):
        embed.add_field(
            name=get_string(language, f"rollhelp_{section}_name"),
            value=get_string(language, f"rollhelp_{section}_value"),
            inline=False,
        )
    return embed


def random_embed(
    *,
    entries: Sequence[str],
    winner: str,
    probability_percent: int,
    language: Language = "de",
    rng: random.Random | None = None,
) -> discord.Embed:
    embed = discord.Embed(
        title=get_string(language, "random_title"),
        description=clip(get_string(language, "random_description", entries=", ".join(entries)), DESCRIPTION_LIMIT),
        color=(rng or random).choice(TEAM_COLORS),
    )
    embed.add_field(name=get_string(language, "random_field_count"), value=str(len(entries)), inline=True)
    embed.add_field(name=get_string(language, "random_field_probability"), value=f"{probability_percent}%", inline=True)
    embed.add_field(
        name=get_string(language, "random_field_winner"),
        value=clip(f"**{winner}**", FIELD_VALUE_LIMIT),
        inline=False,
    )
    return embed


def random_user_embed(
    *,
    user_ids: Sequence[int],
    winner_id: int,
    avatar_url: str | None,
    language: Language = "de",
    rng: random.Random | None = None,
) -> discord.Embed:
    embed = discord.Embed(
        title=get_string(language, "random_title"),
        description=get_string(
            language,
            "randomuser_description",
            winner=winner_id,
            users=", ".join(f"<@{user_id}>" for user_id in user_ids),
        ),
        color=(rng or random).choice(TEAM_COLORS),
    )
    if avatar_url:
        embed.set_image(url=avatar_url)
    return embed


def help_overview_embed(
    grouped: dict[str, list[tuple[str, str]]],
    *,
    language: Language = "de",
) -> discord.Embed:
    embed = discord.Embed(
        title=get_string(language, "help_title"),
        description=get_string(language, "help_description"),
        color=HELP_COLOR,
    )
    for category in sorted(grouped):
        lines = [f"- `/{name}`: {description}" for name, description in grouped[category]]
        embed.add_field(
            name=f"**{get_string(language, category)}**",
            value=clip("\n".join(lines), FIELD_VALUE_LIMIT),
            inline=False,
        )
    return embed


def help_command_embed(
    *,
    name: str,
    description: str,
    usage: str,
    examples: str,
    options: Sequence[tuple[str, str, bool]],
    language: Language = "de",
) -> discord.Embed:
    embed = discord.Embed(
        title=get_string(language, "help_command_title", name=name),
        description=description,
        color=HELP_COLOR,
    )
    embed.add_field(name=get_string(language, "help_usage"), value=usage or f"/{name}", inline=False)
    if examples:
        embed.add_field(name=get_string(language, "help_examples"), value=examples, inline=False)
    if options:
        yes, no = get_string(language, "help_yes"), get_string(language, "help_no")
        lines = [
            get_string(language, "help_option", name=option, description=text, required=yes if required else no)
            for option, text, required in options
        ]
        embed.add_field(
            name=get_string(language, "help_arguments"),
            value=clip("\n\n".join(lines), FIELD_VALUE_LIMIT),
            inline=False,
        )
    return embed
