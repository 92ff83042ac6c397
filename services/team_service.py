from __future__ import annotations

import logging
import random
from typing import Sequence

from gateway.embeds import FIELD_VALUE_LIMIT


log = logging.getLogger("yippie.runtime")


def randomize_teams(
    names: Sequence[str],
    team_count: int,
    *,
    rng: random.Random | None = None,
) -> list[list[str]] | None:
    """Shuffle ``names`` into ``team_count`` teams of ``len // team_count``; leftovers go round-robin.

    Returns None when no split with more members than a single team is possible.
    """
    team_size = len(names) // team_count if team_count > 0 else 0
    if team_size <= 0 or len(names) <= team_size:
        return None

    shuffled = list(names)
    (rng or random).shuffle(shuffled)
    teams = [shuffled[index * team_size : (index + 1) * team_size] for index in range(team_count)]
    for index, name in enumerate(shuffled[team_size * team_count :]):
        teams[index % team_count].append(name)

    log.info(
        "%s team(s) were created from %s: %s",
        team_count,
        ", ".join(names),
        ", ".join(f"[{', '.join(team)}]" for team in teams),
    )
    return teams


def fits_team_fields(names: Sequence[str]) -> bool:
    """Whether any split of ``names`` renders every team into one embed field."""
    return len(", ".join(names)) <= FIELD_VALUE_LIMIT


def names_from_team_fields(fields: Sequence[tuple[str, str]]) -> tuple[list[str], int]:
    names: list[str] = []
    for _name, value in fields:
        names.extend(part.strip() for part in value.split(",") if part.strip())
    return names, len(fields)
