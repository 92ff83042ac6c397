from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Sequence, TypeVar


log = logging.getLogger("yippie.runtime")

_Item = TypeVar("_Item")


@dataclass(slots=True)
class RandomDraw:
    winner: str
    entries: list[str]

    @property
    def probability_percent(self) -> int:
        return round(100 / len(self.entries))


def split_objects(text: str) -> list[str]:
    return [part.strip() for part in (text or "").split(",") if part.strip()]


def draw_random(entries: Sequence[str], *, rng: random.Random | None = None) -> RandomDraw | None:
    if not entries:
        return None
    winner = (rng or random).choice(list(entries))
    log.info("Random draw picked %r out of %s entries", winner, len(entries))
    return RandomDraw(winner=winner, entries=list(entries))


def unique_by_id(items: Sequence[_Item | None]) -> list[_Item]:
    seen: set[int] = set()
    out: list[_Item] = []
    for item in items:
        if item is None:
            continue
        item_id = int(getattr(item, "id"))
        if item_id in seen:
            continue
        seen.add(item_id)
        out.append(item)
    return out
