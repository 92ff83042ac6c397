from __future__ import annotations

import random
import re
from dataclasses import dataclass

from services.errors import UserInputError
from utils.localization import Language, get_string


ROLL_PROMPT_PATTERN = re.compile(r"(?:r?\d*d\d+(?:kh|kl)?\d*(?:[+-]\d+)?(?:\s+|$))+")
ROLL_TERM_PATTERN = re.compile(r"r?(\d*)d(\d+)(kh|kl)?(\d*)([+-]\d+)?")
MAX_TERMS = 10
MAX_DICE = 100
MAX_SIDES = 1000


@dataclass(frozen=True, slots=True)
class DiceTerm:
    count: int
    sides: int
    keep: str | None = None
    keep_count: int = 1
    modifier: int = 0


@dataclass(slots=True)
class DiceRoll:
    term: DiceTerm
    rolls: list[int]
    kept: list[int] | None = None

    @property
    def counted(self) -> list[int]:
        return self.kept if self.kept is not None else self.rolls

    @property
    def total(self) -> int:
        return sum(self.counted) + self.term.modifier


def parse_roll_prompt(prompt: str) -> list[DiceTerm]:
    """Parse ``[r][N]dS[kh|kl][K][+-M]`` terms separated by whitespace (``r4d6kh3+2 d20``)."""
    text = (prompt or "").strip().lower()
    if not text or ROLL_PROMPT_PATTERN.fullmatch(text) is None:
        raise UserInputError("roll_err_input")

    terms: list[DiceTerm] = []
    for match in ROLL_TERM_PATTERN.finditer(text):
        count = int(match.group(1)) if match.group(1) else 1
        sides = int(match.group(2))
        keep_count = int(match.group(4)) if match.group(4) else 1
        if not 1 <= count <= MAX_DICE or not 1 <= sides <= MAX_SIDES or keep_count < 1:
            raise UserInputError("roll_err_limits", dice=MAX_DICE, sides=MAX_SIDES)
        terms.append(
            DiceTerm(
                count=count,
                sides=sides,
                keep=match.group(3),
                keep_count=keep_count,
                modifier=int(match.group(5)) if match.group(5) else 0,
            )
        )
    if len(terms) > MAX_TERMS:
        raise UserInputError("roll_err_terms", max=MAX_TERMS)
    return terms


def roll_dice(terms: list[DiceTerm], *, rng: random.Random | None = None) -> list[DiceRoll]:
    picker = rng or random
    results: list[DiceRoll] = []
    for term in terms:
        rolls = [picker.randint(1, term.sides) for _ in range(term.count)]
        kept = None
        if term.keep is not None:
            kept = sorted(rolls, reverse=term.keep == "kh")[: term.keep_count]
        results.append(DiceRoll(term=term, rolls=rolls, kept=kept))
    return results


def _modifier_text(modifier: int) -> str:
    if modifier > 0:
        return f"+ {modifier}"
    if modifier < 0:
        return f"- {abs(modifier)}"
    return ""


def roll_field_name(roll: DiceRoll) -> str:
    term = roll.term
    name = f"__{term.count} × D{term.sides}__"
    details = []
    if roll.kept is not None:
        details.append(f"{term.keep}{len(roll.kept) if len(roll.kept) > 1 else ''}")
    if term.modifier:
        details.append(_modifier_text(term.modifier))
    if details:
        name += f" ({' | '.join(details)})"
    return name


def roll_field_value(roll: DiceRoll, language: Language = "de") -> str:
    key = "roll_rolls" if len(roll.rolls) > 1 else "roll_roll"
    lines = [f"**{get_string(language, key)}:** {', '.join(str(value) for value in roll.rolls)}"]
    if roll.kept is not None:
        lines.append(f"**{get_string(language, 'roll_kept')}:** {', '.join(str(value) for value in roll.kept)}")
    if roll.term.modifier or len(roll.counted) > 1:
        sum_text = " + ".join(str(value) for value in roll.counted)
        modifier = _modifier_text(roll.term.modifier)
        if modifier:
            sum_text = f"{sum_text} {modifier}"
        lines.append(f"**{get_string(language, 'roll_result')}:** {sum_text} = {roll.total}")
    return "\n".join(lines)
