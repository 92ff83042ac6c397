from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Generic, Hashable, Protocol, Sequence, TypeVar

from bot.config import DEFAULT_MATCH_MAX_ATTEMPTS
from services.errors import InfeasibleMatching


class HasUserId(Protocol):
    @property
    def user_id(self) -> Hashable: ...


ParticipantT = TypeVar("ParticipantT", bound=HasUserId)


@dataclass(frozen=True, slots=True)
class MatchPair(Generic[ParticipantT]):
    giver: ParticipantT
    receiver: ParticipantT


@dataclass(slots=True)
class MatchingResult(Generic[ParticipantT]):
    success: bool
    reason: str | None
    pairs: list[MatchPair[ParticipantT]] = field(default_factory=list)
    attempts: int = 0


def draw_matching(participants: Sequence[ParticipantT], rng: random.Random) -> list[MatchPair[ParticipantT]]:
    """One random draw; every giver picks among unused receivers other than themselves.

    Raises InfeasibleMatching when a giver is left without a candidate.
    """
    pairs: list[MatchPair[ParticipantT]] = []
    used: set[int] = set()
    for giver_index, giver in enumerate(participants):
        candidates = [
            index
            for index in range(len(participants))
            if index != giver_index and index not in used
        ]
        if not candidates:
            raise InfeasibleMatching(f"Dead end at giver {giver.user_id!r}")
        chosen = rng.choice(candidates)
        used.add(chosen)
        pairs.append(MatchPair(giver=giver, receiver=participants[chosen]))
    return pairs


def validate_matching(pairs: Sequence[MatchPair[ParticipantT]], participants: Sequence[ParticipantT]) -> None:
    """Raise ValueError unless every participant gives once, receives once and never to themselves."""
    if len(pairs) != len(participants):
        raise ValueError(f"Pair count mismatch: {len(pairs)} pairs for {len(participants)} participants")

    expected = [participant.user_id for participant in participants]
    givers = [pair.giver.user_id for pair in pairs]
    receivers = [pair.receiver.user_id for pair in pairs]
    if sorted(givers, key=repr) != sorted(expected, key=repr):
        raise ValueError("Every participant must be giver exactly once")
    if sorted(receivers, key=repr) != sorted(expected, key=repr):
        raise ValueError("Every participant must be receiver exactly once")

    self_matches = [pair.giver.user_id for pair in pairs if pair.giver.user_id == pair.receiver.user_id]
    if self_matches:
        raise ValueError(f"Self matches found: {self_matches}")


def match_participants(
    participants: Sequence[ParticipantT],
    *,
    rng: random.Random | None = None,
    max_attempts: int = DEFAULT_MATCH_MAX_ATTEMPTS,
) -> MatchingResult[ParticipantT]:
    """Random derangement over ``participants`` with bounded whole-draw retries.

    Never raises for too few participants; the result carries ``reason`` instead.
    Duplicate user ids are a caller error and raise ValueError.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")

    ids = [participant.user_id for participant in participants]
    if len(set(ids)) != len(ids):
        raise ValueError("Participants must have unique user ids")

    if len(participants) < 2:
        return MatchingResult(success=False, reason="not_enough_participants")

    source = rng or random.SystemRandom()
    for attempt in range(1, max_attempts + 1):
        try:
            pairs = draw_matching(participants, source)
        except InfeasibleMatching:
            continue
        validate_matching(pairs, participants)
        return MatchingResult(success=True, reason=None, pairs=pairs, attempts=attempt)

    return MatchingResult(success=False, reason="retry_limit", attempts=max_attempts)
