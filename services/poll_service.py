from __future__ import annotations

import asyncio
import logging
import re
import unicodedata
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Iterable, Mapping, Sequence

from db.repository import ExpiredPoll, InMemoryRepository, PollRecord
from gateway.embeds import FIELD_VALUE_LIMIT, poll_embed, poll_results_embed
from gateway.messaging import MessageSnapshot, MessagingGateway
from gateway.task_registry import PeriodicHandle, Scheduler
from services.errors import PollInputError, SourceUnavailable
from utils.localization import Language, get_string
from utils.time_utils import utc_now


log = logging.getLogger("yippie.polls")

POLL_TASK_NAME = "poll_expiry"
MIN_ANSWERS = 2
MAX_ANSWERS = 15
REACTION_SEED = 1
POLL_DURATION_PATTERN = re.compile(r"(\d+)([dhm])")
CUSTOM_EMOJI_PATTERN = re.compile(r"<a?:\w+:\d+>")
_DURATION_UNITS = {"d": "days", "h": "hours", "m": "minutes"}


@dataclass(frozen=True, slots=True)
class PollOption:
    marker: str
    label: str


@dataclass(slots=True)
class VoteTally:
    marker: str
    label: str
    count: int


@dataclass(slots=True)
class PollCreateResult:
    message_id: int
    end_at: datetime
    options: list[PollOption]


@dataclass(slots=True)
class PollCloseResult:
    message_id: int
    channel_id: int
    posted: bool
    reason: str | None = None
    tallies: list[VoteTally] = field(default_factory=list)


def is_emoji_marker(token: str) -> bool:
    if CUSTOM_EMOJI_PATTERN.fullmatch(token):
        return True
    # Keycap emoji end in U+20E3, everything else carries at least one symbol codepoint.
    return any(unicodedata.category(char) == "So" or char == "\u20e3" for char in token)


def parse_poll_answers(answers: Sequence[str | None]) -> list[PollOption]:
    """Validate ``<emoji> <text>`` answers; the index in errors is the answer slot (1-based)."""
    filled = [(index, answer.strip()) for index, answer in enumerate(answers, start=1) if answer and answer.strip()]
    if not MIN_ANSWERS <= len(filled) <= MAX_ANSWERS:
        raise PollInputError("poll_err_answer_count", min=MIN_ANSWERS, max=MAX_ANSWERS)

    options: list[PollOption] = []
    seen: set[str] = set()
    for index, answer in filled:
        marker, _, label = answer.partition(" ")
        label = label.strip()
        if not label or not is_emoji_marker(marker):
            raise PollInputError("poll_err_format", index=index)
        if marker in seen:
            raise PollInputError("poll_err_duplicate", index=index)
        seen.add(marker)
        options.append(PollOption(marker=marker, label=label))
    if len(render_option_lines(options)) > FIELD_VALUE_LIMIT:
        raise PollInputError("poll_err_too_long", limit=FIELD_VALUE_LIMIT)
    return options


def render_option_lines(options: Iterable[PollOption]) -> str:
    return "\n".join(f"{option.marker} {option.label}" for option in options)


def parse_poll_duration(text: str) -> timedelta:
    match = POLL_DURATION_PATTERN.fullmatch((text or "").strip().lower())
    if match is None:
        raise PollInputError("poll_err_time")
    amount = int(match.group(1))
    if amount < 1:
        raise PollInputError("poll_err_time")
    return timedelta(**{_DURATION_UNITS[match.group(2)]: amount})


def compute_poll_end(now: datetime, duration: timedelta) -> datetime:
    return (now + duration).replace(second=0, microsecond=0)


def parse_option_lines(text: str) -> list[PollOption]:
    options: list[PollOption] = []
    for line in (text or "").splitlines():
        marker, _, label = line.strip().partition(" ")
        if marker:
            options.append(PollOption(marker=marker, label=label.strip()))
    return options


def tally_votes(
    options: Iterable[PollOption],
    raw_counts: Mapping[str, int],
    *,
    seed: int = REACTION_SEED,
) -> list[VoteTally]:
    """Subtract the seed reaction per option and sort by count, keeping option order on ties."""
    tallies = [
        VoteTally(marker=option.marker, label=option.label, count=max(0, int(raw_counts.get(option.marker, 0)) - seed))
        for option in options
    ]
    tallies.sort(key=lambda tally: tally.count, reverse=True)
    return tallies


def format_tally_lines(tallies: Iterable[VoteTally]) -> list[str]:
    return [f"{tally.marker} {tally.label} - {tally.count}" for tally in tallies]


class PollController:
    """Posts polls, closes them after their end time and caps votes per user."""

    def __init__(
        self,
        repo: InMemoryRepository,
        gateway: MessagingGateway,
        scheduler: Scheduler,
        *,
        persist: Callable[[], Awaitable[Any]] | None = None,
        clock: Callable[[], datetime] = utc_now,
        check_interval_seconds: float = 1.0,
        language: Language = "de",
    ) -> None:
        self.repo = repo
        self.gateway = gateway
        self.scheduler = scheduler
        self.language = language
        self._persist_cb = persist
        self._clock = clock
        self._interval = check_interval_seconds
        self._vote_locks: dict[tuple[int, int], asyncio.Lock] = {}

    async def _persist(self) -> None:
        if self._persist_cb is not None:
            await self._persist_cb()

    def start(self) -> PeriodicHandle:
        return self.scheduler.run_every(POLL_TASK_NAME, self._interval, self._tick)

    async def _tick(self) -> None:
        await self.close_expired_polls()

    async def create_poll(
        self,
        *,
        channel_id: int,
        guild_id: int | None,
        question: str,
        duration_text: str,
        answers: Sequence[str | None],
        max_votes: int | None = None,
        now: datetime | None = None,
    ) -> PollCreateResult:
        question = (question or "").strip()
        if not question:
            raise PollInputError("poll_err_question")
        options = parse_poll_answers(answers)
        duration = parse_poll_duration(duration_text)
        if max_votes is not None and max_votes < 1:
            raise PollInputError("poll_err_max_votes")

        end_at = compute_poll_end(now or self._clock(), duration)
        pairs = [(option.marker, option.label) for option in options]
        sent = await self.gateway.send_channel_message(
            channel_id,
            embed=poll_embed(
                question=question,
                options=pairs,
                end_at=end_at,
                max_votes=max_votes,
                language=self.language,
            ),
        )
        if sent is None:
            raise SourceUnavailable(channel_id, 0, "poll message could not be sent")

        self.repo.add_poll(
            message_id=sent.message_id,
            channel_id=channel_id,
            guild_id=guild_id,
            question=question,
            options=pairs,
            end_at=end_at,
            max_votes=max_votes,
        )
        await self._persist()

        for option in options:
            await self.gateway.add_reaction(sent, option.marker)

        log.info(
            "Poll created message_id=%s channel_id=%s options=%s end=%s max_votes=%s",
            sent.message_id,
            channel_id,
            len(options),
            end_at.isoformat(),
            max_votes,
        )
        return PollCreateResult(message_id=sent.message_id, end_at=end_at, options=options)

    async def close_expired_polls(self, *, now: datetime | None = None) -> list[PollCloseResult]:
        # Expired polls leave the store here, so an overlapping tick cannot see them again.
        expired = self.repo.pop_expired_polls(now or self._clock())
        if not expired:
            return []
        await self._persist()

        results: list[PollCloseResult] = []
        for item in expired:
            self._drop_vote_locks(item.poll.message_id)
            try:
                results.append(await self._close_poll(item))
            except Exception:
                log.exception("Closing poll message_id=%s failed", item.poll.message_id)
                results.append(
                    PollCloseResult(
                        message_id=item.poll.message_id,
                        channel_id=item.poll.channel_id,
                        posted=False,
                        reason="error",
                    )
                )
        return results

    def _poll_options(self, message: MessageSnapshot, item: ExpiredPoll) -> list[PollOption]:
        if item.options:
            return [PollOption(marker=row.marker, label=row.label) for row in item.options]
        # Rows without stored options only have the rendered embed left.
        value = message.field_value(get_string(self.language, "poll_field_answers"))
        if value is None and message.embed_fields:
            value = message.embed_fields[0][1]
        return parse_option_lines(value or "")

    async def _close_poll(self, item: ExpiredPoll) -> PollCloseResult:
        poll: PollRecord = item.poll
        try:
            message = await self.gateway.fetch_message(poll.channel_id, poll.message_id)
        except SourceUnavailable as exc:
            log.warning("Poll result dropped: %s", exc)
            return PollCloseResult(
                message_id=poll.message_id,
                channel_id=poll.channel_id,
                posted=False,
                reason="source_unavailable",
            )

        options = self._poll_options(message, item)
        raw_counts: dict[str, int] = {}
        for option in options:
            raw_counts[option.marker] = await self.gateway.fetch_reaction_count(message, option.marker)
        tallies = tally_votes(options, raw_counts)

        sent = await self.gateway.send_channel_message(
            poll.channel_id,
            embed=poll_results_embed(
                question=message.embed_description or poll.question,
                lines=format_tally_lines(tallies),
                language=self.language,
            ),
        )
        posted = sent is not None
        log.info(
            "Poll closed message_id=%s posted=%s result=%s",
            poll.message_id,
            posted,
            ", ".join(f"{tally.marker}={tally.count}" for tally in tallies),
        )
        return PollCloseResult(
            message_id=poll.message_id,
            channel_id=poll.channel_id,
            posted=posted,
            reason=None if posted else "send_failed",
            tallies=tallies,
        )

    async def enforce_vote_limit(
        self,
        *,
        channel_id: int,
        message_id: int,
        user_id: int,
        marker: str,
        is_bot: bool = False,
    ) -> bool:
        """Remove the triggering reaction when the user now exceeds the poll's vote cap.

        Checks for the same user on the same poll run one after another, so a burst of
        reactions is counted against what the previous check left behind.
        """
        if is_bot:
            return False
        poll = self.repo.get_poll(message_id)
        if poll is None or poll.max_votes is None:
            return False
        markers = [row.marker for row in self.repo.list_poll_options(message_id)]
        if marker not in markers:
            return False

        lock = self._vote_locks.setdefault((int(message_id), int(user_id)), asyncio.Lock())
        async with lock:
            try:
                message = await self.gateway.fetch_message(channel_id, message_id)
            except SourceUnavailable as exc:
                log.warning("Vote check skipped: %s", exc)
                return False

            votes = await self.gateway.count_user_reactions(message, user_id, markers)
            if votes <= poll.max_votes:
                return False

            removed = await self.gateway.remove_user_reaction(message, marker, user_id)
        log.info(
            "Vote cap reached on poll message_id=%s user_id=%s votes=%s max=%s removed=%s",
            message_id,
            user_id,
            votes,
            poll.max_votes,
            removed,
        )
        return removed

    def _drop_vote_locks(self, message_id: int) -> None:
        for key in [key for key in self._vote_locks if key[0] == message_id]:
            del self._vote_locks[key]
