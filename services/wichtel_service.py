from __future__ import annotations

import logging
import random
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable

from bot.config import DEFAULT_MATCH_MAX_ATTEMPTS, BotConfig
from db.repository import InMemoryRepository, WichtelParticipantRecord, WichtelState
from gateway.embeds import wichtel_announcement_embed, wichtel_match_embed
from gateway.messaging import MessagingGateway
from gateway.task_registry import Scheduler
from services.errors import InvalidScheduleState, NotificationFailure, SourceUnavailable, WichtelInputError
from services.matching_service import match_participants
from utils.localization import Language, get_string, normalize_language
from utils.text import clip
from utils.time_utils import end_of_day_after, parse_utc_iso, resolve_zone, utc_now


log = logging.getLogger("yippie.wichteln")

EVENT_DATE_PATTERN = re.compile(r"[0-3][0-9]\.[0-1][0-9]\.[0-9]{4}, [0-2][0-9]:[0-5][0-9]")
EVENT_DATE_FORMAT = "%d.%m.%Y, %H:%M"
EXPIRY_TASK_NAME = "wichtel_expiry"
TEST_MODE_SIGNUP = timedelta(minutes=2)
MESSAGE_LIMIT = 2000


@dataclass(slots=True)
class WichtelSettings:
    channel_id: int
    timezone_name: str = "Europe/Berlin"
    test_mode: bool = False
    check_interval_seconds: float = 1.0
    match_max_attempts: int = DEFAULT_MATCH_MAX_ATTEMPTS
    language: Language = "de"

    @classmethod
    def from_config(cls, config: BotConfig) -> WichtelSettings:
        return cls(
            channel_id=int(config.wichtel_channel_id),
            timezone_name=config.timezone_name,
            test_mode=bool(config.wichtel_test_mode),
            check_interval_seconds=float(config.wichtel_check_interval_seconds),
            match_max_attempts=int(config.wichtel_match_max_attempts),
            language=normalize_language(config.language),
        )


@dataclass(slots=True)
class WichtelStartResult:
    end_at: datetime
    event_label: str
    message_id: int
    reset_participants: int


@dataclass(slots=True)
class WichtelEndResult:
    status: str
    participants: int = 0
    notified: int = 0
    failures: list[NotificationFailure] = field(default_factory=list)


def parse_event_date(text: str) -> datetime:
    raw = (text or "").strip()
    if not EVENT_DATE_PATTERN.fullmatch(raw):
        raise WichtelInputError("wichtel_bad_date")
    try:
        return datetime.strptime(raw, EVENT_DATE_FORMAT)
    except ValueError as exc:
        raise WichtelInputError("wichtel_bad_date") from exc


def format_event_label(event: datetime, language: Language = "de") -> str:
    return get_string(
        language,
        "wichtel_event_label",
        date=event.strftime("%d.%m.%Y"),
        time=event.strftime("%H:%M"),
    )


def build_summary_text(
    participants: list[WichtelParticipantRecord],
    event_label: str,
    language: Language = "de",
) -> str:
    lines = [
        get_string(
            language,
            "wichtel_summary_line",
            user_id=row.user_id,
            friend_code=row.platform_friend_code or "-",
        )
        for row in participants
    ]
    text = get_string(
        language,
        "wichtel_summary",
        event=event_label,
        checklist=get_string(language, "wichtel_checklist"),
        participants="\n".join(lines),
    )
    return clip(text.rstrip(), MESSAGE_LIMIT)


class WichtelController:
    """Drives one Wichteln round at a time: signup window, expiry polling, matching and notification."""

    def __init__(
        self,
        repo: InMemoryRepository,
        gateway: MessagingGateway,
        scheduler: Scheduler,
        *,
        settings: WichtelSettings,
        persist: Callable[[], Awaitable[Any]] | None = None,
        clock: Callable[[], datetime] = utc_now,
        rng: random.Random | None = None,
        view_factory: Callable[[], Any] | None = None,
    ) -> None:
        self.repo = repo
        self.gateway = gateway
        self.scheduler = scheduler
        self.settings = settings
        self._persist_cb = persist
        self._clock = clock
        self._rng = rng
        self._view_factory = view_factory
        self._zone = resolve_zone(settings.timezone_name)

    @property
    def language(self) -> Language:
        return self.settings.language

    @property
    def active(self) -> bool:
        return self.repo.get_wichtel_state().active

    @property
    def polling(self) -> bool:
        return self.scheduler.is_running(EXPIRY_TASK_NAME)

    def local_time(self, value: datetime) -> datetime:
        return value.astimezone(self._zone)

    def participants(self) -> list[WichtelParticipantRecord]:
        return self.repo.list_participants()

    async def _persist(self) -> None:
        if self._persist_cb is not None:
            await self._persist_cb()

    def _start_expiry_checks(self) -> None:
        self.scheduler.run_every(EXPIRY_TASK_NAME, self.settings.check_interval_seconds, self._tick)

    def _stop_expiry_checks(self) -> None:
        self.scheduler.cancel(EXPIRY_TASK_NAME)

    async def _tick(self) -> None:
        await self.check_expiry()

    def compute_end(self, now: datetime, signup_days: int) -> datetime:
        if self.settings.test_mode:
            return now + TEST_MODE_SIGNUP
        return end_of_day_after(now, signup_days, self._zone)

    async def start_round(
        self,
        event_date_text: str,
        signup_days: int,
        *,
        now: datetime | None = None,
    ) -> WichtelStartResult:
        event = parse_event_date(event_date_text)
        if signup_days < 1 and not self.settings.test_mode:
            raise WichtelInputError("wichtel_bad_days")
        if self.active:
            raise InvalidScheduleState("A Wichteln round is already open")

        now = now or self._clock()
        end_at = self.compute_end(now, signup_days)
        event_label = format_event_label(event, self.language)
        reset_count = self.repo.reset_participants()
        state = WichtelState(
            end_text=end_at.isoformat(),
            event_label=event_label,
            channel_id=self.settings.channel_id,
        )
        self.repo.set_wichtel_state(state)

        view = self._view_factory() if self._view_factory is not None else None
        sent = await self.gateway.send_channel_message(
            self.settings.channel_id,
            embed=wichtel_announcement_embed(
                event_label=event_label,
                end_local=self.local_time(end_at),
                language=self.language,
            ),
            view=view,
        )
        if sent is None:
            if self.repo.get_wichtel_state().end_text == state.end_text:
                self.repo.reset_wichtel_state()
            await self._persist()
            raise SourceUnavailable(self.settings.channel_id, 0, "announcement could not be sent")

        if self.repo.get_wichtel_state().end_text == state.end_text:
            self.repo.set_wichtel_message_id(sent.message_id)
        await self._persist()
        self._start_expiry_checks()
        log.info(
            "Wichteln started event=%s end=%s reset_participants=%s test_mode=%s",
            event_label,
            end_at.isoformat(),
            reset_count,
            self.settings.test_mode,
        )
        return WichtelStartResult(
            end_at=end_at,
            event_label=event_label,
            message_id=sent.message_id,
            reset_participants=reset_count,
        )

    async def join(
        self,
        *,
        user_id: int,
        display_name: str,
        platform_name: str,
        platform_friend_code: str,
    ) -> WichtelParticipantRecord:
        if not self.active:
            raise WichtelInputError("wichtel_join_closed")
        row = self.repo.participant_joined(
            user_id=user_id,
            display_name=display_name,
            platform_name=platform_name.strip(),
            platform_friend_code=platform_friend_code.strip(),
        )
        await self._persist()
        log.info("Wichteln signup user_id=%s name=%s", row.user_id, row.display_name)
        return row

    async def check_expiry(self, *, now: datetime | None = None) -> WichtelEndResult | None:
        state = self.repo.get_wichtel_state()
        if not state.active:
            log.warning("No Wichteln end time stored, expiry checks stopped")
            await self._reset_invalid(state, announce=False)
            return WichtelEndResult(status="invalid_state")

        try:
            end_at = parse_utc_iso(state.end_text or "")
        except ValueError:
            log.warning("Malformed Wichteln end time %r, round reset without matching", state.end_text)
            await self._reset_invalid(state, announce=True)
            return WichtelEndResult(status="invalid_state")

        now = now or self._clock()
        if now < end_at:
            return None
        log.info("Wichteln signup window elapsed at %s", end_at.isoformat())
        return await self.end_round(reason="expired")

    async def _reset_invalid(self, state: WichtelState, *, announce: bool) -> None:
        self._stop_expiry_checks()
        self.repo.reset_wichtel_state()
        self.repo.reset_participants()
        await self._persist()
        channel_id = state.channel_id or self.settings.channel_id
        if state.message_id and channel_id:
            await self.gateway.delete_message(channel_id, state.message_id)
        if announce and channel_id:
            await self.gateway.send_channel_message(
                channel_id,
                content=get_string(self.language, "wichtel_invalid_state"),
            )

    async def end_round(self, *, reason: str = "manual") -> WichtelEndResult:
        # Claiming clears the end marker before any await so a racing trigger sees no active round.
        state = self.repo.claim_wichtel_round()
        if state is None:
            log.info("Wichteln end requested (%s) but no round is active", reason)
            return WichtelEndResult(status="not_running")

        self._stop_expiry_checks()
        participants = self.repo.list_participants()
        self.repo.reset_participants()
        await self._persist()

        log.info("Ending Wichteln reason=%s participants=%s", reason, len(participants))
        channel_id = state.channel_id or self.settings.channel_id
        event_label = state.event_label or "-"
        await self._remove_announcement(channel_id, state.message_id)

        if len(participants) < 2:
            log.info("Not enough participants for Wichteln (%s)", len(participants))
            await self.gateway.send_channel_message(channel_id, content=get_string(self.language, "wichtel_not_enough"))
            return WichtelEndResult(status="not_enough_participants", participants=len(participants))

        result = match_participants(
            participants,
            rng=self._rng,
            max_attempts=self.settings.match_max_attempts,
        )
        if not result.success:
            log.error("Wichteln matching failed reason=%s attempts=%s", result.reason, result.attempts)
            await self.gateway.send_channel_message(channel_id, content=get_string(self.language, "wichtel_not_enough"))
            return WichtelEndResult(status="matching_failed", participants=len(participants))

        notified = 0
        failures: list[NotificationFailure] = []
        for pair in result.pairs:
            giver, receiver = pair.giver, pair.receiver
            log.info("Sending %s their partner %s", giver.display_name, receiver.display_name)
            embed = wichtel_match_embed(
                receiver_id=receiver.user_id,
                display_name=receiver.display_name,
                platform_name=receiver.platform_name,
                friend_code=receiver.platform_friend_code,
                event_label=event_label,
                language=self.language,
            )
            try:
                delivered = await self.gateway.send_direct_message(giver.user_id, embed=embed)
            except NotificationFailure as exc:
                failure = exc
            else:
                if delivered:
                    notified += 1
                    continue
                failure = NotificationFailure(giver.user_id, "direct message rejected")
            log.warning("%s", failure)
            failures.append(failure)

        await self.gateway.send_channel_message(
            channel_id,
            content=build_summary_text(participants, event_label, self.language),
        )
        log.info(
            "Wichteln ended pairs=%s notified=%s failed=%s",
            len(result.pairs),
            notified,
            len(failures),
        )
        return WichtelEndResult(
            status="matched",
            participants=len(participants),
            notified=notified,
            failures=failures,
        )

    async def _remove_announcement(self, channel_id: int, message_id: int | None) -> None:
        if not message_id or not channel_id:
            return
        if await self.gateway.delete_message(channel_id, message_id):
            log.info("Deleted Wichteln announcement message_id=%s", message_id)
            return
        # Without delete permission at least take the buttons away.
        await self.gateway.edit_message(channel_id, message_id, view=None)

    def resume(self) -> bool:
        if not self.active:
            return False
        self._start_expiry_checks()
        log.info("Resumed Wichteln expiry checks (end=%s)", self.repo.wichtel_end_text)
        return True
