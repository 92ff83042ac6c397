from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Tuple


WICHTEL_STATE_KEY = "wichtel"
ROLE_MESSAGE_KEY = "role_message"


@dataclass(slots=True)
class WichtelParticipantRecord:
    user_id: int
    display_name: str
    platform_name: str = "TBD"
    platform_friend_code: str = ""
    participates: bool = True


@dataclass(slots=True)
class PollRecord:
    message_id: int
    channel_id: int
    guild_id: int | None
    question: str
    end_at: datetime
    max_votes: int | None = None


@dataclass(slots=True)
class PollOptionRecord:
    id: int
    poll_message_id: int
    position: int
    marker: str
    label: str


@dataclass(slots=True)
class DataStoreRecord:
    key: str
    value: str


@dataclass(slots=True)
class WichtelState:
    end_text: str | None = None
    event_label: str | None = None
    channel_id: int | None = None
    message_id: int | None = None

    @property
    def active(self) -> bool:
        return self.end_text is not None


@dataclass(slots=True)
class RoleMessage:
    channel_id: int
    message_id: int


@dataclass(slots=True)
class ExpiredPoll:
    poll: PollRecord
    options: list[PollOptionRecord] = field(default_factory=list)


class InMemoryRepository:
    def __init__(self) -> None:
        self.participants: Dict[int, WichtelParticipantRecord] = {}
        self.polls: Dict[int, PollRecord] = {}
        self.poll_options: Dict[int, PollOptionRecord] = {}
        self.data_store: Dict[str, DataStoreRecord] = {}

        self._option_id = 1

    def reset(self) -> None:
        self.participants.clear()
        self.polls.clear()
        self.poll_options.clear()
        self.data_store.clear()

        self._option_id = 1

    def recalculate_counters(self) -> None:
        self._option_id = (max(self.poll_options.keys()) + 1) if self.poll_options else 1

    # Wichteln participants

    def participant_joined(
        self,
        *,
        user_id: int,
        display_name: str,
        platform_name: str,
        platform_friend_code: str,
    ) -> WichtelParticipantRecord:
        row = self.participants.get(int(user_id))
        if row is None:
            row = WichtelParticipantRecord(
                user_id=int(user_id),
                display_name=display_name,
                platform_name=platform_name,
                platform_friend_code=platform_friend_code,
            )
            self.participants[row.user_id] = row
            return row
        if not row.participates:
            # Name is fixed per round; a fresh signup after a reset may refresh it.
            row.display_name = display_name
        row.platform_name = platform_name
        row.platform_friend_code = platform_friend_code
        row.participates = True
        return row

    def get_participant(self, user_id: int) -> WichtelParticipantRecord | None:
        return self.participants.get(int(user_id))

    def list_participants(self) -> List[WichtelParticipantRecord]:
        return [row for row in self.participants.values() if row.participates]

    def reset_participants(self) -> int:
        count = 0
        for row in self.participants.values():
            if row.participates:
                row.participates = False
                count += 1
        return count

    # Wichteln state

    def get_wichtel_state(self) -> WichtelState:
        row = self.data_store.get(WICHTEL_STATE_KEY)
        if row is None:
            return WichtelState()
        try:
            payload = json.loads(row.value)
        except ValueError:
            return WichtelState()
        if not isinstance(payload, dict):
            return WichtelState()

        end_text = payload.get("end")
        channel_id = payload.get("channel_id")
        message_id = payload.get("message_id")
        return WichtelState(
            end_text=str(end_text) if end_text not in (None, "") else None,
            event_label=payload.get("event") or None,
            channel_id=int(channel_id) if channel_id else None,
            message_id=int(message_id) if message_id else None,
        )

    @property
    def wichtel_end_text(self) -> str | None:
        return self.get_wichtel_state().end_text

    def set_wichtel_state(self, state: WichtelState) -> None:
        payload = {
            "end": state.end_text,
            "event": state.event_label,
            "channel_id": state.channel_id,
            "message_id": state.message_id,
        }
        self.data_store[WICHTEL_STATE_KEY] = DataStoreRecord(
            key=WICHTEL_STATE_KEY,
            value=json.dumps(payload, sort_keys=True),
        )

    def set_wichtel_message_id(self, message_id: int | None) -> None:
        state = self.get_wichtel_state()
        state.message_id = message_id
        self.set_wichtel_state(state)

    def reset_wichtel_state(self) -> None:
        self.data_store.pop(WICHTEL_STATE_KEY, None)

    def claim_wichtel_round(self) -> WichtelState | None:
        """Return the active round and clear it in the same step, or None when idle."""
        state = self.get_wichtel_state()
        self.reset_wichtel_state()
        if not state.active:
            return None
        return state

    # Polls

    def add_poll(
        self,
        *,
        message_id: int,
        channel_id: int,
        guild_id: int | None,
        question: str,
        options: Iterable[Tuple[str, str]],
        end_at: datetime,
        max_votes: int | None,
    ) -> PollRecord:
        row = PollRecord(
            message_id=int(message_id),
            channel_id=int(channel_id),
            guild_id=int(guild_id) if guild_id is not None else None,
            question=question,
            end_at=end_at,
            max_votes=max_votes,
        )
        self.delete_poll_cascade(row.message_id)
        self.polls[row.message_id] = row
        for position, (marker, label) in enumerate(options):
            self.poll_options[self._option_id] = PollOptionRecord(
                id=self._option_id,
                poll_message_id=row.message_id,
                position=position,
                marker=marker,
                label=label,
            )
            self._option_id += 1
        return row

    def get_poll(self, message_id: int) -> PollRecord | None:
        return self.polls.get(int(message_id))

    def list_polls(self) -> List[PollRecord]:
        rows = list(self.polls.values())
        rows.sort(key=lambda row: row.end_at)
        return rows

    def list_poll_options(self, message_id: int) -> List[PollOptionRecord]:
        rows = [row for row in self.poll_options.values() if row.poll_message_id == int(message_id)]
        rows.sort(key=lambda row: row.position)
        return rows

    def delete_poll_cascade(self, message_id: int) -> None:
        message_id = int(message_id)
        self.polls.pop(message_id, None)
        if self.poll_options:
            self.poll_options = {
                key: row for key, row in self.poll_options.items() if row.poll_message_id != message_id
            }

    def pop_expired_polls(self, now: datetime) -> List[ExpiredPoll]:
        expired = [row for row in self.list_polls() if row.end_at <= now]
        out: List[ExpiredPoll] = []
        for row in expired:
            out.append(ExpiredPoll(poll=row, options=self.list_poll_options(row.message_id)))
            self.delete_poll_cascade(row.message_id)
        return out

    # Reaction roles

    def get_role_message(self) -> RoleMessage | None:
        row = self.data_store.get(ROLE_MESSAGE_KEY)
        if row is None:
            return None
        try:
            payload = json.loads(row.value)
            return RoleMessage(channel_id=int(payload["channel_id"]), message_id=int(payload["message_id"]))
        except (ValueError, TypeError, KeyError):
            return None

    def set_role_message(self, *, channel_id: int, message_id: int) -> RoleMessage:
        row = RoleMessage(channel_id=int(channel_id), message_id=int(message_id))
        self.data_store[ROLE_MESSAGE_KEY] = DataStoreRecord(
            key=ROLE_MESSAGE_KEY,
            value=json.dumps({"channel_id": row.channel_id, "message_id": row.message_id}, sort_keys=True),
        )
        return row
