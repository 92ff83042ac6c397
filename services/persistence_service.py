from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Sequence, TypeVar, cast

from sqlalchemy import bindparam, delete, insert, select, update

from bot.config import BotConfig
from db.models import DataStore, Poll, PollOption, WichtelParticipant
from db.repository import (
    DataStoreRecord,
    InMemoryRepository,
    PollOptionRecord,
    PollRecord,
    WichtelParticipantRecord,
)
from db.session import SessionManager


log = logging.getLogger("yippie.db")

_ChunkItem = TypeVar("_ChunkItem")


@dataclass(frozen=True)
class _TableSpec:
    name: str
    model: type[Any]
    pk_column: str


class RepositoryPersistence:
    """Loads the in-memory repository from PostgreSQL and writes back only the rows that changed."""

    _CHUNK_SIZE = 500
    _TABLE_SPECS: dict[str, _TableSpec] = {
        "participants": _TableSpec("participants", WichtelParticipant, "user_id"),
        "polls": _TableSpec("polls", Poll, "message_id"),
        "poll_options": _TableSpec("poll_options", PollOption, "id"),
        "data_store": _TableSpec("data_store", DataStore, "key"),
    }
    _INSERT_UPDATE_ORDER: tuple[str, ...] = ("participants", "polls", "poll_options", "data_store")
    _DELETE_ORDER: tuple[str, ...] = ("poll_options", "polls", "participants", "data_store")
    _TABLE_FIELDS: dict[str, tuple[str, ...]] = {
        "participants": ("user_id", "display_name", "platform_name", "platform_friend_code", "participates"),
        "polls": ("message_id", "channel_id", "guild_id", "question", "end_at", "max_votes"),
        "poll_options": ("id", "poll_message_id", "position", "marker", "label"),
        "data_store": ("key", "value"),
    }

    def __init__(self, config: BotConfig) -> None:
        self.session_manager = SessionManager(config)
        self._lock = asyncio.Lock()
        self._last_flush_rows: dict[str, dict[object, dict[str, object]]] | None = None

    @staticmethod
    def _table_rows_map(repo: InMemoryRepository, table_name: str) -> Mapping[Any, Any]:
        if table_name == "participants":
            return repo.participants
        if table_name == "polls":
            return repo.polls
        if table_name == "poll_options":
            return repo.poll_options
        if table_name == "data_store":
            return repo.data_store
        raise KeyError(f"Unsupported table name: {table_name}")

    def snapshot_rows(self, repo: InMemoryRepository) -> dict[str, dict[object, dict[str, object]]]:
        snapshot: dict[str, dict[object, dict[str, object]]] = {}
        for table_name, fields in self._TABLE_FIELDS.items():
            rows = self._table_rows_map(repo, table_name)
            snapshot[table_name] = {
                key: {field: getattr(row, field) for field in fields}
                for key, row in rows.items()
            }
        return snapshot

    @staticmethod
    def _iter_chunks(values: Sequence[_ChunkItem], chunk_size: int):
        for index in range(0, len(values), chunk_size):
            yield values[index : index + chunk_size]

    async def _apply_table_deletes(
        self,
        session: Any,
        spec: _TableSpec,
        previous_rows: dict[object, dict[str, object]],
        current_rows: dict[object, dict[str, object]],
    ) -> None:
        removed_keys = sorted(set(previous_rows) - set(current_rows), key=repr)
        pk_column = getattr(spec.model, spec.pk_column)
        for key_chunk in self._iter_chunks(removed_keys, self._CHUNK_SIZE):
            await session.execute(delete(spec.model).where(pk_column.in_(key_chunk)))

    async def _apply_table_upserts(
        self,
        session: Any,
        spec: _TableSpec,
        previous_rows: dict[object, dict[str, object]],
        current_rows: dict[object, dict[str, object]],
    ) -> None:
        previous_keys = set(previous_rows)
        current_keys = set(current_rows)

        updates_by_columns: dict[tuple[str, ...], list[dict[str, object]]] = defaultdict(list)
        for key in sorted(current_keys & previous_keys, key=repr):
            previous_row = previous_rows[key]
            values = {
                column: value
                for column, value in current_rows[key].items()
                if column != spec.pk_column and previous_row.get(column) != value
            }
            if not values:
                continue
            payload: dict[str, object] = {f"pk_{spec.pk_column}": key}
            payload.update(values)
            updates_by_columns[tuple(sorted(values))].append(payload)

        pk_clause = getattr(spec.model, spec.pk_column) == bindparam(f"pk_{spec.pk_column}")
        for change_group in sorted(updates_by_columns):
            statement = update(spec.model).where(pk_clause).values(
                **{column: bindparam(column) for column in change_group}
            )
            for payload_chunk in self._iter_chunks(updates_by_columns[change_group], self._CHUNK_SIZE):
                await session.execute(statement, payload_chunk)

        added_keys = sorted(current_keys - previous_keys, key=repr)
        for key_chunk in self._iter_chunks(added_keys, self._CHUNK_SIZE):
            await session.execute(insert(spec.model), [current_rows[key] for key in key_chunk])

    async def _fetch_table_rows(self, session: Any, table_name: str) -> list[dict[str, Any]]:
        spec = self._TABLE_SPECS[table_name]
        columns = [getattr(spec.model, column_name) for column_name in self._TABLE_FIELDS[table_name]]
        result = await session.execute(select(*columns))
        return cast(list[dict[str, Any]], result.mappings().all())

    async def load(self, repo: InMemoryRepository) -> None:
        async with self._lock:
            repo.reset()
            async with self.session_manager.session_scope() as session:
                participants = await self._fetch_table_rows(session, "participants")
                polls = await self._fetch_table_rows(session, "polls")
                options = await self._fetch_table_rows(session, "poll_options")
                data_rows = await self._fetch_table_rows(session, "data_store")

            for row in participants:
                repo.participants[int(row["user_id"])] = WichtelParticipantRecord(
                    user_id=int(row["user_id"]),
                    display_name=str(row["display_name"]),
                    platform_name=str(row["platform_name"] or ""),
                    platform_friend_code=str(row["platform_friend_code"] or ""),
                    participates=bool(row["participates"]),
                )

            for row in polls:
                repo.polls[int(row["message_id"])] = PollRecord(
                    message_id=int(row["message_id"]),
                    channel_id=int(row["channel_id"]),
                    guild_id=int(row["guild_id"]) if row["guild_id"] else None,
                    question=str(row["question"]),
                    end_at=row["end_at"],
                    max_votes=int(row["max_votes"]) if row["max_votes"] else None,
                )

            for row in options:
                repo.poll_options[int(row["id"])] = PollOptionRecord(
                    id=int(row["id"]),
                    poll_message_id=int(row["poll_message_id"]),
                    position=int(row["position"] or 0),
                    marker=str(row["marker"]),
                    label=str(row["label"]),
                )

            for row in data_rows:
                repo.data_store[str(row["key"])] = DataStoreRecord(key=str(row["key"]), value=str(row["value"]))

            repo.recalculate_counters()
            self._last_flush_rows = self.snapshot_rows(repo)
            log.info(
                "Loaded repository participants=%s polls=%s options=%s",
                len(repo.participants),
                len(repo.polls),
                len(repo.poll_options),
            )

    async def flush(self, repo: InMemoryRepository, *, tables: Iterable[str] | None = None) -> None:
        async with self._lock:
            previous_snapshot = self._last_flush_rows or {table_name: {} for table_name in self._TABLE_SPECS}
            current_snapshot = self.snapshot_rows(repo)
            candidate_tables = set(self._TABLE_SPECS) if tables is None else set(tables) & set(self._TABLE_SPECS)
            changed_tables = {
                table_name
                for table_name in candidate_tables
                if current_snapshot[table_name] != previous_snapshot.get(table_name, {})
            }
            if not changed_tables:
                if self._last_flush_rows is None and tables is None:
                    self._last_flush_rows = current_snapshot
                return

            snapshot = {table_name: previous_snapshot.get(table_name, {}) for table_name in self._TABLE_SPECS}
            snapshot.update({table_name: current_snapshot[table_name] for table_name in changed_tables})

            async with self.session_manager.session_scope() as session:
                for table_name in self._DELETE_ORDER:
                    if table_name in changed_tables:
                        await self._apply_table_deletes(
                            session,
                            self._TABLE_SPECS[table_name],
                            previous_snapshot.get(table_name, {}),
                            snapshot[table_name],
                        )
                for table_name in self._INSERT_UPDATE_ORDER:
                    if table_name in changed_tables:
                        await self._apply_table_upserts(
                            session,
                            self._TABLE_SPECS[table_name],
                            previous_snapshot.get(table_name, {}),
                            snapshot[table_name],
                        )
            self._last_flush_rows = snapshot
