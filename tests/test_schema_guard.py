from __future__ import annotations

import pytest

from db.models import Base, REQUIRED_BOOT_TABLES, WichtelParticipant
from db.schema_guard import build_add_column_sql, ensure_required_schema, validate_required_tables


class DummyConnection:
    def __init__(self) -> None:
        self.ddl: list[str] = []
        self.run_sync_calls = 0

    async def execute(self, clause):
        self.ddl.append(str(clause))
        return None

    async def run_sync(self, fn):
        self.run_sync_calls += 1
        return None


def test_required_boot_tables_cover_all_mapped_tables():
    assert set(REQUIRED_BOOT_TABLES) == set(Base.metadata.tables.keys())
    assert {"wichtel_participants", "polls", "poll_options", "data_store"} <= set(REQUIRED_BOOT_TABLES)


def test_add_column_sql_keeps_not_null_only_with_default():
    participates = WichtelParticipant.__table__.c.participates
    display_name = WichtelParticipant.__table__.c.display_name

    assert build_add_column_sql("wichtel_participants", participates).endswith(
        '"participates" BOOLEAN DEFAULT false NOT NULL'
    )
    assert build_add_column_sql("wichtel_participants", display_name).endswith('"display_name" TEXT')


@pytest.mark.asyncio
async def test_ensure_schema_creates_missing_tables_and_columns(monkeypatch):
    async def fake_tables(_connection):
        return {"wichtel_participants"}

    async def fake_columns(_connection):
        return {"wichtel_participants": {"user_id", "display_name"}}

    monkeypatch.setattr("db.schema_guard.fetch_public_tables", fake_tables)
    monkeypatch.setattr("db.schema_guard.fetch_public_columns", fake_columns)
    connection = DummyConnection()

    changes = await ensure_required_schema(connection)

    assert connection.run_sync_calls == 1
    assert "create_table:polls" in changes
    assert "add_column:wichtel_participants.platform_friend_code" in changes
    assert "create_table:wichtel_participants" not in changes
    assert any("uq_poll_options_poll_marker" in ddl for ddl in connection.ddl)


@pytest.mark.asyncio
async def test_validate_required_tables_detects_missing_table(monkeypatch):
    async def fake_tables(_connection):
        return {"polls"}

    monkeypatch.setattr("db.schema_guard.fetch_public_tables", fake_tables)

    with pytest.raises(RuntimeError, match="Missing required DB tables"):
        await validate_required_tables(connection=None)


@pytest.mark.asyncio
async def test_validate_required_tables_detects_missing_columns(monkeypatch):
    async def fake_tables(_connection):
        return set(REQUIRED_BOOT_TABLES)

    async def fake_columns(_connection):
        return {table: {column.name for column in Base.metadata.tables[table].columns} for table in REQUIRED_BOOT_TABLES}

    monkeypatch.setattr("db.schema_guard.fetch_public_tables", fake_tables)
    monkeypatch.setattr("db.schema_guard.fetch_public_columns", fake_columns)
    await validate_required_tables(connection=None)

    async def fake_columns_missing(_connection):
        columns = await fake_columns(_connection)
        columns["polls"].discard("max_votes")
        return columns

    monkeypatch.setattr("db.schema_guard.fetch_public_columns", fake_columns_missing)
    with pytest.raises(RuntimeError, match=r"polls\(max_votes\)"):
        await validate_required_tables(connection=None)
