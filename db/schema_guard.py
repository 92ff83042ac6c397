from __future__ import annotations

from typing import Any, Iterable

from sqlalchemy import Table, text
from sqlalchemy.dialects import postgresql
from sqlalchemy.ext.asyncio import AsyncConnection

from db.models import Base, mapped_public_table_names


CRITICAL_INDEX_DDLS = (
    "CREATE UNIQUE INDEX IF NOT EXISTS uq_poll_options_poll_marker ON public.poll_options (poll_message_id, marker)",
    "CREATE INDEX IF NOT EXISTS ix_polls_end_at ON public.polls (end_at)",
    "CREATE INDEX IF NOT EXISTS ix_wichtel_participants_participates ON public.wichtel_participants (participates)",
)


async def fetch_public_tables(connection: AsyncConnection) -> set[str]:
    result = await connection.execute(
        text("SELECT table_name FROM information_schema.tables WHERE table_schema = 'public'")
    )
    return set(result.scalars().all())


async def fetch_public_columns(connection: AsyncConnection) -> dict[str, set[str]]:
    result = await connection.execute(
        text(
            """
            SELECT table_name, column_name
            FROM information_schema.columns
            WHERE table_schema = 'public'
            """
        )
    )
    columns_by_table: dict[str, set[str]] = {}
    for table_name, column_name in result.fetchall():
        columns_by_table.setdefault(table_name, set()).add(column_name)
    return columns_by_table


def _model_table_map() -> dict[str, Table]:
    return {table.name: table for table in Base.metadata.sorted_tables}


def _resolve_required_tables(required_tables: Iterable[str] | None) -> list[str]:
    required = list(mapped_public_table_names()) if required_tables is None else list(required_tables)
    mapped = _model_table_map()
    unknown = sorted(table for table in required if table not in mapped)
    if unknown:
        raise RuntimeError(f"Schema guard references unmapped tables: {', '.join(unknown)}")
    return required


def _column_default_sql(column: Any) -> str | None:
    if column.server_default is not None and column.server_default.arg is not None:
        arg = column.server_default.arg
        if hasattr(arg, "compile"):
            return str(arg.compile(dialect=postgresql.dialect(), compile_kwargs={"literal_binds": True}))
        return str(arg)

    default = column.default
    if default is None or not getattr(default, "is_scalar", False):
        return None
    value = default.arg
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    return "'" + str(value).replace("'", "''") + "'"


def build_add_column_sql(table_name: str, column: Any) -> str:
    type_sql = column.type.compile(dialect=postgresql.dialect())
    default_sql = _column_default_sql(column)

    default_clause = f" DEFAULT {default_sql}" if default_sql is not None else ""
    # NOT NULL without a default would fail for existing rows.
    not_null_clause = " NOT NULL" if (not column.nullable and default_sql is not None) else ""

    return (
        f'ALTER TABLE public."{table_name}" '
        f'ADD COLUMN IF NOT EXISTS "{column.name}" {type_sql}{default_clause}{not_null_clause}'
    )


async def ensure_required_schema(
    connection: AsyncConnection,
    required_tables: Iterable[str] | None = None,
) -> list[str]:
    required_list = _resolve_required_tables(required_tables)
    table_map = _model_table_map()
    changes: list[str] = []

    existing_tables = await fetch_public_tables(connection)
    missing_tables = [table for table in required_list if table not in existing_tables]
    if missing_tables:
        create_tables = [table_map[name] for name in missing_tables]

        def _sync_create(sync_connection):
            Base.metadata.create_all(sync_connection, tables=create_tables, checkfirst=True)

        await connection.run_sync(_sync_create)
        changes.extend(f"create_table:{name}" for name in missing_tables)

    existing_columns = await fetch_public_columns(connection)
    for table_name in required_list:
        known_columns = existing_columns.get(table_name, set())
        for column in table_map[table_name].columns:
            if column.name in known_columns:
                continue
            await connection.execute(text(build_add_column_sql(table_name, column)))
            changes.append(f"add_column:{table_name}.{column.name}")

    for ddl in CRITICAL_INDEX_DDLS:
        await connection.execute(text(ddl))

    return changes


async def validate_required_tables(connection: AsyncConnection, required_tables: Iterable[str] | None = None) -> None:
    required_list = _resolve_required_tables(required_tables)

    existing = await fetch_public_tables(connection)
    missing = sorted(table for table in required_list if table not in existing)
    if missing:
        raise RuntimeError(f"Missing required DB tables: {', '.join(missing)}")

    table_map = _model_table_map()
    existing_columns = await fetch_public_columns(connection)
    missing_columns: list[str] = []
    for table_name in required_list:
        expected = {column.name for column in table_map[table_name].columns}
        missing_for_table = sorted(expected - existing_columns.get(table_name, set()))
        if missing_for_table:
            missing_columns.append(f"{table_name}({', '.join(missing_for_table)})")

    if missing_columns:
        raise RuntimeError(f"Missing required DB columns: {'; '.join(missing_columns)}")
