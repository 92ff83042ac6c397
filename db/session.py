from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from datetime import date, datetime, time as datetime_time
from typing import AsyncIterator

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from bot.config import BotConfig


log = logging.getLogger("yippie.db")

SINGLETON_LOCK_KEY = 51061224
MAX_REDACTED_ITEMS = 20
_SCALAR_PLACEHOLDERS: tuple[tuple[type, str], ...] = (
    (bool, "<bool>"),
    (int, "<int>"),
    (float, "<float>"),
    (datetime, "<datetime>"),
    (date, "<date>"),
    (datetime_time, "<time>"),
)


def redact_sql_value(value: object, *, _depth: int = 0) -> object:
    """Replace bound SQL parameters by type placeholders so user input never reaches the log."""
    if value is None:
        return None
    if _depth >= 4:
        return "<max-depth>"

    if isinstance(value, dict):
        out: dict[str, object] = {}
        for index, (key, item) in enumerate(value.items()):
            if index >= MAX_REDACTED_ITEMS:
                out["..."] = f"+{len(value) - MAX_REDACTED_ITEMS} more"
                break
            out[str(key)] = redact_sql_value(item, _depth=_depth + 1)
        return out

    if isinstance(value, (list, tuple, set, frozenset)):
        items = list(value)
        redacted = [redact_sql_value(item, _depth=_depth + 1) for item in items[:MAX_REDACTED_ITEMS]]
        if len(items) > MAX_REDACTED_ITEMS:
            redacted.append(f"... +{len(items) - MAX_REDACTED_ITEMS} more")
        return tuple(redacted) if isinstance(value, tuple) else redacted

    if isinstance(value, (str, bytes, bytearray, memoryview)):
        return "<redacted>"
    for kind, placeholder in _SCALAR_PLACEHOLDERS:
        if isinstance(value, kind):
            return placeholder
    return f"<{value.__class__.__name__}>"


class SessionManager:
    def __init__(self, config: BotConfig):
        self._engine = create_async_engine(
            config.database_url,
            echo=config.db_echo,
            pool_pre_ping=True,
        )
        self._session_factory = async_sessionmaker(self._engine, expire_on_commit=False)
        self._install_sql_logging()

    @property
    def engine(self):
        return self._engine

    def _install_sql_logging(self) -> None:
        @event.listens_for(self._engine.sync_engine, "before_cursor_execute")
        def before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
            if not log.isEnabledFor(logging.DEBUG):
                return
            context._query_started_at = time.perf_counter()
            log.debug("[to-db] SQL=%s params=%s", statement, redact_sql_value(parameters))

        @event.listens_for(self._engine.sync_engine, "after_cursor_execute")
        def after_cursor_execute(conn, cursor, statement, parameters, context, executemany):
            if not log.isEnabledFor(logging.DEBUG):
                return
            started_at = getattr(context, "_query_started_at", None)
            if isinstance(started_at, float):
                log.debug("[from-db] rows=%s took=%.2fms", cursor.rowcount, (time.perf_counter() - started_at) * 1000)
            else:
                log.debug("[from-db] rows=%s", cursor.rowcount)

        @event.listens_for(self._engine.sync_engine, "handle_error")
        def on_sqlalchemy_error(exception_context):
            log.error("[from-db] query failed", exc_info=exception_context.original_exception)

    @asynccontextmanager
    async def session_scope(self) -> AsyncIterator[AsyncSession]:
        session = self._session_factory()
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    async def try_acquire_singleton_lock(self) -> bool:
        async with self._engine.begin() as conn:
            result = await conn.execute(text("SELECT pg_try_advisory_lock(:key)"), {"key": SINGLETON_LOCK_KEY})
            return bool(result.scalar())

    async def dispose(self) -> None:
        await self._engine.dispose()
