from __future__ import annotations

import json
import sqlite3
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path
from time import monotonic

import aiosqlite
from loguru import logger

from servertrack.errors import PersistenceError
from servertrack.models import HistorySample, ServerRecord

BATCH_SIZE = 500
SLOW_QUERY_SECONDS = 0.5

_SERVER_COLUMNS = (
    "game_id, name, description, max_players, player_count, players, "
    "game_time_elapsed, has_password, tags, mod_count, game_version, "
    "build_version, host_address, headless, cached_at"
)


def _to_text(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat(timespec="microseconds")


def _from_text(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _server_row(record: ServerRecord) -> tuple:
    return (
        record.game_id,
        record.name,
        record.description,
        record.max_players,
        record.player_count,
        json.dumps(list(record.players)),
        record.game_time_elapsed,
        int(record.has_password),
        json.dumps(list(record.tags)),
        record.mod_count,
        record.game_version,
        record.build_version,
        record.host_address,
        int(record.headless),
        _to_text(record.cached_at),
    )


def _record_from_row(row: Sequence) -> ServerRecord:
    return ServerRecord(
        game_id=int(row[0]),
        name=row[1],
        description=row[2],
        max_players=int(row[3]),
        player_count=int(row[4]),
        players=tuple(json.loads(row[5])),
        game_time_elapsed=int(row[6]),
        has_password=bool(row[7]),
        tags=tuple(json.loads(row[8])),
        mod_count=int(row[9]),
        game_version=row[10],
        build_version=int(row[11]),
        host_address=row[12],
        headless=bool(row[13]),
        cached_at=_from_text(row[14]),
    )


@contextmanager
def _timed(operation: str, size: int) -> Iterator[None]:
    started = monotonic()
    try:
        yield
    finally:
        elapsed = monotonic() - started
        if elapsed > SLOW_QUERY_SECONDS:
            logger.warning("[DB SLOW] {} took {:.3f}s for {} rows", operation, elapsed, size)


class ServerRepository:
    def __init__(
        self,
        db_path: Path,
        samples_per_hour: int = 60,
        batch_size: int = BATCH_SIZE,
    ) -> None:
        self._db_path = db_path
        self.samples_per_hour = samples_per_hour
        self.batch_size = batch_size

    async def init(self) -> None:
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(self._db_path) as db:
            await db.executescript(
                """
                CREATE TABLE IF NOT EXISTS servers (
                    game_id INTEGER NOT NULL UNIQUE,
                    name TEXT NOT NULL,
                    description TEXT NOT NULL DEFAULT '',
                    max_players INTEGER NOT NULL,
                    player_count INTEGER NOT NULL,
                    players TEXT NOT NULL DEFAULT '[]',
                    game_time_elapsed INTEGER NOT NULL,
                    has_password INTEGER NOT NULL,
                    tags TEXT NOT NULL DEFAULT '[]',
                    mod_count INTEGER NOT NULL DEFAULT 0,
                    game_version TEXT NOT NULL,
                    build_version INTEGER NOT NULL,
                    host_address TEXT,
                    headless INTEGER NOT NULL DEFAULT 0,
                    cached_at TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_servers_player_count
                ON servers(player_count);

                CREATE TABLE IF NOT EXISTS server_history (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    game_id INTEGER NOT NULL,
                    player_count INTEGER NOT NULL,
                    recorded_at TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_history_game_time
                ON server_history(game_id, recorded_at);

                CREATE INDEX IF NOT EXISTS idx_history_time
                ON server_history(recorded_at);
                """
            )
            await db.commit()

    async def replace_all(self, records: Sequence[ServerRecord]) -> int:
        """Swap the whole server set in one transaction.

        Either every row of ``records`` becomes visible or the previous set
        stays untouched.
        """
        rows = [_server_row(r) for r in records]
        with _timed("replace_all", len(rows)):
            try:
                async with aiosqlite.connect(self._db_path) as db:
                    try:
                        await db.execute("BEGIN")
                        await db.execute("DELETE FROM servers")
                        for start in range(0, len(rows), self.batch_size):
                            await db.executemany(
                                f"INSERT INTO servers ({_SERVER_COLUMNS}) "
                                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                                rows[start : start + self.batch_size],
                            )
                        await db.commit()
                    except sqlite3.Error:
                        await db.rollback()
                        raise
            except sqlite3.Error as exc:
                raise PersistenceError(f"server set not replaced: {exc}") from exc
        return len(rows)

    async def append_history(self, samples: Sequence[HistorySample]) -> int:
        rows = [
            (s.game_id, s.player_count, _to_text(s.recorded_at))
            for s in samples
            if s.player_count > 0
        ]
        if not rows:
            return 0
        with _timed("append_history", len(rows)):
            try:
                async with aiosqlite.connect(self._db_path) as db:
                    try:
                        await db.execute("BEGIN")
                        for start in range(0, len(rows), self.batch_size):
                            await db.executemany(
                                """
                                INSERT INTO server_history (game_id, player_count, recorded_at)
                                VALUES (?, ?, ?)
                                """,
                                rows[start : start + self.batch_size],
                            )
                        await db.commit()
                    except sqlite3.Error:
                        await db.rollback()
                        raise
            except sqlite3.Error as exc:
                raise PersistenceError(f"history batch rolled back: {exc}") from exc
        return len(rows)

    async def get_all(self) -> list[ServerRecord]:
        async with aiosqlite.connect(self._db_path) as db:
            cursor = await db.execute(
                f"SELECT {_SERVER_COLUMNS} FROM servers ORDER BY player_count DESC, game_id ASC"
            )
            rows = await cursor.fetchall()
        return [_record_from_row(row) for row in rows]

    async def get_by_game_id(self, game_id: int) -> ServerRecord | None:
        async with aiosqlite.connect(self._db_path) as db:
            cursor = await db.execute(
                f"SELECT {_SERVER_COLUMNS} FROM servers WHERE game_id = ?",
                (game_id,),
            )
            row = await cursor.fetchone()
        return _record_from_row(row) if row else None

    async def get_history(self, game_id: int, window_hours: int) -> list[HistorySample]:
        limit = max(0, window_hours) * self.samples_per_hour
        async with aiosqlite.connect(self._db_path) as db:
            cursor = await db.execute(
                """
                SELECT game_id, player_count, recorded_at
                FROM server_history
                WHERE game_id = ?
                ORDER BY recorded_at DESC, id DESC
                LIMIT ?
                """,
                (game_id, limit),
            )
            rows = await cursor.fetchall()
        return [
            HistorySample(game_id=int(gid), player_count=int(count), recorded_at=_from_text(at))
            for gid, count, at in rows
        ]

    async def purge_history_older_than(self, cutoff: datetime) -> int:
        try:
            async with aiosqlite.connect(self._db_path) as db:
                cursor = await db.execute(
                    "DELETE FROM server_history WHERE recorded_at < ?",
                    (_to_text(cutoff),),
                )
                await db.commit()
                return cursor.rowcount
        except sqlite3.Error as exc:
            raise PersistenceError(f"history purge failed: {exc}") from exc

    async def get_last_cache_time(self) -> datetime | None:
        async with aiosqlite.connect(self._db_path) as db:
            cursor = await db.execute("SELECT cached_at FROM servers LIMIT 1")
            row = await cursor.fetchone()
        return _from_text(row[0]) if row else None
