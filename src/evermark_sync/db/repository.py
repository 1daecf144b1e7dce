"""Database repository for the voting cache tables."""

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Sequence

import aiosqlite

from .models import CYCLE_TABLE, SCHEMA, TABLE_COLUMNS, TALLY_TABLE, USER_VOTE_TABLE

logger = logging.getLogger(__name__)


@dataclass
class TallyRecord:
    """Cached vote totals for one evermark in one cycle."""

    evermark_id: str
    cycle_number: int
    total_votes: str
    voter_count: int
    last_updated: datetime


@dataclass
class UserVoteRecord:
    """A user's cached delegation to one evermark in one cycle."""

    user_address: str
    evermark_id: str
    cycle_number: int
    vote_amount: str
    transaction_hash: str | None
    block_number: int | None
    updated_at: datetime


@dataclass
class CycleRecord:
    """Cached metadata for one voting cycle."""

    cycle_number: int
    start_time: datetime
    end_time: datetime
    total_votes: str
    total_voters: int
    active_evermarks_count: int
    is_active: bool
    finalized: bool
    updated_at: datetime


def _check_columns(table: str, columns: Sequence[str]):
    known = TABLE_COLUMNS.get(table)
    if known is None:
        raise ValueError(f"Unknown table: {table}")
    unknown = [c for c in columns if c not in known]
    if unknown:
        raise ValueError(f"Unknown columns for {table}: {', '.join(unknown)}")


class Repository:
    """Cache store for all persistence operations."""

    def __init__(self, db_path: str | Path):
        self.db_path = db_path if db_path == ":memory:" else Path(db_path)
        self._connection: aiosqlite.Connection | None = None

    async def initialize(self):
        """Initialize the database and create tables."""
        if isinstance(self.db_path, Path):
            self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._connection = await aiosqlite.connect(self.db_path)
        self._connection.row_factory = aiosqlite.Row

        await self._connection.executescript(SCHEMA)
        await self._connection.commit()

        logger.info(f"Database initialized at {self.db_path}")

    async def close(self):
        """Close the database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None

    @property
    def conn(self) -> aiosqlite.Connection:
        """Get the database connection."""
        if not self._connection:
            raise RuntimeError("Database not initialized. Call initialize() first.")
        return self._connection

    # Generic store operations

    async def upsert(
        self,
        table: str,
        row: dict[str, Any],
        conflict_key: Sequence[str],
    ):
        """
        Insert a row, or overwrite every non-key column of the existing row.

        Args:
            table: Target table
            row: Column values to write
            conflict_key: Columns forming the table's unique key
        """
        columns = list(row)
        _check_columns(table, columns)
        _check_columns(table, conflict_key)

        updates = [c for c in columns if c not in conflict_key]
        placeholders = ", ".join("?" for _ in columns)
        if updates:
            assignments = ", ".join(f"{c} = excluded.{c}" for c in updates)
            on_conflict = f"DO UPDATE SET {assignments}"
        else:
            on_conflict = "DO NOTHING"

        await self.conn.execute(
            f"""
            INSERT INTO {table} ({", ".join(columns)})
            VALUES ({placeholders})
            ON CONFLICT({", ".join(conflict_key)}) {on_conflict}
            """,
            tuple(row[c] for c in columns),
        )
        await self.conn.commit()

    async def count(self, table: str, filters: dict[str, Any] | None = None) -> int:
        """Count rows in a table matching equality filters."""
        filters = filters or {}
        _check_columns(table, list(filters))

        sql = f"SELECT COUNT(*) AS count FROM {table}"
        if filters:
            sql += " WHERE " + " AND ".join(f"{c} = ?" for c in filters)

        async with self.conn.execute(sql, tuple(filters.values())) as cursor:
            row = await cursor.fetchone()
            return row["count"] if row else 0

    async def select_latest(
        self, table: str, order_by: str, limit: int = 1
    ) -> list[dict[str, Any]]:
        """Return the newest rows of a table by a timestamp column."""
        _check_columns(table, [order_by])

        async with self.conn.execute(
            f"SELECT * FROM {table} ORDER BY {order_by} DESC LIMIT ?", (limit,)
        ) as cursor:
            rows = await cursor.fetchall()
            return [dict(row) for row in rows]

    # Tally reads

    async def get_tally(self, evermark_id: str, cycle_number: int) -> TallyRecord | None:
        async with self.conn.execute(
            f"SELECT * FROM {TALLY_TABLE} WHERE evermark_id = ? AND cycle_number = ?",
            (evermark_id, cycle_number),
        ) as cursor:
            row = await cursor.fetchone()
            return self._tally_from_row(row) if row else None

    async def list_tally_evermarks(self, cycle_number: int) -> list[str]:
        """List evermark IDs that already have a tally for a cycle."""
        async with self.conn.execute(
            f"""
            SELECT evermark_id FROM {TALLY_TABLE}
            WHERE cycle_number = ?
            ORDER BY CAST(evermark_id AS INTEGER)
            """,
            (cycle_number,),
        ) as cursor:
            rows = await cursor.fetchall()
            return [row["evermark_id"] for row in rows]

    async def list_stale_tallies(
        self, older_than: datetime, limit: int = 50
    ) -> list[TallyRecord]:
        """Get tallies last written before a cutoff, oldest first."""
        async with self.conn.execute(
            f"""
            SELECT * FROM {TALLY_TABLE}
            WHERE last_updated < ?
            ORDER BY last_updated ASC
            LIMIT ?
            """,
            (older_than.isoformat(), limit),
        ) as cursor:
            rows = await cursor.fetchall()
            return [self._tally_from_row(row) for row in rows]

    @staticmethod
    def _tally_from_row(row: aiosqlite.Row) -> TallyRecord:
        return TallyRecord(
            evermark_id=row["evermark_id"],
            cycle_number=row["cycle_number"],
            total_votes=row["total_votes"],
            voter_count=row["voter_count"],
            last_updated=datetime.fromisoformat(row["last_updated"]),
        )

    # User vote reads

    async def get_user_vote(
        self, user_address: str, evermark_id: str, cycle_number: int
    ) -> UserVoteRecord | None:
        async with self.conn.execute(
            f"""
            SELECT * FROM {USER_VOTE_TABLE}
            WHERE user_address = ? AND evermark_id = ? AND cycle_number = ?
            """,
            (user_address.lower(), evermark_id, cycle_number),
        ) as cursor:
            row = await cursor.fetchone()
            return self._user_vote_from_row(row) if row else None

    async def get_user_votes(self, user_address: str) -> list[UserVoteRecord]:
        """Get a user's cached votes, most recently updated first."""
        async with self.conn.execute(
            f"""
            SELECT * FROM {USER_VOTE_TABLE}
            WHERE user_address = ?
            ORDER BY updated_at DESC
            """,
            (user_address.lower(),),
        ) as cursor:
            rows = await cursor.fetchall()
            return [self._user_vote_from_row(row) for row in rows]

    @staticmethod
    def _user_vote_from_row(row: aiosqlite.Row) -> UserVoteRecord:
        return UserVoteRecord(
            user_address=row["user_address"],
            evermark_id=row["evermark_id"],
            cycle_number=row["cycle_number"],
            vote_amount=row["vote_amount"],
            transaction_hash=row["transaction_hash"],
            block_number=row["block_number"],
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    # Cycle reads

    async def get_cycle(self, cycle_number: int) -> CycleRecord | None:
        async with self.conn.execute(
            f"SELECT * FROM {CYCLE_TABLE} WHERE cycle_number = ?", (cycle_number,)
        ) as cursor:
            row = await cursor.fetchone()
            if not row:
                return None

            return CycleRecord(
                cycle_number=row["cycle_number"],
                start_time=datetime.fromisoformat(row["start_time"]),
                end_time=datetime.fromisoformat(row["end_time"]),
                total_votes=row["total_votes"],
                total_voters=row["total_voters"],
                active_evermarks_count=row["active_evermarks_count"],
                is_active=bool(row["is_active"]),
                finalized=bool(row["finalized"]),
                updated_at=datetime.fromisoformat(row["updated_at"]),
            )
