"""
This module provides the SQLite implementation of the `PersistenceAdapter`
protocol. It owns the `bridge_event` table and implements the upsert contract
with SQLite's `INSERT ... ON CONFLICT DO UPDATE`, so redelivered events
overwrite their row instead of failing or duplicating it.
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Tuple

import aiosqlite

from ..models import BridgeEvent, BridgeStatus, EventType
from ..reconciler import BRIDGE_EVENT_TABLE

COLUMNS = (
    "message_id",
    "event_type",
    "sender",
    "receiver",
    "amount",
    "asset_id",
    "proof",
    "status",
    "source_block_hash",
    "source_transaction_hash",
    "block_number",
)
KEY_COLUMNS = ("message_id", "event_type")


class SQLitePersistenceAdapter:
    """
    Writes bridge-event rows through a single connection. Writes are serialised
    with a lock because the connection is shared by concurrently running handlers.
    """

    def __init__(self, conn: aiosqlite.Connection, table: str = BRIDGE_EVENT_TABLE):
        self.conn = conn
        self.table = table
        self.write_lock = asyncio.Lock()

    async def create_schema(self):
        statuses = ", ".join(f"'{s.value}'" for s in BridgeStatus)
        await self.conn.execute(
            f"""
            CREATE TABLE IF NOT EXISTS {self.table} (
                message_id TEXT NOT NULL,
                event_type TEXT NOT NULL,
                sender TEXT NOT NULL,
                receiver TEXT NOT NULL,
                amount TEXT NOT NULL,
                asset_id TEXT,
                proof TEXT,
                status TEXT NOT NULL CHECK (status IN ({statuses})),
                source_block_hash TEXT NOT NULL,
                source_transaction_hash TEXT NOT NULL,
                block_number INTEGER NOT NULL,
                PRIMARY KEY (message_id, event_type)
            )
            """
        )
        await self.conn.execute(
            f"CREATE INDEX IF NOT EXISTS idx_{self.table}_status ON {self.table} (status)"
        )
        await self.conn.commit()

    async def upsert(self, table: str, primary_key: Tuple[Any, ...], values: Dict[str, Any]) -> None:
        """Insert the row, or overwrite every non-key column if the key already exists."""
        if table != self.table:
            raise ValueError(f"Unknown table {table!r}; this adapter manages {self.table!r}")
        message_id, event_type = primary_key
        if values.get("message_id") != str(message_id) or values.get("event_type") != EventType(event_type).value:
            raise ValueError(f"Row values do not match primary key {primary_key!r}")
        unknown = set(values) - set(COLUMNS)
        if unknown:
            raise ValueError(f"Unknown columns: {sorted(unknown)}")

        columns = [c for c in COLUMNS if c in values]
        updates = ", ".join(f"{c} = excluded.{c}" for c in columns if c not in KEY_COLUMNS)
        query = (
            f"INSERT INTO {self.table} ({', '.join(columns)}) "
            f"VALUES ({', '.join('?' for _ in columns)}) "
            f"ON CONFLICT (message_id, event_type) DO UPDATE SET {updates}"
        )
        async with self.write_lock:
            try:
                await self.conn.execute(query, [values[c] for c in columns])
                await self.conn.commit()
            except Exception as e:
                await self.conn.rollback()
                logging.error(f"Failed to upsert {event_type} row for message {message_id}: {e}")
                raise

    async def get(self, message_id: int, event_type: EventType) -> BridgeEvent | None:
        async with self.conn.execute(
            f"SELECT {', '.join(COLUMNS)} FROM {self.table} WHERE message_id = ? AND event_type = ?",
            (str(message_id), EventType(event_type).value),
        ) as cursor:
            row = await cursor.fetchone()
        return BridgeEvent.from_row(dict(zip(COLUMNS, row))) if row else None

    async def find_by_message_id(self, message_id: int) -> List[BridgeEvent]:
        """Both legs of a transfer, Sent first."""
        async with self.conn.execute(
            f"SELECT {', '.join(COLUMNS)} FROM {self.table} WHERE message_id = ? ORDER BY event_type DESC",
            (str(message_id),),
        ) as cursor:
            rows = await cursor.fetchall()
        return [BridgeEvent.from_row(dict(zip(COLUMNS, row))) for row in rows]

    async def count(self) -> int:
        async with self.conn.execute(f"SELECT COUNT(*) FROM {self.table}") as cursor:
            row = await cursor.fetchone()
        return row[0]


@asynccontextmanager
async def sqlite_persistence_factory(
    db_path: str,
    *,
    table: str = BRIDGE_EVENT_TABLE,
    cache_size_kib: int = -16384,
) -> AsyncIterator[SQLitePersistenceAdapter]:
    """
    Opens the database, makes sure the schema exists and yields a ready adapter.
    The connection is closed when the context exits.
    """
    if not db_path:
        raise ValueError("`db_path` must be provided.")

    conn = await aiosqlite.connect(db_path)
    try:
        if db_path != ":memory:":
            await conn.execute("PRAGMA journal_mode=WAL;")
        await conn.execute("PRAGMA synchronous = NORMAL;")
        await conn.execute(f"PRAGMA cache_size = {cache_size_kib};")
        await conn.execute("PRAGMA busy_timeout = 5000;")
        adapter = SQLitePersistenceAdapter(conn, table=table)
        await adapter.create_schema()
        logging.info(f"SQLite store ready at {db_path} (table {table})")
        yield adapter
    finally:
        await conn.close()
