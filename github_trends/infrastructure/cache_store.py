import asyncio
import json
import logging
import time
from pathlib import Path
from typing import Any, Callable, NamedTuple, Optional
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.dialects.sqlite import insert
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy import Table, Column, String, Float, Text, MetaData, select, delete

from github_trends.domain.exceptions import CacheException
from github_trends.domain.models import CacheEntry

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 5 * 60

# SQLAlchemy core Table definition
metadata = MetaData()
cache_table = Table(
    'cache_entries', metadata,
    Column('key', String, primary_key=True),
    Column('payload', Text, nullable=False),
    Column('written_at', Float, nullable=False),
)


class CacheLookup(NamedTuple):
    """Outcome of a cache read: a hit, a plain miss, or a miss caused by an error."""
    hit: bool
    payload: Any = None
    error: Optional[CacheException] = None


class CacheStore:
    """
    Best-effort key/value cache with a fixed TTL, stored in a local SQLite file.
    Reads and writes never raise; failures degrade to cache misses.
    """

    def __init__(
            self,
            db_url: str,
            ttl: float = DEFAULT_TTL_SECONDS,
            clock: Callable[[], float] = time.time,
    ):
        self.db_url = db_url
        self.ttl = ttl
        self.clock = clock
        self.engine = create_async_engine(db_url, echo=False)
        self._ready = False
        self._schema_lock = asyncio.Lock()

    async def get(self, key: str) -> Any:
        """
        Returns the cached payload for ``key``, or None when absent, expired or unreadable.
        """
        result = await self.lookup(key)
        if result.error is not None:
            logger.debug(f"Cache read failed for '{key}': {result.error}")
        return result.payload if result.hit else None

    async def lookup(self, key: str) -> CacheLookup:
        """
        Reads ``key`` and evicts it when older than the TTL.

        Returns:
            CacheLookup: ``hit`` is True only for a fresh, decodable entry.
        """
        try:
            await self._ensure_schema()
            async with self.engine.connect() as conn:
                row = (await conn.execute(
                    select(cache_table.c.payload, cache_table.c.written_at).where(cache_table.c.key == key)
                )).first()
        except (SQLAlchemyError, OSError) as e:
            return CacheLookup(hit=False, error=CacheException(str(e)))

        if row is None:
            return CacheLookup(hit=False)

        # Payload stays serialized until the entry is known to be fresh
        entry = CacheEntry(key=key, payload=row.payload, written_at=row.written_at)
        if entry.is_expired(self.clock(), self.ttl):
            await self._evict(key)
            return CacheLookup(hit=False)

        try:
            payload = json.loads(entry.payload)
        except ValueError as e:
            return CacheLookup(hit=False, error=CacheException(f"Undecodable entry: {e}"))

        return CacheLookup(hit=True, payload=payload)

    async def put(self, key: str, payload: Any) -> None:
        """
        Stores ``payload`` under ``key``, replacing any previous entry. Errors are dropped.
        """
        try:
            serialized = json.dumps(payload)
            await self._ensure_schema()

            stmt = insert(cache_table).values(key=key, payload=serialized, written_at=self.clock())
            upsert_stmt = stmt.on_conflict_do_update(
                index_elements=['key'],
                set_={
                    'payload': stmt.excluded.payload,
                    'written_at': stmt.excluded.written_at,
                },
            )

            async with self.engine.begin() as conn:
                await conn.execute(upsert_stmt)
        except (SQLAlchemyError, OSError, TypeError, ValueError) as e:
            logger.debug(f"Cache write failed for '{key}': {e}")

    async def close(self) -> None:
        await self.engine.dispose()

    async def _evict(self, key: str) -> None:
        try:
            async with self.engine.begin() as conn:
                await conn.execute(delete(cache_table).where(cache_table.c.key == key))
        except (SQLAlchemyError, OSError) as e:
            logger.debug(f"Cache eviction failed for '{key}': {e}")

    async def _ensure_schema(self) -> None:
        if self._ready:
            return
        async with self._schema_lock:
            if self._ready:
                return
            database = make_url(self.db_url).database
            if database and database != ":memory:":
                Path(database).parent.mkdir(parents=True, exist_ok=True)
            async with self.engine.begin() as conn:
                await conn.run_sync(metadata.create_all)
            self._ready = True
