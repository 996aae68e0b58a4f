import os
import tempfile
import unittest
from unittest.mock import patch

from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from github_trends.domain.exceptions import CacheException
from github_trends.domain.models import CacheEntry
from github_trends.infrastructure.cache_store import CacheStore, cache_table


class _FailingBegin:
    async def __aenter__(self):
        raise OperationalError("INSERT", {}, Exception("database or disk is full"))

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        return False


class _FailingEngine:
    def begin(self) -> _FailingBegin:
        return _FailingBegin()


class TestCacheStore(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.now = 1_000_000.0
        db_path = os.path.join(self._tmp.name, "nested", "cache.db")
        self.store = CacheStore(f"sqlite+aiosqlite:///{db_path}", ttl=300, clock=lambda: self.now)

    async def asyncTearDown(self) -> None:
        await self.store.close()
        self._tmp.cleanup()

    async def _row_count(self) -> int:
        async with self.store.engine.connect() as conn:
            return (await conn.execute(select(func.count()).select_from(cache_table))).scalar_one()

    async def test_put_then_get_round_trips_payload(self) -> None:
        payload = {"description": "A tool", "topics": ["cli", "python"], "stars": 5}

        await self.store.put("info:octocat:example", payload)

        self.assertEqual(await self.store.get("info:octocat:example"), payload)

    async def test_missing_key_is_a_plain_miss(self) -> None:
        result = await self.store.lookup("readme:nobody:nothing")

        self.assertFalse(result.hit)
        self.assertIsNone(result.error)
        self.assertIsNone(await self.store.get("readme:nobody:nothing"))

    async def test_put_replaces_previous_entry(self) -> None:
        await self.store.put("readme:octocat:example", "old text")
        await self.store.put("readme:octocat:example", "new text")

        self.assertEqual(await self.store.get("readme:octocat:example"), "new text")
        self.assertEqual(await self._row_count(), 1)

    async def test_entry_within_ttl_is_served(self) -> None:
        await self.store.put("readme:octocat:example", "text")
        self.now += 299

        self.assertEqual(await self.store.get("readme:octocat:example"), "text")

    async def test_expired_entry_is_absent_and_evicted(self) -> None:
        await self.store.put("readme:octocat:example", "text")
        self.now += 301

        self.assertIsNone(await self.store.get("readme:octocat:example"))
        self.assertEqual(await self._row_count(), 0)

    async def test_expired_entry_is_absent_even_if_corrupt(self) -> None:
        await self.store.put("info:octocat:example", {"a": 1})
        async with self.store.engine.begin() as conn:
            await conn.execute(cache_table.update().values(payload="{not json"))
        self.now += 301

        result = await self.store.lookup("info:octocat:example")

        self.assertFalse(result.hit)
        self.assertIsNone(result.error)

    async def test_corrupt_entry_is_reported_as_error_and_read_as_miss(self) -> None:
        await self.store.put("info:octocat:example", {"a": 1})
        async with self.store.engine.begin() as conn:
            await conn.execute(cache_table.update().values(payload="{not json"))

        result = await self.store.lookup("info:octocat:example")

        self.assertFalse(result.hit)
        self.assertIsInstance(result.error, CacheException)
        self.assertIsNone(await self.store.get("info:octocat:example"))

    async def test_unserializable_payload_is_dropped_silently(self) -> None:
        await self.store.put("info:octocat:example", object())

        self.assertIsNone(await self.store.get("info:octocat:example"))

    async def test_storage_failure_on_put_is_ignored(self) -> None:
        # Create the schema first so only the write itself fails
        await self.store.get("warmup")

        with patch.object(self.store, "engine", _FailingEngine()):
            await self.store.put("readme:octocat:example", "text")

        self.assertIsNone(await self.store.get("readme:octocat:example"))


class TestCacheEntry(unittest.TestCase):
    def test_is_expired_only_past_ttl(self) -> None:
        entry = CacheEntry(key="readme:octocat:example", payload="text", written_at=1000.0)

        self.assertFalse(entry.is_expired(now=1000.0, ttl=300))
        self.assertFalse(entry.is_expired(now=1300.0, ttl=300))
        self.assertTrue(entry.is_expired(now=1300.5, ttl=300))
