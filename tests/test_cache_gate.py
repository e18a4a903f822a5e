import json
import unittest

from lib.cache_manager import MemoryCacheStore, build_library_cache_key
from lib.user_library.cache_gate import LibraryCacheGate
from lib.user_library.errors import CacheStoreError, UpstreamFetchError
from lib.user_library.models import PlaylistMembership, TrackIndexEntry


def _index():
    return {"T1": TrackIndexEntry("A", [PlaylistMembership("P1", "First")])}


class _CountingCompute:
    def __init__(self, fail_times=0):
        self.calls = []
        self.fail_times = fail_times

    async def __call__(self, user_id, token):
        self.calls.append((user_id, token))
        if len(self.calls) <= self.fail_times:
            raise UpstreamFetchError("upstream down", url="https://x", status=503)
        return _index()


class _BrokenStore:
    async def get(self, key):
        raise CacheStoreError("redis down")

    async def set(self, key, value, ttl_s):
        raise CacheStoreError("redis down")

    async def close(self):
        pass


class LibraryCacheGateTests(unittest.IsolatedAsyncioTestCase):
    async def test_second_call_hits_cache_with_identical_bytes(self):
        compute = _CountingCompute()
        gate = LibraryCacheGate(MemoryCacheStore(), compute)

        first = await gate.get_or_compute("alice", "tok")
        second = await gate.get_or_compute("alice", "tok")

        self.assertEqual(first, second)
        self.assertEqual(len(compute.calls), 1)
        self.assertEqual(json.loads(first)["T1"]["trackName"], "A")

    async def test_reports_hit_status(self):
        gate = LibraryCacheGate(MemoryCacheStore(), _CountingCompute())

        _, hit_first = await gate.get_or_compute_with_status("alice", "tok")
        _, hit_second = await gate.get_or_compute_with_status("alice", "tok")

        self.assertFalse(hit_first)
        self.assertTrue(hit_second)

    async def test_writes_under_user_key_with_ttl(self):
        store = MemoryCacheStore()
        writes = []
        original_set = store.set

        async def recording_set(key, value, ttl_s):
            writes.append((key, ttl_s))
            await original_set(key, value, ttl_s)

        store.set = recording_set
        gate = LibraryCacheGate(store, _CountingCompute(), ttl_s=900)
        await gate.get_or_compute("alice", "tok")

        self.assertEqual(writes, [(build_library_cache_key("alice"), 900)])

    async def test_key_ignores_token(self):
        compute = _CountingCompute()
        gate = LibraryCacheGate(MemoryCacheStore(), compute)

        await gate.get_or_compute("alice", "old-token")
        await gate.get_or_compute("alice", "rotated-token")

        self.assertEqual(compute.calls, [("alice", "old-token")])

    async def test_users_are_cached_separately(self):
        compute = _CountingCompute()
        gate = LibraryCacheGate(MemoryCacheStore(), compute)

        await gate.get_or_compute("alice", "tok")
        await gate.get_or_compute("bob", "tok")

        self.assertEqual([c[0] for c in compute.calls], ["alice", "bob"])

    async def test_failed_compute_is_not_cached(self):
        store = MemoryCacheStore()
        compute = _CountingCompute(fail_times=1)
        gate = LibraryCacheGate(store, compute)

        with self.assertRaises(UpstreamFetchError):
            await gate.get_or_compute("alice", "tok")
        self.assertEqual(len(store), 0)

        payload = await gate.get_or_compute("alice", "tok")
        self.assertEqual(len(compute.calls), 2)
        self.assertIn(b"T1", payload)

    async def test_recomputes_after_expiry(self):
        now = [0.0]
        compute = _CountingCompute()
        gate = LibraryCacheGate(MemoryCacheStore(timer=lambda: now[0]), compute, ttl_s=900)

        await gate.get_or_compute("alice", "tok")
        now[0] = 899.0
        await gate.get_or_compute("alice", "tok")
        self.assertEqual(len(compute.calls), 1)

        now[0] = 901.0
        await gate.get_or_compute("alice", "tok")
        self.assertEqual(len(compute.calls), 2)

    async def test_store_failure_propagates_before_compute(self):
        compute = _CountingCompute()
        gate = LibraryCacheGate(_BrokenStore(), compute)

        with self.assertRaises(CacheStoreError):
            await gate.get_or_compute("alice", "tok")
        self.assertEqual(compute.calls, [])


if __name__ == "__main__":
    unittest.main()
