"""
Tests for RecordCache: state transitions, request coalescing, failures and
invalidation.
"""
import asyncio

import pytest

from app.core.exceptions import BackendUnavailable
from app.crud.record_cache import CacheState, RecordCache, RecordCacheRegistry
from conftest import make_record

pytestmark = pytest.mark.anyio


class StubLoader:
    """Loader que cuenta llamadas y puede bloquearse hasta `release()`."""

    def __init__(self, *results):
        self.results = list(results)
        self.calls = []
        self.gate = None

    def hold(self):
        self.gate = asyncio.Event()

    def release(self):
        self.gate.set()

    async def __call__(self, vessel):
        self.calls.append(vessel)
        if self.gate is not None:
            await self.gate.wait()
        result = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if isinstance(result, Exception):
            raise result
        return result


async def _started(loader):
    while not loader.calls:
        await asyncio.sleep(0)


def _records(*ids):
    return [make_record("2024/01/01", record_id=i) for i in ids]


async def test_starts_empty_and_populates():
    loader = StubLoader(_records("1", "2"))
    cache = RecordCache("MS Rhein", loader)

    assert cache.state == CacheState.empty
    records = await cache.ensure_populated()

    assert [r.record_id for r in records] == ["1", "2"]
    assert cache.state == CacheState.populated
    assert loader.calls == ["MS Rhein"]


async def test_populated_cache_does_not_reload():
    loader = StubLoader(_records("1"))
    cache = RecordCache("MS Rhein", loader)

    await cache.ensure_populated()
    await cache.ensure_populated()

    assert len(loader.calls) == 1


async def test_concurrent_callers_share_one_load():
    loader = StubLoader(_records("1"))
    loader.hold()
    cache = RecordCache("MS Rhein", loader)

    pending = [asyncio.ensure_future(cache.ensure_populated()) for _ in range(5)]
    await _started(loader)
    assert cache.state == CacheState.loading

    loader.release()
    results = await asyncio.gather(*pending)

    assert len(loader.calls) == 1
    assert all([r.record_id for r in result] == ["1"] for result in results)


async def test_failed_load_keeps_previous_snapshot():
    loader = StubLoader(_records("1"), BackendUnavailable("down"))
    cache = RecordCache("MS Rhein", loader)
    await cache.ensure_populated()

    with pytest.raises(BackendUnavailable):
        await cache.refresh()

    assert [r.record_id for r in cache.records] == ["1"]
    assert cache.error == "down"


async def test_failed_first_load_stays_empty_and_retries():
    loader = StubLoader(BackendUnavailable("down"), _records("1"))
    cache = RecordCache("MS Rhein", loader)

    with pytest.raises(BackendUnavailable):
        await cache.ensure_populated()
    assert cache.state == CacheState.empty

    records = await cache.ensure_populated()

    assert [r.record_id for r in records] == ["1"]
    assert cache.error is None


async def test_invalidate_forces_next_read_but_keeps_old_data():
    loader = StubLoader(_records("1"), _records("1", "2"))
    cache = RecordCache("MS Rhein", loader)
    await cache.ensure_populated()

    cache.invalidate()
    assert cache.state == CacheState.empty
    assert [r.record_id for r in cache.records] == ["1"]

    records = await cache.ensure_populated()

    assert [r.record_id for r in records] == ["1", "2"]
    assert len(loader.calls) == 2


async def test_invalidate_during_load_marks_result_stale():
    loader = StubLoader(_records("1"), _records("1", "2"))
    loader.hold()
    cache = RecordCache("MS Rhein", loader)

    first = asyncio.ensure_future(cache.ensure_populated())
    await _started(loader)
    cache.invalidate()
    loader.release()
    await first

    assert cache.state == CacheState.empty
    await cache.ensure_populated()
    assert len(loader.calls) == 2
    assert cache.state == CacheState.populated


async def test_measurements_and_bunkerings_views():
    loader = StubLoader([
        make_record("2024/01/01", "Measurement", record_id="1"),
        make_record("2024/01/02", "Bunkering", record_id="2"),
    ])
    cache = RecordCache("MS Rhein", loader)
    await cache.ensure_populated()

    assert [r.record_id for r in cache.measurements] == ["1"]
    assert [r.record_id for r in cache.bunkerings] == ["2"]


async def test_registry_keeps_one_cache_per_vessel():
    loader = StubLoader(_records("1"))
    registry = RecordCacheRegistry(loader)

    assert registry.get("MS Rhein") is registry.get("MS Rhein")
    assert registry.get("MS Rhein") is not registry.get("Amadeus")

    await registry.get("MS Rhein").ensure_populated()
    registry.invalidate("MS Rhein")
    registry.invalidate("unknown")

    assert registry.get("MS Rhein").state == CacheState.empty


async def test_registry_snapshot_roundtrip():
    loader = StubLoader(_records("1", "2"))
    registry = RecordCacheRegistry(loader)
    await registry.get("MS Rhein").ensure_populated()
    registry.get("Amadeus")

    payload = registry.to_dict()
    assert list(payload) == ["MS Rhein"]

    fresh_loader = StubLoader([])
    restored = RecordCacheRegistry(fresh_loader)
    restored.restore(payload)

    cache = restored.get("MS Rhein")
    assert cache.state == CacheState.populated
    assert [r.record_id for r in cache.records] == ["1", "2"]

    records = await cache.ensure_populated()

    assert [r.record_id for r in records] == ["1", "2"]
    assert fresh_loader.calls == []


async def test_restored_cache_reloads_after_invalidate():
    loader = StubLoader(_records("3"))
    cache = RecordCache("MS Rhein", loader)
    cache.restore(_records("1"))

    await cache.ensure_populated()
    assert loader.calls == []

    cache.invalidate()
    records = await cache.ensure_populated()

    assert [r.record_id for r in records] == ["3"]
    assert loader.calls == ["MS Rhein"]


async def test_restore_while_loading_is_refused():
    loader = StubLoader(_records("1"))
    loader.hold()
    cache = RecordCache("MS Rhein", loader)

    pending = asyncio.ensure_future(cache.ensure_populated())
    await _started(loader)

    with pytest.raises(RuntimeError):
        cache.restore(_records("9"))

    loader.release()
    await pending
