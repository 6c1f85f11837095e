import asyncio

import pytest

from toolrouter.models.rates import RateMetadata
from toolrouter.services.catalog import CurrencyCatalog, build_catalog
from toolrouter.services.memo import MemoizedLoader


class CountingLoad:
    def __init__(self, value=("USD", "EUR"), failures: int = 0):
        self.value = list(value)
        self.failures = failures
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        await asyncio.sleep(0)
        if self.failures:
            self.failures -= 1
            raise RuntimeError("store unavailable")
        return list(self.value)


def test_concurrent_callers_share_one_load() -> None:
    load = CountingLoad()
    loader = MemoizedLoader(load)

    async def main():
        return await asyncio.gather(*(loader.get() for _ in range(5)))

    results = asyncio.run(main())

    assert load.calls == 1
    assert all(r == ["USD", "EUR"] for r in results)
    assert loader.state == "loaded"


def test_loaded_value_is_reused_until_reset() -> None:
    load = CountingLoad()
    loader = MemoizedLoader(load)

    asyncio.run(loader.get())
    asyncio.run(loader.get())
    assert load.calls == 1

    loader.reset()
    assert loader.state == "unloaded"
    asyncio.run(loader.get())
    assert load.calls == 2


def test_failed_load_is_retried_by_next_caller() -> None:
    load = CountingLoad(failures=1)
    loader = MemoizedLoader(load)

    with pytest.raises(RuntimeError):
        asyncio.run(loader.get())
    assert loader.state == "unloaded"

    assert asyncio.run(loader.get()) == ["USD", "EUR"]
    assert load.calls == 2


def test_waiters_see_the_owner_failure() -> None:
    loader = MemoizedLoader(CountingLoad(failures=1))

    async def main():
        return await asyncio.gather(loader.get(), loader.get(), return_exceptions=True)

    results = asyncio.run(main())

    assert all(isinstance(r, RuntimeError) for r in results)


def test_reset_during_load_discards_result() -> None:
    async def main():
        gate = asyncio.Event()

        async def load():
            await gate.wait()
            return ["USD"]

        loader = MemoizedLoader(load)
        task = asyncio.create_task(loader.get())
        await asyncio.sleep(0)
        assert loader.state == "loading"
        loader.reset()
        gate.set()
        return loader, await task

    loader, value = asyncio.run(main())

    assert value == ["USD"]
    assert loader.state == "unloaded"


def test_catalog_before_first_sync_is_static() -> None:
    codes = [c["code"] for c in build_catalog(None)]

    assert codes[0] == "USD"
    assert "KRW" in codes


def test_catalog_keeps_known_order_and_appends_unknown_codes() -> None:
    catalog = build_catalog({"JPY", "EUR", "ZZZ", "AAA"})

    assert [c["code"] for c in catalog] == ["USD", "EUR", "JPY", "AAA", "ZZZ"]
    assert catalog[1]["symbol"] == "€"
    assert catalog[-1] == {"code": "ZZZ", "name": "ZZZ", "symbol": "ZZZ"}


def _metadata(stamp: str) -> RateMetadata:
    return RateMetadata(
        last_updated=stamp,
        source="api",
        next_update="2026-03-11T22:05:00.000Z",
        rates_count=1,
    )


def test_catalog_rebuilds_when_store_stamp_changes(store) -> None:
    catalog = CurrencyCatalog(store)

    async def codes():
        return [c["code"] for c in await catalog.get()]

    assert "KRW" in asyncio.run(codes())

    store.write({"EUR": 0.92}, _metadata("2026-03-10T22:06:00.000Z"))
    assert asyncio.run(codes()) == ["USD", "EUR"]

    store.write({"JPY": 150.0}, _metadata("2026-03-11T22:06:00.000Z"))
    assert asyncio.run(codes()) == ["USD", "JPY"]


def test_catalog_reuses_list_for_unchanged_snapshot(store, monkeypatch) -> None:
    store.write({"EUR": 0.92}, _metadata("2026-03-10T22:06:00.000Z"))
    catalog = CurrencyCatalog(store)
    reads = []
    original_read = store.read
    monkeypatch.setattr(store, "read", lambda: reads.append(1) or original_read())

    asyncio.run(catalog.get())
    asyncio.run(catalog.get())

    assert len(reads) == 1
