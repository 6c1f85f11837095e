"""Supported-currency catalog for the currency picker.

Known currencies come with display names and symbols; any other code present
in the stored rate table is appended with its code as name and symbol. Before
the first sync the static catalog is served as is.

The built list is memoized per stored snapshot: every request compares the
store's `lastUpdated` stamp with the one the list was built from, so a sync
from another process (cron, another worker) is picked up on the next call.
"""

from __future__ import annotations

import asyncio
import threading
from typing import Dict, List, Optional

from toolrouter.models.constants import BASE_CURRENCY, CURRENCY_CATALOG
from toolrouter.services.memo import MemoizedLoader
from toolrouter.services.rates.store import RateStore


def build_catalog(quoted: set[str] | None) -> List[Dict[str, str]]:
    if quoted is None:
        return [dict(c) for c in CURRENCY_CATALOG]
    available = set(quoted) | {BASE_CURRENCY}
    known = [dict(c) for c in CURRENCY_CATALOG if c["code"] in available]
    known_codes = {c["code"] for c in known}
    extra = [
        {"code": code, "name": code, "symbol": code}
        for code in sorted(available - known_codes)
    ]
    return known + extra


class CurrencyCatalog:
    def __init__(self, store: RateStore):
        self._store = store
        self._loader: MemoizedLoader[List[Dict[str, str]]] = MemoizedLoader(self._load)
        self._stamp: Optional[str] = None
        self._lock = threading.Lock()

    async def _load(self) -> List[Dict[str, str]]:
        snapshot = await asyncio.to_thread(self._store.read)
        return build_catalog(set(snapshot.rates) if snapshot else None)

    def reset(self) -> None:
        self._loader.reset()

    async def get(self) -> List[Dict[str, str]]:
        stamp = await asyncio.to_thread(self._store.last_updated)
        with self._lock:
            if stamp != self._stamp:
                self._stamp = stamp
                self._loader.reset()
        return await self._loader.get()
