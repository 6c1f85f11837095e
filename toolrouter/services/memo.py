from __future__ import annotations

"""Process-wide memoized async loader with in-flight de-duplication.

States: unloaded -> loading(future) -> loaded(value). Concurrent callers
during `loading` await the same future instead of starting another load. A
failed load returns to `unloaded` so the next caller retries. `reset()` may be
called from any thread; a load that was in flight when reset happened does not
publish its value.
"""
import asyncio
import threading
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True)
class _Unloaded:
    pass


@dataclass(frozen=True)
class _Loading:
    future: asyncio.Future


@dataclass(frozen=True)
class _Loaded(Generic[T]):
    value: T


_State = Union[_Unloaded, _Loading, _Loaded]


class MemoizedLoader(Generic[T]):
    def __init__(self, load: Callable[[], Awaitable[T]]):
        self._load = load
        self._state: _State = _Unloaded()
        self._generation = 0
        self._lock = threading.Lock()

    @property
    def state(self) -> str:
        if isinstance(self._state, _Loaded):
            return "loaded"
        if isinstance(self._state, _Loading):
            return "loading"
        return "unloaded"

    def reset(self) -> None:
        with self._lock:
            self._generation += 1
            self._state = _Unloaded()

    async def get(self) -> T:
        with self._lock:
            state = self._state
            if isinstance(state, _Loaded):
                return state.value
            if isinstance(state, _Loading) and state.future.get_loop() is asyncio.get_running_loop():
                future = state.future
                owner = False
            else:
                future = asyncio.get_running_loop().create_future()
                self._state = _Loading(future)
                generation = self._generation
                owner = True
        if not owner:
            return await asyncio.shield(future)

        try:
            value = await self._load()
        except asyncio.CancelledError:
            self._abandon(future)
            future.cancel()
            raise
        except Exception as e:
            self._abandon(future)
            future.set_exception(e)
            # mark retrieved; the owner re-raises below
            future.exception()
            raise
        with self._lock:
            if self._generation == generation:
                self._state = _Loaded(value)
        future.set_result(value)
        return value

    def _abandon(self, future: asyncio.Future) -> None:
        with self._lock:
            if isinstance(self._state, _Loading) and self._state.future is future:
                self._state = _Unloaded()
