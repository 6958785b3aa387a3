"""
In-memory replacement for the subset of the async Redis API used by matchmaking.

Designed for single-process, low-traffic setups (MATCHMAKING_BACKEND=memory)
and for tests. Every command yields to the event loop once, like a network
round-trip, and then runs without interruption, so single-key commands are
atomic while multi-key sequences can interleave exactly as they do on Redis.
"""
import asyncio
import time
from typing import Callable, Dict, List, Optional, Union

Value = Union[str, int, bytes]


def _to_str(value: Value) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return str(value)


class InMemoryStore:
    """Async key-value and list store with per-key expiry."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._values: Dict[str, str] = {}
        self._lists: Dict[str, List[str]] = {}
        # key -> absolute deadline on self._clock
        self._expires: Dict[str, float] = {}

    # ---- internals ----

    def _purge(self, key: str) -> None:
        deadline = self._expires.get(key)
        if deadline is not None and self._clock() >= deadline:
            self._drop(key)

    def _drop(self, key: str) -> bool:
        existed = key in self._values or key in self._lists
        self._values.pop(key, None)
        self._lists.pop(key, None)
        self._expires.pop(key, None)
        return existed

    def _exists(self, key: str) -> bool:
        self._purge(key)
        return key in self._values or key in self._lists

    def _list(self, key: str) -> List[str]:
        self._purge(key)
        return self._lists.get(key, [])

    def _cleanup_list(self, key: str) -> None:
        if key in self._lists and not self._lists[key]:
            self._drop(key)

    @staticmethod
    def _slice_bounds(length: int, start: int, end: int):
        if start < 0:
            start = max(length + start, 0)
        if end < 0:
            end = length + end
        end = min(end, length - 1)
        return start, end

    # ---- connection ----

    async def ping(self) -> bool:
        return True

    async def aclose(self) -> None:
        return None

    async def close(self) -> None:
        return None

    # ---- strings ----

    async def get(self, name: str) -> Optional[str]:
        await asyncio.sleep(0)
        self._purge(name)
        return self._values.get(name)

    async def set(
        self,
        name: str,
        value: Value,
        ex: Optional[int] = None,
        nx: bool = False,
    ) -> Optional[bool]:
        await asyncio.sleep(0)
        if nx and self._exists(name):
            return None
        self._drop(name)
        self._values[name] = _to_str(value)
        if ex is not None:
            self._expires[name] = self._clock() + ex
        return True

    async def setex(self, name: str, time_seconds: int, value: Value) -> bool:
        return bool(await self.set(name, value, ex=time_seconds))

    async def delete(self, *names: str) -> int:
        await asyncio.sleep(0)
        deleted = 0
        for name in names:
            self._purge(name)
            if self._drop(name):
                deleted += 1
        return deleted

    async def exists(self, *names: str) -> int:
        await asyncio.sleep(0)
        return sum(1 for name in names if self._exists(name))

    async def expire(self, name: str, time_seconds: int) -> bool:
        await asyncio.sleep(0)
        if not self._exists(name):
            return False
        self._expires[name] = self._clock() + time_seconds
        return True

    async def ttl(self, name: str) -> int:
        await asyncio.sleep(0)
        if not self._exists(name):
            return -2
        deadline = self._expires.get(name)
        if deadline is None:
            return -1
        return max(int(round(deadline - self._clock())), 0)

    # ---- lists ----

    async def rpush(self, name: str, *values: Value) -> int:
        await asyncio.sleep(0)
        self._purge(name)
        items = self._lists.setdefault(name, [])
        items.extend(_to_str(v) for v in values)
        return len(items)

    async def lpush(self, name: str, *values: Value) -> int:
        await asyncio.sleep(0)
        self._purge(name)
        items = self._lists.setdefault(name, [])
        for v in values:
            items.insert(0, _to_str(v))
        return len(items)

    async def lpop(self, name: str) -> Optional[str]:
        await asyncio.sleep(0)
        items = self._list(name)
        if not items:
            return None
        value = items.pop(0)
        self._cleanup_list(name)
        return value

    async def rpop(self, name: str) -> Optional[str]:
        await asyncio.sleep(0)
        items = self._list(name)
        if not items:
            return None
        value = items.pop()
        self._cleanup_list(name)
        return value

    async def llen(self, name: str) -> int:
        await asyncio.sleep(0)
        return len(self._list(name))

    async def lrange(self, name: str, start: int, end: int) -> List[str]:
        await asyncio.sleep(0)
        items = self._list(name)
        start, end = self._slice_bounds(len(items), start, end)
        if start > end:
            return []
        return list(items[start:end + 1])

    async def ltrim(self, name: str, start: int, end: int) -> bool:
        await asyncio.sleep(0)
        items = self._list(name)
        if name not in self._lists:
            return True
        start, end = self._slice_bounds(len(items), start, end)
        self._lists[name] = items[start:end + 1] if start <= end else []
        self._cleanup_list(name)
        return True

    async def lrem(self, name: str, count: int, value: Value) -> int:
        await asyncio.sleep(0)
        items = self._list(name)
        if not items:
            return 0
        target = _to_str(value)
        removed = 0
        if count >= 0:
            kept = []
            for item in items:
                if item == target and (count == 0 or removed < count):
                    removed += 1
                    continue
                kept.append(item)
        else:
            kept = []
            for item in reversed(items):
                if item == target and removed < -count:
                    removed += 1
                    continue
                kept.append(item)
            kept.reverse()
        self._lists[name] = kept
        self._cleanup_list(name)
        return removed

    async def lpos(self, name: str, value: Value) -> Optional[int]:
        await asyncio.sleep(0)
        target = _to_str(value)
        for index, item in enumerate(self._list(name)):
            if item == target:
                return index
        return None
