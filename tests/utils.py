from __future__ import annotations

import asyncio
import random
from typing import AsyncIterator, Iterable

from chat_runtime.errors import StreamFailure
from chat_runtime.models import AgentInvocationOptions, ChatResponseStream, MessageFragment


class InMemoryRedis:
    """
    Minimal async Redis replacement covering the commands used by the
    chat keyspace.

    ``latency`` adds a random sleep before every command so that
    concurrent callers interleave; ``fail_with`` makes every command
    raise the given exception.
    """

    def __init__(self, *, latency: float = 0.0, seed: int | None = None) -> None:
        self._data: dict[str, str] = {}
        self._ttls: dict[str, int] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._random = random.Random(seed)
        self.latency = latency
        self.fail_with: BaseException | None = None
        self.commands: list[tuple[str, str]] = []

    async def _tick(self, command: str, key: str) -> None:
        self.commands.append((command, key))
        if self.fail_with is not None:
            raise self.fail_with
        if self.latency:
            await asyncio.sleep(self._random.uniform(0, self.latency))

    async def get(self, key: str):
        await self._tick("get", key)
        return self._data.get(key)

    async def set(self, key: str, value: str, ex: int | None = None):
        await self._tick("set", key)
        self._data[key] = value
        if ex is not None:
            self._ttls[key] = ex
        else:
            self._ttls.pop(key, None)
        return True

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            await self._tick("delete", key)
            if key in self._data:
                removed += 1
                self._data.pop(key, None)
                self._ttls.pop(key, None)
        return removed

    def ttl_of(self, key: str) -> int | None:
        return self._ttls.get(key)

    def lock(
        self,
        name: str,
        timeout: float | None = None,
        blocking_timeout: float | None = None,
    ) -> "_InMemoryLock":
        return _InMemoryLock(self, name, blocking_timeout=blocking_timeout)


class _InMemoryLock:
    def __init__(
        self, redis: InMemoryRedis, name: str, *, blocking_timeout: float | None
    ) -> None:
        self._redis = redis
        self._name = name
        self._blocking_timeout = blocking_timeout

    async def acquire(self) -> bool:
        lock = self._redis._locks.setdefault(self._name, asyncio.Lock())
        try:
            await asyncio.wait_for(lock.acquire(), timeout=self._blocking_timeout)
        except asyncio.TimeoutError:
            return False
        return True

    async def release(self) -> None:
        self._redis._locks[self._name].release()


async def fragments_from(items: Iterable[dict]) -> AsyncIterator[MessageFragment]:
    for item in items:
        yield MessageFragment(**item)


class ScriptedAgent:
    """
    Agent replying with a fixed list of fragments.

    With ``fail_after`` set, the stream raises StreamFailure once that
    many fragments were delivered. Every call is recorded in ``calls``.
    """

    def __init__(
        self,
        name: str,
        fragments: list[dict],
        *,
        fail_after: int | None = None,
    ) -> None:
        self.name = name
        self.fragments = fragments
        self.fail_after = fail_after
        self.calls: list[tuple[str, AgentInvocationOptions]] = []

    async def invoke_streaming(
        self, message: str, options: AgentInvocationOptions
    ) -> ChatResponseStream:
        self.calls.append((message, options))
        return ChatResponseStream(id=f"resp-{len(self.calls)}", stream=self._stream())

    async def _stream(self) -> AsyncIterator[MessageFragment]:
        for index, item in enumerate(self.fragments):
            if self.fail_after is not None and index >= self.fail_after:
                break
            yield MessageFragment(**item)
        if self.fail_after is not None:
            raise StreamFailure("upstream connection reset")


__all__ = ["InMemoryRedis", "ScriptedAgent", "fragments_from"]
