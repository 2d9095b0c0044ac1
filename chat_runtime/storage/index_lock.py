"""
Locks serialising read-modify-write updates of a user's chat index.

The cache only offers get / set / delete, so two concurrent index updates
for the same user could otherwise overwrite each other. Every update of
``user:{user_id}:chats`` runs while holding the user's lock.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncContextManager, AsyncIterator, Protocol
from weakref import WeakValueDictionary

from redis.asyncio import Redis
from redis.exceptions import LockError

from chat_runtime.errors import DependencyUnavailable
from chat_runtime.logging_config import logger
from chat_runtime.redis_client import CACHE_ERRORS

USER_CHAT_INDEX_LOCK_TEMPLATE = "lock:user:{user_id}:chats"


class IndexLock(Protocol):
    def hold(self, user_id: str) -> AsyncContextManager[None]:
        """
        Async context manager holding the index lock of ``user_id``.
        """
        ...


class LocalIndexLock:
    """
    One asyncio.Lock per user, valid within a single process.

    Locks are kept in a weak-value map: a user's lock lives as long as
    some coroutine holds or waits on it.
    """

    def __init__(self) -> None:
        self._locks: WeakValueDictionary[str, asyncio.Lock] = WeakValueDictionary()

    def _lock_for(self, user_id: str) -> asyncio.Lock:
        lock = self._locks.get(user_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[user_id] = lock
        return lock

    @asynccontextmanager
    async def hold(self, user_id: str) -> AsyncIterator[None]:
        lock = self._lock_for(user_id)
        async with lock:
            yield


class RedisIndexLock:
    """
    Distributed index lock built on redis-py's Lock, valid across every
    process sharing the same Redis.
    """

    def __init__(
        self,
        redis: Redis,
        *,
        timeout: float = 10.0,
        blocking_timeout: float = 5.0,
    ) -> None:
        self._redis = redis
        self._timeout = timeout
        self._blocking_timeout = blocking_timeout

    @asynccontextmanager
    async def hold(self, user_id: str) -> AsyncIterator[None]:
        name = USER_CHAT_INDEX_LOCK_TEMPLATE.format(user_id=user_id)
        lock = self._redis.lock(
            name,
            timeout=self._timeout,
            blocking_timeout=self._blocking_timeout,
        )
        try:
            acquired = await lock.acquire()
        except CACHE_ERRORS as exc:
            raise DependencyUnavailable(f"Failed to acquire index lock '{name}'") from exc
        if not acquired:
            raise DependencyUnavailable(
                f"Timed out after {self._blocking_timeout}s waiting for index lock '{name}'"
            )
        try:
            yield
        finally:
            try:
                await lock.release()
            except LockError:
                logger.warning(
                    "Index lock %s expired before release; consider raising CHAT_INDEX_LOCK_TIMEOUT",
                    name,
                )


__all__ = [
    "IndexLock",
    "LocalIndexLock",
    "RedisIndexLock",
    "USER_CHAT_INDEX_LOCK_TEMPLATE",
]
