"""
Redis helper utilities for the chat keyspace.

This module provides a central place to construct the Redis client and
some small helpers for JSON-style key access so that the session store
and its index lock do not duplicate this logic.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any
from weakref import WeakKeyDictionary

from fastapi.encoders import jsonable_encoder
from redis.asyncio import Redis
from redis.exceptions import RedisError

from .errors import DependencyUnavailable
from .logging_config import logger
from .settings import settings

_redis_clients_by_loop: WeakKeyDictionary[asyncio.AbstractEventLoop, Redis] = (
    WeakKeyDictionary()
)

# Failures of the cache client surface as DependencyUnavailable.
CACHE_ERRORS: tuple[type[BaseException], ...] = (RedisError, OSError)


def _ensure_event_loop() -> asyncio.AbstractEventLoop:
    try:
        return asyncio.get_running_loop()
    except RuntimeError as exc:  # pragma: no cover - easier debugging for sync misuse
        raise RuntimeError(
            "get_redis_client() must be called from inside a running event loop"
        ) from exc


def _create_client() -> Redis:
    return Redis.from_url(
        settings.redis_url,
        decode_responses=True,
        socket_timeout=settings.redis_socket_timeout,
        socket_connect_timeout=settings.redis_socket_timeout,
    )


def get_redis_client() -> Redis:
    """
    Return a Redis client bound to the current event loop.
    """

    loop = _ensure_event_loop()
    client = _redis_clients_by_loop.get(loop)
    if client is None:
        client = _create_client()
        _redis_clients_by_loop[loop] = client
    return client


async def redis_get_json(redis: Redis, key: str) -> Any | None:
    """
    Load a JSON value from Redis.
    Returns None on missing key or malformed payload.
    """
    try:
        raw = await redis.get(key)
    except CACHE_ERRORS as exc:
        raise DependencyUnavailable(f"Failed to read '{key}' from cache") from exc
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Ignoring malformed JSON payload stored under %s", key)
        return None


async def redis_set_json(
    redis: Redis, key: str, value: Any, *, ttl_seconds: int | None = None
) -> None:
    """
    Store a JSON-serialisable value under the given key with optional TTL.
    """
    data = json.dumps(jsonable_encoder(value), ensure_ascii=False)
    try:
        if ttl_seconds is not None:
            await redis.set(key, data, ex=ttl_seconds)
        else:
            await redis.set(key, data)
    except CACHE_ERRORS as exc:
        raise DependencyUnavailable(f"Failed to write '{key}' to cache") from exc


async def redis_delete(redis: Redis, key: str) -> None:
    """
    Delete a key if it exists.
    """
    try:
        await redis.delete(key)
    except CACHE_ERRORS as exc:
        raise DependencyUnavailable(f"Failed to delete '{key}' from cache") from exc


__all__ = [
    "CACHE_ERRORS",
    "get_redis_client",
    "redis_delete",
    "redis_get_json",
    "redis_set_json",
]
