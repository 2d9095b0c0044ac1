"""
High-level Redis helpers for the chat keyspace.

This module encapsulates the key patterns of chat records and of the
per-user chat index so that the rest of the codebase does not have to
deal with raw Redis keys directly.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import ValidationError
from redis.asyncio import Redis

from chat_runtime.logging_config import logger
from chat_runtime.models import ChatSession
from chat_runtime.redis_client import redis_delete, redis_get_json, redis_set_json

# Chat records and user indexes live under disjoint prefixes.
CHAT_KEY_TEMPLATE = "chat:{key}"
USER_CHAT_INDEX_KEY_TEMPLATE = "user:{user_id}:chats"


async def get_chat(redis: Redis, key: str) -> Optional[ChatSession]:
    cache_key = CHAT_KEY_TEMPLATE.format(key=key)
    data = await redis_get_json(redis, cache_key)
    if not data:
        return None
    try:
        return ChatSession.model_validate(data)
    except ValidationError:
        logger.warning("Ignoring malformed chat record stored under %s", cache_key)
        return None


async def set_chat(
    redis: Redis, chat: ChatSession, *, ttl_seconds: int | None = None
) -> None:
    cache_key = CHAT_KEY_TEMPLATE.format(key=chat.key)
    await redis_set_json(redis, cache_key, chat.model_dump(), ttl_seconds=ttl_seconds)


async def delete_chat(redis: Redis, key: str) -> None:
    await redis_delete(redis, CHAT_KEY_TEMPLATE.format(key=key))


async def get_user_chat_index(redis: Redis, user_id: str) -> List[str]:
    """
    Return the chat keys indexed for a user, in insertion order.
    A missing or malformed index reads as empty.
    """
    index_key = USER_CHAT_INDEX_KEY_TEMPLATE.format(user_id=user_id)
    data = await redis_get_json(redis, index_key)
    if data is None:
        return []
    if not isinstance(data, list) or not all(isinstance(k, str) for k in data):
        logger.warning("Ignoring malformed chat index stored under %s", index_key)
        return []
    return data


async def set_user_chat_index(redis: Redis, user_id: str, keys: List[str]) -> None:
    """
    Persist the chat index of a user; an empty index is removed instead.
    """
    index_key = USER_CHAT_INDEX_KEY_TEMPLATE.format(user_id=user_id)
    if keys:
        await redis_set_json(redis, index_key, keys)
    else:
        await redis_delete(redis, index_key)


__all__ = [
    "CHAT_KEY_TEMPLATE",
    "USER_CHAT_INDEX_KEY_TEMPLATE",
    "delete_chat",
    "get_chat",
    "get_user_chat_index",
    "set_chat",
    "set_user_chat_index",
]
