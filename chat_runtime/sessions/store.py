"""
Chat session keyspace on top of a flat key/value cache.

Chat records live under ``chat:{key}``; each user additionally owns an
index ``user:{user_id}:chats`` listing the keys of their chats so that
listing never scans the keyspace. The cache offers no transactions, so
every mutation of a user's chats (record write plus index update) runs
while holding that user's index lock. Once mutations quiesce, a user's
index holds exactly the keys of their existing chats, each once.
"""

from __future__ import annotations

from typing import AsyncIterator, Iterable, Optional

from redis.asyncio import Redis

from chat_runtime.errors import InvalidArgument, require
from chat_runtime.logging_config import logger
from chat_runtime.models import ChatMessage, ChatSession, build_chat_key, parse_chat_key
from chat_runtime.storage.index_lock import IndexLock, LocalIndexLock
from chat_runtime.storage.redis_service import (
    delete_chat,
    get_chat,
    get_user_chat_index,
    set_chat,
    set_user_chat_index,
)


class ChatSessionStore:
    """Manages chat sessions and the per-user chat index."""

    def __init__(
        self,
        redis: Redis,
        *,
        index_lock: Optional[IndexLock] = None,
        ttl_seconds: Optional[int] = None,
    ) -> None:
        self.redis = redis
        self.index_lock: IndexLock = index_lock or LocalIndexLock()
        self.ttl_seconds = ttl_seconds

    async def upsert(self, chat: Optional[ChatSession]) -> ChatSession:
        """
        Create or replace a chat and make sure its owner's index lists it.
        """
        if chat is None:
            raise InvalidArgument("'chat' is required")
        require(chat.id, "id")
        require(chat.user_id, "user_id")
        require(chat.agent_name, "agent_name")

        async with self.index_lock.hold(chat.user_id):
            await set_chat(self.redis, chat, ttl_seconds=self.ttl_seconds)
            await self._add_to_index(chat.user_id, chat.key)
        logger.debug("Upserted chat %s", chat.key)
        return chat

    async def get_by_key(self, key: str) -> Optional[ChatSession]:
        """
        Return the chat stored under ``key``, or None if there is none.
        """
        require(key, "key")
        return await get_chat(self.redis, key)

    async def get_by_identity(
        self, id: str, user_id: str, agent_name: str
    ) -> Optional[ChatSession]:
        require(id, "id")
        require(user_id, "user_id")
        require(agent_name, "agent_name")
        return await self.get_by_key(build_chat_key(id, user_id, agent_name))

    def list_chats(
        self, user_id: str, agent_name: Optional[str] = None
    ) -> AsyncIterator[ChatSession]:
        """
        Lazily enumerate a user's chats in index order, optionally only
        those of one agent.

        Arguments are validated immediately; the index is read when
        iteration starts. Keys whose record has vanished are skipped.
        """
        require(user_id, "user_id")
        return self._iter_chats(user_id, agent_name)

    async def _iter_chats(
        self, user_id: str, agent_name: Optional[str]
    ) -> AsyncIterator[ChatSession]:
        for key in await get_user_chat_index(self.redis, user_id):
            chat = await get_chat(self.redis, key)
            if chat is None:
                continue
            if agent_name and chat.agent_name != agent_name:
                continue
            yield chat

    async def rename(self, key: str, name: str) -> Optional[ChatSession]:
        """
        Set the display name of a chat. Renaming a chat that does not
        exist is a no-op and returns None.
        """
        require(key, "key")
        require(name, "name")
        owner = self._owner_of(key)
        if owner is None:
            return None

        async with self.index_lock.hold(owner):
            chat = await get_chat(self.redis, key)
            if chat is None:
                return None
            chat = chat.model_copy(update={"name": name})
            await set_chat(self.redis, chat, ttl_seconds=self.ttl_seconds)
        logger.debug("Renamed chat %s", key)
        return chat

    async def delete(self, key: str) -> bool:
        """
        Delete a chat and drop it from its owner's index.
        Returns False (without error) when the chat did not exist.
        """
        require(key, "key")
        owner = self._owner_of(key)
        if owner is None:
            return False

        async with self.index_lock.hold(owner):
            chat = await get_chat(self.redis, key)
            if chat is None:
                return False
            await delete_chat(self.redis, key)
            await self._remove_from_index(chat.user_id, key)
        logger.debug("Deleted chat %s", key)
        return True

    async def append_messages(
        self,
        id: str,
        user_id: str,
        agent_name: str,
        messages: Iterable[ChatMessage],
    ) -> ChatSession:
        """
        Append messages to a chat's transcript, creating the chat first
        when it does not exist yet.
        """
        require(id, "id")
        require(user_id, "user_id")
        require(agent_name, "agent_name")
        key = build_chat_key(id, user_id, agent_name)

        async with self.index_lock.hold(user_id):
            chat = await get_chat(self.redis, key)
            if chat is None:
                chat = ChatSession(id=id, user_id=user_id, agent_name=agent_name)
            chat = chat.model_copy(update={"messages": [*chat.messages, *messages]})
            await set_chat(self.redis, chat, ttl_seconds=self.ttl_seconds)
            await self._add_to_index(user_id, key)
        return chat

    @staticmethod
    def _owner_of(key: str) -> Optional[str]:
        identity = parse_chat_key(key)
        if identity is None:
            return None
        return identity[1]

    # Index helpers below must only run while the owner's lock is held.

    async def _add_to_index(self, user_id: str, key: str) -> None:
        keys = await get_user_chat_index(self.redis, user_id)
        if key in keys:
            return
        keys.append(key)
        await set_user_chat_index(self.redis, user_id, keys)

    async def _remove_from_index(self, user_id: str, key: str) -> None:
        keys = await get_user_chat_index(self.redis, user_id)
        if key not in keys:
            return
        await set_user_chat_index(self.redis, user_id, [k for k in keys if k != key])


__all__ = ["ChatSessionStore"]
