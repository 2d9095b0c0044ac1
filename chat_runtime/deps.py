from typing import Optional

from fastapi import Depends, Header, Request
from redis.asyncio import Redis

from .agents import AgentRegistry
from .errors import unauthorized
from .redis_client import get_redis_client
from .services.agent_invocation import AgentInvocationService
from .sessions import ChatSessionStore
from .settings import settings
from .storage.index_lock import IndexLock, LocalIndexLock, RedisIndexLock

# Shared by every request of this process so that concurrent requests for
# the same user contend on the same lock.
_local_index_lock = LocalIndexLock()


async def get_redis() -> Redis:
    """
    FastAPI dependency that provides a shared Redis client.

    Tests override this dependency with an in-memory fake.
    """
    return get_redis_client()


def get_index_lock(redis: Redis = Depends(get_redis)) -> IndexLock:
    if settings.chat_index_lock == "redis":
        return RedisIndexLock(
            redis,
            timeout=settings.chat_index_lock_timeout,
            blocking_timeout=settings.chat_index_lock_blocking_timeout,
        )
    return _local_index_lock


def get_chat_store(
    redis: Redis = Depends(get_redis),
    index_lock: IndexLock = Depends(get_index_lock),
) -> ChatSessionStore:
    return ChatSessionStore(
        redis,
        index_lock=index_lock,
        ttl_seconds=settings.chat_session_ttl_seconds,
    )


def get_agent_registry(request: Request) -> AgentRegistry:
    return request.app.state.agents


def get_invocation_service(
    agents: AgentRegistry = Depends(get_agent_registry),
    chats: ChatSessionStore = Depends(get_chat_store),
) -> AgentInvocationService:
    return AgentInvocationService(agents, chats)


def get_current_user_id(
    x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
) -> str:
    """
    Identity of the caller, as forwarded by the fronting gateway.
    """
    if not x_user_id or not x_user_id.strip():
        raise unauthorized("Missing X-User-Id header")
    return x_user_id


def get_optional_user_id(
    x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
) -> Optional[str]:
    if not x_user_id or not x_user_id.strip():
        return None
    return x_user_id
