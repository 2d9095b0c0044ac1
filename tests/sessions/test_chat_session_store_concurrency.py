import asyncio
import json

import pytest

from chat_runtime.errors import DependencyUnavailable
from chat_runtime.models import ChatMessage, ChatSession
from chat_runtime.sessions import ChatSessionStore
from chat_runtime.storage.index_lock import LocalIndexLock, RedisIndexLock
from tests.utils import InMemoryRedis


def _index_of(redis: InMemoryRedis, user_id: str) -> list:
    raw = redis._data.get(f"user:{user_id}:chats")
    return [] if raw is None else json.loads(raw)


def _chat(id: str, user_id: str = "u1") -> ChatSession:
    return ChatSession(id=id, user_id=user_id, agent_name="helper")


@pytest.mark.asyncio
@pytest.mark.parametrize("lock_kind", ["local", "redis"])
async def test_concurrent_upserts_all_land_in_index(lock_kind):
    redis = InMemoryRedis(latency=0.002, seed=7)
    index_lock = LocalIndexLock() if lock_kind == "local" else RedisIndexLock(redis)
    store = ChatSessionStore(redis, index_lock=index_lock)

    await asyncio.gather(*(store.upsert(_chat(f"c{i}")) for i in range(25)))

    index = _index_of(redis, "u1")
    assert sorted(index) == sorted(f"helper:u1:c{i}" for i in range(25))
    assert len(index) == len(set(index))


@pytest.mark.asyncio
async def test_concurrent_upserts_and_deletes_converge():
    redis = InMemoryRedis(latency=0.002, seed=11)
    store = ChatSessionStore(redis, index_lock=LocalIndexLock())
    for i in range(10):
        await store.upsert(_chat(f"old{i}"))

    await asyncio.gather(
        *(store.upsert(_chat(f"new{i}")) for i in range(10)),
        *(store.delete(f"helper:u1:old{i}") for i in range(0, 10, 2)),
    )

    expected = {f"helper:u1:new{i}" for i in range(10)} | {
        f"helper:u1:old{i}" for i in range(1, 10, 2)
    }
    index = _index_of(redis, "u1")
    assert set(index) == expected
    assert len(index) == len(expected)
    listed = [chat.key async for chat in store.list_chats("u1")]
    assert set(listed) == expected


@pytest.mark.asyncio
async def test_rename_racing_delete_never_resurrects_the_chat():
    redis = InMemoryRedis(latency=0.002, seed=3)
    store = ChatSessionStore(redis, index_lock=LocalIndexLock())
    await store.upsert(_chat("a"))

    await asyncio.gather(store.rename("helper:u1:a", "late"), store.delete("helper:u1:a"))

    record = redis._data.get("chat:helper:u1:a")
    index = _index_of(redis, "u1")
    # Whichever runs first, record and index agree that the chat is gone.
    assert (record is None) == ("helper:u1:a" not in index)
    assert record is None


@pytest.mark.asyncio
async def test_concurrent_appends_keep_every_message():
    redis = InMemoryRedis(latency=0.002, seed=5)
    store = ChatSessionStore(redis, index_lock=LocalIndexLock())

    await asyncio.gather(
        *(
            store.append_messages("c1", "u1", "helper", [ChatMessage(role="user", content=str(i))])
            for i in range(15)
        )
    )

    chat = await store.get_by_identity("c1", "u1", "helper")
    assert sorted(int(m.content) for m in chat.messages) == list(range(15))
    assert _index_of(redis, "u1") == ["helper:u1:c1"]


@pytest.mark.asyncio
async def test_different_users_do_not_share_a_lock():
    index_lock = LocalIndexLock()

    async with index_lock.hold("u1"):
        # Would deadlock if u2 contended on u1's lock.
        await asyncio.wait_for(_hold_briefly(index_lock, "u2"), timeout=1)


async def _hold_briefly(index_lock, user_id):
    async with index_lock.hold(user_id):
        return True


@pytest.mark.asyncio
async def test_redis_lock_timeout_surfaces_as_dependency_unavailable():
    redis = InMemoryRedis()
    index_lock = RedisIndexLock(redis, blocking_timeout=0.05)
    store = ChatSessionStore(redis, index_lock=index_lock)

    async with index_lock.hold("u1"):
        with pytest.raises(DependencyUnavailable):
            await store.upsert(_chat("a"))

    assert "chat:helper:u1:a" not in redis._data
    await store.upsert(_chat("a"))
    assert _index_of(redis, "u1") == ["helper:u1:a"]


@pytest.mark.asyncio
async def test_cache_failure_surfaces_as_dependency_unavailable(store, fake_redis):
    await store.upsert(_chat("a"))
    fake_redis.fail_with = ConnectionError("connection refused")

    with pytest.raises(DependencyUnavailable):
        await store.get_by_key("helper:u1:a")
    with pytest.raises(DependencyUnavailable):
        await store.upsert(_chat("b"))
    with pytest.raises(DependencyUnavailable):
        [chat async for chat in store.list_chats("u1")]

    # A failed call leaves the lock free for the next one.
    fake_redis.fail_with = None
    await store.upsert(_chat("b"))
    assert _index_of(fake_redis, "u1") == ["helper:u1:a", "helper:u1:b"]
