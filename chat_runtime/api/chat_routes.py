from __future__ import annotations

import asyncio
from typing import AsyncIterator, List, Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import Response, StreamingResponse

from chat_runtime.deps import get_chat_store, get_current_user_id
from chat_runtime.errors import not_found
from chat_runtime.logging_config import logger
from chat_runtime.models import ChatSession, RenameChatRequest
from chat_runtime.sessions import ChatSessionStore

from .sse import SSE_HEADERS, encode_sse_event

router = APIRouter(tags=["chats"], prefix="/api/chats")


@router.get("", response_model=ChatSession)
async def get_chat_endpoint(
    id: str = Query(..., min_length=1, description="The user-defined id of the chat"),
    agent: str = Query(..., min_length=1, description="The agent the chat concerns"),
    user_id: str = Depends(get_current_user_id),
    chats: ChatSessionStore = Depends(get_chat_store),
) -> ChatSession:
    """
    Return the caller's chat with the given id and agent.
    """
    chat = await chats.get_by_identity(id, user_id, agent)
    if chat is None:
        raise not_found(f"Chat '{id}' not found", details={"agent": agent})
    return chat


@router.get("/list", response_model=List[ChatSession])
async def list_chats_endpoint(
    agent: Optional[str] = Query(None, description="Only list chats with this agent"),
    user_id: str = Depends(get_current_user_id),
    chats: ChatSessionStore = Depends(get_chat_store),
) -> List[ChatSession]:
    return [chat async for chat in chats.list_chats(user_id, agent)]


@router.get("/stream")
async def stream_chats_endpoint(
    agent: Optional[str] = Query(None, description="Only stream chats with this agent"),
    user_id: str = Depends(get_current_user_id),
    chats: ChatSessionStore = Depends(get_chat_store),
) -> StreamingResponse:
    """
    Stream the caller's chats as server-sent events, one chat per frame.
    """
    source = chats.list_chats(user_id, agent)

    async def _events() -> AsyncIterator[bytes]:
        try:
            async for chat in source:
                yield encode_sse_event(data=jsonable_encoder(chat))
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.exception("chat_routes: streaming chats of user %s failed", user_id)
            yield encode_sse_event(
                event_type="error",
                data={"type": "error", "error": {"message": str(exc)}},
            )

    return StreamingResponse(_events(), media_type="text/event-stream", headers=SSE_HEADERS)


@router.get("/{key:path}", response_model=ChatSession)
async def get_chat_by_key_endpoint(
    key: str,
    chats: ChatSessionStore = Depends(get_chat_store),
) -> ChatSession:
    chat = await chats.get_by_key(key)
    if chat is None:
        raise not_found(f"Chat '{key}' not found")
    return chat


@router.put("/{key:path}/name", status_code=status.HTTP_204_NO_CONTENT)
async def rename_chat_endpoint(
    key: str,
    payload: RenameChatRequest,
    chats: ChatSessionStore = Depends(get_chat_store),
) -> Response:
    """
    Rename a chat. Renaming an unknown chat succeeds without effect.
    """
    await chats.rename(key, payload.name)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/{key:path}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_chat_endpoint(
    key: str,
    chats: ChatSessionStore = Depends(get_chat_store),
) -> Response:
    """
    Delete a chat. Deleting an unknown chat succeeds without effect.
    """
    await chats.delete(key)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


__all__ = ["router"]
