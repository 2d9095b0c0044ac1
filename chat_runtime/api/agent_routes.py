from __future__ import annotations

import asyncio
from typing import AsyncIterator, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from chat_runtime.deps import get_invocation_service, get_optional_user_id
from chat_runtime.logging_config import logger
from chat_runtime.models import ChatResponse, InvokeAgentParameters
from chat_runtime.services.agent_invocation import AgentInvocationService

from .sse import SSE_HEADERS, encode_sse_event

router = APIRouter(tags=["agents"], prefix="/api/agents")


@router.post("/{name}/invoke", response_model=ChatResponse)
async def invoke_agent_endpoint(
    name: str,
    parameters: InvokeAgentParameters,
    user_id: Optional[str] = Depends(get_optional_user_id),
    service: AgentInvocationService = Depends(get_invocation_service),
) -> ChatResponse:
    """
    Invoke an agent and return its reply as complete messages.
    """
    return await service.invoke_and_aggregate(name, parameters, user_id=user_id)


@router.post("/{name}/invoke/stream")
async def invoke_agent_stream_endpoint(
    name: str,
    parameters: InvokeAgentParameters,
    user_id: Optional[str] = Depends(get_optional_user_id),
    service: AgentInvocationService = Depends(get_invocation_service),
) -> StreamingResponse:
    """
    Invoke an agent and relay its reply fragments as server-sent events.
    """
    response = await service.invoke(name, parameters, user_id=user_id)
    include_metadata = bool(parameters.options and parameters.options.include_metadata)

    async def _events() -> AsyncIterator[bytes]:
        try:
            async for fragment in response.stream:
                payload = fragment.model_dump(exclude=None if include_metadata else {"metadata"})
                yield encode_sse_event(data=payload)
        except asyncio.CancelledError:
            # Client went away; nothing left to deliver.
            raise
        except Exception as exc:
            logger.exception(
                "agent_routes: stream of agent %s failed (response_id=%s)", name, response.id
            )
            yield encode_sse_event(
                event_type="error",
                data={"type": "error", "error": {"message": str(exc)}},
            )

    headers = {**SSE_HEADERS, "X-Response-Id": response.id}
    return StreamingResponse(_events(), media_type="text/event-stream", headers=headers)


__all__ = ["router"]
