"""
Agent invocation: resolve the agent, correlate the call with a chat and
persist the exchange once the streamed reply completed.
"""

from __future__ import annotations

from typing import AsyncIterator, List, Optional

from chat_runtime.agents import AgentRegistry
from chat_runtime.errors import AgentNotFound, require
from chat_runtime.logging_config import logger
from chat_runtime.models import (
    AgentInvocationOptions,
    ChatMessage,
    ChatResponse,
    ChatResponseStream,
    InvokeAgentParameters,
    MessageFragment,
)
from chat_runtime.sessions import ChatSessionStore
from chat_runtime.streaming import MessageAggregator, to_response

USER_ROLE = "user"


class AgentInvocationService:
    def __init__(self, agents: AgentRegistry, chats: ChatSessionStore) -> None:
        self.agents = agents
        self.chats = chats

    async def invoke(
        self,
        agent_name: str,
        parameters: InvokeAgentParameters,
        *,
        user_id: Optional[str] = None,
    ) -> ChatResponseStream:
        """
        Invoke ``agent_name`` and return its streamed reply.

        ``user_id`` is the identified caller and takes precedence over the
        one carried by the options. When the call is correlated with a chat,
        the user message and the aggregated reply are appended to that chat
        after the stream completed successfully.
        """
        require(agent_name, "agent_name")
        agent = self.agents.get(agent_name)
        if agent is None:
            raise AgentNotFound(agent_name)

        options = parameters.options or AgentInvocationOptions()
        resolved_user_id = user_id or options.user_id
        options = options.model_copy(update={"user_id": resolved_user_id})
        if not resolved_user_id and options.chat_id:
            logger.warning(
                "Chat id '%s' was ignored because the user id could not be resolved; "
                "messages cannot be correlated to a chat without a user context.",
                options.chat_id,
            )
            options = options.model_copy(update={"chat_id": None})

        response = await agent.invoke_streaming(parameters.message, options)
        if not options.chat_id:
            return response

        stream = self._record_transcript(
            response.stream,
            chat_id=options.chat_id,
            user_id=resolved_user_id,
            agent_name=agent_name,
            user_message=parameters.message,
        )
        return ChatResponseStream(id=response.id, stream=stream)

    async def invoke_and_aggregate(
        self,
        agent_name: str,
        parameters: InvokeAgentParameters,
        *,
        user_id: Optional[str] = None,
    ) -> ChatResponse:
        response = await self.invoke(agent_name, parameters, user_id=user_id)
        include_metadata = bool(parameters.options and parameters.options.include_metadata)
        return await to_response(response, include_metadata)

    async def _record_transcript(
        self,
        fragments: AsyncIterator[MessageFragment],
        *,
        chat_id: str,
        user_id: str,
        agent_name: str,
        user_message: str,
    ) -> AsyncIterator[MessageFragment]:
        # Fragments are relayed as they arrive; the chat is only written once
        # the upstream stream ended without error.
        aggregator = MessageAggregator(include_metadata=True)
        reply: List[ChatMessage] = []
        async for fragment in fragments:
            message = aggregator.feed(fragment)
            if message is not None:
                reply.append(message)
            yield fragment

        message = aggregator.flush()
        if message is not None:
            reply.append(message)
        chat = await self.chats.append_messages(
            chat_id,
            user_id,
            agent_name,
            [ChatMessage(role=USER_ROLE, content=user_message), *reply],
        )
        logger.info(
            "Recorded %d reply message(s) from agent %s into chat %s",
            len(reply),
            agent_name,
            chat.key,
        )


__all__ = ["AgentInvocationService"]
