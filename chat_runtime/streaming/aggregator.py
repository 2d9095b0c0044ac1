"""
Reassemble a streamed agent reply into complete messages.

A fragment announcing a role other than the open message's closes that
message and opens a new one; every other fragment, including a repeated
announcement of the same role, extends the open message. Only the open
message is buffered. Content streamed before any role was announced is
discarded once a role arrives. An empty role counts as no role.

If the upstream iterator raises (transport error, cancellation) the
exception propagates and the open message is dropped rather than
emitted half-built.
"""

from __future__ import annotations

from typing import Any, AsyncIterable, AsyncIterator, Dict, List, Optional

from chat_runtime.models import ChatMessage, ChatResponse, ChatResponseStream, MessageFragment
from chat_runtime.settings import settings


class MessageAggregator:
    """
    Incremental form of the fragment state machine.

    ``feed`` returns the message closed by the fragment, if any; ``flush``
    returns the message still open once the stream ended. An empty role
    counts as no role.
    """

    def __init__(self, include_metadata: bool = False, *, default_role: Optional[str] = None):
        self.include_metadata = include_metadata
        self.fallback_role = default_role or settings.default_message_role
        self._role: Optional[str] = None
        self._parts: List[str] = []
        self._metadata: Optional[Dict[str, Any]] = None

    def feed(self, fragment: MessageFragment) -> Optional[ChatMessage]:
        closed: Optional[ChatMessage] = None
        if fragment.role and fragment.role != self._role:
            if self._role is not None and self._parts:
                closed = self._build(self._role)
            self._role = fragment.role
            self._parts = []
            self._metadata = None

        if fragment.content:
            self._parts.append(fragment.content)

        if self.include_metadata and fragment.metadata:
            if self._metadata is None:
                self._metadata = {}
            self._metadata.update(fragment.metadata)
        return closed

    def flush(self) -> Optional[ChatMessage]:
        if not self._parts:
            return None
        message = self._build(self._role or self.fallback_role)
        self._parts = []
        self._metadata = None
        return message

    def _build(self, role: str) -> ChatMessage:
        return ChatMessage(role=role, content="".join(self._parts), metadata=self._metadata)


async def aggregate_messages(
    fragments: AsyncIterable[MessageFragment],
    include_metadata: bool = False,
    *,
    default_role: Optional[str] = None,
) -> AsyncIterator[ChatMessage]:
    """
    Turn a fragment stream into a stream of role-labelled messages.

    Metadata is merged per key (later fragments win) into the open message
    only when ``include_metadata`` is set; otherwise emitted messages carry
    ``metadata=None``. Content left over when the stream ends is flushed
    under the last announced role, or ``default_role`` when none was.
    """
    aggregator = MessageAggregator(include_metadata, default_role=default_role)
    async for fragment in fragments:
        message = aggregator.feed(fragment)
        if message is not None:
            yield message

    message = aggregator.flush()
    if message is not None:
        yield message


async def to_response(
    response: ChatResponseStream, include_metadata: bool = False
) -> ChatResponse:
    """
    Drain a streaming agent response into a ChatResponse.
    """
    messages = [
        message
        async for message in aggregate_messages(response.stream, include_metadata)
    ]
    return ChatResponse(id=response.id, messages=messages)


__all__ = ["MessageAggregator", "aggregate_messages", "to_response"]
