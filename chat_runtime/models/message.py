from dataclasses import dataclass
from typing import Any, AsyncIterator, Dict, List, Optional

from pydantic import BaseModel, Field


class ChatMessage(BaseModel):
    """
    A complete, role-labelled unit of conversation.
    """

    role: str = Field(
        ..., min_length=1, description="Speaker identity, e.g. user, assistant, system"
    )
    content: str = Field("", description="Assembled message text")
    metadata: Optional[Dict[str, Any]] = Field(
        default=None, description="Message metadata, if collected"
    )


class MessageFragment(BaseModel):
    """
    One incremental piece of a streamed agent reply.

    A present ``role`` marks the start of a new message.
    """

    role: Optional[str] = Field(None, description="Role announced by this fragment, if any")
    content: Optional[str] = Field("", description="Text to append to the open message")
    metadata: Optional[Dict[str, Any]] = Field(
        default=None, description="Metadata increment carried by this fragment"
    )


class ChatResponse(BaseModel):
    """
    Response of an agent to a prompt, with the streamed fragments
    reassembled into messages.
    """

    id: str = Field(..., description="The response's unique identifier")
    messages: List[ChatMessage] = Field(
        default_factory=list, description="Messages produced by the agent"
    )


@dataclass
class ChatResponseStream:
    """
    Streaming result of an agent invocation.
    """

    id: str
    stream: AsyncIterator[MessageFragment]


__all__ = ["ChatMessage", "ChatResponse", "ChatResponseStream", "MessageFragment"]
