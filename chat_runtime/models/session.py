from typing import List, Optional, Tuple

from pydantic import BaseModel, Field, computed_field

from .message import ChatMessage

CHAT_KEY_SEPARATOR = ":"


def _escape(part: str) -> str:
    return part.replace("%", "%25").replace(CHAT_KEY_SEPARATOR, "%3A")


def _unescape(part: str) -> str:
    return part.replace("%3A", CHAT_KEY_SEPARATOR).replace("%25", "%")


def build_chat_key(id: str, user_id: str, agent_name: str) -> str:
    """
    Compose the globally unique key of a chat from its identity triple:
    ``{agent_name}:{user_id}:{id}``.

    Separators inside a component are percent-escaped so that two distinct
    triples never share a key. Read and write paths must both go through
    this function.
    """
    return CHAT_KEY_SEPARATOR.join(_escape(p) for p in (agent_name, user_id, id))


def parse_chat_key(key: str) -> Optional[Tuple[str, str, str]]:
    """
    Inverse of build_chat_key: ``(id, user_id, agent_name)``, or None when
    ``key`` was not produced by build_chat_key.
    """
    parts = key.split(CHAT_KEY_SEPARATOR)
    if len(parts) != 3 or not all(parts):
        return None
    agent_name, user_id, id = (_unescape(p) for p in parts)
    return id, user_id, agent_name


class ChatSession(BaseModel):
    """
    A persisted conversation scoped to one user and one agent.
    """

    id: str = Field(..., description="Caller-supplied chat identifier")
    user_id: str = Field(..., description="Owner of the chat")
    agent_name: str = Field(..., description="Agent the chat is scoped to")
    name: Optional[str] = Field(None, description="Optional display name")
    messages: List[ChatMessage] = Field(
        default_factory=list, description="Messages exchanged during the chat"
    )

    @computed_field  # type: ignore[prop-decorator]
    @property
    def key(self) -> str:
        return build_chat_key(self.id, self.user_id, self.agent_name)


__all__ = ["CHAT_KEY_SEPARATOR", "ChatSession", "build_chat_key", "parse_chat_key"]
