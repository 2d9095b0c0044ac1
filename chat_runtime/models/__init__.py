from .invocation import AgentInvocationOptions, InvokeAgentParameters, RenameChatRequest
from .message import ChatMessage, ChatResponse, ChatResponseStream, MessageFragment
from .session import ChatSession, build_chat_key, parse_chat_key

__all__ = [
    "AgentInvocationOptions",
    "ChatMessage",
    "ChatResponse",
    "ChatResponseStream",
    "ChatSession",
    "InvokeAgentParameters",
    "MessageFragment",
    "RenameChatRequest",
    "build_chat_key",
    "parse_chat_key",
]
