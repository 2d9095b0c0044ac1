from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class AgentInvocationOptions(BaseModel):
    """
    Options used to configure an agent's invocation.
    """

    chat_id: Optional[str] = Field(
        None, description="Chat used to retrieve or continue a conversation context"
    )
    session_id: Optional[str] = Field(
        None, description="Broader user interaction context the invocation belongs to"
    )
    user_id: Optional[str] = Field(
        None,
        description=(
            "User identifier. Ignored when the caller is identified, in which case "
            "the caller's id is used; required to correlate anonymous calls to a chat."
        ),
    )
    parameters: Optional[Dict[str, Any]] = Field(
        None, description="Parameters that influence the agent's behavior or response"
    )
    include_metadata: bool = Field(
        False, description="Whether to include message metadata in the response"
    )


class InvokeAgentParameters(BaseModel):
    message: str = Field(..., min_length=1, description="The input message to process")
    options: Optional[AgentInvocationOptions] = Field(
        None, description="Options used to configure the agent's invocation"
    )


class RenameChatRequest(BaseModel):
    name: str = Field(..., min_length=1, description="The chat's new display name")


__all__ = ["AgentInvocationOptions", "InvokeAgentParameters", "RenameChatRequest"]
