from typing import Any, Dict, Optional

from fastapi import HTTPException, status
from pydantic import BaseModel, Field


class ChatRuntimeError(Exception):
    """
    Base class for errors raised by the chat runtime core.
    """


class InvalidArgument(ChatRuntimeError, ValueError):
    """
    A required identity field (id, user id, agent name, key, name) is
    missing or empty. Never retried.
    """


class DependencyUnavailable(ChatRuntimeError):
    """
    The backing cache could not be reached or rejected the command.
    """


class AgentNotFound(ChatRuntimeError):
    def __init__(self, agent_name: str) -> None:
        super().__init__(f"Agent '{agent_name}' not found")
        self.agent_name = agent_name


class StreamFailure(ChatRuntimeError):
    """
    Raised by agents when their fragment stream breaks mid-response.
    """


def require(value: Optional[str], field: str) -> str:
    """
    Return ``value`` unchanged, raising InvalidArgument when it is empty.
    """
    if value is None or not str(value).strip():
        raise InvalidArgument(f"'{field}' must be a non-empty string")
    return value


class ErrorResponse(BaseModel):
    """
    Standard error payload:
    {
        "error": "not_found",
        "message": "Chat not found",
        "code": 404,
        "details": {...}
    }
    """

    error: str = Field(..., description="Machine-readable error type")
    message: str = Field(..., description="Human-readable error message")
    code: int = Field(..., description="HTTP status code for this error")
    details: Optional[Dict[str, Any]] = Field(
        default=None, description="Optional structured error details"
    )


def http_error(
    status_code: int,
    *,
    error: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
) -> HTTPException:
    """
    Helper to create an HTTPException with a standardised error body.
    """
    payload = ErrorResponse(
        error=error,
        message=message,
        code=status_code,
        details=details,
    )
    return HTTPException(status_code=status_code, detail=payload.model_dump())


def unauthorized(message: str, *, details: Optional[Dict[str, Any]] = None) -> HTTPException:
    return http_error(
        status.HTTP_401_UNAUTHORIZED, error="unauthorized", message=message, details=details
    )


def not_found(message: str, *, details: Optional[Dict[str, Any]] = None) -> HTTPException:
    return http_error(
        status.HTTP_404_NOT_FOUND, error="not_found", message=message, details=details
    )


__all__ = [
    "AgentNotFound",
    "ChatRuntimeError",
    "DependencyUnavailable",
    "ErrorResponse",
    "InvalidArgument",
    "StreamFailure",
    "http_error",
    "not_found",
    "require",
    "unauthorized",
]
