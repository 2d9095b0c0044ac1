import uuid
from typing import Iterable, Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from .agents import Agent, AgentRegistry
from .api.agent_routes import router as agent_router
from .api.chat_routes import router as chat_router
from .errors import (
    AgentNotFound,
    DependencyUnavailable,
    ErrorResponse,
    InvalidArgument,
)
from .logging_config import logger
from .settings import settings


def _error_response(status_code: int, *, error: str, message: str) -> JSONResponse:
    payload = ErrorResponse(error=error, message=message, code=status_code)
    return JSONResponse(status_code=status_code, content={"detail": payload.model_dump()})


async def handle_invalid_argument(request: Request, exc: InvalidArgument) -> JSONResponse:
    return _error_response(status.HTTP_400_BAD_REQUEST, error="bad_request", message=str(exc))


async def handle_agent_not_found(request: Request, exc: AgentNotFound) -> JSONResponse:
    return _error_response(status.HTTP_404_NOT_FOUND, error="not_found", message=str(exc))


async def handle_dependency_unavailable(
    request: Request, exc: DependencyUnavailable
) -> JSONResponse:
    logger.warning(
        "Cache unavailable while serving %s %s: %s",
        request.method,
        request.url.path,
        exc,
    )
    return _error_response(
        status.HTTP_503_SERVICE_UNAVAILABLE,
        error="service_unavailable",
        message="Chat storage is temporarily unavailable",
    )


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    """
    Catch-all handler: log with an error id and return a structured body.
    """
    error_id = uuid.uuid4().hex
    logger.exception(
        "Unhandled error %s %s (error_id=%s)",
        request.method,
        request.url.path,
        error_id,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error_code": "internal_error",
            "message": "Internal server error, please retry later",
            "error_id": error_id,
        },
    )


def create_app(agents: Optional[Iterable[Agent]] = None) -> FastAPI:
    docs_url = "/docs" if settings.enable_api_docs else None
    redoc_url = "/redoc" if settings.enable_api_docs else None
    openapi_url = "/openapi.json" if settings.enable_api_docs else None

    app = FastAPI(
        title="Chat Runtime",
        version="0.1.0",
        docs_url=docs_url,
        redoc_url=redoc_url,
        openapi_url=openapi_url,
    )
    app.state.agents = AgentRegistry(list(agents or []))

    app.add_exception_handler(InvalidArgument, handle_invalid_argument)
    app.add_exception_handler(AgentNotFound, handle_agent_not_found)
    app.add_exception_handler(DependencyUnavailable, handle_dependency_unavailable)
    app.add_exception_handler(Exception, handle_unexpected_error)

    if not settings.enable_api_docs:
        logger.info(
            "API docs routes are disabled (environment=%s); set ENABLE_API_DOCS=true to enable.",
            settings.environment,
        )

    app.include_router(chat_router)
    app.include_router(agent_router)

    @app.get("/health")
    async def health() -> dict:
        return {"status": "ok", "agents": app.state.agents.names()}

    return app


__all__ = ["create_app"]
