"""FastAPI application for the porcelain assistant."""

import datetime
import time

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from porcelain_rag.api.routes import chat, conversations, health, messages, upload
from porcelain_rag.config import config
from porcelain_rag.services import Services

logger = config.get_logger(__name__)

API_VERSION = "1.0.0"

ENDPOINTS = {
    "chat": {
        "POST /api/chat": "Send a message to the AI assistant",
        "POST /api/chat/stream": "Stream response from the AI assistant",
        "GET /api/chat/history/{sessionId}": "Get conversation history",
        "POST /api/chat/feedback": "Submit feedback for a conversation",
        "GET /api/chat/search": "Search products by text query",
        "GET /api/chat/health": "Check chat service health",
    },
    "conversations": {
        "GET /api/conversations": "List the caller's conversations",
        "POST /api/conversations": "Create a conversation",
        "GET /api/conversations/{id}": "Get a conversation",
        "PUT /api/conversations/{id}": "Rename a conversation",
        "DELETE /api/conversations/{id}": "Delete a conversation",
    },
    "messages": {
        "GET /api/messages/conversation/{id}": "List messages of a conversation",
        "POST /api/messages": "Send a message",
        "PUT /api/messages/{id}": "Edit a message",
        "DELETE /api/messages/{id}": "Delete a message",
    },
    "upload": {
        "POST /api/upload/products": "Upload product data files",
        "POST /api/upload/product-data": "Upload product data directly (JSON)",
        "POST /api/upload/images": "Upload product images",
        "GET /api/upload/status": "Get upload status and statistics",
    },
    "health": {
        "GET /health": "Basic health check",
        "GET /health/db": "Database health check",
        "GET /health/openai": "OpenAI API health check",
        "GET /health/retrieval": "Retrieval system health check",
    },
}


def _timestamp() -> str:
    return datetime.datetime.now(tz=datetime.UTC).isoformat()


def _describe(error: dict) -> str:
    field = ".".join(str(part) for part in error["loc"][1:]) or "body"
    return f"{field}: {error['msg']}"


async def http_error_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    if exc.status_code == 404 and exc.detail == "Not Found":
        return JSONResponse(
            status_code=404,
            content={
                "error": "Not Found",
                "message": f"The requested resource {request.url.path} was not found",
                "timestamp": _timestamp(),
            },
        )
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report malformed requests as 400 rather than FastAPI's default 422."""
    details = "; ".join(_describe(error) for error in exc.errors())
    logger.info("Rejected request to %s: %s", request.url.path, details)
    return JSONResponse(
        status_code=400,
        content={"error": "Validation Error", "message": details},
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled error on %s", request.url.path, exc_info=exc)
    message = str(exc) if config.is_development() else "Something went wrong"
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "message": message,
            "timestamp": _timestamp(),
        },
    )


def create_app(services: Services | None = None) -> FastAPI:
    """Build the API application.

    Args:
        services: Collaborators to serve with. If None, they are built from
            configuration on the first request that needs them.

    Returns:
        FastAPI: The configured application.
    """
    app = FastAPI(
        title="RAK Porcelain AI Assistant API",
        description="RAG-powered chatbot API for RAK Porcelain products",
        version=API_VERSION,
    )
    app.state.services = services
    app.state.started_at = time.monotonic()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[config.FRONTEND_URL],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-User-Id"],
    )

    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(health.router, tags=["health"])
    app.include_router(chat.router, prefix="/api/chat", tags=["chat"])
    app.include_router(
        conversations.router, prefix="/api/conversations", tags=["conversations"]
    )
    app.include_router(messages.router, prefix="/api/messages", tags=["messages"])
    app.include_router(upload.router, prefix="/api/upload", tags=["upload"])

    @app.get("/api/docs", tags=["docs"])
    def api_docs():
        return {
            "name": app.title,
            "version": app.version,
            "description": app.description,
            "endpoints": ENDPOINTS,
            "environment": {
                "environment": config.ENVIRONMENT,
                "port": config.PORT,
                "openai_model": config.CHAT_MODEL,
                "embedding_model": config.EMBEDDING_MODEL,
            },
        }

    return app


app = create_app()
