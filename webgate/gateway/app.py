"""
Gateway App Factory
===================

Builds the FastAPI application serving every protocol dialect over one
``ApiContext``.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from webgate import __version__
from webgate.core.exceptions import GatewayError
from webgate.logging_config import generate_request_id, request_context
from webgate.server.context import ApiContext

from .protocols import google, openai_chat, openai_models, openai_responses

logger = logging.getLogger("webgate.gateway")

SERVICE_NAME = "web-model-api-gateway"

ENDPOINTS = [
    "POST /gemini",
    "POST /gemini-chat",
    "POST /translate",
    "POST /v1/chat/completions",
    "POST /v1/responses",
    "GET /v1/models",
    "GET /v1/models/{model}",
    "POST /v1beta/models/{model}",
]


def create_app(context: ApiContext) -> FastAPI:
    """Create and configure the gateway application."""
    app = FastAPI(
        title="Web Model API Gateway",
        version=__version__,
        description="OpenAI and Google compatible APIs backed by web chat models",
        docs_url=None,
        redoc_url=None,
    )
    app.state.context = context

    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        """Bind a request ID for log correlation and echo it back."""
        request_id = request.headers.get("X-Request-ID") or generate_request_id()
        with request_context(request_id):
            response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )

    @app.exception_handler(GatewayError)
    async def gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc}")
        else:
            logger.info(f"{request.method} {request.url.path} rejected: {exc.message}")
        detail = exc.message if exc.expose else "Internal server error"
        return JSONResponse({"detail": detail}, status_code=exc.status_code)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(f"Unhandled gateway error on {request.url.path}: {exc}", exc_info=exc)
        return JSONResponse({"detail": "Internal server error"}, status_code=500)

    @app.get("/")
    async def root() -> dict[str, Any]:
        return {
            "status": "ok",
            "service": SERVICE_NAME,
            "active_provider": context.active_provider_id,
            "mode": context.current_mode,
        }

    @app.get("/docs")
    async def docs() -> dict[str, Any]:
        return {
            "api": "Web Model API Gateway",
            "version": __version__,
            "active_provider": context.active_provider_id,
            "mode": context.current_mode,
            "endpoints": ENDPOINTS,
        }

    app.include_router(openai_chat.router)
    app.include_router(openai_responses.router)
    app.include_router(openai_models.router)
    app.include_router(google.router)

    return app


__all__ = ["create_app", "ENDPOINTS", "SERVICE_NAME"]
