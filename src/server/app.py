"""Async HTTP server exposing the chat proxy.

Uses aiohttp's AppRunner/TCPSite for non-blocking start/stop. Every
response, including errors and preflight requests, carries permissive CORS
headers so browser clients on any origin can call the endpoint.
"""

from __future__ import annotations

import logging
from typing import Any

import pydantic
from aiohttp import web

from src.chat.orchestrator import ChatRequest, handle_chat
from src.config import settings
from src.errors import ConfigurationError, ValidationError
from src.llm.client import ensure_configured
from src.server.records import register_record_routes

logger = logging.getLogger(__name__)

CHAT_PATHS = ("/chat-proxy", "/functions/v1/chat-proxy")

INTERNAL_ERROR = "Erro interno do servidor"
MISSING_QUESTION = "Pergunta é obrigatória"


def cors_headers() -> dict[str, str]:
    return {
        "Access-Control-Allow-Origin": settings.cors_allow_origin,
        "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
        "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS",
        "Access-Control-Max-Age": "3600",
    }


@web.middleware
async def cors_middleware(request: web.Request, handler) -> web.StreamResponse:  # noqa: ANN001
    """Answer preflight requests and stamp CORS headers on every response."""
    if request.method == "OPTIONS":
        return web.Response(headers=cors_headers())

    try:
        response = await handler(request)
    except web.HTTPException as exc:
        response = web.json_response({"error": exc.reason}, status=exc.status)
    except Exception as exc:
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        response = web.json_response(
            {"error": INTERNAL_ERROR, "details": str(exc) or type(exc).__name__},
            status=500,
        )

    response.headers.update(cors_headers())
    return response


async def _parse_chat_request(request: web.Request) -> ChatRequest:
    try:
        payload: Any = await request.json()
    except Exception as exc:
        raise ValidationError("invalid JSON") from exc

    if not isinstance(payload, dict):
        raise ValidationError("request body must be a JSON object")

    try:
        return ChatRequest.model_validate(payload)
    except pydantic.ValidationError as exc:
        if any(err["loc"][:1] == ("pergunta",) for err in exc.errors()):
            raise ValidationError(MISSING_QUESTION) from exc
        raise ValidationError(f"invalid request: {exc.error_count()} field error(s)") from exc


async def _handle_chat_proxy(request: web.Request) -> web.Response:
    """POST /chat-proxy — answer or save one user utterance."""
    if request.method != "POST":
        return web.json_response({"error": "Method not allowed"}, status=405)

    try:
        ensure_configured()
    except ConfigurationError as exc:
        logger.error("%s", exc)
        return web.json_response({"error": str(exc)}, status=500)

    try:
        chat_request = await _parse_chat_request(request)
    except ValidationError as exc:
        logger.warning("Chat request rejected: %s", exc)
        return web.json_response({"error": str(exc)}, status=400)

    try:
        reply = await handle_chat(chat_request)
    except ConfigurationError as exc:
        logger.error("%s", exc)
        return web.json_response({"error": str(exc)}, status=500)

    return web.json_response(reply.to_json())


async def _health(request: web.Request) -> web.Response:
    """GET /health — basic liveness check."""
    return web.json_response({"status": "ok"})


def create_web_app() -> web.Application:
    """Build the aiohttp Application with routes."""
    app = web.Application(middlewares=[cors_middleware])
    app.router.add_get("/health", _health)
    for path in CHAT_PATHS:
        app.router.add_route("*", path, _handle_chat_proxy)
    register_record_routes(app)
    return app


class ChatServer:
    """Manages the aiohttp server lifecycle."""

    def __init__(self, host: str | None = None, port: int | None = None) -> None:
        self.host = host or settings.server_host
        self.port = port or settings.server_port
        self._runner: web.AppRunner | None = None

    async def start(self) -> None:
        """Start listening for chat requests."""
        if not settings.openai_api_key:
            logger.warning("OPENAI_API_KEY empty — chat requests will fail with 500")

        self._runner = web.AppRunner(create_web_app())
        await self._runner.setup()
        site = web.TCPSite(self._runner, self.host, self.port)
        await site.start()
        logger.info("Chat proxy listening on %s:%d (paths: %s)", self.host, self.port, CHAT_PATHS)

    async def stop(self) -> None:
        """Shut down the server gracefully."""
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
            logger.info("Chat proxy stopped")
