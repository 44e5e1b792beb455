"""Records API — list, create, edit and delete a user's stored records.

Backs the idea, memory and conversation managers of the web client. Every
route is scoped by ``user_id`` (query string for reads and deletes, JSON
body for writes); guests are refused because they own no records.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from aiohttp import web

from src.chat.identity import Caller, resolve_caller
from src.chat.persistence import derive_title
from src.errors import PersistenceError, ValidationError
from src.records.models import MemoryMetadata
from src.records.store import RecordStore

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

DEFAULT_MEMORY_TITLE = "Sem título"
DEFAULT_MEMORY_CATEGORY = "Geral"


def parse_tags(value: Any) -> list[str]:
    """Accept a list of tags or a comma-separated string; drop blanks."""
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, list):
        raise ValidationError("tags must be a list or a comma-separated string")
    return [str(tag).strip() for tag in value if str(tag).strip()]


def _limit(request: web.Request) -> int | None:
    raw = request.query.get("limit")
    if raw is None:
        return None
    try:
        limit = int(raw)
    except ValueError as exc:
        raise ValidationError("limit must be an integer") from exc
    if limit < 1:
        raise ValidationError("limit must be positive")
    return limit


async def _body(request: web.Request) -> dict[str, Any]:
    try:
        payload = await request.json()
    except Exception as exc:
        raise ValidationError("invalid JSON") from exc
    if not isinstance(payload, dict):
        raise ValidationError("request body must be a JSON object")
    return payload


def _caller(user_id: Any) -> Caller:
    caller = resolve_caller(user_id if isinstance(user_id, str) else None)
    if caller.is_guest:
        raise web.HTTPUnauthorized(reason="authentication required")
    return caller


def _required_text(payload: dict[str, Any], key: str) -> str:
    value = payload.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{key} is required")
    return value


def _optional_text(payload: dict[str, Any], key: str) -> str | None:
    value = payload.get(key)
    if value is None:
        return None
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{key} must be a non-empty string")
    return value


def _guarded(handler: Callable[[web.Request], Awaitable[web.Response]]):  # noqa: ANN202
    """Map validation and storage errors onto JSON error responses."""

    async def wrapper(request: web.Request) -> web.Response:
        try:
            return await handler(request)
        except ValidationError as exc:
            return web.json_response({"error": str(exc)}, status=400)
        except PersistenceError as exc:
            logger.error("Record store failure on %s %s: %s", request.method, request.path, exc)
            return web.json_response(
                {"error": "Erro ao acessar os dados", "details": str(exc)}, status=500
            )

    return wrapper


def _not_found(kind: str) -> web.Response:
    return web.json_response({"error": f"{kind} not found"}, status=404)


# -- Ideas -------------------------------------------------------------------


async def _list_ideas(request: web.Request) -> web.Response:
    caller = _caller(request.query.get("user_id"))
    ideas = await RecordStore.get().recent_ideas(caller.owner_id, limit=_limit(request))
    return web.json_response({"ideas": [idea.model_dump() for idea in ideas]})


async def _create_idea(request: web.Request) -> web.Response:
    payload = await _body(request)
    caller = _caller(payload.get("user_id"))
    content = _required_text(payload, "content")
    title = _optional_text(payload, "title") or derive_title(content)
    idea = await RecordStore.get().insert_idea(
        caller.owner_id, title, content, parse_tags(payload.get("tags"))
    )
    return web.json_response({"idea": idea.model_dump()}, status=201)


async def _update_idea(request: web.Request) -> web.Response:
    payload = await _body(request)
    caller = _caller(payload.get("user_id"))
    idea = await RecordStore.get().update_idea(
        request.match_info["id"],
        caller.owner_id,
        title=_optional_text(payload, "title"),
        content=_optional_text(payload, "content"),
        tags=parse_tags(payload["tags"]) if "tags" in payload else None,
    )
    if idea is None:
        return _not_found("idea")
    return web.json_response({"idea": idea.model_dump()})


async def _delete_idea(request: web.Request) -> web.Response:
    caller = _caller(request.query.get("user_id"))
    if not await RecordStore.get().delete_idea(request.match_info["id"], caller.owner_id):
        return _not_found("idea")
    return web.json_response({"deleted": True})


# -- Memories ----------------------------------------------------------------


async def _list_memories(request: web.Request) -> web.Response:
    caller = _caller(request.query.get("user_id"))
    memories = await RecordStore.get().recent_memories(caller.owner_id, limit=_limit(request))
    return web.json_response({"memories": [m.model_dump() for m in memories]})


async def _create_memory(request: web.Request) -> web.Response:
    payload = await _body(request)
    caller = _caller(payload.get("user_id"))
    content = _required_text(payload, "content")
    metadata = MemoryMetadata(
        title=_optional_text(payload, "title") or DEFAULT_MEMORY_TITLE,
        category=_optional_text(payload, "category") or DEFAULT_MEMORY_CATEGORY,
        created_date=datetime.now(UTC).isoformat(),
    )
    memory = await RecordStore.get().insert_memory(caller.owner_id, content, metadata)
    return web.json_response({"memory": memory.model_dump()}, status=201)


async def _delete_memory(request: web.Request) -> web.Response:
    caller = _caller(request.query.get("user_id"))
    if not await RecordStore.get().delete_memory(request.match_info["id"], caller.owner_id):
        return _not_found("memory")
    return web.json_response({"deleted": True})


# -- Conversations -----------------------------------------------------------


async def _list_conversations(request: web.Request) -> web.Response:
    caller = _caller(request.query.get("user_id"))
    conversations = await RecordStore.get().recent_conversations(
        caller.owner_id, limit=_limit(request)
    )
    return web.json_response({"conversations": [c.model_dump() for c in conversations]})


async def _get_conversation(request: web.Request) -> web.Response:
    caller = _caller(request.query.get("user_id"))
    conversation = await RecordStore.get().get_conversation(
        request.match_info["id"], caller.owner_id
    )
    if conversation is None:
        return _not_found("conversation")
    return web.json_response({"conversation": conversation.model_dump()})


async def _delete_conversation(request: web.Request) -> web.Response:
    caller = _caller(request.query.get("user_id"))
    if not await RecordStore.get().delete_conversation(request.match_info["id"], caller.owner_id):
        return _not_found("conversation")
    return web.json_response({"deleted": True})


def register_record_routes(app: web.Application) -> None:
    """Attach the records API to *app*."""
    app.router.add_get("/ideas", _guarded(_list_ideas))
    app.router.add_post("/ideas", _guarded(_create_idea))
    app.router.add_put("/ideas/{id}", _guarded(_update_idea))
    app.router.add_delete("/ideas/{id}", _guarded(_delete_idea))
    app.router.add_get("/memories", _guarded(_list_memories))
    app.router.add_post("/memories", _guarded(_create_memory))
    app.router.add_delete("/memories/{id}", _guarded(_delete_memory))
    app.router.add_get("/conversations", _guarded(_list_conversations))
    app.router.add_get("/conversations/{id}", _guarded(_get_conversation))
    app.router.add_delete("/conversations/{id}", _guarded(_delete_conversation))
