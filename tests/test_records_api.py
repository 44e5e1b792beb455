"""Tests for the records API routes."""

from unittest.mock import patch

import pytest
from aiohttp.test_utils import TestClient, TestServer

from src.errors import PersistenceError, ValidationError
from src.records.store import RecordStore
from src.server.app import create_web_app
from src.server.records import parse_tags

pytestmark = pytest.mark.usefixtures("record_store")


async def _make_client():
    client = TestClient(TestServer(create_web_app()))
    await client.start_server()
    return client


# -- parse_tags --------------------------------------------------------------


def test_parse_tags_from_string():
    assert parse_tags(" ia, automação ,, n8n ") == ["ia", "automação", "n8n"]


def test_parse_tags_from_list_and_none():
    assert parse_tags(["a", " ", "b"]) == ["a", "b"]
    assert parse_tags(None) == []


def test_parse_tags_rejects_other_types():
    with pytest.raises(ValidationError):
        parse_tags(42)


# -- Ideas -------------------------------------------------------------------


async def test_idea_lifecycle(record_store: RecordStore) -> None:
    client = await _make_client()
    try:
        resp = await client.post(
            "/ideas",
            json={"user_id": "u1", "content": "Curso de n8n. Módulo 1.", "tags": "n8n, curso"},
        )
        assert resp.status == 201
        idea = (await resp.json())["idea"]
        assert idea["title"] == "Curso de n8n"
        assert idea["tags"] == ["n8n", "curso"]

        resp = await client.put(
            f"/ideas/{idea['id']}", json={"user_id": "u1", "title": "Curso avançado"}
        )
        assert resp.status == 200
        assert (await resp.json())["idea"]["title"] == "Curso avançado"

        resp = await client.get("/ideas", params={"user_id": "u1"})
        assert [i["title"] for i in (await resp.json())["ideas"]] == ["Curso avançado"]

        resp = await client.delete(f"/ideas/{idea['id']}", params={"user_id": "u1"})
        assert resp.status == 200
        assert await record_store.recent_ideas("u1") == []
    finally:
        await client.close()


async def test_idea_requires_content() -> None:
    client = await _make_client()
    try:
        resp = await client.post("/ideas", json={"user_id": "u1", "title": "sem conteúdo"})
        assert resp.status == 400
    finally:
        await client.close()


async def test_update_unknown_idea_is_404() -> None:
    client = await _make_client()
    try:
        resp = await client.put("/ideas/missing", json={"user_id": "u1", "title": "x"})
        assert resp.status == 404
    finally:
        await client.close()


# -- Memories ----------------------------------------------------------------


async def test_manual_memory_gets_default_metadata() -> None:
    client = await _make_client()
    try:
        resp = await client.post("/memories", json={"user_id": "u1", "content": "mora em Curitiba"})
        assert resp.status == 201
        metadata = (await resp.json())["memory"]["metadata"]
        assert metadata["title"] == "Sem título"
        assert metadata["category"] == "Geral"
        assert metadata["created_date"]

        resp = await client.get("/memories", params={"user_id": "u1", "limit": "1"})
        assert len((await resp.json())["memories"]) == 1
    finally:
        await client.close()


async def test_bad_limit_is_400() -> None:
    client = await _make_client()
    try:
        resp = await client.get("/memories", params={"user_id": "u1", "limit": "zero"})
        assert resp.status == 400
    finally:
        await client.close()


# -- Conversations -----------------------------------------------------------


async def test_conversation_get_and_delete(record_store: RecordStore) -> None:
    conversation = await record_store.insert_conversation("u1", "oi", [])
    client = await _make_client()
    try:
        resp = await client.get(f"/conversations/{conversation.id}", params={"user_id": "u1"})
        assert resp.status == 200
        assert (await resp.json())["conversation"]["title"] == "oi"

        resp = await client.get(f"/conversations/{conversation.id}", params={"user_id": "u2"})
        assert resp.status == 404

        resp = await client.delete(f"/conversations/{conversation.id}", params={"user_id": "u1"})
        assert resp.status == 200

        resp = await client.get("/conversations", params={"user_id": "u1"})
        assert (await resp.json())["conversations"] == []
    finally:
        await client.close()


# -- Auth / failures ---------------------------------------------------------


@pytest.mark.parametrize("user_id", ["", "guest-123"])
async def test_guests_are_refused(user_id: str) -> None:
    client = await _make_client()
    try:
        resp = await client.get("/ideas", params={"user_id": user_id})
        assert resp.status == 401
        assert resp.headers["Access-Control-Allow-Origin"] == "*"
    finally:
        await client.close()


async def test_store_failure_is_500(record_store: RecordStore) -> None:
    client = await _make_client()
    try:
        with patch.object(record_store, "recent_ideas", side_effect=PersistenceError("down")):
            resp = await client.get("/ideas", params={"user_id": "u1"})
        assert resp.status == 500
        assert (await resp.json())["details"] == "down"
    finally:
        await client.close()
