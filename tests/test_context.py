"""Tests for the user context block."""

from unittest.mock import AsyncMock

from src.chat.context import build_user_context, format_context
from src.chat.identity import Caller
from src.errors import PersistenceError
from src.records.models import Conversation, ConversationTurn, Idea, Memory, MemoryMetadata
from src.records.store import RecordStore

NOW = "2025-01-01T00:00:00+00:00"


def _idea(title: str, content: str, tags: list[str] | None = None) -> Idea:
    return Idea(
        id=title, owner="u1", title=title, content=content, tags=tags or [],
        created_at=NOW, updated_at=NOW,
    )


def _memory(content: str, title: str | None = None) -> Memory:
    return Memory(
        id=content, owner="u1", content=content,
        metadata=MemoryMetadata(title=title), created_at=NOW,
    )


def _conversation(title: str, *pairs: tuple[str, str]) -> Conversation:
    return Conversation(
        id=title, owner="u1", title=title,
        messages=[ConversationTurn(role=r, content=c) for r, c in pairs],
        created_at=NOW, updated_at=NOW,
    )


def _store(ideas=(), memories=(), conversations=()) -> AsyncMock:
    store = AsyncMock(spec=RecordStore)
    store.recent_ideas.return_value = list(ideas)
    store.recent_memories.return_value = list(memories)
    store.recent_conversations.return_value = list(conversations)
    return store


# -- format_context ----------------------------------------------------------


def test_empty_lists_render_nothing():
    assert format_context([], [], []) == ""


def test_ideas_section():
    block = format_context(
        [_idea("App", "receitas fit", ["saúde", "app"]), _idea("Blog", "SEO")], [], []
    )
    assert block == (
        "\n\nIDEIAS DO USUÁRIO:\n"
        "- App: receitas fit (Tags: saúde, app)\n"
        "- Blog: SEO\n"
    )


def test_memories_section_with_optional_title():
    block = format_context([], [_memory("gosta de café", "café"), _memory("mora em Curitiba")], [])
    assert block == (
        "\n\nMEMÓRIA DO USUÁRIO:\n"
        "- gosta de café (café)\n"
        "- mora em Curitiba\n"
    )


def test_conversations_show_last_two_messages():
    conversation = _conversation(
        "Planejamento",
        ("user", "primeira"),
        ("assistant", "segunda"),
        ("user", "terceira"),
        ("assistant", "quarta"),
    )
    block = format_context([], [], [conversation])
    assert block == (
        "\n\nCONVERSAS RECENTES:\n"
        "- Conversa: Planejamento\n"
        "  Usuário: terceira\n"
        "  IA: quarta\n"
    )


def test_sections_appear_in_order():
    block = format_context([_idea("i", "c")], [_memory("m")], [_conversation("t")])
    assert block.index("IDEIAS") < block.index("MEMÓRIA") < block.index("CONVERSAS")


# -- build_user_context ------------------------------------------------------


async def test_fetches_with_configured_limits():
    store = _store(ideas=[_idea("i", "c")])

    block = await build_user_context(Caller("u1"), store)

    assert "IDEIAS DO USUÁRIO" in block
    assert "MEMÓRIA" not in block
    store.recent_ideas.assert_awaited_once_with("u1", limit=10)
    store.recent_memories.assert_awaited_once_with("u1", limit=10)
    store.recent_conversations.assert_awaited_once_with("u1", limit=5)


async def test_repeated_builds_are_identical():
    store = _store(ideas=[_idea("i", "c")], memories=[_memory("m", "t")])

    first = await build_user_context(Caller("u1"), store)
    second = await build_user_context(Caller("u1"), store)

    assert first == second


async def test_fetch_failure_degrades_to_empty():
    store = _store()
    store.recent_memories.side_effect = PersistenceError("offline")

    assert await build_user_context(Caller("u1"), store) == ""


async def test_guest_skips_store():
    store = _store(ideas=[_idea("i", "c")])

    assert await build_user_context(Caller("guest-abc"), store) == ""
    store.recent_ideas.assert_not_awaited()
