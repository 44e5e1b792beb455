"""User context block injected into the system prompt."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from src.config import settings
from src.records.store import RecordStore

if TYPE_CHECKING:
    from src.chat.identity import Caller
    from src.records.models import Conversation, Idea, Memory

logger = logging.getLogger(__name__)

IDEAS_HEADER = "IDEIAS DO USUÁRIO"
MEMORIES_HEADER = "MEMÓRIA DO USUÁRIO"
CONVERSATIONS_HEADER = "CONVERSAS RECENTES"

ROLE_LABELS = {"user": "Usuário", "assistant": "IA"}

# Messages shown per recent conversation.
CONVERSATION_TAIL = 2


def _format_ideas(ideas: list[Idea]) -> str:
    if not ideas:
        return ""
    lines = [f"\n\n{IDEAS_HEADER}:"]
    for idea in ideas:
        line = f"- {idea.title}: {idea.content}"
        if idea.tags:
            line += f" (Tags: {', '.join(idea.tags)})"
        lines.append(line)
    return "\n".join(lines) + "\n"


def _format_memories(memories: list[Memory]) -> str:
    if not memories:
        return ""
    lines = [f"\n\n{MEMORIES_HEADER}:"]
    for memory in memories:
        line = f"- {memory.content}"
        if memory.metadata.title:
            line += f" ({memory.metadata.title})"
        lines.append(line)
    return "\n".join(lines) + "\n"


def _format_conversations(conversations: list[Conversation]) -> str:
    if not conversations:
        return ""
    lines = [f"\n\n{CONVERSATIONS_HEADER}:"]
    for conversation in conversations:
        if conversation.title:
            lines.append(f"- Conversa: {conversation.title}")
        for message in conversation.messages[-CONVERSATION_TAIL:]:
            lines.append(f"  {ROLE_LABELS.get(message.role, 'IA')}: {message.content}")
    return "\n".join(lines) + "\n"


def format_context(
    ideas: list[Idea], memories: list[Memory], conversations: list[Conversation]
) -> str:
    """Render the three context sections, skipping any that are empty."""
    return (
        _format_ideas(ideas)
        + _format_memories(memories)
        + _format_conversations(conversations)
    )


async def build_user_context(caller: Caller, store: RecordStore | None = None) -> str:
    """Fetch the caller's recent records and render them as a context block.

    Never raises: a failed fetch is logged and yields an empty block so the
    chat turn can continue without personalisation.
    """
    if caller.is_guest:
        return ""

    store = store or RecordStore.get()
    try:
        ideas, memories, conversations = await asyncio.gather(
            store.recent_ideas(caller.owner_id, limit=settings.context_ideas_limit),
            store.recent_memories(caller.owner_id, limit=settings.context_memories_limit),
            store.recent_conversations(
                caller.owner_id, limit=settings.context_conversations_limit
            ),
        )
    except Exception:
        logger.exception("Failed to fetch user context for %s", caller.owner_id)
        return ""

    return format_context(ideas, memories, conversations)
