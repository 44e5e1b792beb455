"""Persist saved content as ideas or memories."""

from __future__ import annotations

import logging

from src.records.models import Idea, Memory, MemoryMetadata, RecordKind
from src.records.store import RecordStore

logger = logging.getLogger(__name__)

TITLE_MAX_CHARS = 50
ELLIPSIS = "..."


def derive_title(content: str) -> str:
    """Build a short title from the first sentence of *content*.

    Takes the text before the first period, caps it at 50 characters and
    appends ``...`` whenever the whole content is longer than 50 characters.
    """
    title = content.split(".", 1)[0][:TITLE_MAX_CHARS]
    if not title.strip():
        title = content[:TITLE_MAX_CHARS]
    if len(content) > TITLE_MAX_CHARS:
        title += ELLIPSIS
    return title


async def save_as_idea(content: str, owner: str, store: RecordStore | None = None) -> Idea:
    """Insert *content* as a new untagged idea."""
    store = store or RecordStore.get()
    return await store.insert_idea(owner, derive_title(content), content, tags=[])


async def save_as_memory(content: str, owner: str, store: RecordStore | None = None) -> Memory:
    """Insert *content* as a new memory carrying only its derived title."""
    store = store or RecordStore.get()
    return await store.insert_memory(owner, content, MemoryMetadata(title=derive_title(content)))


async def save(
    kind: RecordKind, content: str, owner: str, store: RecordStore | None = None
) -> Idea | Memory:
    logger.info("Saving %s for owner %s: %s", kind, owner, content[:80])
    if kind is RecordKind.IDEA:
        return await save_as_idea(content, owner, store)
    return await save_as_memory(content, owner, store)
