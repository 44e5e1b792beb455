"""RecordStore — per-owner CRUD for ideas, memories and conversations via libsql."""

from __future__ import annotations

import asyncio
import json
import logging
import uuid
from contextlib import asynccontextmanager, nullcontext
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from src.db import connection
from src.errors import PersistenceError
from src.records.models import Conversation, ConversationTurn, Idea, Memory, MemoryMetadata

if TYPE_CHECKING:
    from collections.abc import AsyncIterator
    from pathlib import Path

    from src.db import _AsyncConnection

logger = logging.getLogger(__name__)

_CREATE_TABLES = (
    """
    CREATE TABLE IF NOT EXISTS ideas (
        id         TEXT PRIMARY KEY,
        owner      TEXT NOT NULL,
        title      TEXT NOT NULL,
        content    TEXT NOT NULL,
        tags       TEXT NOT NULL DEFAULT '[]',
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS memories (
        id         TEXT PRIMARY KEY,
        owner      TEXT NOT NULL,
        content    TEXT NOT NULL,
        metadata   TEXT NOT NULL DEFAULT '{}',
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS conversations (
        id         TEXT PRIMARY KEY,
        owner      TEXT NOT NULL,
        title      TEXT NOT NULL,
        messages   TEXT NOT NULL DEFAULT '[]',
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_ideas_owner ON ideas (owner, created_at)",
    "CREATE INDEX IF NOT EXISTS idx_memories_owner ON memories (owner, created_at)",
    "CREATE INDEX IF NOT EXISTS idx_conversations_owner ON conversations (owner, updated_at)",
)

_IDEA_COLUMNS = "id, owner, title, content, tags, created_at, updated_at"
_MEMORY_COLUMNS = "id, owner, content, metadata, created_at"
_CONVERSATION_COLUMNS = "id, owner, title, messages, created_at, updated_at"


def _now() -> str:
    return datetime.now(UTC).isoformat()


def _limit_clause(limit: int | None) -> tuple[str, tuple]:
    if limit is None:
        return "", ()
    return " LIMIT ?", (limit,)


def _row_to_idea(row: tuple) -> Idea:
    return Idea(
        id=row[0],
        owner=row[1],
        title=row[2],
        content=row[3],
        tags=json.loads(row[4] or "[]"),
        created_at=row[5],
        updated_at=row[6],
    )


def _row_to_memory(row: tuple) -> Memory:
    return Memory(
        id=row[0],
        owner=row[1],
        content=row[2],
        metadata=MemoryMetadata(**json.loads(row[3] or "{}")),
        created_at=row[4],
    )


def _row_to_conversation(row: tuple) -> Conversation:
    return Conversation(
        id=row[0],
        owner=row[1],
        title=row[2],
        messages=[ConversationTurn(**m) for m in json.loads(row[3] or "[]")],
        created_at=row[4],
        updated_at=row[5],
    )


def _dump_messages(messages: list[ConversationTurn]) -> str:
    return json.dumps([m.model_dump() for m in messages], ensure_ascii=False)


class RecordStore:
    """Persists a user's ideas, memories and conversations in SQLite / Turso.

    Singleton accessed via ``RecordStore.get()``.  Pass an explicit *db_path*
    for test isolation (e.g. ``tmp_path / "test.db"``).

    Every operation is scoped to an owner. Driver failures surface as
    :class:`PersistenceError`. Writes are serialised per store so concurrent
    requests never contend for the SQLite write lock.
    """

    _instance: RecordStore | None = None

    def __init__(self, db_path: Path | None = None) -> None:
        self._db_path = db_path
        self._initialised = False
        self._write_lock = asyncio.Lock()

    @classmethod
    def get(cls) -> RecordStore:
        """Return the shared RecordStore instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def _reset(cls) -> None:
        """Reset the singleton (for testing)."""
        cls._instance = None

    # -- Internal helpers ------------------------------------------------------

    async def _ensure_schema(self) -> None:
        if self._initialised:
            return
        async with self._write_lock:
            if self._initialised:
                return
            async with connection(local_path_override=self._db_path) as db:
                await db.execute_batch(_CREATE_TABLES)
            self._initialised = True

    @asynccontextmanager
    async def _connect(self, *, write: bool = False) -> AsyncIterator[_AsyncConnection]:
        try:
            await self._ensure_schema()
            async with (
                self._write_lock if write else nullcontext(),
                connection(local_path_override=self._db_path) as db,
            ):
                yield db
        except PersistenceError:
            raise
        except Exception as exc:
            raise PersistenceError(str(exc) or type(exc).__name__) from exc

    # -- Ideas -----------------------------------------------------------------

    async def insert_idea(
        self, owner: str, title: str, content: str, tags: list[str] | None = None
    ) -> Idea:
        """Insert a new idea. Returns the stored record."""
        now = _now()
        idea = Idea(
            id=uuid.uuid4().hex,
            owner=owner,
            title=title,
            content=content,
            tags=list(tags or []),
            created_at=now,
            updated_at=now,
        )
        async with self._connect(write=True) as db:
            await db.execute_write(
                f"INSERT INTO ideas ({_IDEA_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?)",
                (
                    idea.id,
                    idea.owner,
                    idea.title,
                    idea.content,
                    json.dumps(idea.tags, ensure_ascii=False),
                    idea.created_at,
                    idea.updated_at,
                ),
            )
        logger.info("Inserted idea %s for owner %s", idea.id, owner)
        return idea

    async def recent_ideas(self, owner: str, limit: int | None = 10) -> list[Idea]:
        """Return the owner's ideas, most recently created first."""
        clause, extra = _limit_clause(limit)
        async with self._connect() as db:
            cursor = await db.execute(
                f"SELECT {_IDEA_COLUMNS} FROM ideas WHERE owner = ? "
                f"ORDER BY created_at DESC{clause}",
                (owner, *extra),
            )
            rows = await cursor.fetchall()
        return [_row_to_idea(row) for row in rows]

    async def update_idea(
        self,
        idea_id: str,
        owner: str,
        *,
        title: str | None = None,
        content: str | None = None,
        tags: list[str] | None = None,
    ) -> Idea | None:
        """Update fields of an idea. Returns the updated record or None if missing."""
        async with self._connect(write=True) as db:
            cursor = await db.execute(
                f"SELECT {_IDEA_COLUMNS} FROM ideas WHERE id = ? AND owner = ?",
                (idea_id, owner),
            )
            row = await cursor.fetchone()
            if not row:
                return None
            current = _row_to_idea(row)
            updated = current.model_copy(
                update={
                    "title": title if title is not None else current.title,
                    "content": content if content is not None else current.content,
                    "tags": list(tags) if tags is not None else current.tags,
                    "updated_at": _now(),
                }
            )
            await db.execute_write(
                "UPDATE ideas SET title = ?, content = ?, tags = ?, updated_at = ? "
                "WHERE id = ? AND owner = ?",
                (
                    updated.title,
                    updated.content,
                    json.dumps(updated.tags, ensure_ascii=False),
                    updated.updated_at,
                    idea_id,
                    owner,
                ),
            )
        return updated

    async def delete_idea(self, idea_id: str, owner: str) -> bool:
        """Delete an idea. Returns True if a row was removed."""
        return await self._delete("ideas", idea_id, owner)

    # -- Memories --------------------------------------------------------------

    async def insert_memory(
        self, owner: str, content: str, metadata: MemoryMetadata | None = None
    ) -> Memory:
        """Insert a new memory. Returns the stored record."""
        memory = Memory(
            id=uuid.uuid4().hex,
            owner=owner,
            content=content,
            metadata=metadata or MemoryMetadata(),
            created_at=_now(),
        )
        async with self._connect(write=True) as db:
            await db.execute_write(
                f"INSERT INTO memories ({_MEMORY_COLUMNS}) VALUES (?, ?, ?, ?, ?)",
                (
                    memory.id,
                    memory.owner,
                    memory.content,
                    memory.metadata.model_dump_json(exclude_none=True),
                    memory.created_at,
                ),
            )
        logger.info("Inserted memory %s for owner %s", memory.id, owner)
        return memory

    async def recent_memories(self, owner: str, limit: int | None = 10) -> list[Memory]:
        """Return the owner's memories, most recently created first."""
        clause, extra = _limit_clause(limit)
        async with self._connect() as db:
            cursor = await db.execute(
                f"SELECT {_MEMORY_COLUMNS} FROM memories WHERE owner = ? "
                f"ORDER BY created_at DESC{clause}",
                (owner, *extra),
            )
            rows = await cursor.fetchall()
        return [_row_to_memory(row) for row in rows]

    async def update_memory(
        self,
        memory_id: str,
        owner: str,
        *,
        content: str | None = None,
        metadata: MemoryMetadata | None = None,
    ) -> Memory | None:
        """Update a memory's content or metadata. Returns None if missing."""
        async with self._connect(write=True) as db:
            cursor = await db.execute(
                f"SELECT {_MEMORY_COLUMNS} FROM memories WHERE id = ? AND owner = ?",
                (memory_id, owner),
            )
            row = await cursor.fetchone()
            if not row:
                return None
            current = _row_to_memory(row)
            updated = current.model_copy(
                update={
                    "content": content if content is not None else current.content,
                    "metadata": metadata if metadata is not None else current.metadata,
                }
            )
            await db.execute_write(
                "UPDATE memories SET content = ?, metadata = ? WHERE id = ? AND owner = ?",
                (
                    updated.content,
                    updated.metadata.model_dump_json(exclude_none=True),
                    memory_id,
                    owner,
                ),
            )
        return updated

    async def delete_memory(self, memory_id: str, owner: str) -> bool:
        """Delete a memory. Returns True if a row was removed."""
        return await self._delete("memories", memory_id, owner)

    # -- Conversations ---------------------------------------------------------

    async def insert_conversation(
        self, owner: str, title: str, messages: list[ConversationTurn]
    ) -> Conversation:
        """Create a conversation holding *messages*."""
        now = _now()
        conversation = Conversation(
            id=uuid.uuid4().hex,
            owner=owner,
            title=title,
            messages=list(messages),
            created_at=now,
            updated_at=now,
        )
        async with self._connect(write=True) as db:
            await db.execute_write(
                f"INSERT INTO conversations ({_CONVERSATION_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?)",
                (
                    conversation.id,
                    conversation.owner,
                    conversation.title,
                    _dump_messages(conversation.messages),
                    conversation.created_at,
                    conversation.updated_at,
                ),
            )
        logger.info("Created conversation %s for owner %s", conversation.id, owner)
        return conversation

    async def get_conversation(self, conversation_id: str, owner: str) -> Conversation | None:
        """Fetch one conversation, or None if not found for this owner."""
        async with self._connect() as db:
            cursor = await db.execute(
                f"SELECT {_CONVERSATION_COLUMNS} FROM conversations WHERE id = ? AND owner = ?",
                (conversation_id, owner),
            )
            row = await cursor.fetchone()
        return _row_to_conversation(row) if row else None

    async def recent_conversations(
        self, owner: str, limit: int | None = 5
    ) -> list[Conversation]:
        """Return the owner's conversations, most recently updated first."""
        clause, extra = _limit_clause(limit)
        async with self._connect() as db:
            cursor = await db.execute(
                f"SELECT {_CONVERSATION_COLUMNS} FROM conversations WHERE owner = ? "
                f"ORDER BY updated_at DESC{clause}",
                (owner, *extra),
            )
            rows = await cursor.fetchall()
        return [_row_to_conversation(row) for row in rows]

    async def update_conversation_messages(
        self, conversation_id: str, owner: str, messages: list[ConversationTurn]
    ) -> bool:
        """Replace the whole message sequence. Returns True if a row was updated."""
        async with self._connect(write=True) as db:
            rowcount = await db.execute_write(
                "UPDATE conversations SET messages = ?, updated_at = ? WHERE id = ? AND owner = ?",
                (_dump_messages(messages), _now(), conversation_id, owner),
            )
        return rowcount > 0

    async def delete_conversation(self, conversation_id: str, owner: str) -> bool:
        """Delete a conversation. Returns True if a row was removed."""
        return await self._delete("conversations", conversation_id, owner)

    # -- Shared ----------------------------------------------------------------

    async def _delete(self, table: str, record_id: str, owner: str) -> bool:
        async with self._connect(write=True) as db:
            rowcount = await db.execute_write(
                f"DELETE FROM {table} WHERE id = ? AND owner = ?",  # noqa: S608
                (record_id, owner),
            )
        if rowcount:
            logger.info("Deleted %s row %s", table, record_id)
        return rowcount > 0
