"""Data models for ideas, memories and conversations."""

from enum import StrEnum
from typing import Literal

from pydantic import BaseModel, Field


class RecordKind(StrEnum):
    """Where a saved piece of content ends up."""

    IDEA = "idea"
    MEMORY = "memory"


class ConversationTurn(BaseModel):
    """A single message exchanged with the assistant."""

    role: Literal["user", "assistant"]
    content: str


class Idea(BaseModel):
    """A titled, taggable note about a plan or concept."""

    id: str
    owner: str
    title: str
    content: str
    tags: list[str] = Field(default_factory=list)
    created_at: str
    updated_at: str


class MemoryMetadata(BaseModel):
    title: str | None = None
    category: str | None = None
    created_date: str | None = None


class Memory(BaseModel):
    """Free-text long-term context about the user."""

    id: str
    owner: str
    content: str
    metadata: MemoryMetadata = Field(default_factory=MemoryMetadata)
    created_at: str


class Conversation(BaseModel):
    """A titled conversation, persisted as a whole on every turn."""

    id: str
    owner: str
    title: str
    messages: list[ConversationTurn] = Field(default_factory=list)
    created_at: str
    updated_at: str
