"""Idea-or-memory classification for saved content."""

from src.records.models import RecordKind

# Matched as plain substrings of the lower-cased content, so "planejamento"
# or "explanation" also count as planning vocabulary.
IDEA_KEYWORDS: tuple[str, ...] = (
    "ideia",
    "idea",
    "estratégia",
    "strategy",
    "plano",
    "plan",
    "projeto",
    "project",
)


def looks_like_idea(content: str) -> bool:
    lowered = content.lower()
    return any(keyword in lowered for keyword in IDEA_KEYWORDS)


def classify(content: str, explicit_type: RecordKind | None = None) -> RecordKind:
    """Decide whether *content* is saved as an idea or a memory.

    An explicit type from the save directive always wins; otherwise any
    planning keyword makes it an idea and everything else is a memory.
    """
    if explicit_type is not None:
        return explicit_type
    return RecordKind.IDEA if looks_like_idea(content) else RecordKind.MEMORY
