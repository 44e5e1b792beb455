"""Save-command parsing.

A save directive is an utterance starting with ``salve``/``salvar`` (or the
English ``save``) followed by whitespace. The directive is resolved by an
ordered list of rules; the first rule whose pattern applies decides where
the content comes from:

1. ``explicit_content`` — ``salve que <texto> [como ideia|memória]``:
   the text after ``que`` is saved verbatim.
2. ``referential`` — ``salve isso [como ideia|memória]``: the content is
   taken from the conversation history.
3. ``fallback`` — anything else: the last message in the history.

The type suffix may carry an article (``as an idea``, ``como uma ideia``) and
trailing ``.``/``!``.

If the winning rule resolves no content, :class:`EmptySaveRequest` is raised.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from src.errors import EmptySaveRequest
from src.records.models import RecordKind

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from src.records.models import ConversationTurn

_VERB = r"(?:salv(?:e|ar)|save)"
_KIND = r"(?:ideia|idea|mem[óo]ria|memory)"
_ARTICLE = r"(?:(?:an?|uma)\s+)?"
_TYPE_PHRASE = rf"\s+(?:como|as)\s+{_ARTICLE}"
_TRAILING = r"[.!]*$"

SAVE_DIRECTIVE = re.compile(rf"^{_VERB}\s+")

_EXPLICIT_CONTENT = re.compile(
    rf"^{_VERB}\s+(?:que|that)\s+(?!(?:como|as)\s+{_ARTICLE}{_KIND}{_TRAILING})"
    rf"(?P<content>.+?)(?:{_TYPE_PHRASE}(?P<kind>{_KIND}){_TRAILING}|$)",
    re.IGNORECASE | re.DOTALL,
)
_REFERENTIAL = re.compile(
    rf"^{_VERB}\s+(?:isso|this|that)(?:{_TYPE_PHRASE}(?P<kind>{_KIND}))?{_TRAILING}",
    re.IGNORECASE,
)


class SaveRule(StrEnum):
    EXPLICIT_CONTENT = "explicit_content"
    REFERENTIAL = "referential"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class NoCommand:
    """The utterance is not a save directive."""


@dataclass(frozen=True)
class SaveRequest:
    """Content to persist, with the type the user asked for (if any)."""

    content: str
    explicit_type: RecordKind | None
    rule: SaveRule


# A rule returns None when it does not apply, otherwise (content, explicit_type).
_Resolution = tuple[str | None, RecordKind | None]


def _kind_from(specifier: str | None) -> RecordKind | None:
    if not specifier:
        return None
    return RecordKind.IDEA if specifier.lower().startswith("ide") else RecordKind.MEMORY


def _clean(content: str | None) -> str | None:
    if content is None:
        return None
    return content.strip() or None


def last_relevant_content(history: Sequence[ConversationTurn]) -> str | None:
    """Pick the message a referential save points at.

    When the assistant spoke last, the nearest earlier user message wins, so
    "salve isso" captures what the user said rather than the reply.
    """
    if not history:
        return None
    last = history[-1]
    if last.role == "assistant":
        for turn in reversed(history):
            if turn.role == "user":
                return _clean(turn.content)
    return _clean(last.content)


def _explicit_content(command: str, history: Sequence[ConversationTurn]) -> _Resolution | None:
    match = _EXPLICIT_CONTENT.match(command)
    if not match:
        return None
    return _clean(match.group("content")), _kind_from(match.group("kind"))


def _referential(command: str, history: Sequence[ConversationTurn]) -> _Resolution | None:
    match = _REFERENTIAL.match(command)
    if not match:
        return None
    return last_relevant_content(history), _kind_from(match.group("kind"))


def _fallback(command: str, history: Sequence[ConversationTurn]) -> _Resolution | None:
    if not history:
        return None, None
    return _clean(history[-1].content), None


SAVE_RULES: tuple[
    tuple[SaveRule, Callable[[str, Sequence[ConversationTurn]], _Resolution | None]], ...
] = (
    (SaveRule.EXPLICIT_CONTENT, _explicit_content),
    (SaveRule.REFERENTIAL, _referential),
    (SaveRule.FALLBACK, _fallback),
)


def is_save_directive(utterance: str) -> bool:
    """True when the trimmed, lower-cased utterance starts with a save verb."""
    return bool(SAVE_DIRECTIVE.match(utterance.strip().lower()))


def parse_save_command(
    utterance: str, history: Sequence[ConversationTurn] = ()
) -> NoCommand | SaveRequest:
    """Parse *utterance* into a :class:`SaveRequest` or :class:`NoCommand`.

    Raises:
        EmptySaveRequest: the utterance is a save directive but neither the
            utterance nor the history yields anything to save.
    """
    if not is_save_directive(utterance):
        return NoCommand()

    command = utterance.strip()
    for rule, apply in SAVE_RULES:
        resolution = apply(command, history)
        if resolution is None:
            continue
        content, explicit_type = resolution
        if not content:
            raise EmptySaveRequest(f"nothing to save for rule {rule}")
        return SaveRequest(content=content, explicit_type=explicit_type, rule=rule)

    raise EmptySaveRequest("no save rule applied")
