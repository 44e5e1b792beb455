"""System prompt assembly and message composition."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Sequence

    from src.chat.identity import Caller
    from src.records.models import ConversationTurn

logger = logging.getLogger(__name__)

CONFIG_DIR = Path(__file__).resolve().parent.parent.parent / "config"

DEFAULT_PERSONA = (
    "Você é um assistente pessoal direto, prático e bem-humorado. "
    "Prefira respostas curtas, objetivas e aplicáveis imediatamente."
)

INSTRUCTIONS = """IMPORTANTE: Sempre considere o contexto das ideias e memórias do usuário nas suas respostas, e mantenha continuidade com a conversa atual.

Instruções especiais:
- Se o usuário disser "salve isso" ou "salvar como ideia/memória", explique que ele pode usar esse comando para salvar suas respostas.
- Mantenha coerência com as conversas anteriores e com o contexto do usuário.
- Use as ideias e memórias do usuário para personalizar suas respostas."""


def _read_config(filename: str) -> str:
    """Read a config markdown file, returning empty string if missing."""
    path = CONFIG_DIR / filename
    if path.exists():
        return path.read_text(encoding="utf-8")
    return ""


def load_persona() -> str:
    persona = _read_config("PERSONA.md").strip()
    if not persona:
        logger.warning("config/PERSONA.md missing or empty, using default persona")
        return DEFAULT_PERSONA
    return persona


def build_system_prompt(caller: Caller, user_context: str) -> str:
    """Interpolate the persona with the user's context block and identity."""
    return f"{load_persona()}\n{user_context}\n\n{INSTRUCTIONS}\n\nUser ID: {caller.owner_id}"


def compose_messages(
    system_prompt: str,
    history: Sequence[ConversationTurn],
    question: str,
) -> list[dict[str, Any]]:
    """System message, then the prior turns in order, then the new question."""
    messages: list[dict[str, Any]] = [{"role": "system", "content": system_prompt}]
    messages.extend({"role": turn.role, "content": turn.content} for turn in history)
    messages.append({"role": "user", "content": question})
    return messages
