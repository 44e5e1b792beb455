"""Chat request handling: save directives or a model round-trip."""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field, field_validator

from src.chat.classifier import classify
from src.chat.commands import SaveRequest, parse_save_command
from src.chat.context import build_user_context
from src.chat.identity import Caller, resolve_caller
from src.chat.persistence import save
from src.config import settings
from src.errors import EmptySaveRequest, ProviderError
from src.llm.client import complete_chat
from src.llm.prompt import build_system_prompt, compose_messages
from src.records.models import ConversationTurn, RecordKind
from src.records.store import RecordStore

logger = logging.getLogger(__name__)

IDEA_SAVED = '💡 Salvei como uma nova ideia! Você pode ver na aba "Minhas Ideias".'
MEMORY_SAVED = '🧠 Salvei na sua memória! Você pode ver na aba "Memória".'
NOTHING_TO_SAVE = (
    "Não encontrei nenhum conteúdo para salvar. "
    "Faça uma pergunta ou forneça o texto a ser salvo!"
)
SAVE_FAILED = "Erro ao salvar. Tente novamente."
LOGIN_REQUIRED = "Entre na sua conta para salvar ideias e memórias."
FALLBACK_REPLY = "Desculpe, não consegui processar sua mensagem."

CONVERSATION_TITLE_CHARS = 50


class ChatRequest(BaseModel):
    """Body of a chat-proxy request."""

    pergunta: str
    user_id: str = ""
    conversation_id: str | None = None
    conversation_history: list[ConversationTurn] = Field(default_factory=list)

    @field_validator("pergunta")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            msg = "Pergunta é obrigatória"
            raise ValueError(msg)
        return value

    @field_validator("user_id", mode="before")
    @classmethod
    def _none_to_empty(cls, value: str | None) -> str:
        return value or ""


class ChatReply(BaseModel):
    resposta: str
    conversation_id: str | None = None

    def to_json(self) -> dict:
        return self.model_dump(exclude_none=True)


async def handle_chat(request: ChatRequest, store: RecordStore | None = None) -> ChatReply:
    """Answer one chat request.

    Save directives are persisted and acknowledged without calling the model.
    Everything else goes to the provider with the caller's context. Provider
    and storage failures become user-facing replies; only a missing provider
    credential (``ConfigurationError``) propagates.
    """
    caller = resolve_caller(request.user_id)
    logger.info(
        "Chat request: user=%s conversation=%s history=%d",
        caller.owner_id or "<anonymous>",
        request.conversation_id,
        len(request.conversation_history),
    )

    try:
        command = parse_save_command(request.pergunta, request.conversation_history)
    except EmptySaveRequest:
        logger.info("Save directive with nothing to save")
        return ChatReply(resposta=NOTHING_TO_SAVE)

    if isinstance(command, SaveRequest):
        return ChatReply(resposta=await _handle_save(command, caller, store))

    return await _handle_chat_turn(request, caller, store)


async def _handle_save(command: SaveRequest, caller: Caller, store: RecordStore | None) -> str:
    if caller.is_guest:
        logger.info("Guest tried to save via %s, skipping persistence", command.rule)
        return LOGIN_REQUIRED

    kind = classify(command.content, command.explicit_type)
    try:
        await save(kind, command.content, caller.owner_id, store)
    except Exception:
        logger.exception("Error handling save command for %s", caller.owner_id)
        return SAVE_FAILED

    return IDEA_SAVED if kind is RecordKind.IDEA else MEMORY_SAVED


async def _handle_chat_turn(
    request: ChatRequest, caller: Caller, store: RecordStore | None
) -> ChatReply:
    user_context = await build_user_context(caller, store)
    messages = compose_messages(
        build_system_prompt(caller, user_context),
        request.conversation_history,
        request.pergunta,
    )

    try:
        reply = await complete_chat(messages)
    except ProviderError as exc:
        logger.error("Provider call failed (status=%s): %s", exc.status_code, exc)
        reply = FALLBACK_REPLY

    conversation_id = None
    if settings.persist_conversations and not caller.is_guest:
        conversation_id = await _record_turn(request, caller, reply, store)

    return ChatReply(resposta=reply, conversation_id=conversation_id)


async def _record_turn(
    request: ChatRequest, caller: Caller, reply: str, store: RecordStore | None
) -> str | None:
    """Persist the whole conversation including this turn.

    Returns the conversation id, which is new when the request had none or
    pointed at a conversation this caller does not own.
    """
    store = store or RecordStore.get()
    messages = [
        *request.conversation_history,
        ConversationTurn(role="user", content=request.pergunta),
        ConversationTurn(role="assistant", content=reply),
    ]
    try:
        if request.conversation_id and await store.update_conversation_messages(
            request.conversation_id, caller.owner_id, messages
        ):
            return request.conversation_id
        title = request.pergunta.strip()[:CONVERSATION_TITLE_CHARS]
        conversation = await store.insert_conversation(caller.owner_id, title, messages)
    except Exception:
        logger.exception("Failed to save conversation for %s", caller.owner_id)
        return request.conversation_id
    return conversation.id
