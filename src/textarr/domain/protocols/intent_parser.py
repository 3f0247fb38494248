"""Contrato do parser de linguagem natural (texto livre -> intenção)."""

from __future__ import annotations

from abc import ABC, abstractmethod

from pydantic import BaseModel, Field

from textarr.domain.enums import Action, ConversationState, MediaType
from textarr.domain.identity import Platform
from textarr.domain.models import ConversationMessage, MediaSearchResult


class ParserError(Exception):
    """Falha do parser externo (timeout, resposta inválida)."""


class ParseContext(BaseModel):
    """Contexto da conversa entregue ao parser."""

    state: ConversationState = ConversationState.IDLE
    pending_results: list[MediaSearchResult] = Field(default_factory=list)
    selected_media: MediaSearchResult | None = None
    recent_messages: list[ConversationMessage] = Field(default_factory=list)


class AdminCommand(BaseModel):
    """Argumentos de um comando `admin ...` (alvo, nome, cota)."""

    target_platform: Platform | None = None
    target_id: str | None = None
    user_name: str | None = None
    media_type: MediaType | None = None
    quota_amount: int | None = None


class ParsedIntent(BaseModel):
    """Intenção estruturada extraída de uma mensagem."""

    action: Action
    media_type: MediaType = MediaType.UNKNOWN
    title: str | None = None
    year: int | None = None
    selection_number: int | None = None
    confidence: float = 1.0
    raw_message: str | None = None
    is_anime_request: bool | None = None
    admin_command: AdminCommand | None = None


class IntentParser(ABC):
    """Parser caixa-preta: texto -> ParsedIntent."""

    @abstractmethod
    async def parse(self, text: str, context: ParseContext) -> ParsedIntent: ...
