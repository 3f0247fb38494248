"""Models de sessão de conversa: ConversationSession.

Uma sessão por PlatformUserId, somente em memória, nunca persistida.
Sessão ociosa além do timeout é tratada como inexistente.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field

from textarr.domain.enums import ConversationState
from textarr.domain.identity import Platform, parse_user_id
from textarr.domain.models import ConversationMessage, MediaSearchResult

class ConversationSession(BaseModel):
    """Estado do diálogo busca -> seleção -> confirmação de um usuário.

    `context` guarda dados de etapas intermediárias (ex.: `anime_status`,
    `monitor_type`); `recent_messages` alimenta o parser.
    """

    user_id: str
    platform: Platform
    state: ConversationState = ConversationState.IDLE
    pending_results: list[MediaSearchResult] = Field(default_factory=list)
    selected_media: MediaSearchResult | None = None
    last_activity: datetime = Field(default_factory=lambda: datetime.now(tz=UTC))
    context: dict[str, Any] = Field(default_factory=dict)
    recent_messages: list[ConversationMessage] = Field(default_factory=list)

    @classmethod
    def fresh(cls, user_id: str, now: datetime) -> ConversationSession:
        """Sessão `idle` nova; plataforma derivada do user_id."""
        return cls(user_id=user_id, platform=parse_user_id(user_id).platform, last_activity=now)
