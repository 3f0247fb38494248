"""Modelos de domínio (contratos principais)."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Literal

from pydantic import BaseModel, Field

from textarr.domain.enums import (
    AnimeStatus,
    LibraryStatus,
    MediaType,
    RequestStatus,
)
from textarr.domain.identity import Platform


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


class MediaSearchResult(BaseModel):
    """Resultado de busca normalizado (Radarr/Sonarr).

    `id` é o id principal do gerenciador (TMDB para filmes, TVDB para séries);
    `tmdb_id` é sempre o id de catálogo usado como chave entre sistemas.
    """

    id: int
    tmdb_id: int
    title: str
    media_type: MediaType
    year: int | None = None
    overview: str | None = None
    poster_url: str | None = None
    status: str | None = None
    in_library: bool = False
    library_status: LibraryStatus | None = None
    season_count: int | None = None
    runtime: int | None = None
    rating: float | None = None
    anime_status: AnimeStatus | None = None

    @property
    def display_title(self) -> str:
        return f"{self.title} ({self.year})" if self.year else self.title


class RequestCount(BaseModel):
    """Contadores de pedidos do período corrente (cota)."""

    movies: int = 0
    tv_shows: int = 0
    last_reset: datetime = Field(default_factory=_utcnow)


class NotificationPreferences(BaseModel):
    enabled: bool = True


class User(BaseModel):
    """Usuário cadastrado (dono externo: diretório de usuários).

    `identities` mapeia plataforma -> raw id naquela plataforma.
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str
    is_admin: bool = False
    created_at: datetime = Field(default_factory=_utcnow)
    created_by: str | None = None
    identities: dict[Platform, str] = Field(default_factory=dict)
    request_count: RequestCount = Field(default_factory=RequestCount)
    notification_preferences: NotificationPreferences = Field(
        default_factory=NotificationPreferences
    )


class MediaRequest(BaseModel):
    """Pedido de mídia criado após um add bem-sucedido.

    `tmdb_id` é a chave estável entre sistemas; `radarr_id`/`sonarr_id`
    são preenchidos depois que o gerenciador aceita o item.
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    media_type: MediaType
    title: str
    year: int | None = None
    tmdb_id: int
    tvdb_id: int | None = None
    radarr_id: int | None = None
    sonarr_id: int | None = None
    requested_by: str
    requested_at: datetime = Field(default_factory=_utcnow)
    status: RequestStatus = RequestStatus.PENDING

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def is_active(self) -> bool:
        return self.status in (RequestStatus.PENDING, RequestStatus.DOWNLOADING)


class ConversationMessage(BaseModel):
    """Entrada do histórico recente entregue ao parser."""

    role: Literal["user", "assistant"]
    content: str


class MessageResponse(BaseModel):
    """Resposta de um turno de conversa (ou notificação outbound)."""

    text: str
    media_urls: list[str] | None = None
