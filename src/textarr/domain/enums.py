"""Enums de domínio para mídia, pedidos, intenções e estados de conversa."""

from __future__ import annotations

from enum import StrEnum


class MediaType(StrEnum):
    """Tipo de mídia solicitada."""

    MOVIE = "movie"
    TV_SHOW = "tv_show"
    UNKNOWN = "unknown"


class RequestStatus(StrEnum):
    """Ciclo de vida de um pedido.

    pending -> downloading -> completed, com `failed` terminal paralelo.
    """

    PENDING = "pending"
    DOWNLOADING = "downloading"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (RequestStatus.COMPLETED, RequestStatus.FAILED)


class ExternalSystem(StrEnum):
    """Gerenciadores de biblioteca externos (filmes e séries)."""

    RADARR = "radarr"
    SONARR = "sonarr"


class ConversationState(StrEnum):
    """Estados do diálogo busca -> seleção -> confirmação."""

    IDLE = "idle"
    AWAITING_SELECTION = "awaiting_selection"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    AWAITING_ANIME_CONFIRMATION = "awaiting_anime_confirmation"
    AWAITING_SEASON_SELECTION = "awaiting_season_selection"


class Action(StrEnum):
    """Ações que o parser pode extrair de uma mensagem."""

    ADD = "add"
    SEARCH = "search"
    STATUS = "status"
    HELP = "help"
    CONFIRM = "confirm"
    CANCEL = "cancel"
    SELECT = "select"
    ANIME_CONFIRM = "anime_confirm"
    REGULAR_CONFIRM = "regular_confirm"
    SEASON_SELECT = "season_select"
    BACK = "back"
    SHOW_CONTEXT = "show_context"
    RESTART = "restart"
    CHANGE_SELECTION = "change_selection"
    DECLINE = "decline"
    CONTINUE = "continue"
    ADMIN_HELP = "admin_help"
    ADMIN_LIST = "admin_list"
    ADMIN_ADD = "admin_add"
    ADMIN_REMOVE = "admin_remove"
    ADMIN_PROMOTE = "admin_promote"
    ADMIN_DEMOTE = "admin_demote"
    ADMIN_QUOTA = "admin_quota"
    UNKNOWN = "unknown"

    @property
    def is_admin(self) -> bool:
        return self.value.startswith("admin_")


class AnimeStatus(StrEnum):
    """Resultado da detecção de anime feita pelo gerenciador de biblioteca."""

    ANIME = "anime"
    REGULAR = "regular"
    UNCERTAIN = "uncertain"
    UNKNOWN = "unknown"


class LibraryStatus(StrEnum):
    """Situação detalhada de um item já conhecido pela biblioteca."""

    AVAILABLE = "available"
    MONITORED = "monitored"
    PARTIAL = "partial"
    NOT_IN_LIBRARY = "not_in_library"


class MonitorType(StrEnum):
    """Escopo de monitoramento de temporadas (séries)."""

    ALL = "all"
    FUTURE = "future"
    MISSING = "missing"
    EXISTING = "existing"
    FIRST_SEASON = "firstSeason"
    LAST_SEASON = "lastSeason"
    PILOT = "pilot"
    NONE = "none"


# Opções numeradas do prompt de temporadas (1-4)
SEASON_OPTIONS: dict[int, MonitorType] = {
    1: MonitorType.ALL,
    2: MonitorType.FIRST_SEASON,
    3: MonitorType.LAST_SEASON,
    4: MonitorType.FUTURE,
}
