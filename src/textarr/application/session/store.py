"""Store de sessões de conversa em memória com expiração por inatividade.

A expiração é aplicada de forma preguiçosa em toda leitura; a varredura
periódica só limita o uso de memória.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any

from textarr.application.session.models import ConversationSession
from textarr.domain.enums import ConversationState
from textarr.domain.identity import mask_user_id
from textarr.domain.models import ConversationMessage, MediaSearchResult
from textarr.infra.periodic import PeriodicTask
from textarr.observability.logging import get_logger

logger: logging.Logger = get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 300
DEFAULT_SWEEP_INTERVAL_SECONDS = 60
DEFAULT_HISTORY_MAX_ENTRIES = 10


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


class ConversationSessionStore:
    """Dono exclusivo das sessões: chamadores recebem cópias, mutação só pelos métodos."""

    def __init__(
        self,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        sweep_interval_seconds: float = DEFAULT_SWEEP_INTERVAL_SECONDS,
        clock: Callable[[], datetime] = _utcnow,
        history_max_entries: int = DEFAULT_HISTORY_MAX_ENTRIES,
    ) -> None:
        self._sessions: dict[str, ConversationSession] = {}
        self._timeout = timedelta(seconds=timeout_seconds)
        self._clock = clock
        self._history_max = history_max_entries
        self._sweeper = PeriodicTask("session_sweep", self.sweep_expired, sweep_interval_seconds)

    def __len__(self) -> int:
        return len(self._sessions)

    def _is_expired(self, session: ConversationSession, now: datetime) -> bool:
        return now - session.last_activity >= self._timeout

    def _touch(self, user_id: str) -> ConversationSession:
        """Sessão viva (ou recém-criada) com last_activity atualizado."""
        now = self._clock()
        session = self._sessions.get(user_id)
        if session is None or self._is_expired(session, now):
            session = ConversationSession.fresh(user_id, now)
            self._sessions[user_id] = session
            logger.debug("Created new session", extra={"user": mask_user_id(user_id)})
        else:
            session.last_activity = now
        return session

    def get(self, user_id: str) -> ConversationSession:
        """Retorna cópia da sessão; expirada ou ausente vira `idle` nova."""
        return self._touch(user_id).model_copy(deep=True)

    def set_state(self, user_id: str, state: ConversationState) -> None:
        session = self._touch(user_id)
        session.state = state
        logger.debug(
            "Updated session state", extra={"user": mask_user_id(user_id), "state": str(state)}
        )

    def set_state_with_context(
        self, user_id: str, state: ConversationState, context: dict[str, Any]
    ) -> None:
        """Atualiza estado e mescla contexto na mesma operação."""
        session = self._touch(user_id)
        session.state = state
        session.context.update(context)
        logger.debug(
            "Updated session state with context",
            extra={"user": mask_user_id(user_id), "state": str(state), "keys": sorted(context)},
        )

    def set_pending_results(self, user_id: str, results: list[MediaSearchResult]) -> None:
        """Guarda resultados e transiciona para `awaiting_selection`."""
        session = self._touch(user_id)
        session.pending_results = list(results)
        session.state = ConversationState.AWAITING_SELECTION
        logger.debug(
            "Set pending results",
            extra={"user": mask_user_id(user_id), "result_count": len(results)},
        )

    def set_selected_media(self, user_id: str, media: MediaSearchResult) -> None:
        """Guarda seleção e transiciona para `awaiting_confirmation`.

        Escolhas da seleção anterior (ex.: `monitor_type`) são descartadas.
        """
        session = self._touch(user_id)
        session.selected_media = media
        session.context = {}
        session.state = ConversationState.AWAITING_CONFIRMATION
        logger.debug(
            "Set selected media",
            extra={"user": mask_user_id(user_id), "tmdb_id": media.tmdb_id},
        )

    def remove_from_pending_results(self, user_id: str, media_id: int) -> None:
        session = self._touch(user_id)
        session.pending_results = [r for r in session.pending_results if r.id != media_id]
        logger.debug(
            "Removed from pending results",
            extra={"user": mask_user_id(user_id), "remaining": len(session.pending_results)},
        )

    def add_message(self, user_id: str, role: str, content: str) -> None:
        """Histórico limitado às últimas N mensagens."""
        session = self._touch(user_id)
        session.recent_messages.append(ConversationMessage(role=role, content=content))
        if len(session.recent_messages) > self._history_max:
            del session.recent_messages[: -self._history_max]

    def reset(self, user_id: str) -> None:
        """Volta para `idle` limpando resultados, seleção e contexto.

        O histórico recente é preservado para o parser.
        """
        session = self._touch(user_id)
        session.state = ConversationState.IDLE
        session.pending_results = []
        session.selected_media = None
        session.context = {}
        logger.debug("Reset session", extra={"user": mask_user_id(user_id)})

    def delete(self, user_id: str) -> None:
        if self._sessions.pop(user_id, None) is not None:
            logger.debug("Deleted session", extra={"user": mask_user_id(user_id)})

    def sweep_expired(self) -> int:
        """Remove sessões expiradas; retorna quantas foram removidas."""
        now = self._clock()
        expired = [uid for uid, s in self._sessions.items() if self._is_expired(s, now)]
        for user_id in expired:
            del self._sessions[user_id]
        if expired:
            logger.debug("Cleaned up expired sessions", extra={"cleaned": len(expired)})
        return len(expired)

    async def start(self) -> None:
        self._sweeper.start()

    async def stop(self) -> None:
        await self._sweeper.stop()
