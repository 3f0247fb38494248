"""Entrada de eventos dos gerenciadores de biblioteca (download concluído)."""

from __future__ import annotations

import logging
from enum import StrEnum

from textarr.application.notifications import NotificationDispatcher
from textarr.domain.enums import ExternalSystem, MediaType, RequestStatus
from textarr.domain.models import MediaRequest
from textarr.infra.request_ledger import RequestLedger
from textarr.observability.logging import get_logger

logger: logging.Logger = get_logger(__name__)

_SYSTEM_MEDIA_TYPE: dict[ExternalSystem, MediaType] = {
    ExternalSystem.RADARR: MediaType.MOVIE,
    ExternalSystem.SONARR: MediaType.TV_SHOW,
}


class LibraryEventType(StrEnum):
    TEST = "Test"
    GRAB = "Grab"
    DOWNLOAD = "Download"


class CompletionOutcome(StrEnum):
    ACKNOWLEDGED = "acknowledged"
    DOWNLOADING = "downloading"
    COMPLETED = "completed"
    NO_MATCH = "no_match"
    IGNORED = "ignored"


class DownloadCompletionHandler:
    """Casa eventos externos com pedidos do ledger e dispara a notificação."""

    def __init__(self, ledger: RequestLedger, notifications: NotificationDispatcher) -> None:
        self._ledger = ledger
        self._notifications = notifications

    async def on_download_complete(self, request: MediaRequest) -> bool:
        """Marca como `completed` e notifica o solicitante.

        Retorna se a notificação foi enviada; id desconhecido não notifica.
        """
        if not self._ledger.update_status(request.id, RequestStatus.COMPLETED):
            logger.warning("completion_for_unknown_request", extra={"request_id": request.id})
            return False
        completed = request.model_copy(update={"status": RequestStatus.COMPLETED})
        return await self._notifications.notify_complete(completed)

    def _match(
        self, system: ExternalSystem, external_id: int | None, tmdb_id: int | None
    ) -> MediaRequest | None:
        match = None
        if external_id is not None:
            match = self._ledger.find_by_external_id(system, external_id, active_only=True)
        if match is None and tmdb_id is not None:
            match = self._ledger.find_active_by_catalog_id(tmdb_id, _SYSTEM_MEDIA_TYPE[system])
        return match

    async def handle_library_event(
        self,
        system: ExternalSystem,
        event_type: str,
        external_id: int | None = None,
        tmdb_id: int | None = None,
    ) -> CompletionOutcome:
        """Processa um evento de webhook do Radarr/Sonarr.

        `Test` é só confirmado; `Grab` passa o pedido a `downloading`;
        `Download` casa por id externo, depois por catálogo, e conclui.
        """
        system = ExternalSystem(system)
        log_extra = {
            "system": str(system),
            "event_type": event_type,
            "external_id": external_id,
            "tmdb_id": tmdb_id,
        }
        logger.info("library_event_received", extra=log_extra)

        if event_type == LibraryEventType.TEST:
            return CompletionOutcome.ACKNOWLEDGED
        if event_type not in (LibraryEventType.GRAB, LibraryEventType.DOWNLOAD):
            return CompletionOutcome.IGNORED

        request = self._match(system, external_id, tmdb_id)
        if request is None:
            logger.debug("No pending request found", extra=log_extra)
            return CompletionOutcome.NO_MATCH

        if event_type == LibraryEventType.GRAB:
            self._ledger.update_status(request.id, RequestStatus.DOWNLOADING)
            return CompletionOutcome.DOWNLOADING

        await self.on_download_complete(request)
        logger.info("download_completed", extra={**log_extra, "request_id": request.id})
        return CompletionOutcome.COMPLETED
