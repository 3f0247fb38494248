"""Ledger de pedidos de mídia persistido no snapshot JSON.

Único escritor da coleção `media_requests`: demais componentes leem pelos
métodos de consulta e pedem mutações pelos métodos de update. Toda mutação
grava o snapshot inteiro antes de retornar.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any

from textarr.domain.enums import ExternalSystem, MediaType, RequestStatus
from textarr.domain.identity import mask_user_id
from textarr.domain.models import MediaRequest
from textarr.infra.snapshot import JsonSnapshotStore
from textarr.observability.logging import get_logger

logger: logging.Logger = get_logger(__name__)

SECTION = "media_requests"
DEFAULT_RETENTION_DAYS = 30

_EXTERNAL_ID_FIELD: dict[ExternalSystem, str] = {
    ExternalSystem.RADARR: "radarr_id",
    ExternalSystem.SONARR: "sonarr_id",
}


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


class RequestLedger:
    """Registro durável de pedidos, indexado por id, id externo e catálogo."""

    def __init__(
        self,
        snapshot_store: JsonSnapshotStore,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = snapshot_store
        self._clock = clock

    # ------------------------------------------------------------------
    # Leitura
    # ------------------------------------------------------------------

    def _all(self) -> list[MediaRequest]:
        return [MediaRequest.model_validate(raw) for raw in self._store.read_section(SECTION)]

    def get(self, request_id: str) -> MediaRequest | None:
        return next((r for r in self._all() if r.id == request_id), None)

    def find_by_external_id(
        self,
        system: ExternalSystem,
        external_id: int,
        *,
        active_only: bool = False,
    ) -> MediaRequest | None:
        """Busca pelo id do Radarr/Sonarr; prefere o pedido mais recente."""
        field = _EXTERNAL_ID_FIELD[ExternalSystem(system)]
        for request in reversed(self._all()):
            if getattr(request, field) != external_id:
                continue
            if active_only and not request.is_active:
                continue
            return request
        return None

    def find_by_catalog_id(
        self,
        tmdb_id: int,
        media_type: MediaType | None = None,
        *,
        active_only: bool = False,
    ) -> MediaRequest | None:
        """Busca pelo id de catálogo.

        `media_type` separa filme e série que compartilham o mesmo tmdb_id.
        """
        for request in reversed(self._all()):
            if request.tmdb_id != tmdb_id:
                continue
            if media_type is not None and request.media_type != media_type:
                continue
            if active_only and not request.is_active:
                continue
            return request
        return None

    def find_active_by_catalog_id(
        self, tmdb_id: int, media_type: MediaType | None = None
    ) -> MediaRequest | None:
        """Pedido pending/downloading para o catálogo (de-duplicação)."""
        return self.find_by_catalog_id(tmdb_id, media_type, active_only=True)

    def find_pending(self) -> list[MediaRequest]:
        """Pedidos pending ou downloading, para polling de reconciliação."""
        return [r for r in self._all() if r.is_active]

    def find_by_requester(self, user_id: str) -> list[MediaRequest]:
        return [r for r in self._all() if r.requested_by == user_id]

    # ------------------------------------------------------------------
    # Escrita
    # ------------------------------------------------------------------

    def record(
        self,
        media_type: MediaType,
        title: str,
        year: int | None,
        tmdb_id: int,
        requested_by: str,
        *,
        tvdb_id: int | None = None,
        radarr_id: int | None = None,
        sonarr_id: int | None = None,
    ) -> MediaRequest:
        """Cria pedido `pending`. Sem checagem de duplicata nesta camada."""
        request = MediaRequest(
            media_type=media_type,
            title=title,
            year=year,
            tmdb_id=tmdb_id,
            tvdb_id=tvdb_id,
            radarr_id=radarr_id,
            sonarr_id=sonarr_id,
            requested_by=requested_by,
            requested_at=self._clock(),
        )
        self._store.update(
            lambda doc: doc[SECTION].append(request.model_dump(mode="json"))
        )
        logger.info(
            "media_request_recorded",
            extra={
                "request_id": request.id,
                "tmdb_id": tmdb_id,
                "media_type": str(media_type),
                "requested_by": mask_user_id(requested_by),
            },
        )
        return request

    def _mutate(self, request_id: str, changes: dict[str, Any]) -> bool:
        def apply(doc: dict[str, Any]) -> bool:
            for raw in doc[SECTION]:
                if raw.get("id") == request_id:
                    raw.update(changes)
                    return True
            return False

        # Id desconhecido não grava nada
        if self.get(request_id) is None:
            return False
        return self._store.update(apply)

    def update_status(self, request_id: str, status: RequestStatus) -> bool:
        """Atualiza status; False se o id não existe.

        Ordem das transições não é validada aqui.
        """
        updated = self._mutate(request_id, {"status": RequestStatus(status).value})
        if updated:
            logger.info(
                "media_request_status_updated",
                extra={"request_id": request_id, "status": str(status)},
            )
        return updated

    def update_external_id(
        self, request_id: str, system: ExternalSystem, value: int
    ) -> bool:
        field = _EXTERNAL_ID_FIELD[ExternalSystem(system)]
        updated = self._mutate(request_id, {field: value})
        if updated:
            logger.debug(
                "media_request_external_id_updated",
                extra={"request_id": request_id, "system": str(system), "external_id": value},
            )
        return updated

    def prune(self, max_age_days: int = DEFAULT_RETENTION_DAYS) -> int:
        """Remove pedidos terminais mais antigos que `max_age_days`.

        Pedidos pending/downloading nunca são removidos. Zero removidos = sem escrita.
        """
        cutoff = self._clock() - timedelta(days=max_age_days)
        stale = {
            r.id for r in self._all() if r.is_terminal and r.requested_at < cutoff
        }
        if not stale:
            return 0

        def apply(doc: dict[str, Any]) -> int:
            before = len(doc[SECTION])
            doc[SECTION] = [raw for raw in doc[SECTION] if raw.get("id") not in stale]
            return before - len(doc[SECTION])

        removed = self._store.update(apply)
        logger.info(
            "media_requests_pruned",
            extra={"removed": removed, "max_age_days": max_age_days},
        )
        return removed
