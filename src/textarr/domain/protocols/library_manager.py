"""Contrato dos gerenciadores de biblioteca (filmes e séries)."""

from __future__ import annotations

from abc import ABC, abstractmethod

from pydantic import BaseModel, Field

from textarr.domain.enums import ExternalSystem, MediaType, MonitorType
from textarr.domain.models import MediaSearchResult


class LibraryManagerError(Exception):
    """Falha de chamada ao gerenciador externo."""


class AddOptions(BaseModel):
    """Opções de inclusão na biblioteca."""

    quality_profile_id: int
    root_folder: str
    tag_ids: list[int] = Field(default_factory=list)
    monitor: MonitorType | None = None  # Apenas séries


class AddedItem(BaseModel):
    """Item aceito pelo gerenciador (id interno + ids de catálogo)."""

    id: int
    title: str
    tmdb_id: int | None = None
    tvdb_id: int | None = None


class LibraryManager(ABC):
    """Gerenciador externo de uma biblioteca de mídia."""

    system: ExternalSystem
    media_type: MediaType

    @abstractmethod
    async def search(self, term: str) -> list[MediaSearchResult]: ...

    @abstractmethod
    async def lookup_by_catalog_id(self, catalog_id: int) -> MediaSearchResult | None: ...

    @abstractmethod
    async def add(self, item: MediaSearchResult, options: AddOptions) -> AddedItem: ...

    @abstractmethod
    async def in_library(self, catalog_id: int) -> bool: ...
