"""Dublês de teste: parser, gerenciadores de biblioteca, adapter e relógio."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from textarr.domain.enums import ExternalSystem, MediaType
from textarr.domain.identity import Platform
from textarr.domain.models import MediaSearchResult, MessageResponse
from textarr.domain.protocols import (
    AddedItem,
    AddOptions,
    IntentParser,
    LibraryManager,
    ParseContext,
    ParsedIntent,
)
from textarr.messaging.adapter import MessagingAdapter

# Quarta-feira, meio da semana ISO
BASE_TIME = datetime(2024, 5, 15, 12, 0, tzinfo=UTC)


class FakeClock:
    """Relógio controlado pelos testes."""

    def __init__(self, now: datetime = BASE_TIME) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class FakeParser(IntentParser):
    """Parser roteirizado: devolve intenções na ordem, registrando o contexto."""

    def __init__(self, *intents: ParsedIntent) -> None:
        self.intents = list(intents)
        self.contexts: list[ParseContext] = []
        self.texts: list[str] = []
        self.error: Exception | None = None

    def queue(self, *intents: ParsedIntent) -> None:
        self.intents.extend(intents)

    async def parse(self, text: str, context: ParseContext) -> ParsedIntent:
        self.texts.append(text)
        self.contexts.append(context)
        if self.error is not None:
            raise self.error
        return self.intents.pop(0)


class FakeLibraryManager(LibraryManager):
    """Gerenciador em memória com resultados fixos e registro de adds."""

    def __init__(
        self,
        system: ExternalSystem,
        media_type: MediaType,
        results: list[MediaSearchResult] | None = None,
    ) -> None:
        self.system = system
        self.media_type = media_type
        self.results = list(results or [])
        self.library: set[int] = set()
        self.added: list[tuple[MediaSearchResult, AddOptions]] = []
        self.search_error: Exception | None = None
        self.add_error: Exception | None = None
        self.next_id = 100

    async def search(self, term: str) -> list[MediaSearchResult]:
        if self.search_error is not None:
            raise self.search_error
        return list(self.results)

    async def lookup_by_catalog_id(self, catalog_id: int) -> MediaSearchResult | None:
        return next((r for r in self.results if r.tmdb_id == catalog_id), None)

    async def add(self, item: MediaSearchResult, options: AddOptions) -> AddedItem:
        if self.add_error is not None:
            raise self.add_error
        self.added.append((item, options))
        self.library.add(item.tmdb_id)
        self.next_id += 1
        return AddedItem(id=self.next_id, title=item.title, tmdb_id=item.tmdb_id)

    async def in_library(self, catalog_id: int) -> bool:
        return catalog_id in self.library


class FakeAdapter(MessagingAdapter):
    """Adapter que guarda as mensagens enviadas."""

    def __init__(self, platform: Platform = Platform.SMS, enabled: bool = True) -> None:
        self.platform = platform
        self.enabled = enabled
        self.sent: list[tuple[str, MessageResponse]] = []
        self.started = False
        self.stopped = False
        self.send_error: Exception | None = None
        self.start_error: Exception | None = None

    @property
    def is_enabled(self) -> bool:
        return self.enabled

    async def start(self) -> None:
        if self.start_error is not None:
            raise self.start_error
        self.started = True

    async def stop(self) -> None:
        self.stopped = True

    async def send_message(self, user_id: str, response: MessageResponse) -> None:
        if self.send_error is not None:
            raise self.send_error
        self.sent.append((user_id, response))


def movie(tmdb_id: int = 27205, title: str = "Inception", year: int | None = 2010, **kw):
    return MediaSearchResult(
        id=tmdb_id, tmdb_id=tmdb_id, title=title, year=year, media_type=MediaType.MOVIE, **kw
    )


def show(tmdb_id: int = 1396, title: str = "Breaking Bad", year: int | None = 2008, **kw):
    return MediaSearchResult(
        id=tmdb_id + 80000,
        tmdb_id=tmdb_id,
        title=title,
        year=year,
        media_type=MediaType.TV_SHOW,
        **kw,
    )
